"""
Exchange resolvers
"""

from typing import Any, Dict, List

from ..bank_types import NewExchange
from ..exceptions import MutateDataError, QueryDataError
from ..guards import CallerContext
from ..schemas import (
    AddExchangeArgs, EditExchangeArgs, ExchangeIdArgs, OwnerIdArgs, parse_args
)
from .common import CommonResolver


class ExchangeResolver(CommonResolver):

    async def get_exchange_by_id(self, args: Dict[str, Any],
                                 caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(ExchangeIdArgs, args)
        token = self.get_user_token(caller)

        exchange = await self.load_owned_exchange(params.exchangeId, token,
                                                  action='getExchangeById')
        return exchange.to_api_dict()

    async def get_exchanges_by_user_id(self, args: Dict[str, Any],
                                       caller: CallerContext) -> List[Dict[str, Any]]:
        params = parse_args(OwnerIdArgs, args)
        token = self.get_user_token(caller)
        self.require_self(params.userId, token)

        with self.storage_errors(QueryDataError, "Server Error Trying to Retrieve Exchanges",
                                 caller, 'getExchangesByUserId'):
            exchanges = await self.bank_controller.get_exchanges_by_user_id(params.userId)

        return [ex.to_api_dict() for ex in exchanges]

    async def add_exchange(self, args: Dict[str, Any],
                           caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(AddExchangeArgs, args)
        token = self.get_user_token(caller)

        new_exchange = NewExchange(
            user_id=token.user_id,
            name=params.name,
            description=params.description or "",
        )

        with self.storage_errors(MutateDataError, "Unable to Add Exchange",
                                 caller, 'addExchange'):
            exchange = await self.bank_controller.add_exchange(new_exchange)

        return exchange.to_api_dict()

    async def edit_exchange(self, args: Dict[str, Any],
                            caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(EditExchangeArgs, args)
        token = self.get_user_token(caller)

        current = await self.load_owned_exchange(params.exchangeId, token,
                                                 MutateDataError, 'editExchange')
        edited = current.with_edits(name=params.name, description=params.description)

        with self.storage_errors(MutateDataError, "Server Error Updating Exchange",
                                 caller, 'editExchange'):
            exchange = await self.bank_controller.edit_exchange(edited)

        return exchange.to_api_dict()

    async def delete_exchange(self, args: Dict[str, Any], caller: CallerContext) -> str:
        """Delete an exchange with its actions and every transaction under them"""
        params = parse_args(ExchangeIdArgs, args)
        token = self.get_user_token(caller)

        exchange = await self.load_owned_exchange(params.exchangeId, token,
                                                  MutateDataError, 'deleteExchange')
        bank = self.bank_controller

        with self.storage_errors(MutateDataError, "Unable to delete Exchange",
                                 caller, 'deleteExchange'):
            for action in await bank.get_deposit_actions_by_exchange_id(exchange.id):
                await bank.delete_deposits_by_deposit_action_id(action.id)
            for action in await bank.get_withdrawal_actions_by_exchange_id(exchange.id):
                await bank.delete_withdrawals_by_withdrawal_action_id(action.id)

            await bank.delete_deposit_actions_by_exchange_id(exchange.id)
            await bank.delete_withdrawal_actions_by_exchange_id(exchange.id)

            # Sweep transactions whose action was already gone
            await bank.delete_deposits_by_exchange_id(exchange.id)
            await bank.delete_withdrawals_by_exchange_id(exchange.id)

            return await bank.delete_exchange(exchange.id)
