"""
Withdrawal action resolvers
"""

from typing import Any, Dict, List

from ..bank_types import NewWithdrawalAction
from ..exceptions import MutateDataError, QueryDataError
from ..guards import CallerContext
from ..schemas import (
    AddWithdrawalActionArgs, EditWithdrawalActionArgs, ExchangeIdArgs,
    OwnerIdArgs, WithdrawalActionIdArgs, parse_args,
)
from .common import CommonResolver


LABEL = "Withdrawal Action"


class WithdrawalActionResolver(CommonResolver):

    async def get_withdrawal_action_by_id(self, args: Dict[str, Any],
                                          caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(WithdrawalActionIdArgs, args)
        token = self.get_user_token(caller)

        action = await self.load_owned(self.bank_controller.get_withdrawal_action_by_id,
                                       params.withdrawalActionId, token, LABEL,
                                       action='getWithdrawalActionById')
        return action.to_json()

    async def get_withdrawal_actions_by_user_id(self, args: Dict[str, Any],
                                                caller: CallerContext) -> List[Dict[str, Any]]:
        params = parse_args(OwnerIdArgs, args)
        token = self.get_user_token(caller)
        self.require_self(params.userId, token)

        with self.storage_errors(QueryDataError, "Error Retrieving Withdrawal Actions",
                                 caller, 'getWithdrawalActionsByUserId'):
            actions = await self.bank_controller.get_withdrawal_actions_by_user_id(params.userId)
        return self.to_json_list(actions)

    async def get_withdrawal_actions_by_exchange_id(self, args: Dict[str, Any],
                                                    caller: CallerContext) -> List[Dict[str, Any]]:
        params = parse_args(ExchangeIdArgs, args)
        token = self.get_user_token(caller)

        exchange = await self.load_owned_exchange(params.exchangeId, token,
                                                  action='getWithdrawalActionsByExchangeId')
        return self.to_json_list(exchange.withdrawal_actions)

    async def add_withdrawal_action(self, args: Dict[str, Any],
                                    caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(AddWithdrawalActionArgs, args)
        token = self.get_user_token(caller)

        await self.load_owned_exchange(params.exchangeId, token, MutateDataError,
                                       'addWithdrawalAction')

        with self.invalid_input():
            new_action = NewWithdrawalAction(
                user_id=token.user_id,
                exchange_id=params.exchangeId,
                name=params.name,
                uom=params.uom,
                uom_quantity=params.uomQuantity,
                withdrawal_quantity=params.withdrawalQuantity,
                enabled=True if params.enabled is None else params.enabled,
                sorted_location=-1 if params.sortedLocation is None else params.sortedLocation,
            )

        with self.storage_errors(MutateDataError, "Unable to Add Withdrawal Action",
                                 caller, 'addWithdrawalAction'):
            action = await self.bank_controller.add_withdrawal_action(new_action)
        return action.to_json()

    async def edit_withdrawal_action(self, args: Dict[str, Any],
                                     caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(EditWithdrawalActionArgs, args)
        token = self.get_user_token(caller)

        current = await self.load_owned(self.bank_controller.get_withdrawal_action_by_id,
                                        params.withdrawalActionId, token, LABEL,
                                        MutateDataError, 'editWithdrawalAction')

        if params.exchangeId is not None and params.exchangeId != current.exchange_id:
            await self.load_owned_exchange(params.exchangeId, token, MutateDataError,
                                           'editWithdrawalAction')

        changes = params.present('exchangeId', 'name', 'uom', 'uomQuantity',
                                 'withdrawalQuantity', 'enabled', 'sortedLocation')
        with self.invalid_input():
            edited = current.with_edits(
                exchange_id=changes.get('exchangeId', current.exchange_id),
                name=changes.get('name', current.name),
                uom=changes.get('uom', current.uom),
                uom_quantity=changes.get('uomQuantity', current.uom_quantity),
                withdrawal_quantity=changes.get('withdrawalQuantity',
                                                current.withdrawal_quantity),
                enabled=changes.get('enabled', current.enabled),
                sorted_location=changes.get('sortedLocation', current.sorted_location),
            )

        with self.storage_errors(MutateDataError, "Server Error Updating Withdrawal Action",
                                 caller, 'editWithdrawalAction'):
            action = await self.bank_controller.edit_withdrawal_action(edited)
            if action.exchange_id != current.exchange_id:
                await self.bank_controller.move_withdrawals_to_exchange(action.id,
                                                                        action.exchange_id)
        return action.to_json()

    async def delete_withdrawal_action(self, args: Dict[str, Any], caller: CallerContext) -> str:
        params = parse_args(WithdrawalActionIdArgs, args)
        token = self.get_user_token(caller)

        action = await self.load_owned(self.bank_controller.get_withdrawal_action_by_id,
                                       params.withdrawalActionId, token, LABEL,
                                       MutateDataError, 'deleteWithdrawalAction')

        with self.storage_errors(MutateDataError, "Unable to delete Withdrawal Action",
                                 caller, 'deleteWithdrawalAction'):
            await self.bank_controller.delete_withdrawals_by_withdrawal_action_id(action.id)
            return await self.bank_controller.delete_withdrawal_action(action.id)
