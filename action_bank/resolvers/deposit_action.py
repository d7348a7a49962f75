"""
Deposit action resolvers
"""

from typing import Any, Dict, List

from ..bank_types import NewDepositAction
from ..exceptions import MutateDataError, QueryDataError
from ..guards import CallerContext
from ..schemas import (
    AddDepositActionArgs, DepositActionIdArgs, EditDepositActionArgs,
    ExchangeIdArgs, OwnerIdArgs, parse_args,
)
from .common import CommonResolver


LABEL = "Deposit Action"


class DepositActionResolver(CommonResolver):

    async def get_deposit_action_by_id(self, args: Dict[str, Any],
                                       caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(DepositActionIdArgs, args)
        token = self.get_user_token(caller)

        action = await self.load_owned(self.bank_controller.get_deposit_action_by_id,
                                       params.depositActionId, token, LABEL,
                                       action='getDepositActionById')
        return action.to_json()

    async def get_deposit_actions_by_user_id(self, args: Dict[str, Any],
                                             caller: CallerContext) -> List[Dict[str, Any]]:
        params = parse_args(OwnerIdArgs, args)
        token = self.get_user_token(caller)
        self.require_self(params.userId, token)

        with self.storage_errors(QueryDataError, "Error Retrieving Deposit Actions",
                                 caller, 'getDepositActionsByUserId'):
            actions = await self.bank_controller.get_deposit_actions_by_user_id(params.userId)
        return self.to_json_list(actions)

    async def get_deposit_actions_by_exchange_id(self, args: Dict[str, Any],
                                                 caller: CallerContext) -> List[Dict[str, Any]]:
        params = parse_args(ExchangeIdArgs, args)
        token = self.get_user_token(caller)

        exchange = await self.load_owned_exchange(params.exchangeId, token,
                                                  action='getDepositActionsByExchangeId')
        return self.to_json_list(exchange.deposit_actions)

    async def add_deposit_action(self, args: Dict[str, Any],
                                 caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(AddDepositActionArgs, args)
        token = self.get_user_token(caller)

        await self.load_owned_exchange(params.exchangeId, token, MutateDataError,
                                       'addDepositAction')

        with self.invalid_input():
            new_action = NewDepositAction(
                user_id=token.user_id,
                exchange_id=params.exchangeId,
                name=params.name,
                uom=params.uom,
                uom_quantity=params.uomQuantity,
                deposit_quantity=params.depositQuantity,
                enabled=True if params.enabled is None else params.enabled,
                sorted_location=-1 if params.sortedLocation is None else params.sortedLocation,
            )

        with self.storage_errors(MutateDataError, "Unable to Add Deposit Action",
                                 caller, 'addDepositAction'):
            action = await self.bank_controller.add_deposit_action(new_action)
        return action.to_json()

    async def edit_deposit_action(self, args: Dict[str, Any],
                                  caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(EditDepositActionArgs, args)
        token = self.get_user_token(caller)

        current = await self.load_owned(self.bank_controller.get_deposit_action_by_id,
                                        params.depositActionId, token, LABEL,
                                        MutateDataError, 'editDepositAction')

        # Moving the action requires owning the destination exchange too
        if params.exchangeId is not None and params.exchangeId != current.exchange_id:
            await self.load_owned_exchange(params.exchangeId, token, MutateDataError,
                                           'editDepositAction')

        changes = params.present('exchangeId', 'name', 'uom', 'uomQuantity',
                                 'depositQuantity', 'enabled', 'sortedLocation')
        with self.invalid_input():
            edited = current.with_edits(
                exchange_id=changes.get('exchangeId', current.exchange_id),
                name=changes.get('name', current.name),
                uom=changes.get('uom', current.uom),
                uom_quantity=changes.get('uomQuantity', current.uom_quantity),
                deposit_quantity=changes.get('depositQuantity', current.deposit_quantity),
                enabled=changes.get('enabled', current.enabled),
                sorted_location=changes.get('sortedLocation', current.sorted_location),
            )

        with self.storage_errors(MutateDataError, "Server Error Updating Deposit Action",
                                 caller, 'editDepositAction'):
            action = await self.bank_controller.edit_deposit_action(edited)
            if action.exchange_id != current.exchange_id:
                # Recorded deposits follow their action to the new exchange
                await self.bank_controller.move_deposits_to_exchange(action.id,
                                                                     action.exchange_id)
        return action.to_json()

    async def delete_deposit_action(self, args: Dict[str, Any], caller: CallerContext) -> str:
        """Delete an action together with the deposits recorded against it"""
        params = parse_args(DepositActionIdArgs, args)
        token = self.get_user_token(caller)

        action = await self.load_owned(self.bank_controller.get_deposit_action_by_id,
                                       params.depositActionId, token, LABEL,
                                       MutateDataError, 'deleteDepositAction')

        with self.storage_errors(MutateDataError, "Unable to delete Deposit Action",
                                 caller, 'deleteDepositAction'):
            await self.bank_controller.delete_deposits_by_deposit_action_id(action.id)
            return await self.bank_controller.delete_deposit_action(action.id)
