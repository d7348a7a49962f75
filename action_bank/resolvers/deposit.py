"""
Deposit resolvers
"""

from typing import Any, Dict, List

from ..bank_types import NewDeposit
from ..exceptions import MutateDataError, QueryDataError
from ..guards import CallerContext
from ..schemas import (
    AddDepositArgs, DepositActionIdArgs, DepositIdArgs, EditDepositArgs,
    OwnerIdArgs, parse_args,
)
from .common import CommonResolver


LABEL = "Deposit"


class DepositResolver(CommonResolver):

    async def get_deposit_by_id(self, args: Dict[str, Any],
                                caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(DepositIdArgs, args)
        token = self.get_user_token(caller)

        deposit = await self.load_owned(self.bank_controller.get_deposit_by_id,
                                        params.depositId, token, LABEL,
                                        action='getDepositById')
        return deposit.to_json()

    async def get_deposits_by_user_id(self, args: Dict[str, Any],
                                      caller: CallerContext) -> List[Dict[str, Any]]:
        params = parse_args(OwnerIdArgs, args)
        token = self.get_user_token(caller)
        self.require_self(params.userId, token)

        with self.storage_errors(QueryDataError, "Error Retrieving Deposits",
                                 caller, 'getDepositsByUserId'):
            deposits = await self.bank_controller.get_deposits_by_user_id(params.userId)
        return self.to_json_list(deposits)

    async def get_deposits_by_deposit_action_id(self, args: Dict[str, Any],
                                                caller: CallerContext) -> List[Dict[str, Any]]:
        params = parse_args(DepositActionIdArgs, args)
        token = self.get_user_token(caller)

        action = await self.load_owned(self.bank_controller.get_deposit_action_by_id,
                                       params.depositActionId, token, "Deposit Action",
                                       action='getDepositsByDepositActionId')

        with self.storage_errors(QueryDataError, "Error Retrieving Deposits",
                                 caller, 'getDepositsByDepositActionId'):
            deposits = await self.bank_controller.get_deposits_by_deposit_action_id(action.id)
        return self.to_json_list(deposits)

    async def add_deposit(self, args: Dict[str, Any], caller: CallerContext) -> Dict[str, Any]:
        """Record a deposit at the action's current rate"""
        params = parse_args(AddDepositArgs, args)
        token = self.get_user_token(caller)

        action = await self.load_owned(self.bank_controller.get_deposit_action_by_id,
                                       params.depositActionId, token, "Deposit Action",
                                       MutateDataError, 'addDeposit')
        await self.load_owned_exchange(action.exchange_id, token, MutateDataError, 'addDeposit')

        if not action.enabled:
            raise MutateDataError("Deposit Action Is Disabled")

        with self.invalid_input():
            new_deposit = NewDeposit.from_deposit_action(action, params.quantity)

        with self.storage_errors(MutateDataError, "Unable to Add Deposit",
                                 caller, 'addDeposit'):
            deposit = await self.bank_controller.add_deposit(new_deposit)
        return deposit.to_json()

    async def edit_deposit(self, args: Dict[str, Any], caller: CallerContext) -> Dict[str, Any]:
        """Only the quantity of a recorded deposit can change"""
        params = parse_args(EditDepositArgs, args)
        token = self.get_user_token(caller)

        current = await self.load_owned(self.bank_controller.get_deposit_by_id,
                                        params.depositId, token, LABEL,
                                        MutateDataError, 'editDeposit')

        with self.invalid_input():
            edited = current.with_quantity(params.quantity)

        with self.storage_errors(MutateDataError, "Server Error Updating Deposit",
                                 caller, 'editDeposit'):
            deposit = await self.bank_controller.edit_deposit(edited)
        return deposit.to_json()

    async def delete_deposit(self, args: Dict[str, Any], caller: CallerContext) -> str:
        params = parse_args(DepositIdArgs, args)
        token = self.get_user_token(caller)

        deposit = await self.load_owned(self.bank_controller.get_deposit_by_id,
                                        params.depositId, token, LABEL,
                                        MutateDataError, 'deleteDeposit')

        with self.storage_errors(MutateDataError, "Unable to delete Deposit",
                                 caller, 'deleteDeposit'):
            return await self.bank_controller.delete_deposit(deposit.id)
