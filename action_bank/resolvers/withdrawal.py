"""
Withdrawal resolvers
"""

from typing import Any, Dict, List

from ..bank_types import NewWithdrawal
from ..exceptions import MutateDataError, QueryDataError
from ..guards import CallerContext
from ..schemas import (
    AddWithdrawalArgs, EditWithdrawalArgs, OwnerIdArgs, WithdrawalActionIdArgs,
    WithdrawalIdArgs, parse_args,
)
from .common import CommonResolver


LABEL = "Withdrawal"


class WithdrawalResolver(CommonResolver):

    async def get_withdrawal_by_id(self, args: Dict[str, Any],
                                   caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(WithdrawalIdArgs, args)
        token = self.get_user_token(caller)

        withdrawal = await self.load_owned(self.bank_controller.get_withdrawal_by_id,
                                           params.withdrawalId, token, LABEL,
                                           action='getWithdrawalById')
        return withdrawal.to_json()

    async def get_withdrawals_by_user_id(self, args: Dict[str, Any],
                                         caller: CallerContext) -> List[Dict[str, Any]]:
        params = parse_args(OwnerIdArgs, args)
        token = self.get_user_token(caller)
        self.require_self(params.userId, token)

        with self.storage_errors(QueryDataError, "Error Retrieving Withdrawals",
                                 caller, 'getWithdrawalsByUserId'):
            withdrawals = await self.bank_controller.get_withdrawals_by_user_id(params.userId)
        return self.to_json_list(withdrawals)

    async def get_withdrawals_by_withdrawal_action_id(self, args: Dict[str, Any],
                                                      caller: CallerContext) -> List[Dict[str, Any]]:
        params = parse_args(WithdrawalActionIdArgs, args)
        token = self.get_user_token(caller)

        action = await self.load_owned(self.bank_controller.get_withdrawal_action_by_id,
                                       params.withdrawalActionId, token, "Withdrawal Action",
                                       action='getWithdrawalsByWithdrawalActionId')

        with self.storage_errors(QueryDataError, "Error Retrieving Withdrawals",
                                 caller, 'getWithdrawalsByWithdrawalActionId'):
            withdrawals = await self.bank_controller.get_withdrawals_by_withdrawal_action_id(
                action.id)
        return self.to_json_list(withdrawals)

    async def add_withdrawal(self, args: Dict[str, Any],
                             caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(AddWithdrawalArgs, args)
        token = self.get_user_token(caller)

        action = await self.load_owned(self.bank_controller.get_withdrawal_action_by_id,
                                       params.withdrawalActionId, token, "Withdrawal Action",
                                       MutateDataError, 'addWithdrawal')
        await self.load_owned_exchange(action.exchange_id, token, MutateDataError,
                                       'addWithdrawal')

        if not action.enabled:
            raise MutateDataError("Withdrawal Action Is Disabled")

        with self.invalid_input():
            new_withdrawal = NewWithdrawal.from_withdrawal_action(action, params.quantity)

        with self.storage_errors(MutateDataError, "Unable to Add Withdrawal",
                                 caller, 'addWithdrawal'):
            withdrawal = await self.bank_controller.add_withdrawal(new_withdrawal)
        return withdrawal.to_json()

    async def edit_withdrawal(self, args: Dict[str, Any],
                              caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(EditWithdrawalArgs, args)
        token = self.get_user_token(caller)

        current = await self.load_owned(self.bank_controller.get_withdrawal_by_id,
                                        params.withdrawalId, token, LABEL,
                                        MutateDataError, 'editWithdrawal')

        with self.invalid_input():
            edited = current.with_quantity(params.quantity)

        with self.storage_errors(MutateDataError, "Server Error Updating Withdrawal",
                                 caller, 'editWithdrawal'):
            withdrawal = await self.bank_controller.edit_withdrawal(edited)
        return withdrawal.to_json()

    async def delete_withdrawal(self, args: Dict[str, Any], caller: CallerContext) -> str:
        params = parse_args(WithdrawalIdArgs, args)
        token = self.get_user_token(caller)

        withdrawal = await self.load_owned(self.bank_controller.get_withdrawal_by_id,
                                           params.withdrawalId, token, LABEL,
                                           MutateDataError, 'deleteWithdrawal')

        with self.storage_errors(MutateDataError, "Unable to delete Withdrawal",
                                 caller, 'deleteWithdrawal'):
            return await self.bank_controller.delete_withdrawal(withdrawal.id)
