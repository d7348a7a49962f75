"""
Action Bank Service

Wires storage, roles, guards and resolvers together. Every named query and
mutation is registered with the guard that gates it; execute() evaluates the
guard before the resolver runs and denies with a generic ForbiddenError.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .config import ActionBankConfig, get_config
from .data_controller import DataController
from .exceptions import AuthenticationError, ForbiddenError, InvalidInputError
from .guards import (
    CallerContext, Guard, any_guard, guard_by_user_id, guard_by_user_type, guard_logged_in
)
from .logging_config import get_logger, log_action
from .passwords import hash_password
from .resolvers import (
    DepositActionResolver, DepositResolver, ExchangeResolver, UserResolver,
    WithdrawalActionResolver, WithdrawalResolver,
)
from .user_token import decode_token
from .user_types import UserTypeMap
from .users import NewUser, User


logger = get_logger(__name__)

QUERY = "query"
MUTATION = "mutation"

Resolver = Callable[[Dict[str, Any], CallerContext], Awaitable[Any]]


@dataclass(frozen=True)
class Operation:
    """A named operation and the guard in front of it"""
    name: str
    kind: str
    guard: Guard
    resolver: Resolver


class ActionBank:
    """
    The service object the transport layer talks to.

    Construct with a DataController (defaults to the configured backend), then
    await initialize() before serving calls.
    """

    def __init__(self, data_controller: Optional[DataController] = None,
                 config: Optional[ActionBankConfig] = None,
                 user_type_map: Optional[UserTypeMap] = None):
        self.config = config or get_config()
        self.user_type_map = user_type_map or UserTypeMap()
        self.data_controller = data_controller or DataController.from_config(
            self.user_type_map, self.config)

        resolver_args = (self.data_controller, self.user_type_map, self.config)
        self.user_resolver = UserResolver(*resolver_args)
        self.exchange_resolver = ExchangeResolver(*resolver_args)
        self.deposit_action_resolver = DepositActionResolver(*resolver_args)
        self.withdrawal_action_resolver = WithdrawalActionResolver(*resolver_args)
        self.deposit_resolver = DepositResolver(*resolver_args)
        self.withdrawal_resolver = WithdrawalResolver(*resolver_args)

        self._operations: Dict[str, Operation] = {}
        self._register_operations()

    # Lifecycle

    async def initialize(self) -> None:
        await self.data_controller.initialize()
        if self.config.bootstrap_admin:
            await self.bootstrap()

    async def close(self) -> None:
        await self.data_controller.close()

    async def bootstrap(self) -> Optional[User]:
        """
        First-run convenience: when no users exist, create one superAdmin with
        the configured default credentials. Not a security feature; change
        the password immediately.
        """
        if not await self.data_controller.user_controller.is_no_users():
            return None

        new_user = NewUser(
            username=self.config.bootstrap_username,
            email=self.config.bootstrap_email,
            first_name='admin',
            last_name='admin',
            user_type=self.user_type_map.highest,
            password_hash=hash_password(self.config.bootstrap_password,
                                        self.config.password_hash_n),
        )
        user = await self.data_controller.user_controller.add_user(new_user)

        log_action(logger, "warning",
                   f"No users found, created default {user.user_type.name} "
                   f"'{user.username}' with the default password",
                   user_id=user.id, action='bootstrap')
        return user

    # Operation registry

    def _register(self, name: str, kind: str, guard: Guard, resolver: Resolver) -> None:
        self._operations[name] = Operation(name, kind, guard, resolver)

    def _register_operations(self) -> None:
        types = self.user_type_map
        editor_floor = guard_by_user_type(types.get_user_type('editor'), types)
        admin_floor = guard_by_user_type(types.get_user_type('admin'), types)
        is_self = guard_by_user_id(('id',))
        logged_in = guard_logged_in()

        users = self.user_resolver
        self._register('getUserById', QUERY, editor_floor, users.get_user_by_id)
        self._register('getUserByUsername', QUERY, editor_floor, users.get_user_by_username)
        self._register('getUsers', QUERY, editor_floor, users.get_users)
        self._register('addUser', MUTATION, admin_floor, users.add_user)
        self._register('editUser', MUTATION, is_self, users.edit_user)
        self._register('adminEditUser', MUTATION, admin_floor, users.admin_edit_user)
        self._register('updatePassword', MUTATION, any_guard(is_self, admin_floor),
                       users.update_password)
        self._register('deleteUser', MUTATION, admin_floor, users.delete_user)
        self._register('getPasswordResetToken', MUTATION, admin_floor,
                       users.get_password_reset_token)

        # Bank operations only need a caller; resolvers check ownership
        bank_queries = (
            ('getExchangeById', self.exchange_resolver.get_exchange_by_id),
            ('getExchangesByUserId', self.exchange_resolver.get_exchanges_by_user_id),
            ('getDepositActionById', self.deposit_action_resolver.get_deposit_action_by_id),
            ('getDepositActionsByUserId',
             self.deposit_action_resolver.get_deposit_actions_by_user_id),
            ('getDepositActionsByExchangeId',
             self.deposit_action_resolver.get_deposit_actions_by_exchange_id),
            ('getWithdrawalActionById',
             self.withdrawal_action_resolver.get_withdrawal_action_by_id),
            ('getWithdrawalActionsByUserId',
             self.withdrawal_action_resolver.get_withdrawal_actions_by_user_id),
            ('getWithdrawalActionsByExchangeId',
             self.withdrawal_action_resolver.get_withdrawal_actions_by_exchange_id),
            ('getDepositById', self.deposit_resolver.get_deposit_by_id),
            ('getDepositsByUserId', self.deposit_resolver.get_deposits_by_user_id),
            ('getDepositsByDepositActionId',
             self.deposit_resolver.get_deposits_by_deposit_action_id),
            ('getWithdrawalById', self.withdrawal_resolver.get_withdrawal_by_id),
            ('getWithdrawalsByUserId', self.withdrawal_resolver.get_withdrawals_by_user_id),
            ('getWithdrawalsByWithdrawalActionId',
             self.withdrawal_resolver.get_withdrawals_by_withdrawal_action_id),
        )
        bank_mutations = (
            ('addExchange', self.exchange_resolver.add_exchange),
            ('editExchange', self.exchange_resolver.edit_exchange),
            ('deleteExchange', self.exchange_resolver.delete_exchange),
            ('addDepositAction', self.deposit_action_resolver.add_deposit_action),
            ('editDepositAction', self.deposit_action_resolver.edit_deposit_action),
            ('deleteDepositAction', self.deposit_action_resolver.delete_deposit_action),
            ('addWithdrawalAction', self.withdrawal_action_resolver.add_withdrawal_action),
            ('editWithdrawalAction', self.withdrawal_action_resolver.edit_withdrawal_action),
            ('deleteWithdrawalAction',
             self.withdrawal_action_resolver.delete_withdrawal_action),
            ('addDeposit', self.deposit_resolver.add_deposit),
            ('editDeposit', self.deposit_resolver.edit_deposit),
            ('deleteDeposit', self.deposit_resolver.delete_deposit),
            ('addWithdrawal', self.withdrawal_resolver.add_withdrawal),
            ('editWithdrawal', self.withdrawal_resolver.edit_withdrawal),
            ('deleteWithdrawal', self.withdrawal_resolver.delete_withdrawal),
        )
        for name, resolver in bank_queries:
            self._register(name, QUERY, logged_in, resolver)
        for name, resolver in bank_mutations:
            self._register(name, MUTATION, logged_in, resolver)

    @property
    def operation_names(self) -> List[str]:
        return sorted(self._operations)

    def get_operation(self, name: str) -> Operation:
        operation = self._operations.get(name)
        if operation is None:
            raise InvalidInputError(f"Unknown operation: {name}")
        return operation

    async def execute(self, name: str, args: Optional[Dict[str, Any]],
                      caller: CallerContext) -> Any:
        """Run a named operation if its guard lets the caller through"""
        operation = self.get_operation(name)
        args = {} if args is None else args

        if not operation.guard(args, caller):
            log_action(logger, "warning", "Operation denied",
                       user_id=caller.user_id, action=name,
                       correlation_id=caller.correlation_id)
            raise ForbiddenError()

        return await operation.resolver(args, caller)

    # Unguarded flows

    async def login(self, username: Any, password: Any) -> str:
        return await self.user_resolver.login({'username': username, 'password': password})

    async def update_password_with_token(self, args: Dict[str, Any]) -> str:
        return await self.user_resolver.update_password_with_token(args)

    def caller_from_token(self, encoded: Optional[str],
                          correlation_id: Optional[str] = None) -> CallerContext:
        """Decode a bearer token; anything invalid yields an anonymous caller"""
        if not encoded:
            return CallerContext(correlation_id=correlation_id)
        try:
            token = decode_token(encoded, self.config.jwt_secret, self.config.jwt_algorithm)
        except AuthenticationError:
            return CallerContext(correlation_id=correlation_id)
        return CallerContext(token=token, correlation_id=correlation_id)
