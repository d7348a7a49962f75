"""
User resolvers

User CRUD plus the thin credential flows (login, password reset). Nobody may
act on a user who outranks them, or grant a rank above their own.
"""

import hmac
from datetime import timedelta
from typing import Any, Dict, List, Optional

from ..bank_types import utc_now
from ..exceptions import (
    AuthenticationError, DataDoesNotExistError, EmailExistsError,
    InvalidDataError, InvalidInputError, MutateDataError, QueryDataError,
    UserExistsError,
)
from ..guards import CallerContext
from ..logging_config import get_logger, log_action
from ..passwords import generate_reset_token, hash_password, validate_password, verify_password
from ..schemas import (
    AddUserArgs, AdminEditUserArgs, EditUserArgs, GetUsersArgs, LoginArgs,
    UpdatePasswordArgs, UpdatePasswordWithTokenArgs, UserIdArgs, UsernameArgs,
    parse_args,
)
from ..user_token import UserToken, encode_token
from ..user_types import UserType
from ..users import NewUser, User
from .common import CommonResolver


logger = get_logger(__name__)

EDITABLE_FIELDS = ('username', 'email', 'firstName', 'lastName', 'userMeta')


class UserResolver(CommonResolver):

    def _hash(self, password: str) -> str:
        return hash_password(password, self.config.password_hash_n)

    def _check_password_policy(self, password: str, error_cls=MutateDataError) -> None:
        is_valid, violations = validate_password(password, self.config.password_min_length)
        if not is_valid:
            raise error_cls(f"Invalid Password. {' '.join(violations)}")

    def _requester_type(self, token: UserToken) -> UserType:
        if not self.user_type_map.has_user_type(token.user_type):
            raise MutateDataError("Invalid Login Data")
        return self.user_type_map.get_user_type(token.user_type)

    def _outranked_by(self, requester: UserType, target: UserType) -> bool:
        return self.user_type_map.compare_user_type_levels(requester, target) < 0

    async def _get_user(self, user_id: str, message: str) -> User:
        with self.storage_errors(MutateDataError, message, not_found=message):
            return await self.user_controller.get_user_by_id(user_id)

    async def _save_edits(self, user: User, caller: CallerContext, action: str) -> User:
        try:
            return await self.user_controller.edit_user(user)
        except EmailExistsError:
            raise MutateDataError("Email already exists for another user.")
        except UserExistsError:
            raise MutateDataError("Username already exists for another user.")
        except DataDoesNotExistError:
            raise MutateDataError("Invalid ID Provided")
        except Exception:
            log_action(logger, "error", "Error while saving user",
                       user_id=caller.user_id, action=action, resource=user.id,
                       exc_info=True)
            raise MutateDataError("Error while saving user")

    # Queries

    async def get_user_by_id(self, args: Dict[str, Any],
                             caller: CallerContext) -> Optional[Dict[str, Any]]:
        params = parse_args(UserIdArgs, args)
        with self.storage_errors(QueryDataError, "Error Retrieving User",
                                 caller, 'getUserById'):
            try:
                user = await self.user_controller.get_user_by_id(params.id)
            except DataDoesNotExistError:
                return None
        return user.to_public()

    async def get_user_by_username(self, args: Dict[str, Any],
                                   caller: CallerContext) -> Optional[Dict[str, Any]]:
        params = parse_args(UsernameArgs, args)
        with self.storage_errors(QueryDataError, "Error Retrieving User",
                                 caller, 'getUserByUsername'):
            try:
                user = await self.user_controller.get_user_by_username(params.username)
            except DataDoesNotExistError:
                return None
        return user.to_public()

    async def get_users(self, args: Dict[str, Any],
                        caller: CallerContext) -> List[Dict[str, Any]]:
        params = parse_args(GetUsersArgs, args)
        page_size = params.pagination if params.pagination and params.pagination > 0 \
            else self.config.default_page_size
        page = params.page if params.page and params.page > 0 else 1

        with self.storage_errors(QueryDataError, "Error Retrieving Users", caller, 'getUsers'):
            users = await self.user_controller.get_users(page_size, page)
        return [user.to_public() for user in users]

    # Mutations

    async def add_user(self, args: Dict[str, Any], caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(AddUserArgs, args)
        token = self.get_user_token(caller)
        requester_type = self._requester_type(token)

        raw = params.model_dump(exclude_none=True)
        raw['password'] = self._hash(params.password)
        try:
            new_user = NewUser.from_json(raw, self.user_type_map)
        except InvalidDataError:
            raise InvalidInputError("Invalid Data Provided")

        if self._outranked_by(requester_type, new_user.user_type):
            raise MutateDataError("Cannot add a user of a higher level than your own")

        try:
            user = await self.user_controller.add_user(new_user)
        except UserExistsError:
            raise MutateDataError("Username already exists")
        except EmailExistsError:
            raise MutateDataError("Email already exists")
        except Exception:
            log_action(logger, "error", "Error while saving user",
                       user_id=token.user_id, action='addUser', exc_info=True)
            raise MutateDataError("Error while saving user")

        log_action(logger, "info", "User added", user_id=token.user_id,
                   action='addUser', resource=user.id)
        return user.to_public()

    async def edit_user(self, args: Dict[str, Any], caller: CallerContext) -> Dict[str, Any]:
        """Self-service edit; rank, password and enabled flag are untouchable here"""
        params = parse_args(EditUserArgs, args)
        token = self.get_user_token(caller)

        if token.user_id != params.id:
            raise MutateDataError("You can only update your own User information")

        current = await self._get_user(params.id, "Invalid ID Provided")
        edited = current.merge_edits(params.present(*EDITABLE_FIELDS), self.user_type_map)

        user = await self._save_edits(edited, caller, 'editUser')
        return user.to_public()

    async def admin_edit_user(self, args: Dict[str, Any],
                              caller: CallerContext) -> Dict[str, Any]:
        params = parse_args(AdminEditUserArgs, args)
        token = self.get_user_token(caller)
        requester_type = self._requester_type(token)

        if params.userType is not None:
            if not self.user_type_map.has_user_type(params.userType):
                raise InvalidInputError("Invalid Data Provided: userType")
            requested_type = self.user_type_map.get_user_type(params.userType)
            if self._outranked_by(requester_type, requested_type):
                raise MutateDataError("Cannot update a user to a higher level than your own")

        current = await self._get_user(params.id, "Invalid ID Provided")

        if self._outranked_by(requester_type, current.user_type):
            raise MutateDataError("Cannot update a user of a higher level than your own")

        if (params.id == token.user_id and params.userType is not None
                and params.userType != current.user_type.name):
            raise MutateDataError("You cannot change your own user type")

        edits = params.present(*EDITABLE_FIELDS, 'userType', 'enabled')
        if params.password is not None:
            self._check_password_policy(params.password, InvalidInputError)
            edits['passwordHash'] = self._hash(params.password)

        edited = current.merge_edits(edits, self.user_type_map)
        user = await self._save_edits(edited, caller, 'adminEditUser')
        return user.to_public()

    async def update_password(self, args: Dict[str, Any], caller: CallerContext) -> str:
        """Change a password given the old one"""
        params = parse_args(UpdatePasswordArgs, args)
        token = self.get_user_token(caller)

        self._check_password_policy(params.newPassword)

        user = await self._get_user(params.id, "User does not exist")

        # Rank first, so a higher-ranked user's password is never checked
        if self._outranked_by(self._requester_type(token), user.user_type):
            raise MutateDataError("Cannot update password")

        if not verify_password(params.oldPassword, user.password_hash):
            raise MutateDataError("Invalid User Password")

        with self.storage_errors(MutateDataError, "Error updating password",
                                 caller, 'updatePassword', not_found="User does not exist"):
            await self.user_controller.update_password(user.id, self._hash(params.newPassword))

        return user.id

    async def delete_user(self, args: Dict[str, Any], caller: CallerContext) -> str:
        params = parse_args(UserIdArgs, args)
        token = self.get_user_token(caller)

        # Deleting yourself is never allowed, whatever your rank
        if token.user_id == params.id:
            raise MutateDataError("You cannot delete yourself")

        target = await self._get_user(params.id, "User does not exist")

        if self._outranked_by(self._requester_type(token), target.user_type):
            raise MutateDataError("Cannot delete a user of a higher level")

        with self.storage_errors(MutateDataError, "User does not exist",
                                 caller, 'deleteUser'):
            await self.user_controller.delete_user(params.id)

        log_action(logger, "info", "User deleted", user_id=token.user_id,
                   action='deleteUser', resource=params.id)
        return params.id

    async def get_password_reset_token(self, args: Dict[str, Any],
                                       caller: CallerContext) -> str:
        params = parse_args(UserIdArgs, args)
        token = self.get_user_token(caller)

        target = await self._get_user(params.id, "User does not exist")
        if self._outranked_by(self._requester_type(token), target.user_type):
            raise MutateDataError("Cannot reset the password of a user of a higher level")

        reset_token = generate_reset_token()
        with self.storage_errors(MutateDataError, "Error creating password reset token",
                                 caller, 'getPasswordResetToken',
                                 not_found="User does not exist"):
            await self.user_controller.make_password_reset_token(target.id, reset_token)

        return reset_token

    # Credential flows, reachable without a token

    async def update_password_with_token(self, args: Dict[str, Any]) -> str:
        params = parse_args(UpdatePasswordWithTokenArgs, args)
        self._check_password_policy(params.newPassword)

        user = await self._get_user(params.id, "User does not exist")

        if (not user.password_reset_token
                or not hmac.compare_digest(user.password_reset_token, params.passwordToken)):
            raise MutateDataError("Invalid password reset token")

        timeout = timedelta(minutes=self.config.password_reset_timeout_minutes)
        if user.password_reset_date is None or user.password_reset_date < utc_now() - timeout:
            raise MutateDataError("Password reset token has expired")

        with self.storage_errors(MutateDataError, "Error updating password",
                                 action='updatePasswordWithToken',
                                 not_found="User does not exist"):
            await self.user_controller.update_password(user.id, self._hash(params.newPassword))

        return user.id

    async def login(self, args: Dict[str, Any]) -> str:
        """Check credentials and return a signed token"""
        try:
            params = parse_args(LoginArgs, args)
        except InvalidInputError:
            raise AuthenticationError("Invalid Credentials")

        try:
            user = await self.user_controller.get_user_by_username(params.username)
        except DataDoesNotExistError:
            log_action(logger, "warning", "Login failed", action='login')
            raise AuthenticationError("Invalid Credentials")
        except Exception:
            log_action(logger, "error", "Error retrieving user for login",
                       action='login', exc_info=True)
            raise AuthenticationError("Invalid Credentials")

        if not user.enabled or not verify_password(params.password, user.password_hash):
            log_action(logger, "warning", "Login failed", user_id=user.id, action='login')
            raise AuthenticationError("Invalid Credentials")

        claims = UserToken(username=user.username, user_id=user.id,
                           user_type=user.user_type.name)
        log_action(logger, "info", "Login succeeded", user_id=user.id, action='login')
        return encode_token(claims, self.config.jwt_secret, self.config.jwt_algorithm,
                            self.config.jwt_expiry_hours)
