"""
User Controller Module

Storage-facing user operations. The abstract UserController is the contract
resolvers consume; StorageUserController implements it over any
StorageInterface backend. Uniqueness of usernames and emails is enforced
here, at write time.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from .bank_types import utc_now
from .exceptions import (
    DataDoesNotExistError, InvalidDataError, UserExistsError, EmailExistsError
)
from .logging_config import get_logger
from .storage import StorageInterface
from .user_types import UserTypeMap
from .users import NewUser, User


logger = get_logger(__name__)

USERS_TABLE = "users"


class UserController(ABC):
    """Contract for user persistence"""

    @abstractmethod
    async def get_user_by_username(self, username: str) -> User:
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> User:
        pass

    @abstractmethod
    async def get_users(self, page_size: int, page_number: int) -> List[User]:
        pass

    @abstractmethod
    async def add_user(self, new_user: NewUser) -> User:
        pass

    @abstractmethod
    async def edit_user(self, user: User) -> User:
        pass

    @abstractmethod
    async def update_password(self, user_id: str, password_hash: str) -> str:
        pass

    @abstractmethod
    async def make_password_reset_token(self, user_id: str, token: str,
                                        now: Optional[datetime] = None) -> User:
        pass

    @abstractmethod
    async def delete_user(self, user_id: str) -> str:
        pass

    @abstractmethod
    async def is_no_users(self) -> bool:
        pass


class StorageUserController(UserController):
    """UserController backed by a StorageInterface table"""

    def __init__(self, storage: StorageInterface, user_type_map: UserTypeMap):
        self.storage = storage
        self.user_type_map = user_type_map

    def _parse(self, raw) -> User:
        return User.from_json(raw, self.user_type_map)

    async def _load_all(self) -> List[User]:
        users = []
        for raw in await self.storage.load_all(USERS_TABLE):
            try:
                users.append(self._parse(raw))
            except InvalidDataError:
                logger.warning("Skipping malformed user record",
                               extra={'resource': USERS_TABLE})
        return users

    async def _check_unique(self, username: str, email: str,
                            exclude_id: Optional[str] = None) -> None:
        for user in await self._load_all():
            if user.id == exclude_id:
                continue
            if user.username == username:
                raise UserExistsError(f"Username {username} already exists")
            if user.email == email:
                raise EmailExistsError(f"Email {email} already exists")

    async def get_user_by_username(self, username: str) -> User:
        results = await self.storage.find(USERS_TABLE, {'username': username})
        if not results:
            raise DataDoesNotExistError(f"User {username} does not exist")
        return self._parse(results[0])

    async def get_user_by_id(self, user_id: str) -> User:
        raw = await self.storage.load(USERS_TABLE, user_id)
        if raw is None:
            raise DataDoesNotExistError(f"User {user_id} does not exist")
        return self._parse(raw)

    async def get_users(self, page_size: int, page_number: int) -> List[User]:
        """One page of users ordered by date added; page_number is 1-based"""
        users = sorted(await self._load_all(), key=lambda u: (u.date_added, u.id))
        start = (page_number - 1) * page_size
        return users[start:start + page_size]

    async def add_user(self, new_user: NewUser) -> User:
        await self._check_unique(new_user.username, new_user.email)

        user = User.from_new(new_user, str(uuid.uuid4()))
        await self.storage.save(USERS_TABLE, user.id, user.to_json())
        return user

    async def edit_user(self, user: User) -> User:
        if not await self.storage.exists(USERS_TABLE, user.id):
            raise DataDoesNotExistError(f"User {user.id} does not exist")

        await self._check_unique(user.username, user.email, exclude_id=user.id)
        await self.storage.save(USERS_TABLE, user.id, user.to_json())
        return user

    async def update_password(self, user_id: str, password_hash: str) -> str:
        """Replace the password hash and clear any outstanding reset token"""
        user = await self.get_user_by_id(user_id)
        raw = user.to_json()
        raw.update({
            'passwordHash': password_hash,
            'passwordResetToken': '',
            'passwordResetDate': None,
            'dateUpdated': utc_now().isoformat(),
        })
        await self.storage.save(USERS_TABLE, user_id, raw)
        return user_id

    async def make_password_reset_token(self, user_id: str, token: str,
                                        now: Optional[datetime] = None) -> User:
        user = await self.get_user_by_id(user_id)
        raw = user.to_json()
        raw.update({
            'passwordResetToken': token,
            'passwordResetDate': (now or utc_now()).isoformat(),
        })
        await self.storage.save(USERS_TABLE, user_id, raw)
        return self._parse(raw)

    async def delete_user(self, user_id: str) -> str:
        if not await self.storage.delete(USERS_TABLE, user_id):
            raise DataDoesNotExistError(f"User {user_id} does not exist")
        return user_id

    async def is_no_users(self) -> bool:
        return await self.storage.count(USERS_TABLE) == 0
