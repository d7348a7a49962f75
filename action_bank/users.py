"""
User Entity Module

NewUser is the staging form handed to a UserController; User is what comes
back once persisted. Edits never mutate a User: merge_edits builds a new one
from whitelisted, type-checked overrides.
"""

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional

from .bank_types import utc_now, format_timestamp, require_timestamp
from .exceptions import InvalidDataError
from .user_types import UserType, UserTypeMap


DEFAULT_USER_TYPE = "basic"


def _is_record(value: Any) -> bool:
    return isinstance(value, dict)


@dataclass(frozen=True)
class NewUser:
    """User data that has not been stored yet"""
    username: str
    email: str
    first_name: str
    last_name: str
    user_type: UserType
    password_hash: str
    user_meta: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True

    @classmethod
    def from_json(cls, raw: Any, user_type_map: UserTypeMap) -> 'NewUser':
        """
        Build from an argument bag. username, email and password (already
        hashed by the caller) are required; the rest fall back to defaults.
        """
        if not _is_record(raw):
            raise InvalidDataError("Invalid Data")

        if (not isinstance(raw.get('username'), str)
                or not isinstance(raw.get('email'), str)
                or not isinstance(raw.get('password'), str)):
            raise InvalidDataError("Invalid Data")

        user_type = raw.get('userType')
        if user_type is None:
            user_type = DEFAULT_USER_TYPE

        return cls(
            username=raw['username'],
            email=raw['email'],
            first_name=raw['firstName'] if isinstance(raw.get('firstName'), str) else '',
            last_name=raw['lastName'] if isinstance(raw.get('lastName'), str) else '',
            user_type=user_type_map.get_user_type(user_type),
            password_hash=raw['password'],
            user_meta=raw['userMeta'] if _is_record(raw.get('userMeta')) else {},
            enabled=raw['enabled'] if isinstance(raw.get('enabled'), bool) else True,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'username': self.username,
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'userType': self.user_type.name,
            'passwordHash': self.password_hash,
            'userMeta': self.user_meta,
            'enabled': self.enabled,
        }


@dataclass(frozen=True)
class User:
    """Persisted user"""
    id: str
    username: str
    email: str
    first_name: str
    last_name: str
    user_type: UserType
    password_hash: str
    user_meta: Dict[str, Any]
    enabled: bool
    password_reset_token: str
    password_reset_date: Optional[datetime]
    date_added: datetime
    date_updated: datetime

    @classmethod
    def from_new(cls, draft: NewUser, user_id: str,
                 now: Optional[datetime] = None) -> 'User':
        now = now or utc_now()
        return cls(
            id=user_id,
            username=draft.username,
            email=draft.email,
            first_name=draft.first_name,
            last_name=draft.last_name,
            user_type=draft.user_type,
            password_hash=draft.password_hash,
            user_meta=dict(draft.user_meta),
            enabled=draft.enabled,
            password_reset_token='',
            password_reset_date=None,
            date_added=now,
            date_updated=now,
        )

    def merge_edits(self, edits: Dict[str, Any], user_type_map: UserTypeMap) -> 'User':
        """
        New User with whitelisted overrides applied. Values of the wrong type
        are ignored and the current value is kept. An unknown userType name
        raises InvalidDataError.
        """
        if not _is_record(edits):
            edits = {}

        def pick(key: str, kind: type, current: Any) -> Any:
            value = edits.get(key)
            if isinstance(value, kind):
                return value
            return current

        user_type = self.user_type
        if isinstance(edits.get('userType'), str):
            user_type = user_type_map.get_user_type(edits['userType'])

        return replace(
            self,
            username=pick('username', str, self.username),
            email=pick('email', str, self.email),
            first_name=pick('firstName', str, self.first_name),
            last_name=pick('lastName', str, self.last_name),
            user_type=user_type,
            password_hash=pick('passwordHash', str, self.password_hash),
            user_meta=pick('userMeta', dict, self.user_meta),
            enabled=pick('enabled', bool, self.enabled),
            date_updated=utc_now(),
        )

    def to_public(self) -> Dict[str, Any]:
        """Fields safe to return to API callers"""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'userType': self.user_type.name,
            'userMeta': json.dumps(self.user_meta),
            'enabled': self.enabled,
            'dateAdded': format_timestamp(self.date_added),
            'dateUpdated': format_timestamp(self.date_updated),
        }

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'userType': self.user_type.name,
            'passwordHash': self.password_hash,
            'userMeta': self.user_meta,
            'enabled': self.enabled,
            'passwordResetToken': self.password_reset_token,
            'passwordResetDate': (format_timestamp(self.password_reset_date)
                                  if self.password_reset_date else None),
            'dateAdded': format_timestamp(self.date_added),
            'dateUpdated': format_timestamp(self.date_updated),
        }

    @classmethod
    def from_json(cls, raw: Any, user_type_map: UserTypeMap) -> 'User':
        if not _is_record(raw):
            raise InvalidDataError("Invalid Data")

        for key in ('id', 'username', 'email', 'userType', 'passwordHash', 'passwordResetToken'):
            if not isinstance(raw.get(key), str):
                raise InvalidDataError(f"Invalid Data: {key}")
        if not _is_record(raw.get('userMeta')):
            raise InvalidDataError("Invalid Data: userMeta")
        if not isinstance(raw.get('enabled'), bool):
            raise InvalidDataError("Invalid Data: enabled")

        password_reset_date = None
        if raw.get('passwordResetDate') is not None:
            password_reset_date = require_timestamp(raw, 'passwordResetDate')

        return cls(
            id=raw['id'],
            username=raw['username'],
            email=raw['email'],
            first_name=raw['firstName'] if isinstance(raw.get('firstName'), str) else '',
            last_name=raw['lastName'] if isinstance(raw.get('lastName'), str) else '',
            user_type=user_type_map.get_user_type(raw['userType']),
            password_hash=raw['passwordHash'],
            user_meta=raw['userMeta'],
            enabled=raw['enabled'],
            password_reset_token=raw['passwordResetToken'],
            password_reset_date=password_reset_date,
            date_added=require_timestamp(raw, 'dateAdded'),
            date_updated=require_timestamp(raw, 'dateUpdated'),
        )
