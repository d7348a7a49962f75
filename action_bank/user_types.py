"""
User Types

Ranked roles used for access-control floors and for the rule that nobody may
act on, or promote anyone to, a rank above their own.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .exceptions import InvalidDataError


@dataclass(frozen=True)
class UserType:
    """A named role with a numeric rank"""
    name: str
    level: int

    def can_access_level(self, min_user_type: 'UserType') -> bool:
        """True when this role ranks at or above min_user_type"""
        return self.level >= min_user_type.level


DEFAULT_USER_TYPES = (
    UserType("superAdmin", 100),
    UserType("admin", 75),
    UserType("editor", 50),
    UserType("basic", 10),
)


class UserTypeMap:
    """
    Registry of the roles known to one ActionBank instance.

    Built once at startup and handed to every component that resolves role
    names. Looking up a name that is not registered raises InvalidDataError.
    """

    def __init__(self, user_types: Optional[Iterable[UserType]] = None):
        types = list(user_types) if user_types is not None else list(DEFAULT_USER_TYPES)
        if not types:
            raise ValueError("At least one user type is required")

        self._types: Dict[str, UserType] = {}
        for user_type in types:
            if user_type.name in self._types:
                raise ValueError(f"Duplicate user type: {user_type.name}")
            self._types[user_type.name] = user_type

    def get_user_type(self, name: str) -> UserType:
        """Resolve a role by name"""
        user_type = self._types.get(name) if isinstance(name, str) else None
        if user_type is None:
            raise InvalidDataError(f"Unknown user type: {name!r}")
        return user_type

    def has_user_type(self, name: str) -> bool:
        return name in self._types

    @staticmethod
    def compare_user_type_levels(a: UserType, b: UserType) -> int:
        """Negative when a ranks below b, zero when equal, positive when above"""
        return a.level - b.level

    @property
    def user_types(self) -> List[UserType]:
        """All roles, highest rank first"""
        return sorted(self._types.values(), key=lambda t: t.level, reverse=True)

    @property
    def highest(self) -> UserType:
        return self.user_types[0]

    @property
    def lowest(self) -> UserType:
        return self.user_types[-1]
