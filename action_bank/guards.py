"""
Authorization Guards

A guard is a predicate over (arguments, caller) evaluated before an operation
runs. Guards return False on anything they cannot verify: a missing token, an
unknown role, malformed arguments. They never raise; turning a False into a
denial is the caller's job.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from .user_token import UserToken
from .user_types import UserType, UserTypeMap


@dataclass(frozen=True)
class CallerContext:
    """Identity of whoever is calling, decoded from a bearer token"""
    token: Optional[UserToken] = None
    correlation_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.token.user_id if self.token else None

    @classmethod
    def anonymous(cls) -> 'CallerContext':
        return cls(token=None)


Guard = Callable[[Dict[str, Any], CallerContext], bool]


def guard_logged_in() -> Guard:
    """Passes for any caller carrying a valid token"""
    def guard(args: Dict[str, Any], caller: CallerContext) -> bool:
        return caller.is_authenticated

    return guard


def guard_by_user_type(min_user_type: UserType, user_type_map: UserTypeMap) -> Guard:
    """Passes when the caller's role ranks at or above min_user_type"""
    def guard(args: Dict[str, Any], caller: CallerContext) -> bool:
        if caller.token is None:
            return False
        if not user_type_map.has_user_type(caller.token.user_type):
            return False
        current = user_type_map.get_user_type(caller.token.user_type)
        return current.can_access_level(min_user_type)

    return guard


def guard_by_user_id(arg_names: Sequence[str] = ("id", "userId")) -> Guard:
    """
    Passes when the caller is the user the operation targets. The first of
    arg_names present in the arguments names the target; it must be a string
    equal to the caller's user id.
    """
    def guard(args: Dict[str, Any], caller: CallerContext) -> bool:
        if caller.token is None or not isinstance(args, dict):
            return False
        for name in arg_names:
            if name in args:
                value = args[name]
                return isinstance(value, str) and value == caller.token.user_id
        return False

    return guard


def any_guard(*guards: Guard) -> Guard:
    """Passes when at least one guard passes"""
    def guard(args: Dict[str, Any], caller: CallerContext) -> bool:
        return any(g(args, caller) for g in guards)

    return guard


def all_guards(*guards: Guard) -> Guard:
    """Passes when every guard passes"""
    def guard(args: Dict[str, Any], caller: CallerContext) -> bool:
        return all(g(args, caller) for g in guards)

    return guard
