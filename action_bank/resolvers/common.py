"""
Shared resolver plumbing: caller identity, ownership-checked loads and the
mapping of storage failures onto API exceptions.
"""

from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Iterator, Optional, Type, TypeVar

from ..bank_types import Exchange
from ..config import ActionBankConfig
from ..data_controller import DataController
from ..exceptions import (
    ActionBankError, AuthenticationError, DataDoesNotExistError,
    InvalidDataError, InvalidInputError, QueryDataError,
)
from ..guards import CallerContext
from ..logging_config import get_logger, log_action
from ..user_token import UserToken
from ..user_types import UserTypeMap


logger = get_logger(__name__)

T = TypeVar('T')


class CommonResolver:
    """Base class for resolver groups"""

    def __init__(self, data_controller: DataController, user_type_map: UserTypeMap,
                 config: ActionBankConfig):
        self.data_controller = data_controller
        self.user_type_map = user_type_map
        self.config = config

    @property
    def bank_controller(self):
        return self.data_controller.bank_controller

    @property
    def user_controller(self):
        return self.data_controller.user_controller

    def get_user_token(self, caller: CallerContext) -> UserToken:
        if caller is None or caller.token is None:
            raise AuthenticationError("Invalid User Token")
        return caller.token

    @contextmanager
    def storage_errors(self, error_cls: Type[ActionBankError], message: str,
                       caller: Optional[CallerContext] = None, action: Optional[str] = None,
                       not_found: Optional[str] = None) -> Iterator[None]:
        """
        Translate anything raised by storage inside the block. API errors pass
        through; a missing record becomes ``not_found`` when given; everything
        else is logged and replaced by ``message``.
        """
        try:
            yield
        except ActionBankError:
            raise
        except DataDoesNotExistError:
            if not_found is not None:
                raise error_cls(not_found)
            raise error_cls(message)
        except Exception:
            log_action(logger, "error", message,
                       user_id=caller.user_id if caller else None,
                       action=action, exc_info=True)
            raise error_cls(message)

    @contextmanager
    def invalid_input(self) -> Iterator[None]:
        """Entity construction failures become InvalidInputError"""
        try:
            yield
        except InvalidDataError as e:
            raise InvalidInputError(f"Invalid Data Provided: {e}")

    async def load_owned(self, loader: Callable[[str], Awaitable[T]], record_id: str,
                         token: UserToken, label: str,
                         error_cls: Type[ActionBankError] = QueryDataError,
                         action: Optional[str] = None) -> T:
        """
        Fetch a record and confirm the caller owns it. Missing and foreign
        records raise the same "<label> Does Not Exist" error.
        """
        not_found = f"{label} Does Not Exist"
        with self.storage_errors(error_cls, f"Error Retrieving {label}",
                                 action=action, not_found=not_found):
            record = await loader(record_id)

        if getattr(record, 'user_id', None) != token.user_id:
            raise error_cls(not_found)
        return record

    async def load_owned_exchange(self, exchange_id: str, token: UserToken,
                                  error_cls: Type[ActionBankError] = QueryDataError,
                                  action: Optional[str] = None) -> Exchange:
        return await self.load_owned(self.bank_controller.get_exchange_by_id, exchange_id,
                                     token, "Exchange", error_cls, action)

    def require_self(self, user_id: str, token: UserToken) -> None:
        """Listing by owner is only allowed for the caller's own id"""
        if user_id != token.user_id:
            raise QueryDataError("Invalid User ID")

    @staticmethod
    def to_json_list(items: Any) -> list:
        return [item.to_json() for item in items]
