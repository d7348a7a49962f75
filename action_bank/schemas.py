"""
Pydantic argument models, one per operation.

Every operation validates its loosely-typed argument bag here before any
storage call is made. Field names are the camelCase names callers send.
"""

import json
from decimal import Decimal
from typing import Annotated, Any, Dict, Optional, Type, TypeVar

from pydantic import (
    BaseModel, ConfigDict, StrictBool, StrictInt, StrictStr,
    ValidationError, BeforeValidator, AfterValidator,
)

from .bank_types import ZERO, to_decimal
from .exceptions import InvalidInputError


M = TypeVar('M', bound=BaseModel)


def _positive(value: Decimal) -> Decimal:
    if value <= ZERO:
        raise ValueError("must be greater than zero")
    return value


def _non_negative(value: Decimal) -> Decimal:
    if value < ZERO:
        raise ValueError("must not be negative")
    return value


def _user_meta(value: Any) -> Any:
    # userMeta may arrive as a JSON-encoded object string
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            raise ValueError("userMeta must be a JSON object")
    if not isinstance(value, dict):
        raise ValueError("userMeta must be a JSON object")
    return value


Quantity = Annotated[Decimal, BeforeValidator(to_decimal)]
UomQuantity = Annotated[Quantity, AfterValidator(_positive)]
RateQuantity = Annotated[Quantity, AfterValidator(_non_negative)]
UserMeta = Annotated[Dict[str, Any], BeforeValidator(_user_meta)]


class OperationArgs(BaseModel):
    """Base for argument models; unknown keys are dropped"""
    model_config = ConfigDict(extra="ignore", frozen=True)

    def present(self, *names: str) -> Dict[str, Any]:
        """The given fields that were supplied with a non-null value"""
        return {name: getattr(self, name) for name in names
                if getattr(self, name) is not None}


def parse_args(model: Type[M], args: Any) -> M:
    """Validate an argument bag, raising InvalidInputError on any problem"""
    if args is None:
        args = {}
    if not isinstance(args, dict):
        raise InvalidInputError("Invalid Data Provided")
    try:
        return model.model_validate(args)
    except ValidationError as e:
        fields = sorted({str(err['loc'][0]) for err in e.errors() if err.get('loc')})
        if fields:
            raise InvalidInputError(f"Invalid Data Provided: {', '.join(fields)}")
        raise InvalidInputError("Invalid Data Provided")


# Authentication

class LoginArgs(OperationArgs):
    username: StrictStr
    password: StrictStr


class UpdatePasswordWithTokenArgs(OperationArgs):
    id: StrictStr
    passwordToken: StrictStr
    newPassword: StrictStr


# Users

class UserIdArgs(OperationArgs):
    id: StrictStr


class UsernameArgs(OperationArgs):
    username: StrictStr


class GetUsersArgs(OperationArgs):
    pagination: Optional[StrictInt] = None
    page: Optional[StrictInt] = None


class AddUserArgs(OperationArgs):
    username: StrictStr
    email: StrictStr
    password: StrictStr
    firstName: Optional[StrictStr] = None
    lastName: Optional[StrictStr] = None
    userType: Optional[StrictStr] = None
    userMeta: Optional[UserMeta] = None
    enabled: Optional[StrictBool] = None


class EditUserArgs(OperationArgs):
    """Self-service edit: rank, password and access flags are not accepted"""
    id: StrictStr
    username: Optional[StrictStr] = None
    email: Optional[StrictStr] = None
    firstName: Optional[StrictStr] = None
    lastName: Optional[StrictStr] = None
    userMeta: Optional[UserMeta] = None


class AdminEditUserArgs(EditUserArgs):
    userType: Optional[StrictStr] = None
    enabled: Optional[StrictBool] = None
    password: Optional[StrictStr] = None


class UpdatePasswordArgs(OperationArgs):
    id: StrictStr
    oldPassword: StrictStr
    newPassword: StrictStr


# Exchanges

class ExchangeIdArgs(OperationArgs):
    exchangeId: StrictStr


class OwnerIdArgs(OperationArgs):
    userId: StrictStr


class AddExchangeArgs(OperationArgs):
    name: StrictStr
    description: Optional[StrictStr] = None


class EditExchangeArgs(OperationArgs):
    exchangeId: StrictStr
    name: Optional[StrictStr] = None
    description: Optional[StrictStr] = None


# Deposit actions

class DepositActionIdArgs(OperationArgs):
    depositActionId: StrictStr


class AddDepositActionArgs(OperationArgs):
    exchangeId: StrictStr
    name: StrictStr
    uom: StrictStr
    uomQuantity: UomQuantity
    depositQuantity: RateQuantity
    enabled: Optional[StrictBool] = None
    sortedLocation: Optional[StrictInt] = None


class EditDepositActionArgs(OperationArgs):
    depositActionId: StrictStr
    exchangeId: Optional[StrictStr] = None
    name: Optional[StrictStr] = None
    uom: Optional[StrictStr] = None
    uomQuantity: Optional[UomQuantity] = None
    depositQuantity: Optional[RateQuantity] = None
    enabled: Optional[StrictBool] = None
    sortedLocation: Optional[StrictInt] = None


# Withdrawal actions

class WithdrawalActionIdArgs(OperationArgs):
    withdrawalActionId: StrictStr


class AddWithdrawalActionArgs(OperationArgs):
    exchangeId: StrictStr
    name: StrictStr
    uom: StrictStr
    uomQuantity: UomQuantity
    withdrawalQuantity: RateQuantity
    enabled: Optional[StrictBool] = None
    sortedLocation: Optional[StrictInt] = None


class EditWithdrawalActionArgs(OperationArgs):
    withdrawalActionId: StrictStr
    exchangeId: Optional[StrictStr] = None
    name: Optional[StrictStr] = None
    uom: Optional[StrictStr] = None
    uomQuantity: Optional[UomQuantity] = None
    withdrawalQuantity: Optional[RateQuantity] = None
    enabled: Optional[StrictBool] = None
    sortedLocation: Optional[StrictInt] = None


# Deposits

class DepositIdArgs(OperationArgs):
    depositId: StrictStr


class AddDepositArgs(OperationArgs):
    depositActionId: StrictStr
    quantity: RateQuantity


class EditDepositArgs(OperationArgs):
    depositId: StrictStr
    quantity: RateQuantity


# Withdrawals

class WithdrawalIdArgs(OperationArgs):
    withdrawalId: StrictStr


class AddWithdrawalArgs(OperationArgs):
    withdrawalActionId: StrictStr
    quantity: RateQuantity


class EditWithdrawalArgs(OperationArgs):
    withdrawalId: StrictStr
    quantity: RateQuantity
