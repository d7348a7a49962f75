"""
Bank Entity Module

Exchanges, deposit/withdrawal action definitions and the deposits/withdrawals
recorded against them. Each entity has a draft form (New*, no identity) and a
persisted record form built either from a draft plus a fresh id or from a raw
record via a strict from_json factory.

All quantities are Decimal. A transaction snapshots the rate-defining fields of
its action when it is created so later edits to the action never change the
value of recorded history.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from .exceptions import InvalidDataError


ZERO = Decimal("0")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Strict field readers for raw records

def _require_record(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise InvalidDataError("Invalid Data")
    return raw


def _require_str(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str):
        raise InvalidDataError(f"Invalid Data: {key}")
    return value


def _optional_str(raw: Dict[str, Any], key: str, default: str = "") -> str:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidDataError(f"Invalid Data: {key}")
    return value


def _require_bool(raw: Dict[str, Any], key: str) -> bool:
    value = raw.get(key)
    if not isinstance(value, bool):
        raise InvalidDataError(f"Invalid Data: {key}")
    return value


def _require_int(raw: Dict[str, Any], key: str) -> int:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDataError(f"Invalid Data: {key}")
    return value


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number or numeric string to a finite Decimal"""
    if isinstance(value, bool):
        raise InvalidDataError("Booleans are not quantities")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            raise InvalidDataError(f"Invalid quantity: {value!r}")
    else:
        raise InvalidDataError(f"Invalid quantity: {value!r}")

    if not result.is_finite():
        raise InvalidDataError(f"Invalid quantity: {value!r}")
    return result


def _require_decimal(raw: Dict[str, Any], key: str) -> Decimal:
    if key not in raw:
        raise InvalidDataError(f"Invalid Data: {key}")
    try:
        return to_decimal(raw[key])
    except InvalidDataError:
        raise InvalidDataError(f"Invalid Data: {key}")


def require_timestamp(raw: Dict[str, Any], key: str) -> datetime:
    """Accept datetimes, ISO-8601 strings and epoch milliseconds"""
    value = raw.get(key)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        # fromisoformat only accepts a "Z" suffix from Python 3.11 on
        if value.endswith(('Z', 'z')):
            value = value[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            raise InvalidDataError(f"Invalid Data: {key}")
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise InvalidDataError(f"Invalid Data: {key}")
    raise InvalidDataError(f"Invalid Data: {key}")


def format_timestamp(value: datetime) -> str:
    return value.isoformat()


def format_decimal(value: Decimal) -> str:
    return str(value)


# Rate arithmetic

def validate_rate(uom_quantity: Decimal, quantity: Decimal) -> None:
    """Rates need a positive denominator and a non-negative numerator"""
    if uom_quantity <= ZERO:
        raise InvalidDataError("uomQuantity must be greater than zero")
    if quantity < ZERO:
        raise InvalidDataError("Quantity must not be negative")


def exchange_rate(quantity: Decimal, uom_quantity: Decimal) -> Decimal:
    """Currency units earned or spent per single unit of measure"""
    return quantity / uom_quantity


def transaction_value(amount: Decimal, quantity: Decimal, uom_quantity: Decimal) -> Decimal:
    """
    amount * (quantity / uom_quantity), multiplied first so that
    exact ratios such as 9 * (1 / 3) stay exact.
    """
    return amount * quantity / uom_quantity


def _sort_actions(actions: List[Any]) -> List[Any]:
    return sorted(actions, key=lambda a: a.sorted_location)


def _sort_transactions(transactions: List[Any]) -> List[Any]:
    return sorted(transactions, key=lambda t: t.date_added)


# Deposit actions

@dataclass(frozen=True)
class NewDepositAction:
    """
    Draft deposit action. uom_quantity and deposit_quantity are the denominator
    and numerator of the exchange rate, e.g. 30 "minutes ridden" earn 1 unit.
    """
    user_id: str
    exchange_id: str
    name: str
    uom: str
    uom_quantity: Decimal
    deposit_quantity: Decimal
    enabled: bool = True
    sorted_location: int = -1

    def __post_init__(self):
        validate_rate(self.uom_quantity, self.deposit_quantity)

    @property
    def exchange_rate(self) -> Decimal:
        return exchange_rate(self.deposit_quantity, self.uom_quantity)

    def get_cost(self, quantity: Decimal) -> Decimal:
        return transaction_value(quantity, self.deposit_quantity, self.uom_quantity)

    def to_json(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'exchangeId': self.exchange_id,
            'name': self.name,
            'uom': self.uom,
            'uomQuantity': format_decimal(self.uom_quantity),
            'depositQuantity': format_decimal(self.deposit_quantity),
            'enabled': self.enabled,
            'sortedLocation': self.sorted_location,
        }

    @classmethod
    def from_json(cls, raw: Any) -> 'NewDepositAction':
        raw = _require_record(raw)
        sorted_location = raw.get('sortedLocation', -1)
        if isinstance(sorted_location, bool) or not isinstance(sorted_location, int):
            raise InvalidDataError("Invalid Data: sortedLocation")
        enabled = raw.get('enabled', True)
        if not isinstance(enabled, bool):
            raise InvalidDataError("Invalid Data: enabled")

        return cls(
            user_id=_require_str(raw, 'userId'),
            exchange_id=_require_str(raw, 'exchangeId'),
            name=_require_str(raw, 'name'),
            uom=_require_str(raw, 'uom'),
            uom_quantity=_require_decimal(raw, 'uomQuantity'),
            deposit_quantity=_require_decimal(raw, 'depositQuantity'),
            enabled=enabled,
            sorted_location=sorted_location,
        )


@dataclass(frozen=True)
class DepositAction:
    """Persisted deposit action"""
    id: str
    user_id: str
    exchange_id: str
    name: str
    uom: str
    uom_quantity: Decimal
    deposit_quantity: Decimal
    enabled: bool
    sorted_location: int
    date_added: datetime
    date_updated: datetime

    def __post_init__(self):
        validate_rate(self.uom_quantity, self.deposit_quantity)

    @property
    def exchange_rate(self) -> Decimal:
        return exchange_rate(self.deposit_quantity, self.uom_quantity)

    def get_cost(self, quantity: Decimal) -> Decimal:
        return transaction_value(quantity, self.deposit_quantity, self.uom_quantity)

    @classmethod
    def from_new(cls, draft: NewDepositAction, action_id: str,
                 now: Optional[datetime] = None) -> 'DepositAction':
        now = now or utc_now()
        return cls(
            id=action_id,
            user_id=draft.user_id,
            exchange_id=draft.exchange_id,
            name=draft.name,
            uom=draft.uom,
            uom_quantity=draft.uom_quantity,
            deposit_quantity=draft.deposit_quantity,
            enabled=draft.enabled,
            sorted_location=draft.sorted_location,
            date_added=now,
            date_updated=now,
        )

    def with_edits(self, **changes) -> 'DepositAction':
        """Copy with the given fields replaced and date_updated stamped"""
        changes.setdefault('date_updated', utc_now())
        return replace(self, **changes)

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'userId': self.user_id,
            'exchangeId': self.exchange_id,
            'name': self.name,
            'uom': self.uom,
            'uomQuantity': format_decimal(self.uom_quantity),
            'depositQuantity': format_decimal(self.deposit_quantity),
            'enabled': self.enabled,
            'sortedLocation': self.sorted_location,
            'dateAdded': format_timestamp(self.date_added),
            'dateUpdated': format_timestamp(self.date_updated),
        }

    @classmethod
    def from_json(cls, raw: Any) -> 'DepositAction':
        raw = _require_record(raw)
        return cls(
            id=_require_str(raw, 'id'),
            user_id=_require_str(raw, 'userId'),
            exchange_id=_require_str(raw, 'exchangeId'),
            name=_require_str(raw, 'name'),
            uom=_require_str(raw, 'uom'),
            uom_quantity=_require_decimal(raw, 'uomQuantity'),
            deposit_quantity=_require_decimal(raw, 'depositQuantity'),
            enabled=_require_bool(raw, 'enabled'),
            sorted_location=_require_int(raw, 'sortedLocation'),
            date_added=require_timestamp(raw, 'dateAdded'),
            date_updated=require_timestamp(raw, 'dateUpdated'),
        )


# Withdrawal actions

@dataclass(frozen=True)
class NewWithdrawalAction:
    """Draft withdrawal action; withdrawal_quantity / uom_quantity is the price per unit"""
    user_id: str
    exchange_id: str
    name: str
    uom: str
    uom_quantity: Decimal
    withdrawal_quantity: Decimal
    enabled: bool = True
    sorted_location: int = -1

    def __post_init__(self):
        validate_rate(self.uom_quantity, self.withdrawal_quantity)

    @property
    def exchange_rate(self) -> Decimal:
        return exchange_rate(self.withdrawal_quantity, self.uom_quantity)

    def get_cost(self, quantity: Decimal) -> Decimal:
        return transaction_value(quantity, self.withdrawal_quantity, self.uom_quantity)

    def to_json(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'exchangeId': self.exchange_id,
            'name': self.name,
            'uom': self.uom,
            'uomQuantity': format_decimal(self.uom_quantity),
            'withdrawalQuantity': format_decimal(self.withdrawal_quantity),
            'enabled': self.enabled,
            'sortedLocation': self.sorted_location,
        }

    @classmethod
    def from_json(cls, raw: Any) -> 'NewWithdrawalAction':
        raw = _require_record(raw)
        sorted_location = raw.get('sortedLocation', -1)
        if isinstance(sorted_location, bool) or not isinstance(sorted_location, int):
            raise InvalidDataError("Invalid Data: sortedLocation")
        enabled = raw.get('enabled', True)
        if not isinstance(enabled, bool):
            raise InvalidDataError("Invalid Data: enabled")

        return cls(
            user_id=_require_str(raw, 'userId'),
            exchange_id=_require_str(raw, 'exchangeId'),
            name=_require_str(raw, 'name'),
            uom=_require_str(raw, 'uom'),
            uom_quantity=_require_decimal(raw, 'uomQuantity'),
            withdrawal_quantity=_require_decimal(raw, 'withdrawalQuantity'),
            enabled=enabled,
            sorted_location=sorted_location,
        )


@dataclass(frozen=True)
class WithdrawalAction:
    """Persisted withdrawal action"""
    id: str
    user_id: str
    exchange_id: str
    name: str
    uom: str
    uom_quantity: Decimal
    withdrawal_quantity: Decimal
    enabled: bool
    sorted_location: int
    date_added: datetime
    date_updated: datetime

    def __post_init__(self):
        validate_rate(self.uom_quantity, self.withdrawal_quantity)

    @property
    def exchange_rate(self) -> Decimal:
        return exchange_rate(self.withdrawal_quantity, self.uom_quantity)

    def get_cost(self, quantity: Decimal) -> Decimal:
        return transaction_value(quantity, self.withdrawal_quantity, self.uom_quantity)

    @classmethod
    def from_new(cls, draft: NewWithdrawalAction, action_id: str,
                 now: Optional[datetime] = None) -> 'WithdrawalAction':
        now = now or utc_now()
        return cls(
            id=action_id,
            user_id=draft.user_id,
            exchange_id=draft.exchange_id,
            name=draft.name,
            uom=draft.uom,
            uom_quantity=draft.uom_quantity,
            withdrawal_quantity=draft.withdrawal_quantity,
            enabled=draft.enabled,
            sorted_location=draft.sorted_location,
            date_added=now,
            date_updated=now,
        )

    def with_edits(self, **changes) -> 'WithdrawalAction':
        """Copy with the given fields replaced and date_updated stamped"""
        changes.setdefault('date_updated', utc_now())
        return replace(self, **changes)

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'userId': self.user_id,
            'exchangeId': self.exchange_id,
            'name': self.name,
            'uom': self.uom,
            'uomQuantity': format_decimal(self.uom_quantity),
            'withdrawalQuantity': format_decimal(self.withdrawal_quantity),
            'enabled': self.enabled,
            'sortedLocation': self.sorted_location,
            'dateAdded': format_timestamp(self.date_added),
            'dateUpdated': format_timestamp(self.date_updated),
        }

    @classmethod
    def from_json(cls, raw: Any) -> 'WithdrawalAction':
        raw = _require_record(raw)
        return cls(
            id=_require_str(raw, 'id'),
            user_id=_require_str(raw, 'userId'),
            exchange_id=_require_str(raw, 'exchangeId'),
            name=_require_str(raw, 'name'),
            uom=_require_str(raw, 'uom'),
            uom_quantity=_require_decimal(raw, 'uomQuantity'),
            withdrawal_quantity=_require_decimal(raw, 'withdrawalQuantity'),
            enabled=_require_bool(raw, 'enabled'),
            sorted_location=_require_int(raw, 'sortedLocation'),
            date_added=require_timestamp(raw, 'dateAdded'),
            date_updated=require_timestamp(raw, 'dateUpdated'),
        )


# Deposits

@dataclass(frozen=True)
class NewDeposit:
    """
    Draft deposit. The action's name, uom_quantity and deposit_quantity are
    copied in at creation time; each deposit is a frozen slice in time.
    """
    user_id: str
    exchange_id: str
    deposit_action_id: str
    deposit_action_name: str
    uom_quantity: Decimal
    deposit_quantity: Decimal
    quantity: Decimal

    def __post_init__(self):
        validate_rate(self.uom_quantity, self.deposit_quantity)
        if self.quantity < ZERO:
            raise InvalidDataError("Quantity must not be negative")

    @property
    def exchange_rate(self) -> Decimal:
        return exchange_rate(self.deposit_quantity, self.uom_quantity)

    @property
    def deposit(self) -> Decimal:
        """Currency earned by this deposit"""
        return transaction_value(self.quantity, self.deposit_quantity, self.uom_quantity)

    @classmethod
    def from_deposit_action(cls, action: DepositAction, quantity: Decimal) -> 'NewDeposit':
        return cls(
            user_id=action.user_id,
            exchange_id=action.exchange_id,
            deposit_action_id=action.id,
            deposit_action_name=action.name,
            uom_quantity=action.uom_quantity,
            deposit_quantity=action.deposit_quantity,
            quantity=quantity,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'exchangeId': self.exchange_id,
            'depositActionId': self.deposit_action_id,
            'depositActionName': self.deposit_action_name,
            'uomQuantity': format_decimal(self.uom_quantity),
            'depositQuantity': format_decimal(self.deposit_quantity),
            'quantity': format_decimal(self.quantity),
        }

    @classmethod
    def from_json(cls, raw: Any) -> 'NewDeposit':
        raw = _require_record(raw)
        return cls(
            user_id=_require_str(raw, 'userId'),
            exchange_id=_require_str(raw, 'exchangeId'),
            deposit_action_id=_require_str(raw, 'depositActionId'),
            deposit_action_name=_require_str(raw, 'depositActionName'),
            uom_quantity=_require_decimal(raw, 'uomQuantity'),
            deposit_quantity=_require_decimal(raw, 'depositQuantity'),
            quantity=_require_decimal(raw, 'quantity'),
        )


@dataclass(frozen=True)
class Deposit:
    """Persisted deposit"""
    id: str
    user_id: str
    exchange_id: str
    deposit_action_id: str
    deposit_action_name: str
    uom_quantity: Decimal
    deposit_quantity: Decimal
    quantity: Decimal
    date_added: datetime

    def __post_init__(self):
        validate_rate(self.uom_quantity, self.deposit_quantity)
        if self.quantity < ZERO:
            raise InvalidDataError("Quantity must not be negative")

    @property
    def exchange_rate(self) -> Decimal:
        return exchange_rate(self.deposit_quantity, self.uom_quantity)

    @property
    def deposit(self) -> Decimal:
        return transaction_value(self.quantity, self.deposit_quantity, self.uom_quantity)

    @classmethod
    def from_new(cls, draft: NewDeposit, deposit_id: str,
                 now: Optional[datetime] = None) -> 'Deposit':
        return cls(
            id=deposit_id,
            user_id=draft.user_id,
            exchange_id=draft.exchange_id,
            deposit_action_id=draft.deposit_action_id,
            deposit_action_name=draft.deposit_action_name,
            uom_quantity=draft.uom_quantity,
            deposit_quantity=draft.deposit_quantity,
            quantity=draft.quantity,
            date_added=now or utc_now(),
        )

    def with_quantity(self, quantity: Decimal) -> 'Deposit':
        return replace(self, quantity=quantity)

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'userId': self.user_id,
            'exchangeId': self.exchange_id,
            'depositActionId': self.deposit_action_id,
            'depositActionName': self.deposit_action_name,
            'uomQuantity': format_decimal(self.uom_quantity),
            'depositQuantity': format_decimal(self.deposit_quantity),
            'quantity': format_decimal(self.quantity),
            'dateAdded': format_timestamp(self.date_added),
        }

    @classmethod
    def from_json(cls, raw: Any) -> 'Deposit':
        raw = _require_record(raw)
        return cls(
            id=_require_str(raw, 'id'),
            user_id=_require_str(raw, 'userId'),
            exchange_id=_require_str(raw, 'exchangeId'),
            deposit_action_id=_require_str(raw, 'depositActionId'),
            deposit_action_name=_require_str(raw, 'depositActionName'),
            uom_quantity=_require_decimal(raw, 'uomQuantity'),
            deposit_quantity=_require_decimal(raw, 'depositQuantity'),
            quantity=_require_decimal(raw, 'quantity'),
            date_added=require_timestamp(raw, 'dateAdded'),
        )


# Withdrawals

@dataclass(frozen=True)
class NewWithdrawal:
    """Draft withdrawal with the action's rate snapshotted"""
    user_id: str
    exchange_id: str
    withdrawal_action_id: str
    withdrawal_action_name: str
    uom_quantity: Decimal
    withdrawal_quantity: Decimal
    quantity: Decimal

    def __post_init__(self):
        validate_rate(self.uom_quantity, self.withdrawal_quantity)
        if self.quantity < ZERO:
            raise InvalidDataError("Quantity must not be negative")

    @property
    def exchange_rate(self) -> Decimal:
        return exchange_rate(self.withdrawal_quantity, self.uom_quantity)

    @property
    def cost(self) -> Decimal:
        """Currency spent by this withdrawal"""
        return transaction_value(self.quantity, self.withdrawal_quantity, self.uom_quantity)

    @classmethod
    def from_withdrawal_action(cls, action: WithdrawalAction, quantity: Decimal) -> 'NewWithdrawal':
        return cls(
            user_id=action.user_id,
            exchange_id=action.exchange_id,
            withdrawal_action_id=action.id,
            withdrawal_action_name=action.name,
            uom_quantity=action.uom_quantity,
            withdrawal_quantity=action.withdrawal_quantity,
            quantity=quantity,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'exchangeId': self.exchange_id,
            'withdrawalActionId': self.withdrawal_action_id,
            'withdrawalActionName': self.withdrawal_action_name,
            'uomQuantity': format_decimal(self.uom_quantity),
            'withdrawalQuantity': format_decimal(self.withdrawal_quantity),
            'quantity': format_decimal(self.quantity),
        }

    @classmethod
    def from_json(cls, raw: Any) -> 'NewWithdrawal':
        raw = _require_record(raw)
        return cls(
            user_id=_require_str(raw, 'userId'),
            exchange_id=_require_str(raw, 'exchangeId'),
            withdrawal_action_id=_require_str(raw, 'withdrawalActionId'),
            withdrawal_action_name=_require_str(raw, 'withdrawalActionName'),
            uom_quantity=_require_decimal(raw, 'uomQuantity'),
            withdrawal_quantity=_require_decimal(raw, 'withdrawalQuantity'),
            quantity=_require_decimal(raw, 'quantity'),
        )


@dataclass(frozen=True)
class Withdrawal:
    """Persisted withdrawal"""
    id: str
    user_id: str
    exchange_id: str
    withdrawal_action_id: str
    withdrawal_action_name: str
    uom_quantity: Decimal
    withdrawal_quantity: Decimal
    quantity: Decimal
    date_added: datetime

    def __post_init__(self):
        validate_rate(self.uom_quantity, self.withdrawal_quantity)
        if self.quantity < ZERO:
            raise InvalidDataError("Quantity must not be negative")

    @property
    def exchange_rate(self) -> Decimal:
        return exchange_rate(self.withdrawal_quantity, self.uom_quantity)

    @property
    def cost(self) -> Decimal:
        return transaction_value(self.quantity, self.withdrawal_quantity, self.uom_quantity)

    @classmethod
    def from_new(cls, draft: NewWithdrawal, withdrawal_id: str,
                 now: Optional[datetime] = None) -> 'Withdrawal':
        return cls(
            id=withdrawal_id,
            user_id=draft.user_id,
            exchange_id=draft.exchange_id,
            withdrawal_action_id=draft.withdrawal_action_id,
            withdrawal_action_name=draft.withdrawal_action_name,
            uom_quantity=draft.uom_quantity,
            withdrawal_quantity=draft.withdrawal_quantity,
            quantity=draft.quantity,
            date_added=now or utc_now(),
        )

    def with_quantity(self, quantity: Decimal) -> 'Withdrawal':
        return replace(self, quantity=quantity)

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'userId': self.user_id,
            'exchangeId': self.exchange_id,
            'withdrawalActionId': self.withdrawal_action_id,
            'withdrawalActionName': self.withdrawal_action_name,
            'uomQuantity': format_decimal(self.uom_quantity),
            'withdrawalQuantity': format_decimal(self.withdrawal_quantity),
            'quantity': format_decimal(self.quantity),
            'dateAdded': format_timestamp(self.date_added),
        }

    @classmethod
    def from_json(cls, raw: Any) -> 'Withdrawal':
        raw = _require_record(raw)
        return cls(
            id=_require_str(raw, 'id'),
            user_id=_require_str(raw, 'userId'),
            exchange_id=_require_str(raw, 'exchangeId'),
            withdrawal_action_id=_require_str(raw, 'withdrawalActionId'),
            withdrawal_action_name=_require_str(raw, 'withdrawalActionName'),
            uom_quantity=_require_decimal(raw, 'uomQuantity'),
            withdrawal_quantity=_require_decimal(raw, 'withdrawalQuantity'),
            quantity=_require_decimal(raw, 'quantity'),
            date_added=require_timestamp(raw, 'dateAdded'),
        )


# Exchanges

@dataclass(frozen=True)
class NewExchange:
    """Draft exchange owned by user_id"""
    user_id: str
    name: str
    description: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'name': self.name,
            'description': self.description,
        }

    @classmethod
    def from_json(cls, raw: Any) -> 'NewExchange':
        raw = _require_record(raw)
        return cls(
            user_id=_require_str(raw, 'userId'),
            name=_require_str(raw, 'name'),
            description=_optional_str(raw, 'description'),
        )


@dataclass
class Exchange:
    """
    Persisted exchange plus the actions and transactions that belong to it.

    Only id, user_id, name and description are stored. The aggregate lists are
    attached after loading and the currency totals are derived from them on
    every access, so they can never go stale.
    """
    id: str
    user_id: str
    name: str
    description: str = ""
    deposit_actions: List[DepositAction] = field(default_factory=list)
    withdrawal_actions: List[WithdrawalAction] = field(default_factory=list)
    deposits: List[Deposit] = field(default_factory=list)
    withdrawals: List[Withdrawal] = field(default_factory=list)

    @classmethod
    def from_new(cls, draft: NewExchange, exchange_id: str) -> 'Exchange':
        return cls(
            id=exchange_id,
            user_id=draft.user_id,
            name=draft.name,
            description=draft.description,
        )

    @property
    def total_deposits(self) -> Decimal:
        return sum((d.deposit for d in self.deposits), ZERO)

    @property
    def total_withdrawals(self) -> Decimal:
        return sum((w.cost for w in self.withdrawals), ZERO)

    @property
    def total_currency(self) -> Decimal:
        return self.total_deposits - self.total_withdrawals

    def add_deposit(self, deposit: Deposit) -> None:
        self.deposits.append(deposit)

    def add_withdrawal(self, withdrawal: Withdrawal) -> None:
        self.withdrawals.append(withdrawal)

    def set_actions_and_transactions(self, deposit_actions: List[DepositAction],
                                     withdrawal_actions: List[WithdrawalAction],
                                     deposits: List[Deposit],
                                     withdrawals: List[Withdrawal]) -> None:
        """Attach aggregates, keeping actions in their sorted order"""
        self.deposit_actions = _sort_actions(deposit_actions)
        self.withdrawal_actions = _sort_actions(withdrawal_actions)
        self.deposits = _sort_transactions(deposits)
        self.withdrawals = _sort_transactions(withdrawals)

    def with_edits(self, name: Optional[str] = None,
                   description: Optional[str] = None) -> 'Exchange':
        """Copy with new name/description; aggregates are carried over"""
        return replace(
            self,
            name=self.name if name is None else name,
            description=self.description if description is None else description,
            deposit_actions=list(self.deposit_actions),
            withdrawal_actions=list(self.withdrawal_actions),
            deposits=list(self.deposits),
            withdrawals=list(self.withdrawals),
        )

    def to_json(self) -> Dict[str, Any]:
        """Persisted field set only"""
        return {
            'id': self.id,
            'userId': self.user_id,
            'name': self.name,
            'description': self.description,
        }

    def to_api_dict(self) -> Dict[str, Any]:
        """Persisted fields plus aggregates and derived totals"""
        output = self.to_json()
        output.update({
            'depositActions': [a.to_json() for a in self.deposit_actions],
            'withdrawalActions': [a.to_json() for a in self.withdrawal_actions],
            'deposits': [d.to_json() for d in self.deposits],
            'withdrawals': [w.to_json() for w in self.withdrawals],
            'totalDeposits': format_decimal(self.total_deposits),
            'totalWithdrawals': format_decimal(self.total_withdrawals),
            'totalCurrency': format_decimal(self.total_currency),
        })
        return output

    @classmethod
    def from_json(cls, raw: Any) -> 'Exchange':
        raw = _require_record(raw)
        return cls(
            id=_require_str(raw, 'id'),
            user_id=_require_str(raw, 'userId'),
            name=_require_str(raw, 'name'),
            description=_optional_str(raw, 'description'),
        )
