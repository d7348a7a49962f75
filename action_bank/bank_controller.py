"""
Bank Controller Module

Storage-facing operations for exchanges, deposit/withdrawal actions and the
deposits/withdrawals recorded against them. Ownership is not checked here;
that is the resolvers' job. Every lookup by id raises DataDoesNotExistError
when nothing is stored under that id.
"""

import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Callable, Dict, List, TypeVar

from .bank_types import (
    Exchange, NewExchange,
    DepositAction, NewDepositAction,
    WithdrawalAction, NewWithdrawalAction,
    Deposit, NewDeposit,
    Withdrawal, NewWithdrawal,
)
from .exceptions import DataDoesNotExistError, InvalidDataError
from .logging_config import get_logger
from .storage import StorageInterface


logger = get_logger(__name__)

T = TypeVar('T')

EXCHANGES_TABLE = "exchanges"
DEPOSIT_ACTIONS_TABLE = "depositActions"
WITHDRAWAL_ACTIONS_TABLE = "withdrawalActions"
DEPOSITS_TABLE = "deposits"
WITHDRAWALS_TABLE = "withdrawals"


def _new_id() -> str:
    return str(uuid.uuid4())


class BankController(ABC):
    """Contract for bank entity persistence"""

    # Exchanges
    @abstractmethod
    async def get_exchange_by_id(self, exchange_id: str) -> Exchange: ...
    @abstractmethod
    async def get_exchanges_by_user_id(self, user_id: str) -> List[Exchange]: ...
    @abstractmethod
    async def add_exchange(self, exchange: NewExchange) -> Exchange: ...
    @abstractmethod
    async def edit_exchange(self, exchange: Exchange) -> Exchange: ...
    @abstractmethod
    async def delete_exchange(self, exchange_id: str) -> str: ...

    # Deposit actions
    @abstractmethod
    async def get_deposit_action_by_id(self, action_id: str) -> DepositAction: ...
    @abstractmethod
    async def get_deposit_actions_by_user_id(self, user_id: str) -> List[DepositAction]: ...
    @abstractmethod
    async def get_deposit_actions_by_exchange_id(self, exchange_id: str) -> List[DepositAction]: ...
    @abstractmethod
    async def add_deposit_action(self, action: NewDepositAction) -> DepositAction: ...
    @abstractmethod
    async def edit_deposit_action(self, action: DepositAction) -> DepositAction: ...
    @abstractmethod
    async def delete_deposit_action(self, action_id: str) -> str: ...
    @abstractmethod
    async def delete_deposit_actions_by_exchange_id(self, exchange_id: str) -> List[str]: ...

    # Withdrawal actions
    @abstractmethod
    async def get_withdrawal_action_by_id(self, action_id: str) -> WithdrawalAction: ...
    @abstractmethod
    async def get_withdrawal_actions_by_user_id(self, user_id: str) -> List[WithdrawalAction]: ...
    @abstractmethod
    async def get_withdrawal_actions_by_exchange_id(self, exchange_id: str) -> List[WithdrawalAction]: ...
    @abstractmethod
    async def add_withdrawal_action(self, action: NewWithdrawalAction) -> WithdrawalAction: ...
    @abstractmethod
    async def edit_withdrawal_action(self, action: WithdrawalAction) -> WithdrawalAction: ...
    @abstractmethod
    async def delete_withdrawal_action(self, action_id: str) -> str: ...
    @abstractmethod
    async def delete_withdrawal_actions_by_exchange_id(self, exchange_id: str) -> List[str]: ...

    # Deposits
    @abstractmethod
    async def get_deposit_by_id(self, deposit_id: str) -> Deposit: ...
    @abstractmethod
    async def get_deposits_by_user_id(self, user_id: str) -> List[Deposit]: ...
    @abstractmethod
    async def get_deposits_by_deposit_action_id(self, action_id: str) -> List[Deposit]: ...
    @abstractmethod
    async def add_deposit(self, deposit: NewDeposit) -> Deposit: ...
    @abstractmethod
    async def edit_deposit(self, deposit: Deposit) -> Deposit: ...
    @abstractmethod
    async def delete_deposit(self, deposit_id: str) -> str: ...
    @abstractmethod
    async def delete_deposits_by_deposit_action_id(self, action_id: str) -> List[str]: ...
    @abstractmethod
    async def delete_deposits_by_exchange_id(self, exchange_id: str) -> List[str]: ...
    @abstractmethod
    async def move_deposits_to_exchange(self, action_id: str, exchange_id: str) -> List[str]: ...

    # Withdrawals
    @abstractmethod
    async def get_withdrawal_by_id(self, withdrawal_id: str) -> Withdrawal: ...
    @abstractmethod
    async def get_withdrawals_by_user_id(self, user_id: str) -> List[Withdrawal]: ...
    @abstractmethod
    async def get_withdrawals_by_withdrawal_action_id(self, action_id: str) -> List[Withdrawal]: ...
    @abstractmethod
    async def add_withdrawal(self, withdrawal: NewWithdrawal) -> Withdrawal: ...
    @abstractmethod
    async def edit_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal: ...
    @abstractmethod
    async def delete_withdrawal(self, withdrawal_id: str) -> str: ...
    @abstractmethod
    async def delete_withdrawals_by_withdrawal_action_id(self, action_id: str) -> List[str]: ...
    @abstractmethod
    async def delete_withdrawals_by_exchange_id(self, exchange_id: str) -> List[str]: ...
    @abstractmethod
    async def move_withdrawals_to_exchange(self, action_id: str, exchange_id: str) -> List[str]: ...


class StorageBankController(BankController):
    """BankController over a StorageInterface, one table per entity type"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage

    # Shared helpers

    async def _get(self, table: str, record_id: str,
                   parse: Callable[[Any], T], label: str) -> T:
        raw = await self.storage.load(table, record_id)
        if raw is None:
            raise DataDoesNotExistError(f"{label} {record_id} does not exist")
        return parse(raw)

    async def _find(self, table: str, filters: Dict[str, Any],
                    parse: Callable[[Any], T]) -> List[T]:
        results = []
        for raw in await self.storage.find(table, filters):
            try:
                results.append(parse(raw))
            except InvalidDataError:
                logger.warning("Skipping malformed record", extra={'resource': table})
        return results

    async def _replace(self, table: str, record_id: str,
                       data: Dict[str, Any], label: str) -> None:
        if not await self.storage.exists(table, record_id):
            raise DataDoesNotExistError(f"{label} {record_id} does not exist")
        await self.storage.save(table, record_id, data)

    async def _delete(self, table: str, record_id: str, label: str) -> str:
        if not await self.storage.delete(table, record_id):
            raise DataDoesNotExistError(f"{label} {record_id} does not exist")
        return record_id

    async def _delete_where(self, table: str, filters: Dict[str, Any]) -> List[str]:
        ids = [raw['id'] for raw in await self.storage.find(table, filters)]
        if ids:
            await self.storage.delete_many(table, ids)
        return ids

    async def _reparent(self, table: str, filters: Dict[str, Any], exchange_id: str) -> List[str]:
        """Point matching rows at another exchange; every other field is left as stored"""
        moved = []
        for raw in await self.storage.find(table, filters):
            if raw.get('exchangeId') == exchange_id:
                continue
            raw['exchangeId'] = exchange_id
            await self.storage.save(table, raw['id'], raw)
            moved.append(raw['id'])
        return moved

    async def _attach_aggregates(self, exchange: Exchange) -> Exchange:
        by_exchange = {'exchangeId': exchange.id}
        exchange.set_actions_and_transactions(
            await self._find(DEPOSIT_ACTIONS_TABLE, by_exchange, DepositAction.from_json),
            await self._find(WITHDRAWAL_ACTIONS_TABLE, by_exchange, WithdrawalAction.from_json),
            await self._find(DEPOSITS_TABLE, by_exchange, Deposit.from_json),
            await self._find(WITHDRAWALS_TABLE, by_exchange, Withdrawal.from_json),
        )
        return exchange

    # Exchanges

    async def get_exchange_by_id(self, exchange_id: str) -> Exchange:
        exchange = await self._get(EXCHANGES_TABLE, exchange_id, Exchange.from_json, "Exchange")
        return await self._attach_aggregates(exchange)

    async def get_exchanges_by_user_id(self, user_id: str) -> List[Exchange]:
        by_user = {'userId': user_id}
        exchanges = await self._find(EXCHANGES_TABLE, by_user, Exchange.from_json)
        if not exchanges:
            return []

        # Load the user's rows once and group them per exchange
        grouped: Dict[str, Dict[str, list]] = defaultdict(lambda: defaultdict(list))
        sources = (
            ('deposit_actions', DEPOSIT_ACTIONS_TABLE, DepositAction.from_json),
            ('withdrawal_actions', WITHDRAWAL_ACTIONS_TABLE, WithdrawalAction.from_json),
            ('deposits', DEPOSITS_TABLE, Deposit.from_json),
            ('withdrawals', WITHDRAWALS_TABLE, Withdrawal.from_json),
        )
        for key, table, parse in sources:
            for item in await self._find(table, by_user, parse):
                grouped[item.exchange_id][key].append(item)

        for exchange in exchanges:
            rows = grouped[exchange.id]
            exchange.set_actions_and_transactions(
                rows['deposit_actions'], rows['withdrawal_actions'],
                rows['deposits'], rows['withdrawals'],
            )
        return exchanges

    async def add_exchange(self, exchange: NewExchange) -> Exchange:
        saved = Exchange.from_new(exchange, _new_id())
        await self.storage.save(EXCHANGES_TABLE, saved.id, saved.to_json())
        return saved

    async def edit_exchange(self, exchange: Exchange) -> Exchange:
        await self._replace(EXCHANGES_TABLE, exchange.id, exchange.to_json(), "Exchange")
        return await self._attach_aggregates(exchange)

    async def delete_exchange(self, exchange_id: str) -> str:
        return await self._delete(EXCHANGES_TABLE, exchange_id, "Exchange")

    # Deposit actions

    async def get_deposit_action_by_id(self, action_id: str) -> DepositAction:
        return await self._get(DEPOSIT_ACTIONS_TABLE, action_id,
                               DepositAction.from_json, "Deposit Action")

    async def get_deposit_actions_by_user_id(self, user_id: str) -> List[DepositAction]:
        actions = await self._find(DEPOSIT_ACTIONS_TABLE, {'userId': user_id},
                                   DepositAction.from_json)
        return sorted(actions, key=lambda a: a.sorted_location)

    async def get_deposit_actions_by_exchange_id(self, exchange_id: str) -> List[DepositAction]:
        actions = await self._find(DEPOSIT_ACTIONS_TABLE, {'exchangeId': exchange_id},
                                   DepositAction.from_json)
        return sorted(actions, key=lambda a: a.sorted_location)

    async def add_deposit_action(self, action: NewDepositAction) -> DepositAction:
        saved = DepositAction.from_new(action, _new_id())
        await self.storage.save(DEPOSIT_ACTIONS_TABLE, saved.id, saved.to_json())
        return saved

    async def edit_deposit_action(self, action: DepositAction) -> DepositAction:
        await self._replace(DEPOSIT_ACTIONS_TABLE, action.id, action.to_json(), "Deposit Action")
        return action

    async def delete_deposit_action(self, action_id: str) -> str:
        return await self._delete(DEPOSIT_ACTIONS_TABLE, action_id, "Deposit Action")

    async def delete_deposit_actions_by_exchange_id(self, exchange_id: str) -> List[str]:
        return await self._delete_where(DEPOSIT_ACTIONS_TABLE, {'exchangeId': exchange_id})

    # Withdrawal actions

    async def get_withdrawal_action_by_id(self, action_id: str) -> WithdrawalAction:
        return await self._get(WITHDRAWAL_ACTIONS_TABLE, action_id,
                               WithdrawalAction.from_json, "Withdrawal Action")

    async def get_withdrawal_actions_by_user_id(self, user_id: str) -> List[WithdrawalAction]:
        actions = await self._find(WITHDRAWAL_ACTIONS_TABLE, {'userId': user_id},
                                   WithdrawalAction.from_json)
        return sorted(actions, key=lambda a: a.sorted_location)

    async def get_withdrawal_actions_by_exchange_id(self, exchange_id: str) -> List[WithdrawalAction]:
        actions = await self._find(WITHDRAWAL_ACTIONS_TABLE, {'exchangeId': exchange_id},
                                   WithdrawalAction.from_json)
        return sorted(actions, key=lambda a: a.sorted_location)

    async def add_withdrawal_action(self, action: NewWithdrawalAction) -> WithdrawalAction:
        saved = WithdrawalAction.from_new(action, _new_id())
        await self.storage.save(WITHDRAWAL_ACTIONS_TABLE, saved.id, saved.to_json())
        return saved

    async def edit_withdrawal_action(self, action: WithdrawalAction) -> WithdrawalAction:
        await self._replace(WITHDRAWAL_ACTIONS_TABLE, action.id, action.to_json(),
                            "Withdrawal Action")
        return action

    async def delete_withdrawal_action(self, action_id: str) -> str:
        return await self._delete(WITHDRAWAL_ACTIONS_TABLE, action_id, "Withdrawal Action")

    async def delete_withdrawal_actions_by_exchange_id(self, exchange_id: str) -> List[str]:
        return await self._delete_where(WITHDRAWAL_ACTIONS_TABLE, {'exchangeId': exchange_id})

    # Deposits

    async def get_deposit_by_id(self, deposit_id: str) -> Deposit:
        return await self._get(DEPOSITS_TABLE, deposit_id, Deposit.from_json, "Deposit")

    async def get_deposits_by_user_id(self, user_id: str) -> List[Deposit]:
        deposits = await self._find(DEPOSITS_TABLE, {'userId': user_id}, Deposit.from_json)
        return sorted(deposits, key=lambda d: d.date_added)

    async def get_deposits_by_deposit_action_id(self, action_id: str) -> List[Deposit]:
        deposits = await self._find(DEPOSITS_TABLE, {'depositActionId': action_id},
                                    Deposit.from_json)
        return sorted(deposits, key=lambda d: d.date_added)

    async def add_deposit(self, deposit: NewDeposit) -> Deposit:
        saved = Deposit.from_new(deposit, _new_id())
        await self.storage.save(DEPOSITS_TABLE, saved.id, saved.to_json())
        return saved

    async def edit_deposit(self, deposit: Deposit) -> Deposit:
        await self._replace(DEPOSITS_TABLE, deposit.id, deposit.to_json(), "Deposit")
        return deposit

    async def delete_deposit(self, deposit_id: str) -> str:
        return await self._delete(DEPOSITS_TABLE, deposit_id, "Deposit")

    async def delete_deposits_by_deposit_action_id(self, action_id: str) -> List[str]:
        return await self._delete_where(DEPOSITS_TABLE, {'depositActionId': action_id})

    async def delete_deposits_by_exchange_id(self, exchange_id: str) -> List[str]:
        return await self._delete_where(DEPOSITS_TABLE, {'exchangeId': exchange_id})

    async def move_deposits_to_exchange(self, action_id: str, exchange_id: str) -> List[str]:
        return await self._reparent(DEPOSITS_TABLE, {'depositActionId': action_id}, exchange_id)

    # Withdrawals

    async def get_withdrawal_by_id(self, withdrawal_id: str) -> Withdrawal:
        return await self._get(WITHDRAWALS_TABLE, withdrawal_id, Withdrawal.from_json,
                               "Withdrawal")

    async def get_withdrawals_by_user_id(self, user_id: str) -> List[Withdrawal]:
        withdrawals = await self._find(WITHDRAWALS_TABLE, {'userId': user_id},
                                       Withdrawal.from_json)
        return sorted(withdrawals, key=lambda w: w.date_added)

    async def get_withdrawals_by_withdrawal_action_id(self, action_id: str) -> List[Withdrawal]:
        withdrawals = await self._find(WITHDRAWALS_TABLE, {'withdrawalActionId': action_id},
                                       Withdrawal.from_json)
        return sorted(withdrawals, key=lambda w: w.date_added)

    async def add_withdrawal(self, withdrawal: NewWithdrawal) -> Withdrawal:
        saved = Withdrawal.from_new(withdrawal, _new_id())
        await self.storage.save(WITHDRAWALS_TABLE, saved.id, saved.to_json())
        return saved

    async def edit_withdrawal(self, withdrawal: Withdrawal) -> Withdrawal:
        await self._replace(WITHDRAWALS_TABLE, withdrawal.id, withdrawal.to_json(), "Withdrawal")
        return withdrawal

    async def delete_withdrawal(self, withdrawal_id: str) -> str:
        return await self._delete(WITHDRAWALS_TABLE, withdrawal_id, "Withdrawal")

    async def delete_withdrawals_by_withdrawal_action_id(self, action_id: str) -> List[str]:
        return await self._delete_where(WITHDRAWALS_TABLE, {'withdrawalActionId': action_id})

    async def delete_withdrawals_by_exchange_id(self, exchange_id: str) -> List[str]:
        return await self._delete_where(WITHDRAWALS_TABLE, {'exchangeId': exchange_id})

    async def move_withdrawals_to_exchange(self, action_id: str, exchange_id: str) -> List[str]:
        return await self._reparent(WITHDRAWALS_TABLE, {'withdrawalActionId': action_id},
                                    exchange_id)
