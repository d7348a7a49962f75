"""
Tests for exchange, action and transaction operations

Runs every bank operation through ActionBank.execute so guards, argument
validation, ownership checks and cascades are exercised together.
"""

import pytest
import pytest_asyncio

from action_bank.bank_controller import (
    DEPOSIT_ACTIONS_TABLE, DEPOSITS_TABLE, EXCHANGES_TABLE,
    WITHDRAWAL_ACTIONS_TABLE, WITHDRAWALS_TABLE,
)
from action_bank.exceptions import (
    ForbiddenError, InvalidInputError, MutateDataError, QueryDataError
)
from action_bank.guards import CallerContext


class BankScenario:
    """Builds exchanges, actions and transactions for one caller"""

    def __init__(self, bank, caller):
        self.bank = bank
        self.caller = caller

    async def run(self, operation, **args):
        return await self.bank.execute(operation, args, self.caller)

    async def exchange(self, name="Fitness", **fields):
        return await self.run("addExchange", name=name, **fields)

    async def deposit_action(self, exchange_id, uom_quantity="1", deposit_quantity="10",
                             **fields):
        return await self.run("addDepositAction", exchangeId=exchange_id, name="Run",
                              uom="km", uomQuantity=uom_quantity,
                              depositQuantity=deposit_quantity, **fields)

    async def withdrawal_action(self, exchange_id, uom_quantity="1",
                                withdrawal_quantity="4", **fields):
        return await self.run("addWithdrawalAction", exchangeId=exchange_id, name="TV",
                              uom="hours", uomQuantity=uom_quantity,
                              withdrawalQuantity=withdrawal_quantity, **fields)

    async def deposit(self, action_id, quantity):
        return await self.run("addDeposit", depositActionId=action_id, quantity=quantity)

    async def withdrawal(self, action_id, quantity):
        return await self.run("addWithdrawal", withdrawalActionId=action_id, quantity=quantity)

    async def balance(self, exchange_id):
        exchange = await self.run("getExchangeById", exchangeId=exchange_id)
        return exchange["totalCurrency"]


@pytest_asyncio.fixture
async def alice(bank, create_user, login):
    await create_user("alice")
    return BankScenario(bank, await login("alice"))


@pytest_asyncio.fixture
async def bob(bank, create_user, login):
    await create_user("bob")
    return BankScenario(bank, await login("bob"))


@pytest_asyncio.fixture
async def funded(alice):
    """An exchange with 30 deposited and 12 withdrawn"""
    exchange = await alice.exchange()
    deposit_action = await alice.deposit_action(exchange["id"])
    withdrawal_action = await alice.withdrawal_action(exchange["id"])
    deposit = await alice.deposit(deposit_action["id"], 3)
    withdrawal = await alice.withdrawal(withdrawal_action["id"], 3)
    return {
        "exchange": exchange,
        "deposit_action": deposit_action,
        "withdrawal_action": withdrawal_action,
        "deposit": deposit,
        "withdrawal": withdrawal,
    }


class TestGuardsOnBankOperations:

    @pytest.mark.asyncio
    async def test_anonymous_caller_forbidden(self, bank):
        with pytest.raises(ForbiddenError):
            await bank.execute("addExchange", {"name": "x"}, CallerContext.anonymous())

    @pytest.mark.asyncio
    async def test_invalid_token_is_anonymous(self, bank):
        caller = bank.caller_from_token("not.a.jwt")
        with pytest.raises(ForbiddenError):
            await bank.execute("getExchangeById", {"exchangeId": "x"}, caller)

    @pytest.mark.asyncio
    async def test_unknown_operation(self, bank, alice):
        with pytest.raises(InvalidInputError):
            await alice.run("transferEverything")


class TestExchanges:

    @pytest.mark.asyncio
    async def test_add_exchange_owned_by_caller(self, alice):
        exchange = await alice.exchange(description="Move more")

        assert exchange["userId"] == alice.caller.user_id
        assert exchange["description"] == "Move more"
        assert exchange["totalCurrency"] == "0"
        assert exchange["depositActions"] == []

    @pytest.mark.asyncio
    async def test_user_id_argument_ignored(self, alice, bob):
        exchange = await alice.run("addExchange", name="Mine", userId=bob.caller.user_id)
        assert exchange["userId"] == alice.caller.user_id

    @pytest.mark.asyncio
    async def test_balance(self, alice, funded):
        exchange_id = funded["exchange"]["id"]
        assert await alice.balance(exchange_id) == "18"

        expensive = await alice.withdrawal_action(exchange_id, "1", "5")
        await alice.withdrawal(expensive["id"], 1)

        assert await alice.balance(exchange_id) == "13"

    @pytest.mark.asyncio
    async def test_list_own_exchanges(self, alice, funded):
        await alice.exchange("Reading")

        exchanges = await alice.run("getExchangesByUserId", userId=alice.caller.user_id)

        by_name = {e["name"]: e for e in exchanges}
        assert set(by_name) == {"Fitness", "Reading"}
        assert by_name["Fitness"]["totalCurrency"] == "18"
        assert by_name["Reading"]["totalCurrency"] == "0"

    @pytest.mark.asyncio
    async def test_edit_exchange(self, alice, funded):
        exchange_id = funded["exchange"]["id"]

        edited = await alice.run("editExchange", exchangeId=exchange_id, name="Health")

        assert edited["name"] == "Health"
        assert edited["totalCurrency"] == "18"

    @pytest.mark.asyncio
    async def test_delete_exchange_cascades(self, bank, alice, funded):
        exchange_id = funded["exchange"]["id"]
        other = await alice.exchange("Other")
        other_action = await alice.deposit_action(other["id"])
        await alice.deposit(other_action["id"], 1)

        assert await alice.run("deleteExchange", exchangeId=exchange_id) == exchange_id

        storage = bank.data_controller.storage
        for table in (DEPOSIT_ACTIONS_TABLE, WITHDRAWAL_ACTIONS_TABLE,
                      DEPOSITS_TABLE, WITHDRAWALS_TABLE):
            assert await storage.find(table, {"exchangeId": exchange_id}) == []
        assert await storage.load(EXCHANGES_TABLE, exchange_id) is None

        # Unrelated exchanges keep their rows
        assert len(await storage.find(DEPOSITS_TABLE, {"exchangeId": other["id"]})) == 1

        with pytest.raises(QueryDataError):
            await alice.run("getExchangeById", exchangeId=exchange_id)

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, alice):
        with pytest.raises(InvalidInputError):
            await alice.run("addExchange")
        with pytest.raises(InvalidInputError):
            await alice.run("addExchange", name=5)


class TestOwnershipIsolation:
    """Another user's records behave exactly like missing ones"""

    @pytest.mark.asyncio
    async def test_foreign_exchange_looks_missing(self, bob, funded):
        exchange_id = funded["exchange"]["id"]

        with pytest.raises(QueryDataError) as foreign:
            await bob.run("getExchangeById", exchangeId=exchange_id)
        with pytest.raises(QueryDataError) as missing:
            await bob.run("getExchangeById", exchangeId="no-such-exchange")

        assert foreign.value.message == missing.value.message == "Exchange Does Not Exist"

    @pytest.mark.asyncio
    async def test_foreign_records_unreadable(self, bob, funded):
        with pytest.raises(QueryDataError):
            await bob.run("getDepositActionById",
                          depositActionId=funded["deposit_action"]["id"])
        with pytest.raises(QueryDataError):
            await bob.run("getWithdrawalActionById",
                          withdrawalActionId=funded["withdrawal_action"]["id"])
        with pytest.raises(QueryDataError):
            await bob.run("getDepositById", depositId=funded["deposit"]["id"])
        with pytest.raises(QueryDataError):
            await bob.run("getWithdrawalById", withdrawalId=funded["withdrawal"]["id"])
        with pytest.raises(QueryDataError):
            await bob.run("getDepositsByDepositActionId",
                          depositActionId=funded["deposit_action"]["id"])
        with pytest.raises(QueryDataError):
            await bob.run("getDepositActionsByExchangeId",
                          exchangeId=funded["exchange"]["id"])
        with pytest.raises(QueryDataError):
            await bob.run("getWithdrawalActionsByExchangeId",
                          exchangeId=funded["exchange"]["id"])

    @pytest.mark.asyncio
    async def test_listing_by_another_user_id(self, alice, bob, funded):
        for name in ("getExchangesByUserId", "getDepositActionsByUserId",
                     "getWithdrawalActionsByUserId", "getDepositsByUserId",
                     "getWithdrawalsByUserId"):
            with pytest.raises(QueryDataError):
                await bob.run(name, userId=alice.caller.user_id)

    @pytest.mark.asyncio
    async def test_foreign_records_immutable(self, bob, funded):
        exchange_id = funded["exchange"]["id"]

        with pytest.raises(MutateDataError):
            await bob.run("editExchange", exchangeId=exchange_id, name="Mine now")
        with pytest.raises(MutateDataError):
            await bob.run("deleteExchange", exchangeId=exchange_id)
        with pytest.raises(MutateDataError):
            await bob.deposit_action(exchange_id)
        with pytest.raises(MutateDataError):
            await bob.deposit(funded["deposit_action"]["id"], 100)
        with pytest.raises(MutateDataError):
            await bob.run("editDeposit", depositId=funded["deposit"]["id"], quantity=100)
        with pytest.raises(MutateDataError):
            await bob.run("deleteWithdrawal", withdrawalId=funded["withdrawal"]["id"])

    @pytest.mark.asyncio
    async def test_cannot_move_action_into_foreign_exchange(self, alice, bob, funded):
        foreign = await bob.exchange("Bob's")

        with pytest.raises(MutateDataError):
            await alice.run("editDepositAction",
                            depositActionId=funded["deposit_action"]["id"],
                            exchangeId=foreign["id"])

    @pytest.mark.asyncio
    async def test_own_listings(self, alice, funded):
        user_id = alice.caller.user_id

        assert len(await alice.run("getDepositActionsByUserId", userId=user_id)) == 1
        assert len(await alice.run("getWithdrawalActionsByUserId", userId=user_id)) == 1
        assert len(await alice.run("getDepositsByUserId", userId=user_id)) == 1
        assert len(await alice.run("getWithdrawalsByUserId", userId=user_id)) == 1

        withdrawals = await alice.run("getWithdrawalsByWithdrawalActionId",
                                      withdrawalActionId=funded["withdrawal_action"]["id"])
        assert [w["id"] for w in withdrawals] == [funded["withdrawal"]["id"]]


class TestActions:

    @pytest.mark.asyncio
    async def test_action_defaults(self, alice):
        exchange = await alice.exchange()
        action = await alice.deposit_action(exchange["id"])

        assert action["enabled"] is True
        assert action["sortedLocation"] == -1
        assert action["userId"] == alice.caller.user_id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("uom_quantity,quantity", [
        ("0", "1"),
        ("-1", "1"),
        ("1", "-1"),
        ("abc", "1"),
        (True, "1"),
    ])
    async def test_invalid_rates(self, alice, uom_quantity, quantity):
        exchange = await alice.exchange()
        with pytest.raises(InvalidInputError):
            await alice.deposit_action(exchange["id"], uom_quantity, quantity)
        with pytest.raises(InvalidInputError):
            await alice.withdrawal_action(exchange["id"], uom_quantity, quantity)

    @pytest.mark.asyncio
    async def test_actions_by_exchange_sorted(self, alice):
        exchange = await alice.exchange()
        later = await alice.deposit_action(exchange["id"], sortedLocation=2)
        first = await alice.deposit_action(exchange["id"], sortedLocation=0)

        actions = await alice.run("getDepositActionsByExchangeId", exchangeId=exchange["id"])

        assert [a["id"] for a in actions] == [first["id"], later["id"]]

        later = await alice.withdrawal_action(exchange["id"], sortedLocation=5)
        first = await alice.withdrawal_action(exchange["id"], sortedLocation=1)

        actions = await alice.run("getWithdrawalActionsByExchangeId", exchangeId=exchange["id"])

        assert [a["id"] for a in actions] == [first["id"], later["id"]]

    @pytest.mark.asyncio
    async def test_edit_action_keeps_recorded_values(self, alice, funded):
        exchange_id = funded["exchange"]["id"]

        edited = await alice.run("editDepositAction",
                                 depositActionId=funded["deposit_action"]["id"],
                                 depositQuantity="20", name="Sprint")
        assert edited["depositQuantity"] == "20"
        assert edited["name"] == "Sprint"
        assert edited["uom"] == "km"

        # The recorded deposit keeps the rate and name it was made with
        deposit = await alice.run("getDepositById", depositId=funded["deposit"]["id"])
        assert deposit["depositQuantity"] == "10"
        assert deposit["depositActionName"] == "Run"
        assert await alice.balance(exchange_id) == "18"

        # New deposits use the new rate
        await alice.deposit(funded["deposit_action"]["id"], 1)
        assert await alice.balance(exchange_id) == "38"

    @pytest.mark.asyncio
    async def test_edit_action_invalid_rate(self, alice, funded):
        with pytest.raises(InvalidInputError):
            await alice.run("editWithdrawalAction",
                            withdrawalActionId=funded["withdrawal_action"]["id"],
                            uomQuantity="0")

    @pytest.mark.asyncio
    async def test_move_action_between_own_exchanges(self, alice, funded):
        other = await alice.exchange("Other")

        moved = await alice.run("editWithdrawalAction",
                                withdrawalActionId=funded["withdrawal_action"]["id"],
                                exchangeId=other["id"])

        assert moved["exchangeId"] == other["id"]

    @pytest.mark.asyncio
    async def test_moved_action_takes_its_history(self, alice, funded):
        exchange_id = funded["exchange"]["id"]
        other = await alice.exchange("Other")
        action_id = funded["deposit_action"]["id"]

        await alice.run("editDepositAction", depositActionId=action_id, exchangeId=other["id"])

        assert await alice.balance(exchange_id) == "-12"
        assert await alice.balance(other["id"]) == "30"

        destination = await alice.run("getExchangeById", exchangeId=other["id"])
        assert [d["id"] for d in destination["deposits"]] == [funded["deposit"]["id"]]
        assert destination["deposits"][0]["depositQuantity"] == "10"

        # Deleting the old exchange leaves the moved action's deposits alone
        await alice.run("deleteExchange", exchangeId=exchange_id)

        deposits = await alice.run("getDepositsByDepositActionId", depositActionId=action_id)
        assert [d["id"] for d in deposits] == [funded["deposit"]["id"]]
        assert deposits[0]["exchangeId"] == other["id"]
        assert await alice.balance(other["id"]) == "30"

    @pytest.mark.asyncio
    async def test_moved_withdrawal_action_takes_its_history(self, alice, funded):
        exchange_id = funded["exchange"]["id"]
        other = await alice.exchange("Other")

        await alice.run("editWithdrawalAction",
                        withdrawalActionId=funded["withdrawal_action"]["id"],
                        exchangeId=other["id"])

        assert await alice.balance(exchange_id) == "30"
        assert await alice.balance(other["id"]) == "-12"

    @pytest.mark.asyncio
    async def test_delete_action_cascades_transactions(self, bank, alice, funded):
        action_id = funded["deposit_action"]["id"]

        assert await alice.run("deleteDepositAction", depositActionId=action_id) == action_id

        storage = bank.data_controller.storage
        assert await storage.find(DEPOSITS_TABLE, {"depositActionId": action_id}) == []
        assert await alice.balance(funded["exchange"]["id"]) == "-12"

        withdrawal_action_id = funded["withdrawal_action"]["id"]
        await alice.run("deleteWithdrawalAction", withdrawalActionId=withdrawal_action_id)
        assert await storage.find(WITHDRAWALS_TABLE,
                                  {"withdrawalActionId": withdrawal_action_id}) == []

    @pytest.mark.asyncio
    async def test_disabled_actions_reject_transactions(self, alice, funded):
        await alice.run("editDepositAction",
                        depositActionId=funded["deposit_action"]["id"], enabled=False)
        await alice.run("editWithdrawalAction",
                        withdrawalActionId=funded["withdrawal_action"]["id"], enabled=False)

        with pytest.raises(MutateDataError, match="Deposit Action Is Disabled"):
            await alice.deposit(funded["deposit_action"]["id"], 1)
        with pytest.raises(MutateDataError, match="Withdrawal Action Is Disabled"):
            await alice.withdrawal(funded["withdrawal_action"]["id"], 1)


class TestTransactions:

    @pytest.mark.asyncio
    async def test_deposit_snapshot(self, alice, funded):
        deposit = funded["deposit"]

        assert deposit["depositActionId"] == funded["deposit_action"]["id"]
        assert deposit["exchangeId"] == funded["exchange"]["id"]
        assert deposit["uomQuantity"] == "1"
        assert deposit["depositQuantity"] == "10"
        assert deposit["quantity"] == "3"

    @pytest.mark.asyncio
    async def test_exact_fractional_rates(self, alice):
        exchange = await alice.exchange()
        action = await alice.deposit_action(exchange["id"], "3", "1")

        await alice.deposit(action["id"], 9)

        assert await alice.balance(exchange["id"]) == "3"

    @pytest.mark.asyncio
    async def test_edit_quantity(self, alice, funded):
        edited = await alice.run("editDeposit", depositId=funded["deposit"]["id"], quantity=5)
        assert edited["quantity"] == "5"
        assert edited["dateAdded"] == funded["deposit"]["dateAdded"]
        assert await alice.balance(funded["exchange"]["id"]) == "38"

        await alice.run("editWithdrawal", withdrawalId=funded["withdrawal"]["id"], quantity=0)
        assert await alice.balance(funded["exchange"]["id"]) == "50"

    @pytest.mark.asyncio
    async def test_negative_quantity(self, alice, funded):
        with pytest.raises(InvalidInputError):
            await alice.deposit(funded["deposit_action"]["id"], -1)
        with pytest.raises(InvalidInputError):
            await alice.run("editWithdrawal", withdrawalId=funded["withdrawal"]["id"],
                            quantity="-2")

    @pytest.mark.asyncio
    async def test_delete_transactions(self, alice, funded):
        deposit_id = funded["deposit"]["id"]

        assert await alice.run("deleteDeposit", depositId=deposit_id) == deposit_id
        assert await alice.balance(funded["exchange"]["id"]) == "-12"

        with pytest.raises(MutateDataError):
            await alice.run("deleteDeposit", depositId=deposit_id)

    @pytest.mark.asyncio
    async def test_missing_action(self, alice):
        with pytest.raises(MutateDataError, match="Deposit Action Does Not Exist"):
            await alice.deposit("no-such-action", 1)
