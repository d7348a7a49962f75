"""
Shared fixtures: a fully wired ActionBank over in-memory storage with a
cheap password hash, plus helpers for logging in and creating users.
"""

import pytest
import pytest_asyncio

from action_bank.action_bank import ActionBank
from action_bank.config import ActionBankConfig
from action_bank.data_controller import DataController
from action_bank.storage import InMemoryStorage
from action_bank.user_types import UserTypeMap


ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "password"
USER_PASSWORD = "password123"


@pytest.fixture
def config():
    return ActionBankConfig(
        storage_backend="memory",
        jwt_secret="test-secret",
        password_hash_n=1024,
        bootstrap_admin=True,
        bootstrap_username=ADMIN_USERNAME,
        bootstrap_password=ADMIN_PASSWORD,
    )


@pytest.fixture
def user_type_map():
    return UserTypeMap()


@pytest.fixture
def make_bank(config, user_type_map):
    def factory():
        data_controller = DataController(InMemoryStorage(), user_type_map)
        return ActionBank(data_controller, config, user_type_map)
    return factory


@pytest_asyncio.fixture
async def bank(make_bank):
    action_bank = make_bank()
    await action_bank.initialize()
    yield action_bank
    await action_bank.close()


@pytest.fixture
def login(bank):
    """Log in and return the CallerContext the token decodes to"""
    async def factory(username, password=USER_PASSWORD):
        return bank.caller_from_token(await bank.login(username, password))
    return factory


@pytest_asyncio.fixture
async def super_admin(login):
    return await login(ADMIN_USERNAME, ADMIN_PASSWORD)


@pytest.fixture
def create_user(bank, super_admin):
    """Create a user as the bootstrap superAdmin and return its public record"""
    async def factory(username, user_type="basic", password=USER_PASSWORD, **fields):
        args = {
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
            "userType": user_type,
        }
        args.update(fields)
        return await bank.execute("addUser", args, super_admin)
    return factory
