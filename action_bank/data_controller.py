"""
Data Controller

Bundles the user and bank controllers over one storage backend.
"""

from typing import Optional

from .bank_controller import BankController, StorageBankController
from .config import ActionBankConfig, get_config
from .storage import StorageInterface, create_storage
from .user_controller import UserController, StorageUserController
from .user_types import UserTypeMap


class DataController:
    """Storage backend plus the controllers built on top of it"""

    def __init__(self, storage: StorageInterface, user_type_map: UserTypeMap,
                 user_controller: Optional[UserController] = None,
                 bank_controller: Optional[BankController] = None):
        self.storage = storage
        self.user_controller = user_controller or StorageUserController(storage, user_type_map)
        self.bank_controller = bank_controller or StorageBankController(storage)

    async def initialize(self) -> None:
        await self.storage.initialize()

    async def close(self) -> None:
        await self.storage.close()

    @classmethod
    def from_config(cls, user_type_map: UserTypeMap,
                    config: Optional[ActionBankConfig] = None) -> 'DataController':
        """Build a DataController for the configured storage backend"""
        config = config or get_config()
        storage = create_storage(config.storage_backend, config.data_location)
        return cls(storage, user_type_map)
