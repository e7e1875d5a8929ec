from .errors import (
    AllocatorError,
    ConfigurationError,
    StoreError,
    StoreReadError,
    StoreWriteError,
    BootstrapRaceError,
)
from .config import AllocatorConfig
from .window import AllocationWindow
from .unit_of_work import UnitOfWork, isolated_unit_of_work
from .store import AllocatorStatistics, PersistentCounterStore
from .block_allocator import BlockAllocator

__all__ = [
    "AllocatorConfig",
    "AllocationWindow",
    "AllocatorStatistics",
    "BlockAllocator",
    "PersistentCounterStore",
    "UnitOfWork",
    "isolated_unit_of_work",
    "AllocatorError",
    "ConfigurationError",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "BootstrapRaceError",
]
