from .allocators import (
    AllocatorConfig,
    AllocationWindow,
    AllocatorStatistics,
    BlockAllocator,
    PersistentCounterStore,
    UnitOfWork,
    isolated_unit_of_work,
    AllocatorError,
    ConfigurationError,
    StoreError,
    StoreReadError,
    StoreWriteError,
    BootstrapRaceError,
)
from .schema import (
    allocator_table,
    create_statements,
    drop_statements,
    ensure_schema,
)
from .tables import (
    ORMTableBase,
    BlockAllocatedTable,
    ORMTableProtocol,
    BlockAllocatedTableProtocol,
)

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
    "allocator_table",
    "create_statements",
    "drop_statements",
    "ensure_schema",
    "ORMTableBase",
    "BlockAllocatedTable",
    "ORMTableProtocol",
    "BlockAllocatedTableProtocol",
]
