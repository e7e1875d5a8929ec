from .orm_table import ORMTableBase, BlockAllocatedTable
from .typing import ORMTableProtocol, BlockAllocatedTableProtocol

__all__ = [
    "ORMTableBase",
    "BlockAllocatedTable",
    "ORMTableProtocol",
    "BlockAllocatedTableProtocol",
]
