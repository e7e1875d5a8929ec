from .export import (
    SEQUENCE_COLUMN_LENGTH,
    allocator_table,
    create_statements,
    drop_statements,
    ensure_schema,
)

__all__ = [
    "SEQUENCE_COLUMN_LENGTH",
    "allocator_table",
    "create_statements",
    "drop_statements",
    "ensure_schema",
]
