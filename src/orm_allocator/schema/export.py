import sqlalchemy as sa
from sqlalchemy.schema import CreateTable
from sqlalchemy.engine import Dialect
from sqlalchemy.dialects import registry
import logging

from ..allocators.config import AllocatorConfig

logger = logging.getLogger(__name__)

"""
Allocator Table Export
======================

Definition of the allocator table and the statements needed to create,
seed and clear it outside of the allocator itself.

The table is shared: any number of sequences live in it, one row each,
keyed by sequence name.
"""

SEQUENCE_COLUMN_LENGTH = 128


def allocator_table(config: AllocatorConfig, metadata: sa.MetaData | None = None) -> sa.Table:
    """
    Return the allocator table for ``config``, defining it in ``metadata``
    if this is the first allocator to use it.

    Registering the table on an application's MetaData means
    ``metadata.create_all()`` creates it alongside the mapped tables.
    """
    if metadata is None:
        metadata = sa.MetaData()

    existing = metadata.tables.get(config.qualified_table_name)
    if existing is not None:
        missing = {config.sequence_column, config.alloc_column} - set(existing.c.keys())
        if missing:
            raise ValueError(
                f"Table '{config.qualified_table_name}' is already defined without column(s) {sorted(missing)}"
            )
        return existing

    return sa.Table(
        config.table_name,
        metadata,
        sa.Column(
            config.sequence_column,
            sa.String(SEQUENCE_COLUMN_LENGTH),
            primary_key=True,
            nullable=False,
        ),
        sa.Column(config.alloc_column, sa.BigInteger, nullable=False),
        schema=config.schema,
    )


def _resolve_dialect(dialect: Dialect | str) -> Dialect:
    if isinstance(dialect, str):
        return registry.load(dialect)()
    return dialect


def _compile(stmt, dialect: Dialect) -> str:
    return str(stmt.compile(dialect=dialect, compile_kwargs={"literal_binds": True})).strip()


def create_statements(config: AllocatorConfig, dialect: Dialect | str) -> list[str]:
    """
    DDL for the allocator table plus the seed row for this sequence.

    The seed row holds ``block_size``, the same value lazy bootstrap
    would insert, so seeded and unseeded databases allocate identically.
    """
    dialect = _resolve_dialect(dialect)
    table = allocator_table(config)

    create = str(CreateTable(table).compile(dialect=dialect)).strip()
    seed = sa.insert(table).values(
        {
            table.c[config.sequence_column]: config.sequence_name,
            table.c[config.alloc_column]: config.block_size,
        }
    )
    return [create, _compile(seed, dialect)]


def drop_statements(config: AllocatorConfig, dialect: Dialect | str) -> list[str]:
    """
    Remove this sequence's row; the table itself is left in place since
    other sequences may share it.
    """
    dialect = _resolve_dialect(dialect)
    table = allocator_table(config)
    delete = sa.delete(table).where(table.c[config.sequence_column] == config.sequence_name)
    return [_compile(delete, dialect)]


def ensure_schema(bind: sa.Engine | sa.Connection, config: AllocatorConfig) -> sa.Table:
    table = allocator_table(config)
    logger.debug(f"Ensuring allocator table {config.qualified_table_name} exists")
    table.create(bind, checkfirst=True)
    return table
