import sqlalchemy as sa
import sqlalchemy.orm as so
from sqlalchemy import event
from typing import Any, ClassVar, Mapping, Optional, Type, cast
import logging

from ..allocators import AllocatorConfig, BlockAllocator, UnitOfWork, isolated_unit_of_work
from ..schema import allocator_table

logger = logging.getLogger(__name__)


class ORMTableBase:
    """
    Mixin for SQLAlchemy ORM-mapped tables providing convenience methods for:

    - primary key introspection
    - mapper access
    """

    __abstract__ = True

    @classmethod
    def mapper_for(cls: Type) -> so.Mapper:
        mapper = sa.inspect(cls)
        if not mapper:
            raise TypeError(f"{cls.__name__} is not a mapped ORM class")
        return cast(so.Mapper, mapper)

    @classmethod
    def pk_columns(cls) -> list[sa.ColumnElement]:
        pks = list(cls.mapper_for().primary_key)
        if not pks:
            raise ValueError(f"{cls.__name__} has no primary key")
        return pks

    @classmethod
    def pk_names(cls) -> list[str]:
        return [c.key for c in cls.pk_columns() if c.key is not None]

    @classmethod
    def max_id(cls, session: so.Session) -> int:
        pks = cls.pk_columns()
        if len(pks) != 1:
            raise ValueError(
                f"{cls.__name__} has composite PK; max_id() not supported"
            )
        pk = pks[0]
        return session.query(sa.func.max(pk)).scalar() or 0


class BlockAllocatedTable(ORMTableBase):
    """
    Mixin for ORM tables whose integer primary key comes from a
    LinearBlockAllocator sequence.

    Call ``attach_block_allocator()`` once after the class is mapped. From
    then on, any instance flushed with an empty primary key gets the next
    key from the allocator; keys set explicitly are left alone.
    """

    __abstract__ = True
    _block_allocator: ClassVar[Optional[BlockAllocator]] = None
    _block_allocator_listener: ClassVar[Optional[Any]] = None

    @classmethod
    def allocator_config(cls, params: Mapping[str, Any] | None = None, **overrides: Any) -> AllocatorConfig:
        """
        Resolve allocator parameters for this table. The sequence name
        defaults to ``__tablename__``.
        """
        merged = {**(params or {}), **overrides}
        return AllocatorConfig.from_params(merged, default_sequence_name=getattr(cls, "__tablename__", None))

    @classmethod
    def _pk_attribute(cls) -> str:
        pks = cls.pk_columns()
        if len(pks) != 1:
            raise ValueError(
                f"{cls.__name__} has composite PK; block allocation needs a single key column"
            )
        return cls.mapper_for().get_property_by_column(pks[0]).key

    @classmethod
    def attach_block_allocator(
        cls,
        params: Mapping[str, Any] | None = None,
        *,
        unit_of_work: UnitOfWork | None = None,
    ) -> BlockAllocator:
        config = cls.allocator_config(params)
        pk_attr = cls._pk_attribute()

        # register the allocator table next to the model so create_all() builds it
        allocator_table(config, getattr(cls, "metadata", None))

        allocator = BlockAllocator(config, unit_of_work=unit_of_work)

        def assign_identifier(mapper: so.Mapper, connection: sa.Connection, target: Any) -> None:
            if getattr(target, pk_attr) is not None:
                return
            uow = unit_of_work or isolated_unit_of_work(connection)
            setattr(target, pk_attr, allocator.next(uow))

        if cls._block_allocator_listener is not None and event.contains(
            cls, "before_insert", cls._block_allocator_listener
        ):
            event.remove(cls, "before_insert", cls._block_allocator_listener)
        event.listen(cls, "before_insert", assign_identifier)

        cls._block_allocator = allocator
        cls._block_allocator_listener = assign_identifier
        logger.debug(f"Attached {allocator.generator_key} to {cls.__name__}.{pk_attr}")
        return allocator

    @classmethod
    def block_allocator(cls) -> BlockAllocator:
        if cls._block_allocator is None:
            raise RuntimeError(f"{cls.__name__} has no block allocator attached")
        return cls._block_allocator

    @classmethod
    def seed_from_max_id(cls, session: so.Session) -> int:
        """
        Move the sequence above the largest key already in the table, e.g.
        after a bulk load that inserted explicit keys.
        """
        floor = cls.max_id(session) + 1
        return cls.block_allocator().set_min_value(floor, isolated_unit_of_work(session))
