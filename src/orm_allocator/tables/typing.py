from typing import Protocol, ClassVar, runtime_checkable, TYPE_CHECKING, Any, Mapping, Optional
import sqlalchemy.orm as so
import sqlalchemy as sa

if TYPE_CHECKING:
    from ..allocators import AllocatorConfig, BlockAllocator, UnitOfWork


@runtime_checkable
class ORMTableProtocol(Protocol):
    """
    Structural protocol for ORM-mapped *table classes*.
    """

    __tablename__: ClassVar[str]
    __table__: ClassVar[sa.Table]
    metadata: ClassVar[sa.MetaData]

    @classmethod
    def mapper_for(cls) -> so.Mapper: ...

    @classmethod
    def pk_names(cls) -> list[str]: ...

    @classmethod
    def pk_columns(cls) -> list[sa.ColumnElement]: ...

    @classmethod
    def max_id(cls, session: so.Session) -> int: ...


@runtime_checkable
class BlockAllocatedTableProtocol(ORMTableProtocol, Protocol):
    """
    Protocol for ORM tables whose primary key is assigned from a
    block allocator before insert.
    """

    _block_allocator: ClassVar[Optional["BlockAllocator"]] = None

    @classmethod
    def allocator_config(cls, params: Mapping[str, Any] | None = None, **overrides: Any) -> "AllocatorConfig": ...

    @classmethod
    def attach_block_allocator(
        cls,
        params: Mapping[str, Any] | None = None,
        *,
        unit_of_work: "UnitOfWork | None" = None,
    ) -> "BlockAllocator": ...

    @classmethod
    def block_allocator(cls) -> "BlockAllocator": ...

    @classmethod
    def seed_from_max_id(cls, session: so.Session) -> int: ...
