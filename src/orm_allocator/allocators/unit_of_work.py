from typing import Callable, Protocol, TypeVar, runtime_checkable
import sqlalchemy as sa
import sqlalchemy.orm as so

T = TypeVar("T")


@runtime_checkable
class UnitOfWork(Protocol):
    """
    Runs ``work`` on a connection inside a fresh transaction that commits
    on its own, independent of any transaction the caller is in.

    The transaction must be rolled back and the connection released when
    ``work`` raises.
    """

    def __call__(self, work: Callable[[sa.Connection], T]) -> T: ...


def _engine_for(bind: sa.Engine | sa.Connection | so.Session) -> sa.Engine:
    if isinstance(bind, so.Session):
        bind = bind.get_bind()
    if isinstance(bind, sa.Connection):
        return bind.engine
    if isinstance(bind, sa.Engine):
        return bind
    raise TypeError(f"Cannot derive an engine from {type(bind).__name__}")


def isolated_unit_of_work(bind: sa.Engine | sa.Connection | so.Session) -> UnitOfWork:
    """
    Build a unit of work over the engine behind ``bind``.

    A new pooled connection is checked out for every call; a session or
    connection passed in only supplies the engine, its own transaction is
    never touched.
    """
    engine = _engine_for(bind)

    def run(work: Callable[[sa.Connection], T]) -> T:
        with engine.begin() as conn:
            return work(conn)

    return run
