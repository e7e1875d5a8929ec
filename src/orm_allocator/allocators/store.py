import sqlalchemy as sa
import sqlalchemy.exc as sa_exc
import logging
from dataclasses import dataclass

from .config import AllocatorConfig
from .errors import BootstrapRaceError, StoreReadError, StoreWriteError
from .unit_of_work import UnitOfWork
from ..schema.export import allocator_table

logger = logging.getLogger(__name__)

"""
Persistent Counter Store
========================

Reserves blocks of identifiers from a single counter row.

The stored value is the start of the next unallocated block. A block is
claimed by reading the value and writing ``value + block_size`` back with
the read value repeated in the WHERE clause. If any other writer got in
between, the update matches no row and the attempt is repeated. The row
lock requested on the read is a hint only; uniqueness rests on the guarded
update, so read committed and engines that ignore ``FOR UPDATE`` are fine.
"""


@dataclass(frozen=True)
class AllocatorStatistics:
    table_access_count: int


class PersistentCounterStore:
    """
    Stateless apart from the compiled table and the access counter.

    Every attempt runs in its own unit of work: a reserved block is
    committed whether or not the caller's transaction later succeeds, and a
    failed bootstrap insert is rolled back before the retry.
    """

    def __init__(self, config: AllocatorConfig, metadata: sa.MetaData | None = None):
        self.table_access_count = 0
        self.configure(config, metadata)

    def configure(self, config: AllocatorConfig, metadata: sa.MetaData | None = None) -> None:
        self.config = config
        self.table = allocator_table(config, metadata)
        self._seq_col = self.table.c[config.sequence_column]
        self._alloc_col = self.table.c[config.alloc_column]

    # statements

    def _select_stmt(self) -> sa.Select:
        return (
            sa.select(self._alloc_col)
            .where(self._seq_col == self.config.sequence_name)
            .with_for_update()
        )

    def _update_stmt(self, current: int, new_value: int) -> sa.Update:
        return (
            sa.update(self.table)
            .where(self._seq_col == self.config.sequence_name)
            .where(self._alloc_col == current)
            .values({self._alloc_col: new_value})
        )

    def _insert_stmt(self, start: int) -> sa.Insert:
        return sa.insert(self.table).values(
            {self._seq_col: self.config.sequence_name, self._alloc_col: start}
        )

    # single-attempt primitives

    def _read(self, conn: sa.Connection) -> int | None:
        try:
            row = conn.execute(self._select_stmt()).one_or_none()
        except sa_exc.SQLAlchemyError as e:
            logger.error(
                f"could not read next value for '{self.config.sequence_name}' from {self.config.qualified_table_name}",
                exc_info=True,
            )
            raise StoreReadError(
                f"Failed to read allocator row '{self.config.sequence_name}': {e}",
                sequence_name=self.config.sequence_name,
            ) from e
        if row is None:
            return None
        if row[0] is None:
            # row present but unusable; never bootstrap over it
            logger.error(
                f"allocator row '{self.config.sequence_name}' in {self.config.qualified_table_name} has a NULL value"
            )
            raise StoreReadError(
                f"Allocator row '{self.config.sequence_name}' has no value in column {self.config.alloc_column}",
                sequence_name=self.config.sequence_name,
            )
        return int(row[0])

    def _bootstrap(self, conn: sa.Connection) -> int:
        start = self.config.block_size
        logger.debug(
            f"no allocator row for '{self.config.sequence_name}'; initializing at {start}"
        )
        try:
            conn.execute(self._insert_stmt(start))
        except sa_exc.IntegrityError as e:
            raise BootstrapRaceError(
                f"Allocator row '{self.config.sequence_name}' was created concurrently",
                sequence_name=self.config.sequence_name,
            ) from e
        except sa_exc.SQLAlchemyError as e:
            logger.error(
                f"could not initialize allocator row '{self.config.sequence_name}' in {self.config.qualified_table_name}",
                exc_info=True,
            )
            raise StoreWriteError(
                f"Failed to initialize allocator row '{self.config.sequence_name}': {e}",
                sequence_name=self.config.sequence_name,
            ) from e
        return start

    def _compare_and_set(self, conn: sa.Connection, current: int, new_value: int) -> bool:
        try:
            result = conn.execute(self._update_stmt(current, new_value))
        except sa_exc.SQLAlchemyError as e:
            logger.error(
                f"could not update next value in {self.config.qualified_table_name} for '{self.config.sequence_name}'",
                exc_info=True,
            )
            raise StoreWriteError(
                f"Failed to advance allocator row '{self.config.sequence_name}': {e}",
                sequence_name=self.config.sequence_name,
            ) from e
        return result.rowcount == 1

    def _attempt_advance(self, conn: sa.Connection) -> int | None:
        current = self._read(conn)
        if current is None:
            current = self._bootstrap(conn)
        if self._compare_and_set(conn, current, current + self.config.block_size):
            return current
        return None

    def _run_cas_loop(self, unit_of_work: UnitOfWork, attempt) -> int:
        attempts = 0
        while True:
            attempts += 1
            try:
                result = unit_of_work(attempt)
            except BootstrapRaceError:
                logger.debug(
                    f"lost bootstrap race for '{self.config.sequence_name}'; retrying (attempt {attempts})"
                )
                continue
            if result is not None:
                return result
            logger.debug(
                f"contention on '{self.config.sequence_name}'; counter moved since read, retrying (attempt {attempts})"
            )

    # public operations

    def fetch_and_advance(self, unit_of_work: UnitOfWork) -> int:
        """
        Reserve ``[start, start + block_size)`` and return ``start``.

        Hard database failures raise ``StoreReadError`` / ``StoreWriteError``
        and are never retried; only a lost compare-and-set or a lost
        bootstrap race loops.
        """
        start = self._run_cas_loop(unit_of_work, self._attempt_advance)
        self.table_access_count += 1
        return start

    def current_value(self, unit_of_work: UnitOfWork) -> int | None:
        """The stored next-block value, or None if the row does not exist yet."""
        return unit_of_work(self._read)

    def set_min_value(self, unit_of_work: UnitOfWork, value: int) -> int:
        """
        Move the counter up to at least ``value``; never moves it down.

        Used after rows were inserted with explicit keys, so later blocks
        start above them. Returns the stored value afterwards.
        """
        if value < 1:
            raise ValueError(f"Minimum value must be >= 1, got {value}")

        def attempt(conn: sa.Connection) -> int | None:
            current = self._read(conn)
            if current is None:
                current = self._bootstrap(conn)
            if current >= value:
                return current
            if self._compare_and_set(conn, current, value):
                return value
            return None

        stored = self._run_cas_loop(unit_of_work, attempt)
        logger.debug(f"counter for '{self.config.sequence_name}' is now {stored} (requested minimum {value})")
        return stored

    def statistics(self) -> AllocatorStatistics:
        return AllocatorStatistics(table_access_count=self.table_access_count)
