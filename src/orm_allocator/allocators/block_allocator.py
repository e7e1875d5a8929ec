import threading
import logging

from .config import AllocatorConfig
from .errors import ConfigurationError
from .store import AllocatorStatistics, PersistentCounterStore
from .unit_of_work import UnitOfWork
from .window import AllocationWindow

logger = logging.getLogger(__name__)


class BlockAllocator:
    """
    Cluster-safe allocator of increasing integer keys, handed out from
    blocks reserved in a shared allocator table.

    Within one instance calls are serialised by a lock; across instances,
    processes and hosts, uniqueness comes from the store's guarded update.
    Keys from an abandoned block are never reused, so sequences can have
    gaps after a restart.
    """

    def __init__(self, config: AllocatorConfig, unit_of_work: UnitOfWork | None = None):
        self._lock = threading.Lock()
        self._store = PersistentCounterStore(config)
        self._window = AllocationWindow()
        self._unit_of_work = unit_of_work

    @property
    def config(self) -> AllocatorConfig:
        return self._store.config

    @property
    def store(self) -> PersistentCounterStore:
        return self._store

    @property
    def generator_key(self) -> str:
        return self.config.generator_key

    def configure(self, config: AllocatorConfig) -> None:
        """
        Point the allocator at a new sequence or table. The cached block is
        dropped; statistics carry over.
        """
        with self._lock:
            self._store.configure(config)
            self._window = AllocationWindow()

    def _resolve_unit_of_work(self, unit_of_work: UnitOfWork | None) -> UnitOfWork:
        uow = unit_of_work or self._unit_of_work
        if uow is None:
            raise ConfigurationError(
                f"{self.generator_key}: no unit of work supplied to allocate a block"
            )
        return uow

    def next(self, unit_of_work: UnitOfWork | None = None) -> int:
        with self._lock:
            if self._window.exhausted:
                uow = self._resolve_unit_of_work(unit_of_work)
                block_size = self.config.block_size
                logger.debug(
                    f"allocating id block: {self.config.qualified_table_name}, "
                    f"{self.config.sequence_name}: blockSize={block_size}"
                )
                # window is only touched once the fetch has succeeded
                start = self._store.fetch_and_advance(uow)
                self._window.reset(start, block_size)
                logger.debug(f"  allocated block: {self._window.cursor}-{self._window.limit}")
            result = self._window.take()
        logger.debug(f"allocated id: {result}")
        return result

    def set_min_value(self, value: int, unit_of_work: UnitOfWork | None = None) -> int:
        """
        Raise the stored counter to at least ``value``. A cached block that
        reaches below ``value`` is dropped so no key under it is handed out.
        """
        with self._lock:
            uow = self._resolve_unit_of_work(unit_of_work)
            stored = self._store.set_min_value(uow, value)
            if not self._window.exhausted and self._window.cursor < value:
                logger.debug(
                    f"discarding cached block {self._window.cursor}-{self._window.limit} below minimum {value}"
                )
                self._window = AllocationWindow()
            return stored

    def statistics(self) -> AllocatorStatistics:
        return self._store.statistics()

    def __repr__(self) -> str:
        return f"<BlockAllocator {self.generator_key} blockSize={self.config.block_size}>"
