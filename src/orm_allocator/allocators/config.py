from dataclasses import dataclass
from typing import Any, Mapping
import logging

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "KEY_ALLOC"
DEFAULT_SEQUENCE_COLUMN = "SEQ"
DEFAULT_ALLOC_COLUMN = "NEXT_VAL"
DEFAULT_BLOCK_SIZE = 100

# accepted parameter spellings -> dataclass field
_PARAM_KEYS: dict[str, tuple[str, ...]] = {
    "table_name": ("table", "table_name"),
    "sequence_column": ("sequenceColumn", "sequence_column"),
    "alloc_column": ("allocColumn", "alloc_column"),
    "sequence_name": ("sequenceName", "sequence_name"),
    "block_size": ("blockSize", "block_size"),
    "schema": ("schema",),
}


def _lookup(params: Mapping[str, Any], field: str) -> Any:
    for key in _PARAM_KEYS[field]:
        value = params.get(key)
        if value is not None and value != "":
            return value
    return None


@dataclass(frozen=True)
class AllocatorConfig:
    """
    Resolved settings for one allocator instance.

    The first three fields describe the allocator table, which may hold
    many sequences; ``sequence_name`` selects the row and ``block_size``
    controls how many identifiers are cached in memory per round trip.
    """

    sequence_name: str
    table_name: str = DEFAULT_TABLE
    sequence_column: str = DEFAULT_SEQUENCE_COLUMN
    alloc_column: str = DEFAULT_ALLOC_COLUMN
    block_size: int = DEFAULT_BLOCK_SIZE
    schema: str | None = None

    def __post_init__(self):
        for name in ("sequence_name", "table_name", "sequence_column", "alloc_column"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(f"LinearBlockAllocator: '{name}' must be a non-empty string")
        if self.sequence_column == self.alloc_column:
            raise ConfigurationError(
                f"LinearBlockAllocator: sequence and alloc columns must differ (both '{self.alloc_column}')"
            )
        if isinstance(self.block_size, bool) or not isinstance(self.block_size, int):
            raise ConfigurationError(
                f"LinearBlockAllocator: 'block_size' must be an integer, got {self.block_size!r}"
            )
        if self.block_size < 1:
            raise ConfigurationError(
                f"LinearBlockAllocator: 'block_size' must be >= 1, got {self.block_size}"
            )

    @classmethod
    def from_params(
        cls,
        params: Mapping[str, Any] | None = None,
        *,
        default_sequence_name: str | None = None,
    ) -> "AllocatorConfig":
        """
        Build a config from generator-style parameters.

        ``sequenceName`` falls back to ``default_sequence_name``, normally the
        table name of the entity the allocator serves. Block sizes below one
        are raised to one.
        """
        params = params or {}

        sequence_name = _lookup(params, "sequence_name") or default_sequence_name
        if sequence_name is None:
            raise ConfigurationError("LinearBlockAllocator: 'sequenceName' must be specified")

        raw_block_size = _lookup(params, "block_size")
        if raw_block_size is None:
            block_size = DEFAULT_BLOCK_SIZE
        else:
            try:
                block_size = int(raw_block_size)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"LinearBlockAllocator: 'blockSize' must be an integer, got {raw_block_size!r}"
                ) from e
            # int() truncates 2.9 to 2
            if isinstance(raw_block_size, bool) or (
                not isinstance(raw_block_size, (int, str)) and block_size != raw_block_size
            ):
                raise ConfigurationError(
                    f"LinearBlockAllocator: 'blockSize' must be an integer, got {raw_block_size!r}"
                )
        if block_size < 1:
            logger.warning(f"blockSize {block_size} for sequence '{sequence_name}' is below 1; using 1")
            block_size = 1

        return cls(
            sequence_name=str(sequence_name),
            table_name=_lookup(params, "table_name") or DEFAULT_TABLE,
            sequence_column=_lookup(params, "sequence_column") or DEFAULT_SEQUENCE_COLUMN,
            alloc_column=_lookup(params, "alloc_column") or DEFAULT_ALLOC_COLUMN,
            block_size=block_size,
            schema=_lookup(params, "schema"),
        )

    @property
    def qualified_table_name(self) -> str:
        return f"{self.schema}.{self.table_name}" if self.schema else self.table_name

    @property
    def generator_key(self) -> str:
        return f"LinearBlockAllocator table={self.qualified_table_name}, seq={self.sequence_name}"
