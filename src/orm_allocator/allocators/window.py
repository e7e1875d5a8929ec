from dataclasses import dataclass


@dataclass
class AllocationWindow:
    """
    The block currently held in memory, as the half-open range
    ``[cursor, limit)``.

    Starts exhausted so the first request always fetches a block.
    """

    cursor: int = 0
    limit: int = 0

    @property
    def exhausted(self) -> bool:
        return self.cursor >= self.limit

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.cursor)

    def reset(self, start: int, block_size: int) -> None:
        if block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {block_size}")
        self.cursor = start
        self.limit = start + block_size

    def take(self) -> int:
        if self.exhausted:
            raise RuntimeError(f"Allocation window [{self.cursor}, {self.limit}) is exhausted")
        value = self.cursor
        self.cursor += 1
        return value
