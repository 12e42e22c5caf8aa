from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional, Type, Union

from .partition import BlockPartition


class PlacementStrategy(ABC):
    """Pick a free block for a request without touching the partition."""

    name: str = "placement"

    @abstractmethod
    def select(self, partition: BlockPartition, size: int) -> Optional[int]:
        """Return the index of a free block holding at least `size` bytes, or None."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class FirstFit(PlacementStrategy):
    """
    Walk the blocks in address order and take the first free one that fits.
    Cheap, and tends to keep the high end of memory unfragmented.
    """

    name = "first_fit"

    def select(self, partition: BlockPartition, size: int) -> Optional[int]:
        for index, block in enumerate(partition):
            if block.is_free and block.size >= size:
                return index
        return None


class BestFit(PlacementStrategy):
    """
    Take the smallest free block that fits, leaving the least slack behind.
    Strict comparison keeps the lowest address on ties.
    """

    name = "best_fit"

    def select(self, partition: BlockPartition, size: int) -> Optional[int]:
        best_index: Optional[int] = None
        best_size = 0
        for index, block in enumerate(partition):
            if not block.is_free or block.size < size:
                continue
            if best_index is None or block.size < best_size:
                best_index, best_size = index, block.size
        return best_index


class WorstFit(PlacementStrategy):
    """Take the largest free block so the leftover stays usable."""

    name = "worst_fit"

    def select(self, partition: BlockPartition, size: int) -> Optional[int]:
        worst_index: Optional[int] = None
        worst_size = 0
        for index, block in enumerate(partition):
            if not block.is_free or block.size < size:
                continue
            if worst_index is None or block.size > worst_size:
                worst_index, worst_size = index, block.size
        return worst_index


STRATEGIES: Dict[str, Type[PlacementStrategy]] = {
    "first": FirstFit,
    "best": BestFit,
    "worst": WorstFit,
}


def get_strategy(strategy: Union[str, PlacementStrategy, None] = None) -> PlacementStrategy:
    """
    Resolve a strategy instance from a name such as "best", "best_fit" or
    "Best-Fit". None selects first fit; instances pass through unchanged.
    """
    if strategy is None:
        return FirstFit()
    if isinstance(strategy, PlacementStrategy):
        return strategy
    key = strategy.strip().lower().replace("-", "_").replace(" ", "_")
    if key.endswith("_fit"):
        key = key[: -len("_fit")]
    elif key.endswith("fit"):
        key = key[: -len("fit")]
    try:
        return STRATEGIES[key]()
    except KeyError:
        choices = ", ".join(sorted(STRATEGIES))
        raise ValueError(f"Unknown placement strategy {strategy!r}; expected one of {choices}") from None
