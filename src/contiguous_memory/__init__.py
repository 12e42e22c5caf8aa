"""
Contiguous memory simulator modelled on classical variable-partition allocation.

Expose high-level classes for driving allocations and experiments quickly.
"""

from .block import FREE, AddressRange, Block, Owned
from .compaction import CompactionReport, compact_partition
from .errors import (
    DuplicateProcessError,
    ExceedsCapacityError,
    InvalidSizeError,
    MemorySpaceError,
    NotInitializedError,
    OutOfMemoryError,
    PartitionInvariantError,
    ProcessNotFoundError,
)
from .memory_space import MemorySnapshot, MemorySpace
from .merging import coalesce
from .partition import BlockPartition
from .strategies import BestFit, FirstFit, PlacementStrategy, WorstFit, get_strategy

__all__ = [
    "FREE",
    "AddressRange",
    "Block",
    "Owned",
    "BlockPartition",
    "PlacementStrategy",
    "FirstFit",
    "BestFit",
    "WorstFit",
    "get_strategy",
    "coalesce",
    "CompactionReport",
    "compact_partition",
    "MemorySnapshot",
    "MemorySpace",
    "MemorySpaceError",
    "NotInitializedError",
    "InvalidSizeError",
    "ExceedsCapacityError",
    "DuplicateProcessError",
    "ProcessNotFoundError",
    "OutOfMemoryError",
    "PartitionInvariantError",
]
