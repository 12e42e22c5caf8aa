from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Union

from .block import AddressRange, Block
from .compaction import CompactionReport, compact_partition
from .errors import (
    DuplicateProcessError,
    ExceedsCapacityError,
    InvalidSizeError,
    NotInitializedError,
    OutOfMemoryError,
    ProcessNotFoundError,
)
from .merging import coalesce
from .partition import BlockPartition
from .strategies import PlacementStrategy, get_strategy

if TYPE_CHECKING:
    from experiments.instrumentation import MemoryProfiler

StrategyLike = Union[str, PlacementStrategy, None]


@dataclass(frozen=True)
class MemorySnapshot:
    """Immutable view of the partition handed out by `MemorySpace.query`."""

    blocks: Tuple[Block, ...]
    total_size: int
    used_bytes: int
    free_bytes: int

    @property
    def free_blocks(self) -> Tuple[Block, ...]:
        return tuple(block for block in self.blocks if block.is_free)

    @property
    def allocated_blocks(self) -> Tuple[Block, ...]:
        return tuple(block for block in self.blocks if not block.is_free)

    @property
    def largest_free_block(self) -> int:
        return max((block.size for block in self.free_blocks), default=0)

    @property
    def fragmentation(self) -> float:
        if self.free_bytes == 0:
            return 0.0
        return 1.0 - (self.largest_free_block / self.free_bytes)


class MemorySpace:
    """
    Simulated contiguous address space with pluggable placement.

    The space starts uninitialized; `initialize` creates a single free block
    covering the whole range. Every operation validates its preconditions
    before touching the partition, so a failed call leaves the space exactly
    as it was.
    """

    def __init__(
        self,
        *,
        strategy: StrategyLike = None,
        profiler: Optional["MemoryProfiler"] = None,
    ) -> None:
        self.strategy = get_strategy(strategy)
        self.profiler = profiler
        self._partition: Optional[BlockPartition] = None

    @property
    def initialized(self) -> bool:
        return self._partition is not None

    @property
    def total_size(self) -> int:
        return self._partition.total_size if self._partition else 0

    # -- Lifecycle -----------------------------------------------------------------
    def initialize(self, size: int) -> None:
        """Discard any existing layout and start over with `size` free bytes."""
        if size <= 0:
            raise InvalidSizeError(size)
        self._partition = BlockPartition.initialize(size)
        self._record("initialize", {"total_size": size})

    # -- Allocation ----------------------------------------------------------------
    def allocate(self, process_id: str, size: int, strategy: StrategyLike = None) -> AddressRange:
        partition = self._require_ready("allocate")
        if size <= 0:
            raise InvalidSizeError(size)
        if size > partition.total_size:
            raise ExceedsCapacityError(size, partition.total_size)
        if partition.index_of(process_id) is not None:
            raise DuplicateProcessError(process_id)

        placement = get_strategy(strategy) if strategy is not None else self.strategy
        index = placement.select(partition, size)
        if index is None:
            self._record(
                "allocation_failure",
                {"process_id": process_id, "size": size, "strategy": placement.name},
            )
            raise OutOfMemoryError(process_id, size, placement.name, partition.free_bytes())

        allocated, remainder = partition.split_at(index, size, process_id)
        self._record(
            "allocation",
            {
                "process_id": process_id,
                "size": size,
                "start": allocated.start,
                "end": allocated.end,
                "strategy": placement.name,
                "split": remainder is not None,
            },
        )
        return allocated.address_range

    # -- Release -------------------------------------------------------------------
    def release(self, process_id: str) -> AddressRange:
        """Free the block owned by `process_id` and merge it with free neighbours."""
        partition = self._require_ready("release")
        index = partition.index_of(process_id)
        if index is None:
            raise ProcessNotFoundError(process_id)
        released = partition.mark_free(index)
        self._record(
            "release",
            {
                "process_id": process_id,
                "size": released.size,
                "start": released.start,
                "end": released.end,
            },
        )
        self._coalesce(partition, trigger="release")
        return released.address_range

    def owner_range(self, process_id: str) -> Optional[AddressRange]:
        partition = self._require_ready("look up a process")
        block = partition.find_by_owner(process_id)
        return block.address_range if block else None

    # -- Compaction ----------------------------------------------------------------
    def compact(self) -> CompactionReport:
        partition = self._require_ready("compact")
        report = compact_partition(partition)
        self._record(
            "compaction",
            {
                "already_optimal": report.already_optimal,
                "bytes_consolidated": report.bytes_consolidated,
                "regions_merged": report.regions_merged,
                "blocks_relocated": report.blocks_relocated,
                "bytes_moved": report.bytes_moved,
            },
        )
        return report

    def _coalesce(self, partition: BlockPartition, trigger: str) -> int:
        merges = coalesce(partition)
        if merges:
            self._record("coalesce", {"trigger": trigger, "merges": merges})
        return merges

    # -- Introspection -------------------------------------------------------------
    def query(self) -> MemorySnapshot:
        partition = self._require_ready("query")
        used = partition.used_bytes()
        return MemorySnapshot(
            blocks=partition.blocks(),
            total_size=partition.total_size,
            used_bytes=used,
            free_bytes=partition.total_size - used,
        )

    def fragmentation(self) -> float:
        return self.query().fragmentation

    def stats(self) -> Dict[str, Any]:
        snapshot = self.query()
        return {
            "capacity": snapshot.total_size,
            "used": snapshot.used_bytes,
            "free": snapshot.free_bytes,
            "blocks": len(snapshot.blocks),
            "free_blocks": len(snapshot.free_blocks),
            "processes": len(snapshot.allocated_blocks),
            "largest_free_block": snapshot.largest_free_block,
            "fragmentation": snapshot.fragmentation,
            "strategy": self.strategy.name,
        }

    def _require_ready(self, operation: str) -> BlockPartition:
        if self._partition is None:
            raise NotInitializedError(operation)
        return self._partition

    def _record(self, event_type: str, payload: Dict[str, object]) -> None:
        if not self.profiler or self._partition is None:
            return
        used = self._partition.used_bytes()
        self.profiler.record_event(
            event_type,
            {
                **payload,
                "heap_used": used,
                "heap_free": self._partition.total_size - used,
            },
        )
