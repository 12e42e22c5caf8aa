from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .block import Block
from .merging import coalesce
from .partition import BlockPartition


@dataclass(frozen=True)
class CompactionReport:
    """
    Outcome of a compaction pass.

    `regions_merged` counts the free regions that existed beforehand and
    `bytes_consolidated` the free bytes now gathered in the trailing block.
    `already_optimal` means there was at most one free block and nothing moved.
    """

    already_optimal: bool
    bytes_consolidated: int = 0
    regions_merged: int = 0
    blocks_relocated: int = 0
    bytes_moved: int = 0


def compact_partition(partition: BlockPartition) -> CompactionReport:
    """Slide every allocated block down to address 0, keeping their order."""
    free_regions = partition.free_blocks()
    if len(free_regions) <= 1:
        return CompactionReport(already_optimal=True)

    allocated = partition.allocated_blocks()
    freed_bytes = sum(block.size for block in free_regions)

    relocated: List[Block] = []
    offset = 0
    blocks_relocated = 0
    bytes_moved = 0
    for block in allocated:
        if block.start != offset:
            blocks_relocated += 1
            bytes_moved += block.size
        relocated.append(block.moved_to(offset))
        offset += block.size

    if offset < partition.total_size:
        relocated.append(Block(offset, partition.total_size - 1))

    partition.rebuild(relocated)
    coalesce(partition)
    return CompactionReport(
        already_optimal=False,
        bytes_consolidated=freed_bytes,
        regions_merged=len(free_regions),
        blocks_relocated=blocks_relocated,
        bytes_moved=bytes_moved,
    )
