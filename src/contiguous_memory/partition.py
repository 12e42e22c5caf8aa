from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Set, Tuple

from .block import FREE, Block, Owned
from .errors import PartitionInvariantError


class BlockPartition:
    """
    Ordered, gapless tiling of the address range `[0, total_size)`.

    Blocks live in a plain list kept in address order, so a block reference is
    just its index. Every mutator swaps whole Block records in or out of the
    list and leaves the sequence tiling the space when it returns.
    """

    def __init__(self, total_size: int, blocks: Iterable[Block]) -> None:
        self.total_size = total_size
        self._blocks: List[Block] = list(blocks)
        self.validate()

    @classmethod
    def initialize(cls, size: int) -> "BlockPartition":
        """Create a partition holding one free block `[0, size - 1]`."""
        if size <= 0:
            raise ValueError(f"Partition size must be positive, got {size}")
        return cls(size, [Block(0, size - 1)])

    # -- Read access ---------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(self._blocks)

    def __getitem__(self, index: int) -> Block:
        return self._blocks[index]

    def blocks(self) -> Tuple[Block, ...]:
        return tuple(self._blocks)

    def free_blocks(self) -> List[Block]:
        return [block for block in self._blocks if block.is_free]

    def allocated_blocks(self) -> List[Block]:
        return [block for block in self._blocks if not block.is_free]

    def used_bytes(self) -> int:
        return sum(block.size for block in self._blocks if not block.is_free)

    def free_bytes(self) -> int:
        return self.total_size - self.used_bytes()

    def largest_free_block(self) -> int:
        return max((block.size for block in self._blocks if block.is_free), default=0)

    def index_of(self, process_id: str) -> Optional[int]:
        for index, block in enumerate(self._blocks):
            if block.process_id == process_id:
                return index
        return None

    def find_by_owner(self, process_id: str) -> Optional[Block]:
        index = self.index_of(process_id)
        return None if index is None else self._blocks[index]

    def is_coalesced(self) -> bool:
        """True when no two neighbouring blocks are both free."""
        return not any(
            left.is_free and right.is_free
            for left, right in zip(self._blocks, self._blocks[1:])
        )

    # -- Mutation ------------------------------------------------------------------
    def split_at(self, index: int, size: int, process_id: str) -> Tuple[Block, Optional[Block]]:
        """
        Carve `size` bytes for `process_id` out of the free block at `index`.

        The allocated piece keeps the low addresses and takes over `index`; the
        free remainder (if any) is inserted right after it. An exact fit only
        changes the owner.
        """
        block = self._free_block_at(index)
        if size <= 0 or size > block.size:
            raise ValueError(f"Cannot split {size} bytes from block {block!r}")
        if size == block.size:
            return self.replace_owner(index, process_id), None
        allocated = Block.of_size(block.start, size, Owned(process_id))
        remainder = Block(block.start + size, block.end)
        self._blocks[index] = allocated
        self._blocks.insert(index + 1, remainder)
        return allocated, remainder

    def replace_owner(self, index: int, process_id: str) -> Block:
        block = self._free_block_at(index)
        updated = block.with_owner(Owned(process_id))
        self._blocks[index] = updated
        return updated

    def mark_free(self, index: int) -> Block:
        """Clear the owner of the block at `index`; returns the block as it was."""
        block = self._blocks[index]
        if block.is_free:
            raise ValueError(f"Block {block!r} is already free")
        self._blocks[index] = block.with_owner(FREE)
        return block

    def merge_with_next(self, index: int) -> Block:
        """Fold the free block after `index` into the free block at `index`."""
        if index + 1 >= len(self._blocks):
            raise IndexError(f"No block follows index {index}")
        left, right = self._blocks[index], self._blocks[index + 1]
        if not (left.is_free and right.is_free):
            raise ValueError(f"Only free blocks can be merged: {left!r}, {right!r}")
        merged = Block(left.start, right.end)
        self._blocks[index] = merged
        del self._blocks[index + 1]
        return merged

    def rebuild(self, blocks: Iterable[Block]) -> None:
        """Replace the whole sequence; the partition is untouched if `blocks` is not a tiling."""
        candidate = list(blocks)
        try:
            _check_tiling(candidate, self.total_size)
        except PartitionInvariantError as exc:
            raise ValueError(f"Rejected rebuild: {exc}") from exc
        self._blocks = candidate

    # -- Invariants ----------------------------------------------------------------
    def validate(self) -> None:
        _check_tiling(self._blocks, self.total_size)

    def _free_block_at(self, index: int) -> Block:
        block = self._blocks[index]
        if not block.is_free:
            raise ValueError(f"Block {block!r} is already owned")
        return block

    def __repr__(self) -> str:
        return f"BlockPartition(total_size={self.total_size}, blocks={self._blocks!r})"


def _check_tiling(blocks: List[Block], total_size: int) -> None:
    if not blocks:
        raise PartitionInvariantError("Partition holds no blocks")
    if blocks[0].start != 0:
        raise PartitionInvariantError(f"First block starts at {blocks[0].start}, not 0")
    if blocks[-1].end != total_size - 1:
        raise PartitionInvariantError(
            f"Last block ends at {blocks[-1].end}, expected {total_size - 1}"
        )
    live: Set[str] = set()
    for previous, current in zip(blocks, blocks[1:]):
        if previous.end + 1 != current.start:
            raise PartitionInvariantError(f"Blocks {previous!r} and {current!r} are not contiguous")
    for block in blocks:
        owner = block.process_id
        if owner is None:
            continue
        if owner in live:
            raise PartitionInvariantError(f"Process {owner!r} owns more than one block")
        live.add(owner)
