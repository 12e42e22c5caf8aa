from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Union


class _Free:
    """Owner tag for an unallocated block."""

    __slots__ = ()

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Free)

    def __hash__(self) -> int:
        return hash(_Free)

    def __repr__(self) -> str:
        return "FREE"


FREE = _Free()


@dataclass(frozen=True, slots=True)
class Owned:
    process_id: str

    def __repr__(self) -> str:
        return f"Owned({self.process_id!r})"


Owner = Union[_Free, Owned]


@dataclass(frozen=True, slots=True)
class AddressRange:
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True, slots=True)
class Block:
    """
    A contiguous address range tagged FREE or Owned by a process.

    `end` is inclusive, so a block always spans at least one byte. Blocks are
    values: mutating operations on the partition swap in new records instead
    of editing shared ones.
    """

    start: int
    end: int
    owner: Owner = FREE

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid block bounds [{self.start}, {self.end}]")

    @classmethod
    def of_size(cls, start: int, size: int, owner: Owner = FREE) -> "Block":
        return cls(start, start + size - 1, owner)

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    @property
    def is_free(self) -> bool:
        return not isinstance(self.owner, Owned)

    @property
    def process_id(self) -> Optional[str]:
        if isinstance(self.owner, Owned):
            return self.owner.process_id
        return None

    @property
    def address_range(self) -> AddressRange:
        return AddressRange(self.start, self.end)

    def with_owner(self, owner: Owner) -> "Block":
        return replace(self, owner=owner)

    def moved_to(self, start: int) -> "Block":
        """Return the same-sized block relocated to `start`."""
        return Block(start, start + self.size - 1, self.owner)

    def __repr__(self) -> str:
        tag = "F" if self.is_free else self.process_id
        return f"[{tag}|{self.start}-{self.end}]"
