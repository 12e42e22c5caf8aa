from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Request:
    op: str
    process_id: str
    size: int = 0


class SyntheticWorkload:
    """
    Generate a stream of allocate/release requests for a memory space.

    Sizes are drawn uniformly from `[min_size, max_size]`. Releases pick a
    random live process, which punches holes in the middle of the address
    range and builds up external fragmentation over time.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        *,
        min_size: int = 16,
        max_size: int = 256,
        release_probability: float = 0.4,
    ) -> None:
        if min_size <= 0 or max_size < min_size:
            raise ValueError(f"Invalid size range [{min_size}, {max_size}]")
        self.random = random.Random(seed)
        self.min_size = min_size
        self.max_size = max_size
        self.release_probability = release_probability
        self.live: List[str] = []
        self._next_pid = 0

    def next_request(self) -> Request:
        if self.live and self.random.random() < self.release_probability:
            process_id = self.live.pop(self.random.randrange(len(self.live)))
            return Request(op="release", process_id=process_id)
        process_id = f"P{self._next_pid}"
        self._next_pid += 1
        size = self.random.randint(self.min_size, self.max_size)
        return Request(op="allocate", process_id=process_id, size=size)

    def mark_live(self, process_id: str) -> None:
        """Register a successful allocation so it can be released later."""
        self.live.append(process_id)
