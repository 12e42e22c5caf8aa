from __future__ import annotations

import argparse
from typing import Optional

from contiguous_memory import MemorySpace, MemorySnapshot, MemorySpaceError
from experiments.instrumentation import MemoryProfiler


def render_map(snapshot: MemorySnapshot, width: int = 64) -> str:
    """Draw the partition as one character per cell: '.' free, else the last character of the owning process id."""
    cells = ["."] * width
    for block in snapshot.allocated_blocks:
        first = int((block.start / snapshot.total_size) * width)
        last = int(((block.end + 1) / snapshot.total_size) * width)
        mark = block.process_id[-1].upper()
        for cell in range(max(0, first), min(width, max(first + 1, last))):
            cells[cell] = mark
    return "".join(cells)


def run_simulation(capacity: int, strategy: str, width: int, profile_dir: Optional[str]) -> None:
    profiler = MemoryProfiler(run_id=f"session_{strategy}", output_dir=profile_dir)
    space = MemorySpace(strategy=strategy, profiler=profiler)
    space.initialize(capacity)
    quarter = capacity // 4

    steps = [
        ("allocate", "P0", quarter),
        ("allocate", "P1", quarter // 2),
        ("allocate", "P2", quarter),
        ("release", "P1", 0),
        ("allocate", "P3", quarter // 4),
        ("release", "P0", 0),
        ("allocate", "P4", quarter * 2),
        ("compact", "", 0),
        ("allocate", "P4", quarter * 2),
    ]
    for op, process_id, size in steps:
        try:
            if op == "allocate":
                placed = space.allocate(process_id, size)
                outcome = f"placed at [{placed.start}, {placed.end}]"
            elif op == "release":
                freed = space.release(process_id)
                outcome = f"freed {freed.size} bytes at [{freed.start}, {freed.end}]"
            else:
                report = space.compact()
                if report.already_optimal:
                    outcome = "already optimal"
                else:
                    outcome = (
                        f"consolidated {report.bytes_consolidated} bytes "
                        f"from {report.regions_merged} regions"
                    )
        except MemorySpaceError as exc:
            outcome = f"failed: {exc}"
        label = f"{op} {process_id} {size or ''}".strip()
        print(f"{label:<16} {render_map(space.query(), width)}  {outcome}")

    print("Final stats:", space.stats())
    print("Events:", dict(profiler.counts))
    profiler.flush()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Replay a short allocation session and print the heap map.")
    parser.add_argument("--capacity", type=int, default=1024, help="Address space size in bytes.")
    parser.add_argument("--strategy", type=str, default="first", help="first, best or worst.")
    parser.add_argument("--width", type=int, default=64, help="Characters in the heap map.")
    parser.add_argument("--profile-dir", type=str, default=None, help="Write profiler events here.")
    args = parser.parse_args()
    run_simulation(args.capacity, args.strategy, args.width, args.profile_dir)
