from __future__ import annotations

import argparse
import csv
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from tqdm import tqdm

from contiguous_memory import MemorySpace, OutOfMemoryError
from experiments.instrumentation import MemoryProfiler
from experiments.workload import SyntheticWorkload


@dataclass
class ExperimentConfig:
    label: str
    capacity: int
    strategy: str
    steps: int = 500
    min_size: int = 16
    max_size: int = 256
    release_probability: float = 0.4
    compact_on_failure: bool = True
    fragmentation_threshold: Optional[float] = None


def run_single(
    config: ExperimentConfig,
    seed: int,
    *,
    trajectory_dir: Optional[str] = None,
    profiler: Optional[MemoryProfiler] = None,
) -> Dict[str, float]:
    workload = SyntheticWorkload(
        seed=seed,
        min_size=config.min_size,
        max_size=config.max_size,
        release_probability=config.release_probability,
    )
    space = MemorySpace(strategy=config.strategy, profiler=profiler)
    space.initialize(config.capacity)

    allocations = 0
    failures = 0
    releases = 0
    compactions = 0
    bytes_moved = 0

    fragmentation_sum = 0.0
    utilization_sum = 0.0
    trajectory_rows: List[Dict[str, float]] = []

    for step in range(1, config.steps + 1):
        request = workload.next_request()
        if request.op == "release":
            space.release(request.process_id)
            releases += 1
        else:
            placed = False
            try:
                space.allocate(request.process_id, request.size)
                placed = True
            except OutOfMemoryError:
                if config.compact_on_failure:
                    report = space.compact()
                    if not report.already_optimal:
                        compactions += 1
                        bytes_moved += report.bytes_moved
                        try:
                            space.allocate(request.process_id, request.size)
                            placed = True
                        except OutOfMemoryError:
                            pass
            if placed:
                allocations += 1
                workload.mark_live(request.process_id)
            else:
                failures += 1

        if (
            config.fragmentation_threshold is not None
            and space.fragmentation() > config.fragmentation_threshold
        ):
            report = space.compact()
            if not report.already_optimal:
                compactions += 1
                bytes_moved += report.bytes_moved

        stats = space.stats()
        fragmentation_sum += stats["fragmentation"]
        utilization_sum += stats["used"] / stats["capacity"]
        trajectory_rows.append(
            {
                "step": step,
                "op": request.op,
                "used": stats["used"],
                "free": stats["free"],
                "blocks": stats["blocks"],
                "free_blocks": stats["free_blocks"],
                "largest_free_block": stats["largest_free_block"],
                "fragmentation": stats["fragmentation"],
                "compactions_total": compactions,
            }
        )

    if trajectory_dir and trajectory_rows:
        os.makedirs(trajectory_dir, exist_ok=True)
        trajectory_path = os.path.join(trajectory_dir, f"{config.label}_seed{seed}.csv")
        with open(trajectory_path, "w", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=list(trajectory_rows[0].keys()))
            writer.writeheader()
            writer.writerows(trajectory_rows)

    requests = allocations + failures
    final_stats = space.stats()
    return {
        "config": config.label,
        "strategy": config.strategy,
        "seed": seed,
        "steps": config.steps,
        "allocations": allocations,
        "failures": failures,
        "releases": releases,
        "failure_rate": failures / requests if requests else 0.0,
        "compactions": compactions,
        "bytes_moved": bytes_moved,
        "avg_fragmentation": fragmentation_sum / config.steps if config.steps else 0.0,
        "avg_utilization": utilization_sum / config.steps if config.steps else 0.0,
        "final_used": float(final_stats["used"]),
        "final_fragmentation": final_stats["fragmentation"],
    }


def build_default_configs(args: argparse.Namespace) -> List[ExperimentConfig]:
    configs = [
        ExperimentConfig(label=f"{name}_fit", capacity=args.capacity, strategy=name)
        for name in ("first", "best", "worst")
    ]
    for config in configs:
        config.steps = args.steps
        config.min_size = args.min_size
        config.max_size = args.max_size
        config.release_probability = args.release_probability
        config.compact_on_failure = not args.no_compaction
        config.fragmentation_threshold = args.fragmentation_threshold
    return configs


def write_summary(path: str, records: Iterable[Dict[str, float]]) -> None:
    records = list(records)
    if not records:
        return
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=list(records[0].keys()))
        writer.writeheader()
        writer.writerows(records)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare placement strategies under synthetic workloads.")
    parser.add_argument("--steps", type=int, default=500, help="Number of requests per run.")
    parser.add_argument("--seeds", type=int, default=5, help="Number of random seeds to evaluate.")
    parser.add_argument("--seed-offset", type=int, default=0, help="Offset applied to generated seeds.")
    parser.add_argument("--capacity", type=int, default=4096, help="Address space size in bytes.")
    parser.add_argument("--min-size", type=int, default=16, help="Smallest request size in bytes.")
    parser.add_argument("--max-size", type=int, default=256, help="Largest request size in bytes.")
    parser.add_argument("--release-probability", type=float, default=0.4)
    parser.add_argument("--no-compaction", action="store_true", help="Never compact after a failed allocation.")
    parser.add_argument(
        "--fragmentation-threshold",
        type=float,
        default=None,
        help="Compact proactively whenever fragmentation exceeds this ratio.",
    )
    parser.add_argument("--output", type=str, default="results/strategy_summary.csv", help="Path to CSV summary output.")
    parser.add_argument("--trajectory-dir", type=str, default=None, help="Directory for per-step trajectory CSVs.")
    parser.add_argument("--profile-dir", type=str, default=None, help="Directory for profiler event logs.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configs = build_default_configs(args)
    seeds = [args.seed_offset + index for index in range(args.seeds)]
    records: List[Dict[str, float]] = []
    for seed in tqdm(seeds, desc="seeds"):
        for config in configs:
            profiler = None
            if args.profile_dir:
                profiler = MemoryProfiler(run_id=f"{config.label}_seed{seed}", output_dir=args.profile_dir)
            records.append(run_single(config, seed, trajectory_dir=args.trajectory_dir, profiler=profiler))
            if profiler:
                profiler.flush()
    write_summary(args.output, records)

    for config in configs:
        rows = [record for record in records if record["config"] == config.label]
        failure_rate = sum(row["failure_rate"] for row in rows) / len(rows)
        fragmentation = sum(row["avg_fragmentation"] for row in rows) / len(rows)
        print(
            f"{config.label:>10}: failure_rate={failure_rate:.3f} "
            f"avg_fragmentation={fragmentation:.3f} "
            f"compactions={sum(row['compactions'] for row in rows)}"
        )
    print(f"Summary written to {args.output}")


if __name__ == "__main__":
    main()
