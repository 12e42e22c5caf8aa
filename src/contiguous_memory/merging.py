from __future__ import annotations

from .partition import BlockPartition


def coalesce(partition: BlockPartition) -> int:
    """
    Merge neighbouring free blocks until none are left side by side.

    After each merge the scan resumes at the merged block, so a run of three or
    more free blocks collapses into one. Passes repeat until one completes with
    no merge. Returns the number of merges performed.
    """
    merges = 0
    while True:
        merged_this_pass = 0
        index = 0
        while index < len(partition) - 1:
            if partition[index].is_free and partition[index + 1].is_free:
                partition.merge_with_next(index)
                merged_this_pass += 1
                continue
            index += 1
        merges += merged_this_pass
        if not merged_this_pass:
            return merges
