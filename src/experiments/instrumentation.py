from __future__ import annotations

import csv
import json
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class MemoryProfiler:
    """
    Structured event log for a MemorySpace.

    Every allocation, release, merge and compaction is appended with a wall
    clock timestamp and a sequence number. Events can be written to disk as
    JSONL and CSV, either at the end of a run or line by line as they arrive.
    """

    run_id: str
    output_dir: Optional[str] = None
    write_immediately: bool = False
    events: List[Dict[str, object]] = field(default_factory=list)
    counts: Counter = field(default_factory=Counter)

    def record_event(self, event_type: str, payload: Dict[str, object]) -> None:
        record = {
            "timestamp": time.time(),
            "run_id": self.run_id,
            "seq": len(self.events),
            "event": event_type,
            **payload,
        }
        self.events.append(record)
        self.counts[event_type] += 1
        if self.write_immediately and self.output_dir:
            self._append_jsonl(record)

    def events_of(self, event_type: str) -> List[Dict[str, object]]:
        return [event for event in self.events if event["event"] == event_type]

    def flush(self) -> Optional[Path]:
        """Write all events; returns the CSV path, or None when there is nothing to write."""
        if not self.output_dir or not self.events:
            return None
        output_path = Path(self.output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        jsonl_path = output_path / f"{self.run_id}.jsonl"
        csv_path = output_path / f"{self.run_id}.csv"
        with jsonl_path.open("w", encoding="utf-8") as handle:
            for record in self.events:
                handle.write(json.dumps(record) + "\n")
        fieldnames = sorted({key for event in self.events for key in event.keys()})
        with csv_path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(self.events)
        return csv_path

    def _append_jsonl(self, record: Dict[str, object]) -> None:
        output_path = Path(self.output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        jsonl_path = output_path / f"{self.run_id}.jsonl"
        with jsonl_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")
