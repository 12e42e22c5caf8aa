import json
import tempfile
from pathlib import Path

from contiguous_memory import MemorySpace, OutOfMemoryError
from experiments.instrumentation import MemoryProfiler


def read_json_lines(path: Path):
    with path.open("r", encoding="utf-8") as handle:
        for line in handle:
            if line.strip():
                yield json.loads(line)


def test_profiler_records_and_flushes_events():
    with tempfile.TemporaryDirectory() as tmpdir:
        profiler = MemoryProfiler(run_id="session", output_dir=tmpdir)
        space = MemorySpace(profiler=profiler)
        space.initialize(100)
        space.allocate("A", 40)
        space.allocate("B", 40)
        space.release("A")
        try:
            space.allocate("C", 50)
        except OutOfMemoryError:
            pass
        space.compact()
        space.release("B")

        assert profiler.counts["allocation"] == 2
        assert profiler.counts["allocation_failure"] == 1
        assert profiler.counts["release"] == 2
        assert profiler.counts["compaction"] == 1
        assert profiler.counts["coalesce"] == 1

        release = profiler.events_of("release")[0]
        assert release["process_id"] == "A"
        assert release["size"] == 40
        assert release["heap_used"] == 40

        csv_path = profiler.flush()
        assert csv_path == Path(tmpdir) / "session.csv"
        assert csv_path.exists()
        entries = list(read_json_lines(Path(tmpdir) / "session.jsonl"))
        assert [entry["event"] for entry in entries][:2] == ["initialize", "allocation"]
        assert [entry["seq"] for entry in entries] == list(range(len(entries)))


def test_write_immediately_appends_jsonl():
    with tempfile.TemporaryDirectory() as tmpdir:
        profiler = MemoryProfiler(run_id="live", output_dir=tmpdir, write_immediately=True)
        space = MemorySpace(profiler=profiler)
        space.initialize(64)
        space.allocate("A", 8)
        entries = list(read_json_lines(Path(tmpdir) / "live.jsonl"))
        assert len(entries) == 2
        assert entries[1]["start"] == 0
        assert entries[1]["end"] == 7


def test_flush_without_output_dir_is_noop():
    profiler = MemoryProfiler(run_id="memory_only")
    profiler.record_event("initialize", {"total_size": 10})
    assert profiler.flush() is None
