import random
import unittest

from contiguous_memory import (
    AddressRange,
    Block,
    DuplicateProcessError,
    ExceedsCapacityError,
    InvalidSizeError,
    MemorySpace,
    MemorySpaceError,
    NotInitializedError,
    OutOfMemoryError,
    Owned,
    ProcessNotFoundError,
)


def assert_tiles(test: unittest.TestCase, space: MemorySpace) -> None:
    snapshot = space.query()
    blocks = snapshot.blocks
    test.assertEqual(blocks[0].start, 0)
    test.assertEqual(blocks[-1].end, snapshot.total_size - 1)
    for left, right in zip(blocks, blocks[1:]):
        test.assertEqual(left.end + 1, right.start)
        test.assertFalse(left.is_free and right.is_free)
    test.assertEqual(snapshot.used_bytes + snapshot.free_bytes, snapshot.total_size)
    owners = [block.process_id for block in blocks if not block.is_free]
    test.assertEqual(len(owners), len(set(owners)))


class LifecycleTests(unittest.TestCase):
    def test_operations_require_initialization(self) -> None:
        space = MemorySpace()
        self.assertFalse(space.initialized)
        with self.assertRaises(NotInitializedError):
            space.allocate("P0", 0)
        with self.assertRaises(NotInitializedError):
            space.release("P0")
        with self.assertRaises(NotInitializedError):
            space.compact()
        with self.assertRaises(NotInitializedError):
            space.query()

    def test_initialize_rejects_invalid_size_and_keeps_state(self) -> None:
        space = MemorySpace()
        space.initialize(100)
        space.allocate("P0", 10)
        before = space.query()
        with self.assertRaises(InvalidSizeError):
            space.initialize(0)
        self.assertEqual(space.query(), before)

    def test_reinitialize_discards_partition(self) -> None:
        space = MemorySpace()
        space.initialize(100)
        space.allocate("P0", 10)
        space.initialize(50)
        self.assertEqual(space.query().blocks, (Block(0, 49),))
        self.assertEqual(space.total_size, 50)


class AllocationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.space = MemorySpace()
        self.space.initialize(1000)

    def test_scenario_first_fit_reuses_released_hole(self) -> None:
        self.assertEqual(self.space.allocate("P0", 300, "first"), AddressRange(0, 299))
        self.assertEqual(self.space.allocate("P1", 200, "first"), AddressRange(300, 499))
        freed = self.space.release("P0")
        self.assertEqual(freed, AddressRange(0, 299))
        self.assertEqual(freed.size, 300)
        self.assertIn(Block(0, 299), self.space.query().blocks)

        self.assertEqual(self.space.allocate("P2", 250, "first"), AddressRange(0, 249))
        self.assertEqual(
            self.space.query().blocks,
            (
                Block(0, 249, Owned("P2")),
                Block(250, 299),
                Block(300, 499, Owned("P1")),
                Block(500, 999),
            ),
        )

    def test_precondition_order(self) -> None:
        self.space.allocate("P0", 1000)
        with self.assertRaises(InvalidSizeError):
            self.space.allocate("P0", 0)
        with self.assertRaises(ExceedsCapacityError):
            self.space.allocate("P0", 1001)
        with self.assertRaises(DuplicateProcessError):
            self.space.allocate("P0", 10)
        with self.assertRaises(OutOfMemoryError):
            self.space.allocate("P1", 10)

    def test_duplicate_process_leaves_state_unchanged(self) -> None:
        self.space.allocate("P0", 100)
        before = self.space.query()
        with self.assertRaises(DuplicateProcessError) as ctx:
            self.space.allocate("P0", 50)
        self.assertEqual(ctx.exception.process_id, "P0")
        self.assertEqual(self.space.query(), before)

    def test_errors_share_a_base_class(self) -> None:
        with self.assertRaises(MemorySpaceError):
            self.space.allocate("P0", -5)
        with self.assertRaises(ValueError):
            self.space.allocate("P0", 5000)

    def test_out_of_memory_when_free_space_is_fragmented(self) -> None:
        self.space.initialize(100)
        self.space.allocate("A", 30)
        self.space.allocate("B", 30)
        self.space.allocate("C", 40)
        self.space.release("A")
        self.space.release("C")
        before = self.space.query()
        self.assertEqual(before.free_bytes, 70)
        with self.assertRaises(OutOfMemoryError) as ctx:
            self.space.allocate("D", 50)
        self.assertEqual(ctx.exception.free_bytes, 70)
        self.assertEqual(self.space.query(), before)

        self.space.compact()
        self.assertEqual(self.space.allocate("D", 50), AddressRange(30, 79))

    def test_default_strategy_comes_from_constructor(self) -> None:
        space = MemorySpace(strategy="worst")
        space.initialize(300)
        space.allocate("A", 50)
        space.allocate("B", 50)
        space.allocate("C", 100)
        space.allocate("D", 50)
        space.release("A")
        space.release("C")
        # holes: [0,49], [100,199] and [250,299]; worst fit takes the largest
        self.assertEqual(space.allocate("E", 20), AddressRange(100, 119))
        self.assertEqual(space.allocate("F", 20, strategy="first"), AddressRange(0, 19))

    def test_process_id_can_be_reused_after_release(self) -> None:
        self.space.allocate("P0", 100)
        self.space.release("P0")
        self.assertEqual(self.space.allocate("P0", 50), AddressRange(0, 49))
        self.assertEqual(self.space.owner_range("P0"), AddressRange(0, 49))


class ReleaseTests(unittest.TestCase):
    def setUp(self) -> None:
        self.space = MemorySpace()
        self.space.initialize(100)
        self.space.allocate("A", 30)
        self.space.allocate("B", 30)
        self.space.allocate("C", 40)

    def test_release_merges_with_free_neighbours(self) -> None:
        self.space.release("A")
        freed = self.space.release("B")
        self.assertEqual(freed, AddressRange(30, 59))
        self.assertEqual(
            self.space.query().blocks,
            (Block(0, 59), Block(60, 99, Owned("C"))),
        )
        self.space.release("C")
        self.assertEqual(self.space.query().blocks, (Block(0, 99),))

    def test_release_unknown_process_leaves_state_unchanged(self) -> None:
        before = self.space.query()
        with self.assertRaises(ProcessNotFoundError) as ctx:
            self.space.release("Z")
        self.assertEqual(ctx.exception.process_id, "Z")
        self.assertEqual(self.space.query(), before)

    def test_conservation_of_bytes(self) -> None:
        used = self.space.query().used_bytes
        self.assertEqual(used, 100)
        freed = self.space.release("B")
        self.assertEqual(self.space.query().used_bytes, used - freed.size)
        self.space.allocate("D", 12)
        self.assertEqual(self.space.query().used_bytes, used - freed.size + 12)


class StatsTests(unittest.TestCase):
    def test_stats_and_fragmentation(self) -> None:
        space = MemorySpace()
        space.initialize(100)
        space.allocate("A", 25)
        space.allocate("B", 25)
        space.allocate("C", 25)
        space.release("A")
        stats = space.stats()
        self.assertEqual(stats["capacity"], 100)
        self.assertEqual(stats["used"], 50)
        self.assertEqual(stats["free"], 50)
        self.assertEqual(stats["free_blocks"], 2)
        self.assertEqual(stats["processes"], 2)
        self.assertEqual(stats["largest_free_block"], 25)
        self.assertAlmostEqual(stats["fragmentation"], 0.5)
        self.assertEqual(stats["strategy"], "first_fit")

    def test_snapshot_is_immutable(self) -> None:
        space = MemorySpace()
        space.initialize(10)
        snapshot = space.query()
        space.allocate("A", 5)
        self.assertEqual(snapshot.blocks, (Block(0, 9),))
        self.assertEqual(snapshot.fragmentation, 0.0)


class RandomizedInvariantTests(unittest.TestCase):
    def test_invariants_hold_across_random_operations(self) -> None:
        rng = random.Random(7)
        space = MemorySpace()
        space.initialize(2048)
        live = []
        for step in range(400):
            used_before = space.query().used_bytes
            roll = rng.random()
            if roll < 0.55:
                process_id = f"P{step}"
                size = rng.randint(1, 300)
                strategy = rng.choice(["first", "best", "worst"])
                try:
                    placed = space.allocate(process_id, size, strategy)
                except OutOfMemoryError:
                    self.assertEqual(space.query().used_bytes, used_before)
                else:
                    self.assertEqual(placed.size, size)
                    self.assertEqual(space.query().used_bytes, used_before + size)
                    live.append(process_id)
            elif roll < 0.9 and live:
                process_id = live.pop(rng.randrange(len(live)))
                freed = space.release(process_id)
                self.assertEqual(space.query().used_bytes, used_before - freed.size)
            else:
                space.compact()
                self.assertEqual(space.query().used_bytes, used_before)
            assert_tiles(self, space)


if __name__ == "__main__":
    unittest.main()
