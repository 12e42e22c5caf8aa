from __future__ import annotations

from typing import Optional


class MemorySpaceError(Exception):
    """Base class for every failure reported by the memory space."""


class NotInitializedError(MemorySpaceError, RuntimeError):
    def __init__(self, operation: Optional[str] = None) -> None:
        self.operation = operation
        message = "Memory space is not initialized"
        if operation:
            message += f"; cannot {operation}"
        super().__init__(message)


class InvalidSizeError(MemorySpaceError, ValueError):
    def __init__(self, size: int) -> None:
        self.size = size
        super().__init__(f"Size must be a positive number of bytes, got {size}")


class ExceedsCapacityError(MemorySpaceError, ValueError):
    def __init__(self, size: int, capacity: int) -> None:
        self.size = size
        self.capacity = capacity
        super().__init__(f"Requested {size} bytes exceeds total memory of {capacity} bytes")


class DuplicateProcessError(MemorySpaceError, ValueError):
    def __init__(self, process_id: str) -> None:
        self.process_id = process_id
        super().__init__(f"Process {process_id!r} already holds a block")


class ProcessNotFoundError(MemorySpaceError, LookupError):
    def __init__(self, process_id: str) -> None:
        self.process_id = process_id
        super().__init__(f"No block is owned by process {process_id!r}")


class OutOfMemoryError(MemorySpaceError, MemoryError):
    """No free block is large enough; compacting may make room."""

    def __init__(self, process_id: str, size: int, strategy: str, free_bytes: int) -> None:
        self.process_id = process_id
        self.size = size
        self.strategy = strategy
        self.free_bytes = free_bytes
        super().__init__(
            f"Unable to allocate {size} bytes for process {process_id!r} using {strategy} "
            f"({free_bytes} bytes free)"
        )


class PartitionInvariantError(AssertionError):
    """The block sequence no longer tiles the address space."""
