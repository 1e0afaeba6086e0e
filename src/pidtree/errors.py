"""Batch-level exceptions for pidtree.

Field-level and record-level failures are plain data (see pidtree.models).
Only the failures defined here end an operation: when one is raised, the
whole snapshot is void and nothing about it gets reported.
"""

from pidtree.models import FatalFailure


class ProcessTreeError(Exception):
    """Base class for failures that invalidate an entire snapshot."""


class BatchCollectionError(ProcessTreeError):
    """Raised when one query of the batch failed fatally.

    Attributes:
        failure: The FatalFailure that aborted the batch
        discarded: Number of per-process results thrown away with it
    """

    def __init__(self, failure: FatalFailure, discarded: int = 0) -> None:
        self.failure = failure
        self.discarded = discarded
        super().__init__(f"Process enumeration failed: {failure.reason}")


class StructuralIntegrityError(ProcessTreeError):
    """Raised when the process data contradicts the tree's invariants.

    This is never an OS-reported failure: it means the data source is buggy,
    or the host's process model did something unexpected (e.g. PID reuse
    within one batch).

    Attributes:
        pid: Process identifier the violation was detected on
        message: Human-readable description
    """

    def __init__(self, pid: int, message: str) -> None:
        self.pid = pid
        self.message = message
        super().__init__(f"PID {pid}: {message}")


class CycleDetectedError(StructuralIntegrityError):
    """Raised when parent pointers form a cycle, so some PIDs have no root."""

    def __init__(self, pids: list[int]) -> None:
        self.pids = sorted(pids)
        super().__init__(
            self.pids[0],
            f"parent links form a cycle through {len(self.pids)} process(es): {self.pids}",
        )
