"""Process query source for pidtree, backed by psutil."""

from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

import psutil
import structlog

from pidtree.models import (
    FIELD_DENIED,
    EnumerationOutcome,
    FatalFailure,
    ProcessEntry,
    ProcessRecord,
    RecordError,
)

logger = structlog.get_logger(__name__)


def _parent_pid(proc: psutil.Process) -> int | None:
    ppid = proc.ppid()
    # Some platforms report their first process as its own parent
    return None if ppid == proc.pid else ppid


# Record fields, queried one by one so that one AccessDenied only costs one field
_FIELD_GETTERS: tuple[tuple[str, Callable[[psutil.Process], Any]], ...] = (
    ("parent_pid", _parent_pid),
    ("name", lambda proc: proc.name()),
    ("exe", lambda proc: proc.exe()),
    ("cmdline", lambda proc: proc.cmdline()),
    ("create_time", lambda proc: proc.create_time()),
)


def query_process(pid: int) -> EnumerationOutcome:
    """
    Query everything pidtree reports about one process.

    Failures are classified by how much they invalidate:
    - AccessDenied on a single attribute only denies that attribute.
    - NoSuchProcess/ZombieProcess (at any point) void the whole record, but
      the PID is still reported.
    - Any other psutil or OS error means the process infrastructure itself
      is failing, and is returned as a FatalFailure.
    """
    try:
        proc = psutil.Process(pid)
        fields: dict[str, Any] = {}
        with proc.oneshot():
            for field_name, getter in _FIELD_GETTERS:
                try:
                    fields[field_name] = getter(proc)
                except psutil.AccessDenied:
                    fields[field_name] = FIELD_DENIED
        return ProcessEntry(pid, ProcessRecord(**fields))

    # ZombieProcess is a NoSuchProcess, so it must be checked first
    except psutil.ZombieProcess:
        return ProcessEntry(pid, RecordError.ZOMBIE)
    except psutil.NoSuchProcess:
        return ProcessEntry(pid, RecordError.VANISHED)
    except psutil.AccessDenied:
        # Only reachable when opening the process itself was denied
        return ProcessEntry(pid, RecordError.ACCESS_DENIED)
    except (psutil.Error, OSError) as exc:
        return FatalFailure(f"querying process {pid} failed: {exc}", exc)


class ProcessQuerySource:
    """
    Enumerates processes and queries each of them concurrently.

    Results are yielded in completion order, which is unrelated to PID or
    parent/child order.
    """

    def __init__(self, max_workers: int = 16) -> None:
        """
        Initialize the ProcessQuerySource.

        Args:
            max_workers: Number of concurrent per-process queries. Default 16.
        """
        self._max_workers = max(1, max_workers)

    @property
    def max_workers(self) -> int:
        """Get the number of concurrent queries."""
        return self._max_workers

    @max_workers.setter
    def max_workers(self, value: int) -> None:
        """Set the number of concurrent queries."""
        self._max_workers = max(1, value)  # At least one worker

    def iter_outcomes(self) -> Iterator[EnumerationOutcome]:
        """
        Yield one enumeration outcome per process on the host.

        If the caller stops iterating early (e.g. on a fatal failure), queries
        that have not started yet are cancelled.
        """
        try:
            pids = psutil.pids()
        except (psutil.Error, OSError) as exc:
            yield FatalFailure(f"listing processes failed: {exc}", exc)
            return

        logger.debug("Querying processes", count=len(pids), workers=self._max_workers)
        executor = ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="ProcessQuery",
        )
        try:
            futures = [executor.submit(query_process, pid) for pid in pids]
            for future in as_completed(futures):
                yield future.result()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def __iter__(self) -> Iterator[EnumerationOutcome]:
        return self.iter_outcomes()
