"""Data models for pidtree."""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, TypeVar, Union

T = TypeVar("T")


class FieldDenied(Enum):
    """Marker for a single process attribute we were not allowed to read."""

    ACCESS_DENIED = "access denied"


FIELD_DENIED = FieldDenied.ACCESS_DENIED

# A field is either its value or FIELD_DENIED
FieldOutcome = Union[T, FieldDenied]


class RecordError(Enum):
    """Failure that invalidates a whole process record, but not its PID."""

    VANISHED = "Vanished"  # exited before or during the query
    ZOMBIE = "Zombie"  # exited, exit status not reclaimed yet
    ACCESS_DENIED = "Denied"  # could not open the process at all


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Attributes of one process, each independently available or denied."""

    parent_pid: FieldOutcome[int | None]  # None: top of the tree
    name: FieldOutcome[str]
    exe: FieldOutcome[str]
    cmdline: FieldOutcome[list[str]]
    create_time: FieldOutcome[float]  # Seconds since the Unix epoch


RecordOutcome = Union[ProcessRecord, RecordError]


class ProcessEntry(NamedTuple):
    """An identified process and whatever we managed to learn about it."""

    pid: int
    outcome: RecordOutcome


@dataclass(slots=True, frozen=True)
class FatalFailure:
    """Enumeration itself failed: no PID was obtained and the batch is void."""

    reason: str
    cause: BaseException | None = None


EnumerationOutcome = Union[ProcessEntry, FatalFailure]


def is_available(outcome: RecordOutcome) -> bool:
    """Check whether a record outcome carries a process record."""
    return isinstance(outcome, ProcessRecord)


def outcome_label(outcome: RecordOutcome) -> str:
    """Classification name of a record outcome, as shown in reports."""
    if isinstance(outcome, ProcessRecord):
        return "Available"
    return outcome.value


def known_parent(outcome: RecordOutcome) -> int | None:
    """Return the parent PID if the outcome resolves one, else None."""
    if not isinstance(outcome, ProcessRecord):
        return None
    parent_pid = outcome.parent_pid
    if parent_pid is None or parent_pid is FIELD_DENIED:
        return None
    return parent_pid
