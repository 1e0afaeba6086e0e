"""Structured report of a process tree."""

from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any

import structlog

from pidtree.models import FIELD_DENIED, ProcessRecord, RecordError, is_available, outcome_label
from pidtree.tree import ProcessTree, TreeNode

UNAVAILABLE = "unavailable: access denied"

# (log level, event) for each record-level failure
_ERROR_EVENTS: dict[RecordError, tuple[str, str]] = {
    RecordError.VANISHED: (
        "debug",
        "Found a nonexistent process (process no longer exists; likely a race "
        "during enumeration or a non-standard PID)",
    ),
    RecordError.ZOMBIE: (
        "warning",
        "Found a process in the zombie state (process has exited; exit status "
        "not yet reclaimed)",
    ),
    RecordError.ACCESS_DENIED: (
        "error",
        "Found a process, but access to its info was denied",
    ),
}


def format_create_time(timestamp: float) -> str:
    """Format a creation timestamp as local time, or raw if the platform can't."""
    try:
        return datetime.fromtimestamp(timestamp).astimezone().isoformat(sep=" ")
    except (OverflowError, OSError, ValueError):
        return f"{timestamp} (out of range)"


def describe_record(record: ProcessRecord) -> dict[str, str]:
    """Render the five record fields, marking denied ones explicitly."""

    def render(value: Any, fmt: Callable[[Any], str]) -> str:
        return UNAVAILABLE if value is FIELD_DENIED else fmt(value)

    return {
        "name": render(record.name, str),
        "exe": render(record.exe, lambda exe: exe or "None"),
        "cmdline": render(record.cmdline, lambda args: " ".join(args) if args else "None"),
        "create_time": render(record.create_time, format_create_time),
        "parent": render(record.parent_pid, lambda ppid: "None" if ppid is None else str(ppid)),
    }


def describe_node(node: TreeNode) -> tuple[str, str, dict[str, str]]:
    """Return the (level, event, fields) describing one tree node."""
    fields = {"outcome": outcome_label(node.outcome)}
    if is_available(node.outcome):
        fields.update(describe_record(node.outcome))
        return "info", "Found a process", fields
    level, event = _ERROR_EVENTS[node.outcome]
    return level, event, fields


class TreeReporter:
    """
    Emits one structured log event per process tree node.

    Roots are visited in ascending PID order, then each node's children in
    ascending order, depth-first. Events of non-root nodes carry
    their parent's PID. The reporter keeps no state between calls, so
    reporting the same tree twice emits the same events.
    """

    def __init__(self, logger: Any = None) -> None:
        """
        Initialize the TreeReporter.

        Args:
            logger: structlog-style bound logger. Defaults to this module's.
        """
        self._log = logger if logger is not None else structlog.get_logger(__name__)

    def events(self, tree: ProcessTree) -> Iterator[tuple[int, str, str, dict[str, Any]]]:
        """Yield (depth, level, event, fields) for every node, in report order."""
        for depth, node in tree.walk():
            level, event, fields = describe_node(node)
            context: dict[str, Any] = {"pid": node.pid}
            if depth > 0:
                context["parent_pid"] = tree.parent_of(node.pid)
            context.update(fields)
            yield depth, level, event, context

    def report(self, tree: ProcessTree) -> int:
        """Log the whole tree and return the number of events emitted."""
        # Describe every node before logging any, so a failure logs nothing
        events = list(self.events(tree))
        for _, level, event, context in events:
            getattr(self._log, level)(event, **context)
        return len(events)
