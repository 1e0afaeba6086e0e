"""All-or-nothing collection of a process batch, and the snapshot pipeline."""

from collections.abc import Iterable
from typing import Any

import structlog

from pidtree.errors import BatchCollectionError
from pidtree.models import EnumerationOutcome, FatalFailure, ProcessEntry
from pidtree.reporter import TreeReporter
from pidtree.tree import ProcessTree, build_tree

logger = structlog.get_logger(__name__)


def collect_batch(outcomes: Iterable[EnumerationOutcome]) -> list[ProcessEntry]:
    """
    Gather every outcome of a batch, or none of them.

    A partial snapshot with some processes silently missing would be
    misleading, so the first FatalFailure discards everything gathered so far.

    Raises:
        BatchCollectionError: If any outcome is a FatalFailure.
    """
    entries: list[ProcessEntry] = []
    iterator = iter(outcomes)
    try:
        for outcome in iterator:
            if isinstance(outcome, FatalFailure):
                raise BatchCollectionError(outcome, discarded=len(entries)) from outcome.cause
            entries.append(ProcessEntry(*outcome))
    finally:
        # Lets a generator source cancel its pending queries right away
        close = getattr(iterator, "close", None)
        if close is not None:
            close()
    return entries


def snapshot_tree(source: Iterable[EnumerationOutcome]) -> ProcessTree:
    """Collect one batch from a source and build its process tree."""
    entries = collect_batch(source)
    logger.debug("Processing process tree...", processes=len(entries))
    return build_tree(entries)


def report_processes(source: Iterable[EnumerationOutcome], log: Any = None) -> ProcessTree:
    """
    Snapshot the processes of a source and log the resulting tree.

    Nothing about the processes is logged unless the whole batch was
    collected and the tree was built successfully.
    """
    tree = snapshot_tree(source)
    TreeReporter(log).report(tree)
    return tree
