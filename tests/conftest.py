"""Shared fixtures for pidtree tests."""

import pytest

from pidtree.models import FIELD_DENIED, ProcessRecord


def build_record(
    parent_pid=None,
    name="proc",
    exe="/usr/bin/proc",
    cmdline=("/usr/bin/proc", "--flag"),
    create_time=1_700_000_000.0,
) -> ProcessRecord:
    """Build an Available process record with sensible defaults."""
    if cmdline is not FIELD_DENIED:
        cmdline = list(cmdline)
    return ProcessRecord(
        parent_pid=parent_pid,
        name=name,
        exe=exe,
        cmdline=cmdline,
        create_time=create_time,
    )


@pytest.fixture
def make_record():
    """Factory fixture for ProcessRecord instances."""
    return build_record
