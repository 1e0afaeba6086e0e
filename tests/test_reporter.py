"""Tests for the process tree reporter."""

from datetime import datetime

import pytest
import structlog
from structlog.testing import capture_logs

from pidtree.models import FIELD_DENIED, RecordError
from pidtree.reporter import (
    UNAVAILABLE,
    TreeReporter,
    describe_node,
    describe_record,
    format_create_time,
)
from pidtree.tree import TreeNode, build_tree


def sample_tree(make_record):
    """A small tree holding every kind of node."""
    return build_tree(
        [
            (12, make_record(parent_pid=1, name="worker", exe=FIELD_DENIED)),
            (1, make_record(parent_pid=None, name="init", cmdline=())),
            (3, RecordError.ZOMBIE),
            (11, make_record(parent_pid=1, name="sshd")),
            (20, make_record(parent_pid=11, name="bash")),
            (4, RecordError.ACCESS_DENIED),
            (30, make_record(parent_pid=99, name="orphan")),
        ]
    )


class TestDescribe:
    """Tests for per-node descriptions."""

    def test_describe_record_values(self, make_record):
        """Test every available field is rendered as its value."""
        fields = describe_record(make_record(parent_pid=1, name="sshd", exe="/usr/sbin/sshd"))

        assert fields["name"] == "sshd"
        assert fields["exe"] == "/usr/sbin/sshd"
        assert fields["cmdline"] == "/usr/bin/proc --flag"
        assert fields["parent"] == "1"
        assert fields["create_time"] == format_create_time(1_700_000_000.0)

    def test_describe_record_denied_fields_are_marked(self, make_record):
        """Test denied fields are marked, never replaced by defaults."""
        record = make_record(
            parent_pid=FIELD_DENIED,
            name=FIELD_DENIED,
            exe=FIELD_DENIED,
            cmdline=FIELD_DENIED,
            create_time=FIELD_DENIED,
        )

        assert set(describe_record(record).values()) == {UNAVAILABLE}

    def test_describe_record_empty_values(self, make_record):
        """Test empty executable and command line render as None."""
        fields = describe_record(make_record(parent_pid=None, exe="", cmdline=()))

        assert fields["exe"] == "None"
        assert fields["cmdline"] == "None"
        assert fields["parent"] == "None"

    def test_format_create_time_is_local_time(self):
        """Test creation time is rendered as a local timestamp."""
        rendered = format_create_time(0.0)

        assert datetime.fromisoformat(rendered).timestamp() == 0.0

    def test_format_create_time_out_of_range(self):
        """Test a timestamp the platform cannot convert is shown raw."""
        assert format_create_time(1e20) == "1e+20 (out of range)"

    def test_describe_node_levels(self, make_record):
        """Test each outcome uses its own severity."""
        levels = {
            outcome: describe_node(TreeNode(pid=1, outcome=outcome))[0]
            for outcome in RecordError
        }

        assert levels == {
            RecordError.VANISHED: "debug",
            RecordError.ZOMBIE: "warning",
            RecordError.ACCESS_DENIED: "error",
        }
        assert describe_node(TreeNode(pid=1, outcome=make_record()))[0] == "info"


class TestTreeReporter:
    """Tests for TreeReporter."""

    def test_one_event_per_node_in_traversal_order(self, make_record):
        """Test roots then children are reported depth-first, ascending."""
        tree = sample_tree(make_record)

        with capture_logs() as logs:
            count = TreeReporter().report(tree)

        assert count == len(tree)
        assert [entry["pid"] for entry in logs] == [1, 11, 20, 12, 3, 4, 99, 30]

    def test_event_contents(self, make_record):
        """Test events carry classification, parent and fields."""
        tree = sample_tree(make_record)

        with capture_logs() as logs:
            TreeReporter().report(tree)
        by_pid = {entry["pid"]: entry for entry in logs}

        assert by_pid[1]["event"] == "Found a process"
        assert by_pid[1]["log_level"] == "info"
        assert by_pid[1]["outcome"] == "Available"
        assert by_pid[1]["cmdline"] == "None"
        assert "parent_pid" not in by_pid[1]

        assert by_pid[12]["parent_pid"] == 1
        assert by_pid[12]["exe"] == UNAVAILABLE
        assert by_pid[20]["parent_pid"] == 11

        assert by_pid[3]["log_level"] == "warning"
        assert by_pid[3]["outcome"] == "Zombie"
        assert "name" not in by_pid[3]

        assert by_pid[4]["log_level"] == "error"
        assert by_pid[4]["outcome"] == "Denied"

        assert by_pid[99]["log_level"] == "debug"
        assert by_pid[99]["outcome"] == "Vanished"
        assert by_pid[30]["parent_pid"] == 99

    def test_reporting_twice_is_identical(self, make_record):
        """Test two reports over the same tree emit identical events."""
        tree = sample_tree(make_record)
        reporter = TreeReporter()

        with capture_logs() as first:
            reporter.report(tree)
        with capture_logs() as second:
            reporter.report(tree)

        assert first == second
        assert repr(first) == repr(second)

    def test_events_do_not_log(self, make_record):
        """Test events() only describes the tree."""
        tree = sample_tree(make_record)

        with capture_logs() as logs:
            events = list(TreeReporter().events(tree))

        assert logs == []
        assert [depth for depth, _, _, _ in events] == [0, 1, 2, 1, 0, 0, 0, 1]

    def test_custom_logger(self, make_record):
        """Test the reporter emits through the logger it is given."""
        tree = build_tree([(1, make_record(parent_pid=None))])

        with capture_logs() as logs:
            TreeReporter(structlog.get_logger("custom").bind(host="box")).report(tree)

        assert logs[0]["host"] == "box"
        assert logs[0]["pid"] == 1

    def test_unconvertible_create_time_is_reported(self, make_record):
        """Test an out-of-range creation time does not abort the report."""
        tree = build_tree(
            [
                (1, make_record(parent_pid=None)),
                (2, make_record(parent_pid=1, create_time=1e20)),
            ]
        )

        with capture_logs() as logs:
            assert TreeReporter().report(tree) == 2

        assert [entry["pid"] for entry in logs] == [1, 2]
        assert logs[1]["create_time"] == "1e+20 (out of range)"

    def test_failed_description_logs_nothing(self, make_record, monkeypatch):
        """Test no event is logged when describing any node fails."""
        tree = build_tree([(1, make_record(parent_pid=None)), (2, make_record(parent_pid=1))])

        def broken(record):
            if record.parent_pid == 1:
                raise RuntimeError("cannot describe")
            return {}

        monkeypatch.setattr("pidtree.reporter.describe_record", broken)

        with capture_logs() as logs:
            with pytest.raises(RuntimeError):
                TreeReporter().report(tree)

        assert logs == []

    def test_empty_tree_reports_nothing(self):
        """Test an empty tree emits no events."""
        with capture_logs() as logs:
            assert TreeReporter().report(build_tree([])) == 0

        assert logs == []
