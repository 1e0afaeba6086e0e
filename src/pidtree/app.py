"""pidtree - Textual viewer for a process tree snapshot."""

from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import Footer, Static, Tree
from textual.widgets.tree import TreeNode as WidgetNode

from pidtree.models import RecordError, is_available
from pidtree.reporter import TreeReporter
from pidtree.tree import ProcessTree

_DEGRADED_STYLES: dict[RecordError, str] = {
    RecordError.VANISHED: "dim",
    RecordError.ZOMBIE: "yellow",
    RecordError.ACCESS_DENIED: "red",
}


def node_label(pid: int, fields: dict[str, str], width: int = 60) -> Text:
    """Build the tree label of one process from its report fields."""
    outcome = fields["outcome"]
    if outcome != "Available":
        return Text(f"{pid:>7}  <{outcome}>", style=_DEGRADED_STYLES[RecordError(outcome)])
    label = Text(f"{pid:>7}  ", style="bold")
    label.append(fields["name"], style="cyan")
    label.append(f"  {fields['cmdline'][:width]}")
    return label


class TreeSummary(Static):
    """Header widget with counts about the snapshot."""

    DEFAULT_CSS = """
    TreeSummary {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, tree: ProcessTree, *args, **kwargs) -> None:
        """Initialize TreeSummary."""
        super().__init__(self.summarize(tree), *args, **kwargs)

    @staticmethod
    def summarize(tree: ProcessTree) -> str:
        """Summary line for a process tree."""
        degraded = sum(1 for node in tree.nodes.values() if not is_available(node.outcome))
        return (
            f"Processes: {len(tree)}  Roots: {len(tree.roots)}  "
            f"Placeholders: {len(tree.placeholders())}  Degraded: {degraded}"
        )


class ProcessTreeApp(App):
    """One-shot process tree viewer."""

    TITLE = "pidtree"
    SUB_TITLE = "Process Tree Snapshot"

    CSS = """
    Screen {
        layout: vertical;
    }

    #process-tree {
        height: 1fr;
        border: solid $primary;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("e", "expand_all", "Expand all"),
        ("c", "collapse_all", "Collapse all"),
    ]

    def __init__(self, tree: ProcessTree) -> None:
        """Initialize the ProcessTreeApp."""
        super().__init__()
        self._tree = tree

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield TreeSummary(self._tree, id="summary")
        yield Tree("Processes", id="process-tree")
        yield Footer()

    def on_mount(self) -> None:
        """Populate the tree widget once mounted."""
        widget = self.query_one("#process-tree", Tree)
        widget.root.expand()

        # Same order as the log report, so parents always come first
        added: dict[int, WidgetNode] = {}
        for depth, _, _, fields in TreeReporter().events(self._tree):
            pid = fields["pid"]
            parent = added[fields["parent_pid"]] if depth > 0 else widget.root
            label = node_label(pid, fields)
            if self._tree[pid].children:
                added[pid] = parent.add(label, data=pid, expand=True)
            else:
                added[pid] = parent.add_leaf(label, data=pid)

    def action_expand_all(self) -> None:
        """Expand every node of the tree."""
        self.query_one("#process-tree", Tree).root.expand_all()

    def action_collapse_all(self) -> None:
        """Collapse everything below the roots."""
        root = self.query_one("#process-tree", Tree).root
        root.collapse_all()
        root.expand()
