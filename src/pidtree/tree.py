"""Process tree reconstruction from an unordered stream of process entries."""

from bisect import bisect_left
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from pidtree.errors import CycleDetectedError, StructuralIntegrityError
from pidtree.models import RecordError, RecordOutcome, known_parent


@dataclass(slots=True)
class TreeNode:
    """
    A node of the process tree.

    A node first referred to as the parent of another process is created as a
    placeholder, with VANISHED as its outcome. It is settled when its own entry
    arrives. If it never does, the parent either exited between enumeration
    and query, or is a PID that does not map to a real process (like PID 0 on
    Linux), and VANISHED is the right outcome anyway.
    """

    pid: int
    outcome: RecordOutcome
    children: list[int] = field(default_factory=list)  # Ascending
    placeholder: bool = False

    def add_child(self, pid: int) -> None:
        """Insert a child PID, keeping children sorted."""
        index = bisect_left(self.children, pid)
        if index < len(self.children) and self.children[index] == pid:
            raise StructuralIntegrityError(pid, f"registered twice as a child of {self.pid}")
        self.children.insert(index, pid)


@dataclass(slots=True)
class ProcessTree:
    """Roots of the tree (no known parent) and every node keyed by PID."""

    roots: list[int] = field(default_factory=list)  # Ascending
    nodes: dict[int, TreeNode] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, pid: object) -> bool:
        return pid in self.nodes

    def __getitem__(self, pid: int) -> TreeNode:
        return self.nodes[pid]

    def placeholders(self) -> list[int]:
        """PIDs that were only ever seen as someone's parent."""
        return sorted(pid for pid, node in self.nodes.items() if node.placeholder)

    def parent_of(self, pid: int) -> int | None:
        """Parent PID of a node, or None for roots."""
        return known_parent(self.nodes[pid].outcome)

    def walk(self) -> Iterator[tuple[int, TreeNode]]:
        """
        Yield (depth, node) depth-first, roots and children in ascending order.

        Uses an explicit stack so that deep process chains cannot exhaust the
        interpreter's recursion limit.
        """
        stack = [(0, pid) for pid in reversed(self.roots)]
        while stack:
            depth, pid = stack.pop()
            node = self.nodes[pid]
            yield depth, node
            stack.extend((depth + 1, child) for child in reversed(node.children))


class TreeBuilder:
    """
    Builds a ProcessTree in a single pass over process entries.

    Entries may arrive in any order: a child seen before its parent creates a
    placeholder for the parent, which the parent's own entry later settles.
    Each builder is meant for exactly one batch.
    """

    def __init__(self) -> None:
        """Initialize an empty builder."""
        self._tree = ProcessTree()
        self._parented: set[int] = set()

    def add(self, pid: int, outcome: RecordOutcome) -> None:
        """Add one process entry to the tree."""
        nodes = self._tree.nodes

        # Register as a child of its parent, if we know the parent
        parent_pid = known_parent(outcome)
        if parent_pid is not None:
            if pid in self._parented:
                raise StructuralIntegrityError(pid, "registered as a child twice")
            parent = nodes.get(parent_pid)
            if parent is None:
                parent = TreeNode(pid=parent_pid, outcome=RecordError.VANISHED, placeholder=True)
                nodes[parent_pid] = parent
            parent.add_child(pid)
            self._parented.add(pid)

        # Then settle this process' own node
        node = nodes.get(pid)
        if node is None:
            nodes[pid] = TreeNode(pid=pid, outcome=outcome)
        elif node.placeholder:
            node.outcome = outcome
            node.placeholder = False
        else:
            raise StructuralIntegrityError(pid, "received a second authoritative outcome")

    def finish(self) -> ProcessTree:
        """Compute the roots, check the tree is acyclic and return it."""
        tree = self._tree
        tree.roots = sorted(
            pid for pid, node in tree.nodes.items() if known_parent(node.outcome) is None
        )

        # Every node has at most one parent, so anything unreachable from a
        # root sits on (or under) a parent-pointer cycle.
        reached = {node.pid for _, node in tree.walk()}
        if len(reached) != len(tree.nodes):
            raise CycleDetectedError([pid for pid in tree.nodes if pid not in reached])
        return tree


def build_tree(entries: Iterable[tuple[int, RecordOutcome]]) -> ProcessTree:
    """
    Build a process tree from (pid, outcome) pairs.

    Raises:
        StructuralIntegrityError: If a PID is settled or parented twice, or
            if the parent links form a cycle.
    """
    builder = TreeBuilder()
    for pid, outcome in entries:
        builder.add(pid, outcome)
    return builder.finish()
