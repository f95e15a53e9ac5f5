"""
Parse tree data model.

A ParseTree node is either a leaf (``text`` set, no children) or a container
(children, ``text`` is None). Leaves without a ``type`` are plain text.
Rendering a tree concatenates all leaf text in order, which reproduces the
source exactly as long as nothing has been mutated.

Nodes never point at their parent. Upward search goes through a NodeArena,
built on demand for the tree being worked on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional


@dataclass(eq=False)
class ParseTree:
    """A single node of a parsed markdown page."""

    type: Optional[str] = None
    start: int = 0
    end: int = 0
    children: List[ParseTree] = field(default_factory=list)
    text: Optional[str] = None

    @property
    def is_leaf(self) -> bool:
        return self.text is not None

    def walk(self) -> Iterator[ParseTree]:
        """Yield this node and every descendant in document order."""
        yield self
        for child in self.children:
            yield from child.walk()


class NodeArena:
    """
    Document-order index over a tree with parent links stored as indices.

    Usage:
        arena = NodeArena(tree)
        task = arena.find_parent_matching(node, lambda n: n.type == "Task")
    """

    def __init__(self, root: ParseTree) -> None:
        self.root = root
        self.nodes: List[ParseTree] = []
        self.parents: List[Optional[int]] = []
        self._index: Dict[int, int] = {}
        self._add(root, None)

    def _add(self, node: ParseTree, parent: Optional[int]) -> None:
        idx = len(self.nodes)
        self.nodes.append(node)
        self.parents.append(parent)
        self._index[id(node)] = idx
        for child in node.children:
            self._add(child, idx)

    def __contains__(self, node: ParseTree) -> bool:
        return id(node) in self._index

    def parent_of(self, node: ParseTree) -> Optional[ParseTree]:
        idx = self._index.get(id(node))
        if idx is None:
            raise KeyError(f"Node {node.type!r}@{node.start} is not part of this tree")
        parent = self.parents[idx]
        return self.nodes[parent] if parent is not None else None

    def find_parent_matching(
        self, node: ParseTree, matcher: Callable[[ParseTree], bool]
    ) -> Optional[ParseTree]:
        """Return the closest ancestor of node accepted by matcher, or None."""
        parent = self.parent_of(node)
        while parent is not None:
            if matcher(parent):
                return parent
            parent = self.parent_of(parent)
        return None
