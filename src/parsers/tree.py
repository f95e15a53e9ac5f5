"""
Tree traversal and mutation primitives shared by the parser, the task
extractor and the state cycle engine.

Typed nodes always hold children; only untyped nodes carry text. This keeps
node_at_pos simple: it returns the deepest typed node covering a position.
"""

from enum import Enum
from typing import Callable, List, Optional, Union

from models.tree import ParseTree


class Visit(Enum):
    """Signal returned by a traverse_tree visitor."""

    CONTINUE = "continue"
    SKIP_SUBTREE = "skip_subtree"


class _Remove:
    def __repr__(self) -> str:
        return "REMOVE"


# Returned by a replace_nodes_matching substitute to drop the node
REMOVE = _Remove()

Substitute = Callable[[ParseTree], Union[ParseTree, _Remove, None]]


def render_to_text(tree: ParseTree) -> str:
    """Concatenate all leaf text under tree."""
    if tree.text is not None:
        return tree.text
    return "".join(render_to_text(child) for child in tree.children)


def traverse_tree(tree: ParseTree, visitor: Callable[[ParseTree], Visit]) -> None:
    """Depth-first, document-order walk; SKIP_SUBTREE prunes the node's children."""
    if visitor(tree) is Visit.SKIP_SUBTREE:
        return
    # Copy: visitors may detach children while we iterate
    for child in list(tree.children):
        traverse_tree(child, visitor)


def collect_nodes_matching(
    tree: ParseTree, matcher: Callable[[ParseTree], bool]
) -> List[ParseTree]:
    return [node for node in tree.walk() if matcher(node)]


def collect_nodes_of_type(tree: ParseTree, node_type: str) -> List[ParseTree]:
    return collect_nodes_matching(tree, lambda n: n.type == node_type)


def find_node_of_type(tree: ParseTree, node_type: str) -> Optional[ParseTree]:
    for node in tree.walk():
        if node.type == node_type:
            return node
    return None


def replace_nodes_matching(tree: ParseTree, substitute: Substitute) -> None:
    """
    Rewrite the children of tree in place.

    For every descendant, substitute(node) decides what happens:
    None keeps the node and descends into it, REMOVE drops it, and a
    ParseTree takes its place (without descending into the replacement).
    """
    if not tree.children:
        return
    kept: List[ParseTree] = []
    for child in tree.children:
        result = substitute(child)
        if result is None:
            replace_nodes_matching(child, substitute)
            kept.append(child)
        elif result is REMOVE:
            continue
        else:
            kept.append(result)
    tree.children = kept


def node_at_pos(tree: ParseTree, pos: int) -> Optional[ParseTree]:
    """
    Return the deepest typed node whose range contains pos.

    Landing on a text leaf yields the leaf's parent. Positions outside the
    tree yield None.
    """
    if pos < tree.start or pos >= tree.end:
        return None
    if tree.text is not None:
        return tree
    for child in tree.children:
        found = node_at_pos(child, pos)
        if found is None:
            continue
        if found.text is not None:
            return tree
        return found
    return None
