"""
Task extraction from a parsed page.

Main API:
    extract_tasks(page, tree)  → ExtractionResult

The tree is modified while extracting (query blocks, deadlines and
attributes are cut out of it), so callers pass a tree they own and do not
render it back to the page afterwards.
"""

import logging
import re
from typing import Optional

from models.task import ExtractedTask, ExtractionResult, TaskRecord, is_custom_state
from models.tree import NodeArena, ParseTree
from parsers.attributes import extract_attributes
from parsers.markdown_parser import DEADLINE_GLYPH
from parsers.tree import (
    REMOVE,
    Visit,
    collect_nodes_of_type,
    render_to_text,
    replace_nodes_matching,
    traverse_tree,
)

log = logging.getLogger(__name__)

_DEADLINE_PREFIX = re.compile(rf"^\s*{DEADLINE_GLYPH}\s*")


# ---------------------------------------------------------------------------
# Tree preparation
# ---------------------------------------------------------------------------

def remove_queries(tree: ParseTree) -> None:
    """Drop the rendered body of every directive block, keeping its markers."""
    for directive in collect_nodes_of_type(tree, "Directive"):
        directive.children = [c for c in directive.children if c.type != "DirectiveBody"]


def rewrite_page_refs(tree: ParseTree, page: str) -> None:
    """Make page-local links (``[[@42]]``) absolute (``[[page@42]]``)."""
    for link in collect_nodes_of_type(tree, "WikiLinkPage"):
        leaf = link.children[0]
        if leaf.text and leaf.text.startswith("@"):
            leaf.text = f"{page}{leaf.text}"


def get_deadline(deadline_node: ParseTree) -> str:
    return _DEADLINE_PREFIX.sub("", render_to_text(deadline_node))


def get_state(task_node: ParseTree) -> str:
    return task_node.children[0].children[1].text


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def _nested_text(task_node: ParseTree, arena: NodeArena) -> Optional[str]:
    parent = arena.parent_of(task_node)
    if parent is None:
        return None
    siblings = parent.children[parent.children.index(task_node) + 1:]
    text = "".join(render_to_text(s) for s in siblings).strip()
    return text or None


def _extract_task(
    page: str, task_node: ParseTree, arena: NodeArena, result: ExtractionResult
) -> None:
    state = get_state(task_node)
    if is_custom_state(state):
        result.states[state] = result.states.get(state, 0) + 1

    record = TaskRecord.for_state(state)
    rewrite_page_refs(task_node, page)

    def visit(node: ParseTree):
        if node.type == "DeadlineDate":
            record.deadline = get_deadline(node)
            return REMOVE
        if node.type == "Hashtag":
            # Tags stay in the rendered name
            record.add_tag(node.children[0].text[1:])
        return None

    replace_nodes_matching(task_node, visit)

    attributes = extract_attributes(task_node, remove=True)
    record.attributes.update(attributes)
    result.attributes.update(attributes)

    record.name = "".join(render_to_text(c) for c in task_node.children[1:]).strip()
    record.nested = _nested_text(task_node, arena)

    result.tasks.append(ExtractedTask(pos=task_node.start, record=record))


def extract_tasks(page: str, tree: ParseTree) -> ExtractionResult:
    """
    Walk a page tree and normalize every task occurrence found in it.

    Args:
        page: Name of the page the tree was parsed from
        tree: Parsed page (mutated)

    Returns:
        ExtractionResult with the task records in document order, custom
        state counts and the merged attribute map of all tasks
    """
    result = ExtractionResult()
    remove_queries(tree)
    arena = NodeArena(tree)

    def visit(node: ParseTree) -> Visit:
        if node.type != "Task":
            return Visit.CONTINUE
        _extract_task(page, node, arena, result)
        return Visit.SKIP_SUBTREE

    traverse_tree(tree, visit)
    log.debug("Extracted %d task(s) from %s", len(result.tasks), page)
    return result
