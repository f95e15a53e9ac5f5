"""
Cross-reference resolver.

A task can be rendered in several places (query results, embeds), each copy
carrying a ``[[page@offset]]`` link back to the occurrence it was copied
from. After a copy is cycled, every such link found in the task is followed
and the state marker at the target is rewritten, provided it still holds the
state the copy had before the cycle.

References are processed one by one. A stale reference is logged and
skipped; the others still go through. Nothing is rolled back.
"""

import logging
from typing import List, Tuple

from editor.buffer import Edit
from models.tree import ParseTree
from parsers.markdown_parser import parse_markdown
from parsers.tree import collect_nodes_of_type, node_at_pos, render_to_text
from tasks.errors import StaleReferenceError

log = logging.getLogger(__name__)


def parse_reference(ref: str) -> Tuple[str, int]:
    """Split ``page@offset`` into its parts."""
    page, _, pos = ref.rpartition("@")
    try:
        return page, int(pos)
    except ValueError:
        raise StaleReferenceError(ref, f"offset {pos!r} is not a number") from None


def task_references(task_node: ParseTree) -> List[str]:
    """Backlink references under a task, in document order."""
    refs = []
    for link in collect_nodes_of_type(task_node, "WikiLinkPage"):
        ref = render_to_text(link)
        if "@" in ref:
            refs.append(ref)
    return refs


def _update_in_buffer(cache, ref: str, pos: int, old_state: str, new_state: str) -> None:
    text = cache.editor.get_text()
    start = pos + 1
    found = text[start:start + len(old_state)]
    if found != old_state:
        raise StaleReferenceError(ref, f"expected {old_state!r}, found {found!r}")
    cache.editor.dispatch(Edit.replace(start, start + len(old_state), new_state))


def _update_in_page(cache, ref: str, page: str, pos: int, old_state: str, new_state: str) -> None:
    tree = parse_markdown(cache.read_page(page))
    # One past the offset lands inside the state marker
    state_node = node_at_pos(tree, pos + 1)
    if state_node is None or state_node.type != "TaskState":
        found = state_node.type if state_node is not None else None
        raise StaleReferenceError(ref, f"no task marker at offset (found {found})")
    state_leaf = state_node.children[1]
    if state_leaf.text != old_state:
        raise StaleReferenceError(ref, f"expected {old_state!r}, found {state_leaf.text!r}")
    state_leaf.text = new_state
    cache.write_page(page, render_to_text(tree))
    cache.schedule_file_sync(f"{page}.md")


def update_references(
    cache, page: str, task_node: ParseTree, old_state: str, new_state: str
) -> Tuple[List[str], List[str]]:
    """
    Propagate a state change to every backlinked occurrence of a task.

    Args:
        cache: VaultCache providing the editor and page storage
        page: The page open in the editor
        task_node: Task node whose links are followed
        old_state: State the occurrences are expected to hold
        new_state: State to write

    Returns:
        (updated, stale) lists of references

    Storage errors are not caught: they abort the remaining references.
    """
    updated: List[str] = []
    stale: List[str] = []
    for ref in task_references(task_node):
        try:
            target, pos = parse_reference(ref)
            # Page-local reference ("@42") points into the open page
            if not target or target == page:
                _update_in_buffer(cache, ref, pos, old_state, new_state)
            else:
                _update_in_page(cache, ref, target, pos, old_state, new_state)
        except StaleReferenceError as e:
            log.error("%s", e)
            stale.append(ref)
            continue
        log.info("Updated reference %s to %r", ref, new_state)
        updated.append(ref)
    return updated, stale
