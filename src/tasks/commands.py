"""
User-facing task commands.

Each command reads the open buffer from the cache's editor, parses it, and
acts on the node under a position. A missing node is reported with a flash
notification rather than an exception.
"""

import json
import logging
import re
from typing import Optional

from editor.buffer import Edit
from models.task import ClickEvent
from models.tree import NodeArena
from parsers.markdown_parser import DEADLINE_GLYPH, parse_markdown
from parsers.task_extractor import get_deadline
from parsers.tree import find_node_of_type, node_at_pos, render_to_text
from tasks.cycle import CycleResult, cycle_task_state
from utils.dates import postpone_date

log = logging.getLogger(__name__)

NO_TASK_AT_CURSOR = "No task at cursor"
NO_DEADLINE_AT_CURSOR = "No deadline at cursor"


def task_cycle_at_pos(cache, page: str, pos: int) -> Optional[CycleResult]:
    """Cycle the task whose checkbox covers pos; does nothing elsewhere."""
    tree = parse_markdown(cache.editor.get_text())
    arena = NodeArena(tree)
    node = node_at_pos(tree, pos)
    if node is None:
        return None
    if node.type == "TaskMarker":
        node = arena.parent_of(node)
    if node is not None and node.type == "TaskState":
        return cycle_task_state(cache, page, node, arena)
    return None


def task_toggle(cache, event: ClickEvent) -> Optional[CycleResult]:
    """Checkbox click handler. Alt-clicks are left to link navigation."""
    if event.alt_key:
        return None
    return task_cycle_at_pos(cache, event.page, event.pos)


def preview_task_toggle(cache, event_string: str) -> Optional[CycleResult]:
    """Handle a ``["task", pos]`` event posted from the rendered preview."""
    event_name, pos = json.loads(event_string)
    if event_name != "task":
        return None
    return task_cycle_at_pos(cache, cache.editor.get_current_page(), int(pos))


def task_cycle_command(cache) -> Optional[CycleResult]:
    """Cycle the task under the cursor."""
    editor = cache.editor
    pos = editor.get_cursor()
    tree = parse_markdown(editor.get_text())
    arena = NodeArena(tree)

    node = node_at_pos(tree, pos)
    if node is not None and node.type in ("BulletList", "OrderedList", "ListItem", "Document"):
        # Cursor sits at the end of the line; back up a position
        node = node_at_pos(tree, pos - 1)
    if node is None:
        editor.flash_notification(NO_TASK_AT_CURSOR)
        return None

    task_node = node if node.type == "Task" else arena.find_parent_matching(
        node, lambda n: n.type == "Task"
    )
    if task_node is None:
        editor.flash_notification(NO_TASK_AT_CURSOR)
        return None
    state_node = find_node_of_type(task_node, "TaskState")
    if state_node is None:
        editor.flash_notification(NO_TASK_AT_CURSOR)
        return None
    return cycle_task_state(cache, editor.get_current_page(), state_node, arena)


def postpone_command(cache, option: str) -> Optional[str]:
    """
    Move the deadline under the cursor.

    Args:
        cache: VaultCache whose editor holds the open page
        option: "a day", "a week", "following Monday" or a date string

    Returns:
        The new deadline, or None when nothing was changed
    """
    editor = cache.editor
    pos = editor.get_cursor()
    tree = parse_markdown(editor.get_text())
    arena = NodeArena(tree)

    node = node_at_pos(tree, pos)
    if node is not None and node.type != "DeadlineDate":
        node = arena.find_parent_matching(node, lambda n: n.type == "DeadlineDate")
    if node is None:
        editor.flash_notification(NO_DEADLINE_AT_CURSOR)
        return None

    deadline = get_deadline(node)
    try:
        new_date = postpone_date(deadline, option)
    except ValueError:
        editor.flash_notification(f"Invalid deadline {deadline!r}")
        return None
    if new_date is None:
        editor.flash_notification(f"Cannot postpone by {option!r}")
        return None

    leading = re.match(r"\s*", render_to_text(node)).group(0)
    editor.dispatch(
        Edit.replace(node.start, node.end, f"{leading}{DEADLINE_GLYPH} {new_date}", selection=pos)
    )
    log.info("Postponed deadline at %s@%d to %s", editor.get_current_page(), node.start, new_date)
    return new_date
