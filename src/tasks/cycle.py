"""
State cycle engine.

Checkbox states toggle (``x``/``X`` → `` ``, `` `` → ``x``). Any other token
is a custom state and rotates through every custom state the index has seen,
in sorted order, wrapping at the end.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from editor.buffer import Edit
from index.store import IndexStore
from models.task import COMPLETE_STATES, INCOMPLETE_STATES, STATE_KEY_PREFIX, is_custom_state
from models.tree import NodeArena, ParseTree
from tasks.errors import UnknownStateError
from tasks.references import update_references

log = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """Outcome of one cycle: the owning occurrence plus every backlink touched."""

    page: str
    pos: int
    old_state: str
    new_state: str
    updated: List[str] = field(default_factory=list)
    stale: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "pos": self.pos,
            "old_state": self.old_state,
            "new_state": self.new_state,
            "updated_refs": list(self.updated),
            "stale_refs": list(self.stale),
        }


def known_custom_states(store: IndexStore) -> List[str]:
    """Distinct custom state tokens across the whole index, sorted."""
    entries = store.query_prefix(STATE_KEY_PREFIX)
    return sorted({entry["key"][len(STATE_KEY_PREFIX):] for entry in entries})


def next_state(current: str, known_states: Iterable[str] = ()) -> str:
    """
    Compute the state that follows current.

    Raises:
        UnknownStateError: current is a custom state missing from known_states
    """
    if current in COMPLETE_STATES:
        return " "
    if current in INCOMPLETE_STATES:
        return "x"
    states = sorted(set(known_states))
    if current not in states:
        raise UnknownStateError(current)
    return states[(states.index(current) + 1) % len(states)]


def cycle_task_state(cache, page: str, state_node: ParseTree, arena: NodeArena) -> CycleResult:
    """
    Advance a TaskState node in the open buffer, then propagate to backlinks.

    Args:
        cache: VaultCache providing the editor, index and page storage
        page: Name of the open page
        state_node: TaskState node from a tree parsed from the buffer text
        arena: NodeArena over that same tree

    Returns:
        CycleResult describing every write that happened
    """
    state_leaf = state_node.children[1]
    old_state = state_leaf.text
    known = known_custom_states(cache.index) if is_custom_state(old_state) else []
    try:
        new_state = next_state(old_state, known)
    except UnknownStateError:
        log.error("Unknown state %r at %s@%d, not cycling", old_state, page, state_leaf.start)
        raise

    cache.editor.dispatch(Edit.replace(state_leaf.start, state_leaf.end, new_state))
    log.info("Cycled %s@%d: %r -> %r", page, state_node.start, old_state, new_state)

    result = CycleResult(page=page, pos=state_node.start, old_state=old_state, new_state=new_state)
    task_node = arena.parent_of(state_node)
    if task_node is not None:
        result.updated, result.stale = update_references(
            cache, page, task_node, old_state, new_state
        )
    return result
