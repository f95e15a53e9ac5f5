"""
Task data models.

A TaskRecord is what the index stores for one task occurrence. The page it
lives on and its character offset are not part of the record: the offset is
encoded in the index key (``task:<offset>``) and the page is the key's scope.
Both are attached again when records are read back for a query.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

# Value variants an inline attribute can take once coerced
AttributeValue = Union[str, int, float, bool]

COMPLETE_STATES = frozenset({"x", "X"})
INCOMPLETE_STATES = frozenset({" "})

TASK_KEY_PREFIX = "task:"
STATE_KEY_PREFIX = "taskState:"


def is_custom_state(state: str) -> bool:
    """True for any state token that is not part of the plain checkbox pair."""
    return state not in COMPLETE_STATES and state not in INCOMPLETE_STATES


def task_key(pos: int) -> str:
    return f"{TASK_KEY_PREFIX}{pos}"


def state_key(state: str) -> str:
    return f"{STATE_KEY_PREFIX}{state}"


@dataclass
class TaskRecord:
    """A normalized task occurrence as persisted in the index."""

    name: str
    done: bool
    state: str
    deadline: Optional[str] = None
    tags: Optional[List[str]] = None
    nested: Optional[str] = None
    attributes: Dict[str, AttributeValue] = field(default_factory=dict)

    @classmethod
    def for_state(cls, state: str) -> TaskRecord:
        return cls(name="", done=state in COMPLETE_STATES, state=state)

    def add_tag(self, tag: str) -> None:
        if self.tags is None:
            self.tags = []
        if tag not in self.tags:
            self.tags.append(tag)

    def to_value(self) -> Dict[str, Any]:
        """
        Flatten into the stored JSON shape.

        Attributes are merged first so that the fixed fields always win over
        an attribute that happens to share their name.
        """
        value: Dict[str, Any] = dict(self.attributes)
        value["name"] = self.name
        value["done"] = self.done
        value["state"] = self.state
        if self.deadline is not None:
            value["deadline"] = self.deadline
        if self.tags:
            value["tags"] = list(self.tags)
        if self.nested is not None:
            value["nested"] = self.nested
        return value


@dataclass
class ExtractedTask:
    """A task record together with the offset it was found at."""

    pos: int
    record: TaskRecord

    @property
    def key(self) -> str:
        return task_key(self.pos)


@dataclass
class ExtractionResult:
    """Everything one extraction pass over a page produces."""

    tasks: List[ExtractedTask] = field(default_factory=list)
    states: Dict[str, int] = field(default_factory=dict)
    attributes: Dict[str, AttributeValue] = field(default_factory=dict)


@dataclass
class ClickEvent:
    """A click on a rendered task checkbox."""

    page: str
    pos: int
    alt_key: bool = False
