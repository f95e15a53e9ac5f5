"""
In-memory editor buffer.

Holds the text of the page that is currently open, the cursor position, and
applies transactional edits. An Edit's changes are all expressed against the
text as it was before the edit and are applied together, so one dispatch
either lands completely or (on invalid ranges) not at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

log = logging.getLogger(__name__)


@dataclass
class Change:
    """Replace text[start:end] with insert."""

    start: int
    end: int
    insert: str = ""


@dataclass
class Edit:
    changes: List[Change] = field(default_factory=list)
    selection: Optional[int] = None

    @classmethod
    def replace(cls, start: int, end: int, insert: str, selection: Optional[int] = None) -> Edit:
        return cls(changes=[Change(start, end, insert)], selection=selection)


class EditorBuffer:
    """
    The open page.

    Usage:
        buffer = EditorBuffer("Inbox", text)
        buffer.dispatch(Edit.replace(3, 4, "x"))
        buffer.get_text()
    """

    def __init__(self, page: str = "", text: str = "", cursor: int = 0) -> None:
        self._page = page
        self._text = text
        self._cursor = cursor
        self.notifications: List[str] = []

    def open(self, page: str, text: str, cursor: int = 0) -> None:
        self._page = page
        self._text = text
        self._cursor = cursor

    def get_text(self) -> str:
        return self._text

    def get_cursor(self) -> int:
        return self._cursor

    def set_cursor(self, pos: int) -> None:
        if not 0 <= pos <= len(self._text):
            raise ValueError(f"Cursor {pos} outside buffer of length {len(self._text)}")
        self._cursor = pos

    def get_current_page(self) -> str:
        return self._page

    def dispatch(self, edit: Edit) -> None:
        """Apply all changes of edit atomically, then move the selection."""
        changes = sorted(edit.changes, key=lambda c: c.start)
        last_end = 0
        for change in changes:
            if change.start < last_end or change.end < change.start or change.end > len(self._text):
                raise ValueError(f"Invalid change range [{change.start}, {change.end})")
            last_end = change.end

        parts: List[str] = []
        pos = 0
        mapped_cursor = self._cursor
        for change in changes:
            parts.append(self._text[pos:change.start])
            parts.append(change.insert)
            pos = change.end
            if change.end <= self._cursor:
                mapped_cursor += len(change.insert) - (change.end - change.start)
        parts.append(self._text[pos:])
        self._text = "".join(parts)

        if edit.selection is not None:
            mapped_cursor = edit.selection
        self._cursor = max(0, min(mapped_cursor, len(self._text)))
        log.debug("Applied %d change(s) to %s", len(changes), self._page)

    def flash_notification(self, message: str) -> None:
        """Non-fatal notice for the user."""
        log.info("Notification: %s", message)
        self.notifications.append(message)
