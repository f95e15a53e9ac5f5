"""Task handler functions shared by MCP tools and REST API.

Handlers that edit a page hold cache.editor_lock from open to save, so
concurrent callers never interleave edits in the shared editor buffer.
"""

import logging
from typing import Optional

from models.task import ClickEvent
from query.evaluator import parse_query
from tasks.commands import postpone_command, task_cycle_command, task_toggle
from tasks.query_provider import query_tasks

log = logging.getLogger(__name__)


def _open(cache, page: str, cursor: int = 0) -> None:
    # Always reload: the page may have been changed on disk since it was opened
    cache.open_page(page)
    cache.editor.set_cursor(cursor)


def handle_task_query(cache, *, query: str = "") -> list[dict]:
    return query_tasks(cache.index, parse_query(query))


def handle_task_cycle(cache, *, page: str, pos: int, alt_key: bool = False) -> dict:
    """Cycle the task at pos on page, then save the page."""
    with cache.editor_lock:
        try:
            _open(cache, page)
        except FileNotFoundError:
            return {"error": f"Page '{page}' not found"}
        result = task_toggle(cache, ClickEvent(page=page, pos=pos, alt_key=alt_key))
        if result is None:
            return {"error": f"No task marker at {page}@{pos}"}
        cache.save_page()
        return result.to_dict()


def handle_task_cycle_command(cache, *, page: str, cursor: int) -> dict:
    """Cycle the task under a cursor position, then save the page."""
    with cache.editor_lock:
        try:
            _open(cache, page, cursor)
        except FileNotFoundError:
            return {"error": f"Page '{page}' not found"}
        notices = len(cache.editor.notifications)
        result = task_cycle_command(cache)
        if result is None:
            return {"error": "; ".join(cache.editor.notifications[notices:]) or "Nothing to cycle"}
        cache.save_page()
        return result.to_dict()


def handle_task_postpone(cache, *, page: str, cursor: int, option: str) -> dict:
    """Postpone the deadline under a cursor position, then save the page."""
    with cache.editor_lock:
        try:
            _open(cache, page, cursor)
        except FileNotFoundError:
            return {"error": f"Page '{page}' not found"}
        notices = len(cache.editor.notifications)
        new_date = postpone_command(cache, option)
        if new_date is None:
            return {"error": "; ".join(cache.editor.notifications[notices:]) or "Nothing to postpone"}
        cache.save_page()
        return {"page": page, "deadline": new_date}


def handle_page_reindex(cache, *, page: Optional[str] = None, stale_only: bool = False) -> dict:
    """
    Re-index one page, or every page the cache knows about.

    With stale_only, pages unchanged on disk since their last index pass are
    skipped and left out of the result.
    """
    pages = [page] if page else cache.list_pages()
    indexed = {}
    for name in pages:
        if stale_only and not cache.is_page_stale(name):
            continue
        result = cache.index_page(name)
        indexed[name] = len(result.tasks) if result else None
    return {"indexed": indexed}


def handle_cache_status(cache) -> dict:
    return cache.status()
