"""MCP tool registration for vault-tasks."""

import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from api.task_handlers import (
    handle_cache_status,
    handle_page_reindex,
    handle_task_cycle,
    handle_task_cycle_command,
    handle_task_postpone,
    handle_task_query,
)

log = logging.getLogger(__name__)


def register_tools(mcp: FastMCP, cache) -> None:
    """Register all MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def task_query(query: str = "") -> str:
        """
        Query indexed tasks across the vault.

        Every result carries the page it lives on and its character offset
        ("pos") in that page, which task_cycle accepts.

        Args:
            query: Filter expression, e.g.
                   'where done = false and tags = "errand" order by deadline limit 20'.
                   Operators: = != < <= > >= =~ !=~ in. Empty returns all tasks.

        Returns:
            JSON list of task records
        """
        try:
            return json.dumps(handle_task_query(cache, query=query), indent=2)
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def task_cycle(page: str, pos: int) -> str:
        """
        Advance the state of the task at a position.

        " " becomes "x", "x"/"X" becomes " ", and custom states rotate through
        every custom state in use in the vault. Copies of the task linked with
        [[page@offset]] are updated too; copies that have drifted are reported
        under "stale_refs" and left alone.

        Args:
            page: Page name (path relative to the vault root, without .md)
            pos: Offset of the task's "[" (the "pos" of a task_query result)

        Returns:
            JSON with old/new state and the references that were updated
        """
        try:
            return json.dumps(handle_task_cycle(cache, page=page, pos=pos), indent=2)
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def task_cycle_at_cursor(page: str, cursor: int) -> str:
        """
        Advance the state of the task on the line containing a cursor offset.

        Args:
            page: Page name
            cursor: Any offset within the task's line

        Returns:
            JSON with old/new state, or an error when there is no task there
        """
        try:
            return json.dumps(handle_task_cycle_command(cache, page=page, cursor=cursor), indent=2)
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def task_postpone(page: str, cursor: int, option: str = "a day") -> str:
        """
        Push back the deadline (📅 YYYY-MM-DD) under a cursor offset.

        Args:
            page: Page name
            cursor: Offset inside the deadline
            option: "a day", "a week", "following Monday", or a date
                    ("2026-03-01", "next Friday", "in 3 days")

        Returns:
            JSON with the new deadline
        """
        try:
            return json.dumps(
                handle_task_postpone(cache, page=page, cursor=cursor, option=option), indent=2
            )
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def page_reindex(page: Optional[str] = None, stale_only: bool = False) -> str:
        """
        Re-index a page, or every known page when omitted.

        Args:
            page: Page name (optional)
            stale_only: Only re-index pages edited on disk since their last index pass

        Returns:
            JSON mapping page name to the number of tasks indexed
        """
        try:
            return json.dumps(
                handle_page_reindex(cache, page=page, stale_only=stale_only), indent=2
            )
        except Exception as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def cache_status() -> str:
        """
        Show index statistics.

        Returns:
            JSON with pages_indexed, tasks_indexed, custom_states, vault_root
        """
        return json.dumps(handle_cache_status(cache), indent=2)
