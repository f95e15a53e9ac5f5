"""REST API routes for vault-tasks."""

import re
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from api.task_handlers import (
    handle_cache_status,
    handle_page_reindex,
    handle_task_cycle,
    handle_task_cycle_command,
    handle_task_postpone,
    handle_task_query,
)


# ---------------------------------------------------------------------------
# Request body models
# ---------------------------------------------------------------------------


class TaskCycleBody(BaseModel):
    page: str
    pos: int
    alt_key: bool = False


class CursorBody(BaseModel):
    page: str
    cursor: int


class PostponeBody(CursorBody):
    option: str = "a day"


class ReindexBody(BaseModel):
    page: Optional[str] = None
    stale_only: bool = False


def _raise_for_error(result: dict) -> dict:
    if "error" in result:
        raise HTTPException(status_code=404, detail=result["error"])
    return result


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


def register_routes(app_router: APIRouter, cache) -> None:
    """Attach all REST routes that use the shared cache."""

    @app_router.get("/tasks")
    def list_tasks(q: str = Query("")):
        try:
            return handle_task_query(cache, query=q)
        except (ValueError, re.error) as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app_router.post("/tasks/cycle")
    def cycle_task(body: TaskCycleBody):
        try:
            result = handle_task_cycle(cache, **body.model_dump())
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _raise_for_error(result)

    @app_router.post("/tasks/cycle-at-cursor")
    def cycle_task_at_cursor(body: CursorBody):
        try:
            result = handle_task_cycle_command(cache, **body.model_dump())
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _raise_for_error(result)

    @app_router.post("/tasks/postpone")
    def postpone_task(body: PostponeBody):
        try:
            result = handle_task_postpone(cache, **body.model_dump())
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _raise_for_error(result)

    @app_router.post("/index/reindex")
    def reindex(body: ReindexBody):
        try:
            return handle_page_reindex(cache, **body.model_dump())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app_router.get("/cache/status")
    def get_cache_status():
        return handle_cache_status(cache)
