from .errors import StaleReferenceError, TaskSyncError, UnknownStateError
from .cycle import CycleResult, cycle_task_state, known_custom_states, next_state
from .commands import (
    postpone_command,
    preview_task_toggle,
    task_cycle_at_pos,
    task_cycle_command,
    task_toggle,
)
from .query_provider import query_tasks

__all__ = [
    "StaleReferenceError",
    "TaskSyncError",
    "UnknownStateError",
    "CycleResult",
    "cycle_task_state",
    "known_custom_states",
    "next_state",
    "postpone_command",
    "preview_task_toggle",
    "task_cycle_at_pos",
    "task_cycle_command",
    "task_toggle",
    "query_tasks",
]
