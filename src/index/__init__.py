from .store import IndexStore
from .task_index import index_attributes, index_tasks, write_task_index

__all__ = [
    "IndexStore",
    "index_attributes",
    "index_tasks",
    "write_task_index",
]
