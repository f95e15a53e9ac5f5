"""Query provider: indexed tasks, decorated with their page and offset."""

from typing import Any, Dict, List, Optional

from index.store import IndexStore
from models.task import TASK_KEY_PREFIX
from query.evaluator import Query, apply_query


def query_tasks(store: IndexStore, query: Optional[Query] = None) -> List[Dict[str, Any]]:
    """Read every task record, attach ``page`` and ``pos``, and apply query."""
    all_tasks = []
    for entry in store.query_prefix(TASK_KEY_PREFIX):
        pos = entry["key"].split(":")[1]
        all_tasks.append({**entry["value"], "page": entry["page"], "pos": int(pos)})
    return apply_query(query, all_tasks)
