"""
Task index writer.

One pass replaces everything a page previously contributed under the task
prefixes: stale keys are deleted first, then the fresh records and state
counts are written. Storage errors are not caught here.
"""

import logging
from typing import Dict

from index.store import IndexStore
from models.task import STATE_KEY_PREFIX, TASK_KEY_PREFIX, AttributeValue, ExtractionResult, state_key
from models.tree import ParseTree
from parsers.task_extractor import extract_tasks

log = logging.getLogger(__name__)

ATTRIBUTE_KEY_PREFIX = "attr:"


def attribute_key(context: str, name: str) -> str:
    return f"{ATTRIBUTE_KEY_PREFIX}{context}:{name}"


def index_attributes(
    store: IndexStore, page: str, attributes: Dict[str, AttributeValue], context: str
) -> None:
    """Record which attributes a page uses in a given context (e.g. "task")."""
    store.delete_prefix(page, attribute_key(context, ""))
    store.batch_set(page, [(attribute_key(context, k), v) for k, v in attributes.items()])


def write_task_index(store: IndexStore, page: str, result: ExtractionResult) -> None:
    store.delete_prefix(page, TASK_KEY_PREFIX)
    store.delete_prefix(page, STATE_KEY_PREFIX)
    store.batch_set(page, [(t.key, t.record.to_value()) for t in result.tasks])
    index_attributes(store, page, result.attributes, "task")
    store.batch_set(page, [(state_key(s), count) for s, count in result.states.items()])


def index_tasks(store: IndexStore, page: str, tree: ParseTree) -> ExtractionResult:
    """
    Extract the tasks of a parsed page and persist them.

    Args:
        store: Index to write to
        page: Page name; every key written is scoped to it
        tree: Freshly parsed page tree (consumed; it is mutated by extraction)

    Returns:
        The extraction result that was written
    """
    result = extract_tasks(page, tree)
    write_task_index(store, page, result)
    log.debug(
        "Indexed %s: %d task(s), %d custom state(s)",
        page,
        len(result.tasks),
        len(result.states),
    )
    return result
