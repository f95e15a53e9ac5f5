from .tree import (
    REMOVE,
    Visit,
    collect_nodes_matching,
    collect_nodes_of_type,
    find_node_of_type,
    node_at_pos,
    render_to_text,
    replace_nodes_matching,
    traverse_tree,
)
from .markdown_parser import parse_markdown
from .attributes import coerce_attribute_value, extract_attributes
from .task_extractor import extract_tasks

__all__ = [
    "REMOVE",
    "Visit",
    "collect_nodes_matching",
    "collect_nodes_of_type",
    "find_node_of_type",
    "node_at_pos",
    "render_to_text",
    "replace_nodes_matching",
    "traverse_tree",
    "parse_markdown",
    "coerce_attribute_value",
    "extract_attributes",
    "extract_tasks",
]
