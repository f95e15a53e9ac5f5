"""
Inline attribute extraction.

Attributes are written either bare (``prio:: high``) or bracketed
(``[owner:: Jane Doe]``). Values are coerced to a small set of variants:
booleans, integers, floats, and strings for everything else (ISO dates
included).
"""

import re
from typing import Dict

from models.task import AttributeValue
from models.tree import ParseTree
from parsers.tree import REMOVE, find_node_of_type, render_to_text, replace_nodes_matching

_INT = re.compile(r"^[+-]?\d+$")
_FLOAT = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+)$")


def coerce_attribute_value(raw: str) -> AttributeValue:
    """Turn the raw attribute text into its typed value."""
    value = raw.strip()
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if _INT.match(value):
        return int(value)
    if _FLOAT.match(value):
        return float(value)
    return value


def extract_attributes(tree: ParseTree, remove: bool = False) -> Dict[str, AttributeValue]:
    """
    Collect every Attribute node under tree.

    Args:
        tree: Subtree to scan (usually a single Task node)
        remove: Drop the attribute nodes from the tree after reading them

    Returns:
        Mapping of attribute name to coerced value; later duplicates win
    """
    attributes: Dict[str, AttributeValue] = {}

    def visit(node: ParseTree):
        if node.type != "Attribute":
            return None
        name_node = find_node_of_type(node, "AttributeName")
        value_node = find_node_of_type(node, "AttributeValue")
        name = render_to_text(name_node)
        raw = render_to_text(value_node) if value_node else ""
        attributes[name] = coerce_attribute_value(raw)
        return REMOVE if remove else node

    replace_nodes_matching(tree, visit)
    return attributes
