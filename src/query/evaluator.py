"""
Query evaluation over plain record dicts.

Main API:
    parse_query(text)            → Query
    apply_query(query, records)  → List[dict]

Query string form:

    where done = false and tags = "errand" order by deadline desc limit 10

Supported operators: = != < <= > >= =~ !=~ in
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from parsers.attributes import coerce_attribute_value

log = logging.getLogger(__name__)

OPERATORS = ("=", "!=", "<", "<=", ">", ">=", "=~", "!=~", "in")

_TOKEN = re.compile(
    r"\s*(?:"
    r"(?P<string>\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*')"
    r"|(?P<op>!=~|=~|<=|>=|!=|=|<|>)"
    r"|(?P<punct>[\[\],])"
    r"|(?P<word>[^\s\[\],=<>!\"']+)"
    r")"
)


@dataclass
class Filter:
    prop: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unknown operator: {self.op}")


@dataclass
class Query:
    filters: List[Filter] = field(default_factory=list)
    order_by: Optional[str] = None
    order_desc: bool = False
    limit: Optional[int] = None


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

_MISSING = object()


def _compare(op: str, actual: Any, expected: Any) -> bool:
    try:
        if op == "<":
            return actual < expected
        if op == "<=":
            return actual <= expected
        if op == ">":
            return actual > expected
        if op == ">=":
            return actual >= expected
    except TypeError:
        return False
    raise ValueError(f"Not an ordering operator: {op}")


def _matches(record: Dict[str, Any], flt: Filter) -> bool:
    actual = record.get(flt.prop, _MISSING)
    if actual is _MISSING:
        return flt.op in ("!=", "!=~")

    if flt.op == "=":
        if isinstance(actual, list) and not isinstance(flt.value, list):
            return flt.value in actual
        return actual == flt.value
    if flt.op == "!=":
        if isinstance(actual, list) and not isinstance(flt.value, list):
            return flt.value not in actual
        return actual != flt.value
    if flt.op == "=~":
        return re.search(str(flt.value), str(actual)) is not None
    if flt.op == "!=~":
        return re.search(str(flt.value), str(actual)) is None
    if flt.op == "in":
        values = flt.value if isinstance(flt.value, list) else [flt.value]
        return actual in values
    return _compare(flt.op, actual, flt.value)


def _sorted(records: List[Dict[str, Any]], key: str, desc: bool) -> List[Dict[str, Any]]:
    present = [r for r in records if r.get(key) is not None]
    missing = [r for r in records if r.get(key) is None]
    try:
        present.sort(key=lambda r: r[key], reverse=desc)
    except TypeError:
        present.sort(key=lambda r: str(r[key]), reverse=desc)
    return present + missing


def apply_query(query: Optional[Query], records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Filter, order and truncate records. A None query returns them unchanged."""
    if query is None:
        return list(records)
    result = [r for r in records if all(_matches(r, f) for f in query.filters)]
    if query.order_by:
        result = _sorted(result, query.order_by, query.order_desc)
    if query.limit is not None:
        result = result[: query.limit]
    return result


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _tokenize(text: str) -> List[tuple]:
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = _TOKEN.match(text, pos)
        if not m or m.end() == pos:
            raise ValueError(f"Cannot parse query near: {text[pos:]!r}")
        tokens.append((m.lastgroup, m.group(m.lastgroup)))
        pos = m.end()
    return tokens


class _QueryParser:
    def __init__(self, text: str) -> None:
        self.tokens = _tokenize(text)
        self.i = 0

    def peek_word(self) -> Optional[str]:
        if self.i < len(self.tokens) and self.tokens[self.i][0] == "word":
            return self.tokens[self.i][1].lower()
        return None

    def next(self, expected_kind: Optional[str] = None) -> tuple:
        if self.i >= len(self.tokens):
            raise ValueError("Unexpected end of query")
        token = self.tokens[self.i]
        if expected_kind and token[0] != expected_kind:
            raise ValueError(f"Expected {expected_kind}, got {token[1]!r}")
        self.i += 1
        return token

    def expect_word(self, word: str) -> None:
        if self.peek_word() != word:
            raise ValueError(f"Expected '{word}'")
        self.i += 1

    def literal(self) -> Any:
        kind, raw = self.next()
        if kind == "string":
            return re.sub(r"\\(.)", r"\1", raw[1:-1])
        if kind == "punct" and raw == "[":
            values = []
            while True:
                if self.i >= len(self.tokens):
                    raise ValueError("Unterminated list in query")
                if self.tokens[self.i] == ("punct", "]"):
                    self.i += 1
                    return values
                values.append(self.literal())
                if self.i < len(self.tokens) and self.tokens[self.i] == ("punct", ","):
                    self.i += 1
        if kind == "word":
            if raw.lower() == "null":
                return None
            return coerce_attribute_value(raw)
        raise ValueError(f"Expected a value, got {raw!r}")

    def condition(self) -> Filter:
        _, prop = self.next("word")
        if self.peek_word() == "in":
            self.i += 1
            op = "in"
        else:
            _, op = self.next("op")
        return Filter(prop, op, self.literal())

    def parse(self) -> Query:
        query = Query()
        if self.peek_word() == "where":
            self.i += 1
            query.filters.append(self.condition())
            while self.peek_word() == "and":
                self.i += 1
                query.filters.append(self.condition())
        if self.peek_word() == "order":
            self.i += 1
            self.expect_word("by")
            _, query.order_by = self.next("word")
            if self.peek_word() in ("asc", "desc"):
                query.order_desc = self.next()[1].lower() == "desc"
        if self.peek_word() == "limit":
            self.i += 1
            _, raw = self.next("word")
            query.limit = int(raw)
        if self.i != len(self.tokens):
            raise ValueError(f"Unexpected token: {self.tokens[self.i][1]!r}")
        return query


def parse_query(text: str) -> Query:
    """Parse the query string form; an empty string is the match-all query."""
    return _QueryParser(text).parse()
