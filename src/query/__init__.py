from .evaluator import Filter, Query, apply_query, parse_query

__all__ = ["Filter", "Query", "apply_query", "parse_query"]
