"""Query execution package."""

from src.queries.executor import QueryExecutor
from src.queries.parser import KeywordQueryParser, resolve_time_reference

__all__ = ["KeywordQueryParser", "QueryExecutor", "resolve_time_reference"]
