"""
Query execution layer.

Main Components:
- QueryExecutor: runs parameterized statements, times them and feeds the query log
- QueryResult: rows plus row count, elapsed time and last insert id
- FilterBuilder: renders optional filters into one parameterized template
"""

from .builder import FilterBuilder, escape_like
from .executor import QueryExecutor, QueryResult, normalize_params

__all__ = [
    "FilterBuilder",
    "escape_like",
    "QueryExecutor",
    "QueryResult",
    "normalize_params",
]
