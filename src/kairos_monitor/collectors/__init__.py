"""Data collectors for Kairos DB diagnostics."""

from .base_collector import BaseCollector
from .query_collector import QueryCollector, QueryExecutionError, ResultMap

__all__ = [
    "BaseCollector",
    "QueryCollector",
    "QueryExecutionError",
    "ResultMap",
]
