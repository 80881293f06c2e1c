"""Diagnostic query catalog for Kairos databases.

Every query returns two columns, a key and a value. The metric
definitions below name the keys that are republished, the title used in
the metric path, and the category the metric is grouped under.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence, Tuple


class CatalogError(Exception):
    """Raised when the query catalog is structurally invalid."""


class Category(Enum):
    """Metric categories, in reporting order."""

    RESOURCE_UTILIZATION = "Resource Utilization"
    ACTIVITY = "Activity"
    EFFICIENCY = "Efficiency"


@dataclass(frozen=True)
class MetricDefinition:
    """A query result key republished as a metric."""

    key: str
    title: str
    category: Category


QUERIES: Tuple[str, ...] = (
    "SELECT 'SESSION_COUNT', COUNT(*) FROM V$SESSION",
    "SELECT 'ACTIVE_SESSION_COUNT', COUNT(*) FROM V$SESSION WHERE STATUS = 'ACTIVE'",
    "SELECT NAME, VALUE FROM V$SYSSTAT",
    "SELECT 'LOCK_COUNT', COUNT(*) FROM V$LOCK",
    "SELECT 'LOCK_WAIT_COUNT', COUNT(*) FROM V$LOCK WHERE WAITING = 'Y'",
    "SELECT 'TABLESPACE_USAGE', SUM(USED_SIZE) * 100 / SUM(TOTAL_SIZE) FROM V$TABLESPACE",
    "SELECT 'MEMORY_USAGE', USED_MEMORY * 100 / TOTAL_MEMORY FROM V$MEMORY",
)

METRICS: Tuple[MetricDefinition, ...] = (
    # Resource Utilization
    MetricDefinition("cpu_usage", "CPU Usage (%)", Category.RESOURCE_UTILIZATION),
    MetricDefinition("memory_usage", "Memory Usage (%)", Category.RESOURCE_UTILIZATION),
    MetricDefinition(
        "tablespace_usage", "Tablespace Usage (%)", Category.RESOURCE_UTILIZATION
    ),
    MetricDefinition("session_count", "Sessions", Category.RESOURCE_UTILIZATION),
    MetricDefinition(
        "active_session_count", "Active Sessions", Category.RESOURCE_UTILIZATION
    ),
    # Activity
    MetricDefinition("logical_reads", "Logical Reads", Category.ACTIVITY),
    MetricDefinition("physical_reads", "Physical Reads", Category.ACTIVITY),
    MetricDefinition("execute_count", "Executions", Category.ACTIVITY),
    MetricDefinition("commit_count", "Commits", Category.ACTIVITY),
    MetricDefinition("rollback_count", "Rollbacks", Category.ACTIVITY),
    MetricDefinition("lock_count", "Locks", Category.ACTIVITY),
    MetricDefinition("lock_wait_count", "Lock Waits", Category.ACTIVITY),
    # Efficiency
    MetricDefinition(
        "buffer_hit_ratio", "Buffer Cache Hit Ratio (%)", Category.EFFICIENCY
    ),
    MetricDefinition("soft_parse_ratio", "Soft Parse Ratio (%)", Category.EFFICIENCY),
    MetricDefinition(
        "execute_to_parse_ratio", "Execute to Parse Ratio (%)", Category.EFFICIENCY
    ),
)


def metrics_for(
    category: Category, metrics: Sequence[MetricDefinition] = METRICS
) -> List[MetricDefinition]:
    """Return the definitions of one category, in catalog order."""
    return [m for m in metrics if m.category is category]


def category_table(
    category: Category, metrics: Sequence[MetricDefinition] = METRICS
) -> Tuple[List[str], List[str]]:
    """Return the aligned ``(keys, titles)`` view of one category.

    ``keys[i]`` is always reported under ``titles[i]``.
    """
    definitions = metrics_for(category, metrics)
    return [m.key for m in definitions], [m.title for m in definitions]


def validate_catalog(
    queries: Sequence[str] = QUERIES,
    metrics: Sequence[MetricDefinition] = METRICS,
) -> None:
    """Check the structural invariants of a catalog.

    Args:
        queries: Ordered SQL statements
        metrics: Metric definitions

    Raises:
        CatalogError: If any invariant is violated
    """
    if not queries:
        raise CatalogError("Catalog has no queries")

    for index, query in enumerate(queries):
        if not isinstance(query, str) or not query.strip():
            raise CatalogError(f"Query #{index} is empty")

    seen: Dict[Tuple[Category, str], str] = {}
    for definition in metrics:
        if not isinstance(definition.category, Category):
            raise CatalogError(
                f"Unknown category {definition.category!r} for key {definition.key!r}"
            )
        if not definition.key or not definition.key.strip():
            raise CatalogError(f"Empty key for title {definition.title!r}")
        if not definition.title or not definition.title.strip():
            raise CatalogError(f"Empty title for key {definition.key!r}")

        slot = (definition.category, definition.title)
        if slot in seen:
            raise CatalogError(
                f"Duplicate title {definition.title!r} in {definition.category.value} "
                f"(keys {seen[slot]!r} and {definition.key!r})"
            )
        seen[slot] = definition.key

    for category in Category:
        keys, titles = category_table(category, metrics)
        if len(keys) != len(titles):
            raise CatalogError(
                f"{category.value}: {len(keys)} keys but {len(titles)} titles"
            )


validate_catalog()
