"""Publishes collected values as path-qualified metrics."""

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence
import logging

from kairos_monitor.catalog.queries import METRICS, Category, MetricDefinition, metrics_for
from kairos_monitor.monitoring.coercion import MetricValueError, get_string
from kairos_monitor.monitoring.writers import (
    AggregationType,
    ClusterRollupType,
    MetricSink,
    TimeRollupType,
)
from kairos_monitor.utils.config import Configuration

logger = logging.getLogger(__name__)


@dataclass
class EmissionReport:
    """Outcome of one emission pass, by metric path."""

    emitted: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "emitted": list(self.emitted),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
        }


def metric_path(config: Configuration, category: Category, title: str) -> str:
    """Build ``<prefix><db-name>|<Category>|<Title>``."""
    return f"{config.metric_path_prefix}{config.db_name}|{category.value}|{title}"


class MetricEmitter:
    """Walks the metric catalog and publishes every value that was collected.

    Missing or blank values are skipped silently. A value that is not
    numeric, or that the sink rejects, is logged and skipped without
    affecting the other metrics.
    """

    def __init__(
        self,
        writer_factory: MetricSink,
        metrics: Sequence[MetricDefinition] = METRICS,
    ):
        """Initialize the emitter.

        Args:
            writer_factory: Object providing ``get_metric_writer``
            metrics: Metric definitions to publish
        """
        self.writer_factory = writer_factory
        self.metrics = tuple(metrics)

    def emit(
        self, config: Configuration, result_map: Mapping[str, Optional[str]]
    ) -> EmissionReport:
        """Publish every catalog metric present in the result map.

        Args:
            config: Monitor configuration
            result_map: Collected values keyed by upper-cased key

        Returns:
            EmissionReport listing emitted, skipped and failed paths
        """
        report = EmissionReport()

        for category in Category:
            for definition in metrics_for(category, self.metrics):
                path = metric_path(config, category, definition.title)

                try:
                    value = get_string(result_map, definition.key)
                except MetricValueError as e:
                    logger.error(f"Cannot convert value for {path}: {e}")
                    report.failed.append(path)
                    continue

                if not value:
                    report.skipped.append(path)
                    continue

                if self.print_metric(path, value):
                    report.emitted.append(path)
                else:
                    report.failed.append(path)

        logger.info(
            f"Published {len(report.emitted)} metrics "
            f"({len(report.skipped)} missing, {len(report.failed)} failed)"
        )
        return report

    def print_metric(self, metric_name: str, value: str) -> bool:
        """Publish one metric.

        Returns:
            True if the sink accepted the value
        """
        if not value:
            return False

        try:
            writer = self.writer_factory.get_metric_writer(
                metric_name,
                AggregationType.AVERAGE,
                TimeRollupType.AVERAGE,
                ClusterRollupType.INDIVIDUAL,
            )
            writer.print_metric(value)
        except Exception as e:
            logger.error(f"Failed to publish {metric_name}: {e}", exc_info=True)
            return False

        logger.debug(f"METRIC:  NAME:{metric_name} VALUE:{value}")
        return True
