"""Monitoring task run by the machine agent on every tick.

A pass resolves the configuration, collects the diagnostic values and
publishes them. It either completes or fails as a whole; individual
metrics that cannot be published do not fail the pass.
"""

from dataclasses import dataclass
from enum import Enum
from importlib.metadata import PackageNotFoundError, version
from typing import Callable, Dict, Optional, Sequence
import logging

from kairos_monitor.catalog.queries import METRICS, QUERIES, MetricDefinition
from kairos_monitor.collectors.query_collector import QueryCollector, ResultMap
from kairos_monitor.monitoring.emitter import EmissionReport, MetricEmitter
from kairos_monitor.monitoring.writers import (
    AggregationType,
    ClusterRollupType,
    MetricSink,
    MetricWriter,
    TimeRollupType,
)
from kairos_monitor.storage.database import Database
from kairos_monitor.utils.config import (
    Configuration,
    load_configuration,
    resolve_config_path,
)

logger = logging.getLogger(__name__)

try:
    MONITOR_VERSION = version("kairos-monitor")
except PackageNotFoundError:
    MONITOR_VERSION = "0.0.0+unknown"

CONFIG_ARG = "config-file"
SUCCESS_MESSAGE = "Kairos DB Monitoring Task completed successfully"
FAILURE_MESSAGE = "Kairos DB Monitoring Task completed with failures."


class TaskState(Enum):
    """Lifecycle of one monitoring pass."""

    IDLE = "idle"
    RESOLVING_CONFIG = "resolving_config"
    COLLECTING = "collecting"
    EMITTING = "emitting"
    DONE = "done"
    FAILED = "failed"


class TaskExecutionError(Exception):
    """Raised when a monitoring pass does not complete."""


@dataclass
class TaskOutput:
    """Result of a successful pass."""

    message: str
    report: Optional[EmissionReport] = None


class TaskExecutionContext(MetricSink):
    """Execution context handed to the task by the agent.

    Only used to construct metric writers.
    """

    def __init__(self, sink: MetricSink):
        self.sink = sink

    def get_metric_writer(
        self,
        metric_name: str,
        aggregation: AggregationType,
        time_rollup: TimeRollupType,
        cluster_rollup: ClusterRollupType,
    ) -> MetricWriter:
        return self.sink.get_metric_writer(
            metric_name, aggregation, time_rollup, cluster_rollup
        )


class KairosMonitor:
    """Kairos DB monitoring task.

    Args:
        database_factory: Builds the database for a configuration
        queries: Ordered diagnostic queries
        metrics: Metric definitions to publish
    """

    def __init__(
        self,
        database_factory: Callable[[Configuration], Database] = Database.from_configuration,
        queries: Sequence[str] = QUERIES,
        metrics: Sequence[MetricDefinition] = METRICS,
    ):
        self.database_factory = database_factory
        self.queries = tuple(queries)
        self.metrics = tuple(metrics)
        self.state = TaskState.IDLE
        logger.info(f"Using Monitor Version [{MONITOR_VERSION}]")

    def execute(
        self,
        task_arguments: Optional[Dict[str, str]],
        task_context: TaskExecutionContext,
    ) -> TaskOutput:
        """Run one monitoring pass.

        Args:
            task_arguments: Task arguments, must contain ``config-file``
            task_context: Context used to construct metric writers

        Returns:
            TaskOutput on success

        Raises:
            TaskExecutionError: If the pass failed
        """
        self._transition(TaskState.IDLE)

        if task_arguments is None:
            self._transition(TaskState.FAILED)
            logger.error("Metrics Collection Failed: no task arguments")
            raise TaskExecutionError(FAILURE_MESSAGE)

        logger.info(f"Starting {MONITOR_VERSION} Monitoring Task")
        try:
            self._transition(TaskState.RESOLVING_CONFIG)
            config_filename = resolve_config_path(task_arguments.get(CONFIG_ARG))
            config = load_configuration(config_filename)

            self._transition(TaskState.COLLECTING)
            result_map = self.fetch_metrics(config)

            self._transition(TaskState.EMITTING)
            report = self.print_db_metrics(config, result_map, task_context)
        except Exception as e:
            logger.error(
                f"Metrics Collection Failed while {self.state.value}: {e}",
                exc_info=True,
            )
            self._transition(TaskState.FAILED)
            raise TaskExecutionError(FAILURE_MESSAGE) from e

        self._transition(TaskState.DONE)
        logger.info(SUCCESS_MESSAGE)
        return TaskOutput(SUCCESS_MESSAGE, report)

    def fetch_metrics(self, config: Configuration) -> ResultMap:
        """Collect the catalog values for one pass."""
        database = self.database_factory(config)
        collector = QueryCollector(database, self.queries)
        if not collector.validate_config():
            database.dispose()
            raise TaskExecutionError("No diagnostic queries to run")
        return collector.collect()

    def print_db_metrics(
        self,
        config: Configuration,
        result_map: ResultMap,
        task_context: TaskExecutionContext,
    ) -> EmissionReport:
        """Publish the collected values."""
        return MetricEmitter(task_context, self.metrics).emit(config, result_map)

    def _transition(self, state: TaskState):
        logger.debug(f"Task state {self.state.value} -> {state.value}")
        self.state = state
