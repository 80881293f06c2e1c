"""Metric writers for the machine agent.

Two sinks are provided: the script format printed on stdout, and the
machine agent HTTP listener.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional, TextIO
import logging
import sys

import requests

logger = logging.getLogger(__name__)

DEFAULT_LISTENER_URL = "http://localhost:8293/api/v1/metrics"


class AggregationType(Enum):
    """How values within one reporting interval are combined."""

    AVERAGE = "AVERAGE"
    SUM = "SUM"
    OBSERVATION = "OBSERVATION"


class TimeRollupType(Enum):
    """How values are combined when rolled up over time."""

    AVERAGE = "AVERAGE"
    SUM = "SUM"
    CURRENT = "CURRENT"


class ClusterRollupType(Enum):
    """How values from several reporting instances are combined."""

    INDIVIDUAL = "INDIVIDUAL"
    COLLECTIVE = "COLLECTIVE"


class MetricWriter(ABC):
    """Publishes values for a single metric name."""

    def __init__(
        self,
        metric_name: str,
        aggregation: AggregationType = AggregationType.AVERAGE,
        time_rollup: TimeRollupType = TimeRollupType.AVERAGE,
        cluster_rollup: ClusterRollupType = ClusterRollupType.INDIVIDUAL,
    ):
        self.metric_name = metric_name
        self.aggregation = aggregation
        self.time_rollup = time_rollup
        self.cluster_rollup = cluster_rollup

    @abstractmethod
    def print_metric(self, value: str) -> None:
        """Publish one value.

        Args:
            value: Integer value as a decimal string
        """


class MetricSink(ABC):
    """Creates metric writers bound to one destination."""

    @abstractmethod
    def get_metric_writer(
        self,
        metric_name: str,
        aggregation: AggregationType,
        time_rollup: TimeRollupType,
        cluster_rollup: ClusterRollupType,
    ) -> MetricWriter:
        """Return a writer for the given metric name and rollup policy."""

    def close(self) -> None:
        """Release any resources held by the sink."""


class StdoutMetricWriter(MetricWriter):
    """Writes metrics in the machine agent script format."""

    def __init__(self, metric_name: str, stream: TextIO, **kwargs):
        super().__init__(metric_name, **kwargs)
        self.stream = stream

    def format_line(self, value: str) -> str:
        return (
            f"name={self.metric_name},value={value},"
            f"aggregator={self.aggregation.value},"
            f"time-rollup={self.time_rollup.value},"
            f"cluster-rollup={self.cluster_rollup.value}"
        )

    def print_metric(self, value: str) -> None:
        self.stream.write(self.format_line(value) + "\n")
        self.stream.flush()


class StdoutMetricSink(MetricSink):
    """Sink for script-based extensions; the agent reads stdout."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout

    def get_metric_writer(
        self,
        metric_name: str,
        aggregation: AggregationType,
        time_rollup: TimeRollupType,
        cluster_rollup: ClusterRollupType,
    ) -> MetricWriter:
        return StdoutMetricWriter(
            metric_name,
            self.stream,
            aggregation=aggregation,
            time_rollup=time_rollup,
            cluster_rollup=cluster_rollup,
        )


class HttpMetricWriter(MetricWriter):
    """Posts metrics to the machine agent HTTP listener.

    The listener only understands the aggregator type; time and cluster
    rollups follow the agent's defaults for custom metrics.
    """

    def __init__(self, metric_name: str, sink: "HttpMetricSink", **kwargs):
        super().__init__(metric_name, **kwargs)
        self.sink = sink

    def to_payload(self, value: str) -> List[Dict]:
        return [
            {
                "metricName": self.metric_name,
                "aggregatorType": self.aggregation.value,
                "value": int(value),
            }
        ]

    def print_metric(self, value: str) -> None:
        """Publish one value.

        Raises:
            requests.RequestException: If the listener rejects the metric
        """
        response = self.sink.session.post(
            self.sink.url, json=self.to_payload(value), timeout=self.sink.timeout
        )
        response.raise_for_status()


class HttpMetricSink(MetricSink):
    """Sink for the machine agent HTTP listener."""

    def __init__(
        self,
        url: str = DEFAULT_LISTENER_URL,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the HTTP sink.

        Args:
            url: Listener endpoint (e.g., http://localhost:8293/api/v1/metrics)
            timeout: Request timeout in seconds (default: 10)
            session: Optional requests session to reuse
        """
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_metric_writer(
        self,
        metric_name: str,
        aggregation: AggregationType,
        time_rollup: TimeRollupType,
        cluster_rollup: ClusterRollupType,
    ) -> MetricWriter:
        return HttpMetricWriter(
            metric_name,
            self,
            aggregation=aggregation,
            time_rollup=time_rollup,
            cluster_rollup=cluster_rollup,
        )

    def close(self) -> None:
        self.session.close()


def create_sink(sink_type: str = "stdout", **options) -> MetricSink:
    """Create a metric sink by name.

    Args:
        sink_type: 'stdout' or 'http'
        **options: Passed to the sink constructor (url, timeout, stream)

    Returns:
        MetricSink instance

    Raises:
        ValueError: If the sink type is unknown
    """
    if sink_type == "stdout":
        return StdoutMetricSink(stream=options.get("stream"))
    if sink_type == "http":
        return HttpMetricSink(
            url=options.get("url") or DEFAULT_LISTENER_URL,
            timeout=options.get("timeout") or 10,
        )
    raise ValueError(f"Unknown metric sink type: {sink_type!r}")
