"""Pytest configuration and shared fixtures."""

import pytest
import yaml

from kairos_monitor.catalog.queries import Category, MetricDefinition
from kairos_monitor.utils.config import Configuration


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's environment out of configuration loading."""
    for name in (
        "KAIROS_MONITOR_HOST",
        "KAIROS_MONITOR_PORT",
        "KAIROS_MONITOR_USERNAME",
        "KAIROS_MONITOR_PASSWORD",
        "KAIROS_MONITOR_DB_NAME",
        "KAIROS_MONITOR_METRIC_PATH_PREFIX",
        "KAIROS_MONITOR_LOG_LEVEL",
        "KAIROS_MONITOR_HOME",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_data():
    """Sample configuration file contents.

    Returns:
        Dictionary as it would appear in config.yml
    """
    return {
        "host": "db1",
        "port": 5000,
        "username": "monitor",
        "password": "secret",
        "db-name": "prod",
        "metric-path-prefix": "Custom Metrics|Kairos|",
    }


@pytest.fixture
def config_file(tmp_path, config_data):
    """Write the sample configuration to a YAML file.

    Returns:
        Path of the configuration file as a string
    """
    path = tmp_path / "config.yml"
    path.write_text(yaml.safe_dump(config_data))
    return str(path)


@pytest.fixture
def configuration():
    """Typed configuration matching config_data."""
    return Configuration(
        host="db1",
        port=5000,
        username="monitor",
        password="secret",
        db_name="prod",
        metric_path_prefix="Custom Metrics|Kairos|",
    )


@pytest.fixture
def sample_metrics():
    """Small catalog with one metric in two categories."""
    return (
        MetricDefinition("cpu_usage", "CPU Usage", Category.RESOURCE_UTILIZATION),
        MetricDefinition("disk_io", "Disk IO", Category.ACTIVITY),
    )
