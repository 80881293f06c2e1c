"""
Command-line interface for the Kairos DB monitor
"""

import click
import json
import logging
import sys
import time
from typing import Optional

from tabulate import tabulate

from kairos_monitor.catalog.queries import METRICS, QUERIES, Category, metrics_for
from kairos_monitor.monitoring.task import (
    CONFIG_ARG,
    MONITOR_VERSION,
    KairosMonitor,
    TaskExecutionContext,
    TaskExecutionError,
)
from kairos_monitor.monitoring.writers import create_sink
from kairos_monitor.storage.database import build_connection_url
from kairos_monitor.utils.config import (
    DEFAULT_LOG_FORMAT,
    Config,
    ConfigurationError,
    resolve_config_path,
)


def configure_logging(level: str, fmt: str = DEFAULT_LOG_FORMAT):
    """Send log records to stderr; stdout is reserved for metrics."""
    logging.basicConfig(level=level.upper(), format=fmt, stream=sys.stderr)


def _peek_config(config_file: str) -> Optional[Config]:
    """Read the configuration for CLI-level settings, if it can be loaded."""
    try:
        return Config(resolve_config_path(config_file))
    except ConfigurationError:
        return None


def _build_context(
    config: Optional[Config], sink: Optional[str], listener_url: Optional[str]
) -> TaskExecutionContext:
    sink_type = sink or (config.get("metric-sink.type") if config else None) or "stdout"
    url = listener_url or (config.get("metric-sink.url") if config else None)
    timeout = config.get("metric-sink.timeout") if config else None
    try:
        return TaskExecutionContext(create_sink(sink_type, url=url, timeout=timeout))
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def _setup(config_file: str, log_level: Optional[str]) -> Optional[Config]:
    config = _peek_config(config_file)
    level = log_level or (config.get("logging.level") if config else None) or "INFO"
    fmt = (config.get("logging.format") if config else None) or DEFAULT_LOG_FORMAT
    configure_logging(level, fmt)
    return config


config_file_option = click.option(
    "--config-file",
    required=True,
    help="Configuration file, absolute or relative to the installation directory",
)
sink_option = click.option(
    "--sink",
    default=None,
    type=click.Choice(["stdout", "http"]),
    help="Where to publish metrics (default: from config, else stdout)",
)
listener_url_option = click.option(
    "--listener-url",
    default=None,
    help="Machine agent HTTP listener URL (e.g., http://localhost:8293/api/v1/metrics)",
)
log_level_option = click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (default: from config, else INFO)",
)


@click.group()
@click.version_option(version=MONITOR_VERSION)
def cli():
    """Kairos DB Monitor - Publish Kairos DB diagnostics as machine agent metrics"""
    pass


@cli.command()
@config_file_option
@sink_option
@listener_url_option
@log_level_option
@click.option(
    "--report",
    is_flag=True,
    help="Print the emitted, skipped and failed metric paths as JSON to stderr",
)
def run(
    config_file: str,
    sink: Optional[str],
    listener_url: Optional[str],
    log_level: Optional[str],
    report: bool,
):
    """Run a single monitoring pass"""

    config = _setup(config_file, log_level)
    context = _build_context(config, sink, listener_url)

    try:
        output = KairosMonitor().execute({CONFIG_ARG: config_file}, context)
    except TaskExecutionError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    finally:
        context.sink.close()

    click.echo(f"✓ {output.message}", err=True)
    if report and output.report is not None:
        click.echo(json.dumps(output.report.to_dict(), indent=2), err=True)


@cli.command()
@config_file_option
@click.option(
    "--interval",
    default=60,
    type=click.IntRange(min=1),
    help="Seconds between passes (default: 60)",
)
@click.option(
    "--count",
    default=None,
    type=click.IntRange(min=1),
    help="Stop after this many passes (default: run until interrupted)",
)
@sink_option
@listener_url_option
@log_level_option
def watch(
    config_file: str,
    interval: int,
    count: Optional[int],
    sink: Optional[str],
    listener_url: Optional[str],
    log_level: Optional[str],
):
    """Run monitoring passes on a fixed interval"""

    config = _setup(config_file, log_level)
    context = _build_context(config, sink, listener_url)
    monitor = KairosMonitor()

    passes = 0
    failures = 0
    try:
        while count is None or passes < count:
            if passes:
                time.sleep(interval)
            passes += 1
            try:
                monitor.execute({CONFIG_ARG: config_file}, context)
            except TaskExecutionError as e:
                failures += 1
                click.echo(f"✗ Pass {passes}: {e}", err=True)
    except KeyboardInterrupt:
        click.echo("\nInterrupted", err=True)
    finally:
        context.sink.close()

    click.echo(f"Completed {passes} passes, {failures} failed", err=True)


@cli.command()
@click.option(
    "--format",
    "output_format",
    default="table",
    type=click.Choice(["table", "json"]),
    help="Output format",
)
def catalog(output_format: str):
    """List the diagnostic queries and the metrics they feed"""

    if output_format == "json":
        data = {
            "queries": list(QUERIES),
            "metrics": [
                {"key": m.key, "title": m.title, "category": m.category.value}
                for m in METRICS
            ],
        }
        click.echo(json.dumps(data, indent=2))
        return

    table_data = []
    for category in Category:
        for definition in metrics_for(category):
            table_data.append(
                [category.value, definition.title, definition.key.upper()]
            )

    click.echo(tabulate(table_data, headers=["Category", "Title", "Key"], tablefmt="grid"))
    click.echo(f"\nQueries ({len(QUERIES)}):")
    for index, query in enumerate(QUERIES, start=1):
        click.echo(f"  {index}. {query}")


@cli.command(name="show-config")
@config_file_option
def show_config(config_file: str):
    """Display the resolved configuration"""

    path = resolve_config_path(config_file)
    try:
        settings = Config(path).to_configuration()
    except ConfigurationError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    url = build_connection_url(settings).render_as_string(hide_password=True)
    table_data = [
        ["Config file", path],
        ["Connection", url],
        ["Database", settings.db_name],
        ["Metric path", f"{settings.metric_path_prefix}{settings.db_name}|"],
    ]
    click.echo(tabulate(table_data, tablefmt="plain"))


if __name__ == "__main__":
    cli()
