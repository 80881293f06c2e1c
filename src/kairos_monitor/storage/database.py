"""Database connection management."""

from contextlib import contextmanager
from typing import Any, Generator, Union
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from kairos_monitor.utils.config import Configuration, DEFAULT_DB_NAME, DEFAULT_PORT

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """Raised when a connection to the database cannot be established."""


def build_connection_url(config: Configuration) -> URL:
    """Build the connection URL for a configuration.

    The URL has the shape ``<driver>://<user>:<password>@<host>:<port>/<db>``.
    Port and database name fall back to their defaults when empty.

    Args:
        config: Monitor configuration

    Returns:
        SQLAlchemy URL
    """
    port = config.port if config.port not in (None, "") else DEFAULT_PORT
    db_name = config.db_name or DEFAULT_DB_NAME

    return URL.create(
        drivername=config.driver,
        username=config.username or None,
        password=config.password or None,
        host=config.host,
        port=int(port),
        database=db_name,
    )


def close_quietly(resource: Any, description: str) -> None:
    """Close a resource, logging and discarding any error."""
    if resource is None:
        return
    try:
        resource.close()
    except Exception as e:
        logger.warning(f"Error while closing {description}: {e}")


class Database:
    """Database connection manager.

    Uses ``NullPool`` so that every pass opens a fresh connection and
    nothing is kept open between passes.
    """

    def __init__(self, connection_url: Union[str, URL]):
        """Initialize database connection.

        Args:
            connection_url: SQLAlchemy connection string or URL

        Raises:
            DatabaseConnectionError: If no dialect is installed for the URL
        """
        self.url = connection_url
        try:
            self.engine = create_engine(connection_url, poolclass=NullPool)
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(f"Cannot create engine: {e}") from e

    @classmethod
    def from_configuration(cls, config: Configuration) -> "Database":
        """Create a database for the configured Kairos server."""
        return cls(build_connection_url(config))

    def display_url(self) -> str:
        """Connection URL with the password hidden."""
        return self.engine.url.render_as_string(hide_password=True)

    @contextmanager
    def connect(self) -> Generator[Connection, None, None]:
        """Open a connection.

        Yields:
            SQLAlchemy connection, closed on exit

        Raises:
            DatabaseConnectionError: If the connection cannot be opened
        """
        logger.debug(f"Connecting to: {self.display_url()}")
        try:
            conn = self.engine.connect()
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(
                f"Cannot connect to {self.display_url()}: {e}"
            ) from e
        logger.debug("Successfully connected to Kairos DB")

        try:
            yield conn
        finally:
            close_quietly(conn, "connection")

    def dispose(self) -> None:
        """Release the engine, logging and discarding any error."""
        try:
            self.engine.dispose()
        except Exception as e:
            logger.warning(f"Error while disposing engine: {e}")
