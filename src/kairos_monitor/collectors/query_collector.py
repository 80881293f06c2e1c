"""Collector that runs the diagnostic query catalog against Kairos DB."""

from typing import Dict, Optional, Sequence
import logging

from sqlalchemy.engine import Connection

from .base_collector import BaseCollector
from kairos_monitor.catalog.queries import QUERIES
from kairos_monitor.storage.database import Database, close_quietly

logger = logging.getLogger(__name__)

ResultMap = Dict[str, Optional[str]]


class QueryExecutionError(Exception):
    """Raised when a catalog query fails."""

    def __init__(self, query: str, message: str):
        super().__init__(f"Error while executing query [{query}]: {message}")
        self.query = query


class QueryCollector(BaseCollector):
    """Runs catalog queries and folds their rows into a result map.

    Each row contributes its first column as the key and its second column
    as the value. Keys are upper-cased; when several rows share a key the
    last one read wins. Any failing query aborts the whole pass.
    """

    def __init__(
        self,
        database: Database,
        queries: Sequence[str] = QUERIES,
        config: Optional[Dict] = None,
    ):
        """Initialize the query collector.

        Args:
            database: Database to collect from
            queries: Ordered SQL statements, each returning (key, value) rows
            config: Optional configuration dictionary
        """
        super().__init__(config)
        self.database = database
        self.queries = tuple(queries)

    def collect(self) -> ResultMap:
        """Execute every query in order on a single connection.

        Returns:
            Mapping of upper-cased key to raw string value (None for NULL)

        Raises:
            DatabaseConnectionError: If the connection cannot be opened
            QueryExecutionError: If any query fails
        """
        result_map: ResultMap = {}
        try:
            with self.database.connect() as conn:
                for query in self.queries:
                    self._execute_query(conn, query, result_map)
        finally:
            self.database.dispose()

        logger.info(
            f"Collected {len(result_map)} values from {len(self.queries)} queries"
        )
        return result_map

    def validate_config(self) -> bool:
        """Validate the collector configuration.

        Returns:
            True if there is at least one non-blank query
        """
        if not self.queries:
            return False
        return all(isinstance(q, str) and q.strip() for q in self.queries)

    def _execute_query(self, conn: Connection, query: str, result_map: ResultMap):
        """Run one query and merge its rows into the result map."""
        logger.debug(f"Executing query [{query}]")
        result = None
        try:
            result = conn.exec_driver_sql(query)
            for row in result:
                key, value = self._read_row(row)
                logger.debug(f"[key,value] = [{key},{value}]")
                result_map[key.upper()] = value
        except Exception as e:
            logger.error(f"Error while executing query [{query}]", exc_info=True)
            raise QueryExecutionError(query, str(e)) from e
        finally:
            close_quietly(result, "result set")

    @staticmethod
    def _read_row(row) -> tuple:
        if len(row) < 2:
            raise ValueError(f"expected two columns, got {len(row)}")

        key, value = row[0], row[1]
        if key is None:
            raise ValueError("key column is NULL")

        return str(key), None if value is None else str(value)
