"""Base class for data collectors."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class BaseCollector(ABC):
    """Abstract base class for all collectors."""

    def __init__(self, config: Optional[Dict] = None):
        """Initialize the collector.

        Args:
            config: Optional configuration dictionary
        """
        self.config = config or {}

    @abstractmethod
    def collect(self) -> Any:
        """Collect data from the source."""

    @abstractmethod
    def validate_config(self) -> bool:
        """Validate the collector configuration.

        Returns:
            True if the collector can run
        """
