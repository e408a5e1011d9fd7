"""
Configuration module for chat-graph.

Handles the Neo4j connection settings and the ingestion tuning knobs.

Environment Variables:
    NEO4J_URI: Bolt endpoint of the graph store (default: bolt://localhost:7687).
    NEO4J_USER: Username (default: neo4j).
    NEO4J_PASSWORD: Password. Required for ingestion.
    NEO4J_DATABASE: Target database name (default: neo4j).
    CHAT_GRAPH_BATCH_SIZE: Threads per flushed batch (default: 100).
    CHAT_GRAPH_QUEUE_CAPACITY: Parsed threads buffered between parser and
        writer before the parser blocks (default: 32).
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment, falling back to default."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


class Config:
    """Configuration class for chat-graph."""

    DEFAULT_NEO4J_URI = "bolt://localhost:7687"
    DEFAULT_NEO4J_USER = "neo4j"
    DEFAULT_NEO4J_DATABASE = "neo4j"

    DEFAULT_BATCH_SIZE = 100
    DEFAULT_QUEUE_CAPACITY = 32

    def __init__(
        self,
        neo4j_uri: Optional[str] = None,
        neo4j_user: Optional[str] = None,
        neo4j_password: Optional[str] = None,
        neo4j_database: Optional[str] = None,
        batch_size: Optional[int] = None,
        queue_capacity: Optional[int] = None,
    ):
        """
        Initialize configuration.

        Explicit arguments win over environment variables, which win over
        the class defaults.

        Args:
            neo4j_uri: Bolt URI of the Neo4j server.
            neo4j_user: Neo4j username.
            neo4j_password: Neo4j password.
            neo4j_database: Neo4j database name.
            batch_size: Maximum number of threads per flushed batch.
            queue_capacity: Capacity of the parser-to-writer channel.

        Raises:
            ValueError: If batch_size or queue_capacity is not positive.
        """
        self._neo4j_uri = neo4j_uri or os.getenv("NEO4J_URI", self.DEFAULT_NEO4J_URI)
        self._neo4j_user = neo4j_user or os.getenv("NEO4J_USER", self.DEFAULT_NEO4J_USER)
        self._neo4j_password = neo4j_password or os.getenv("NEO4J_PASSWORD")
        self._neo4j_database = neo4j_database or os.getenv(
            "NEO4J_DATABASE", self.DEFAULT_NEO4J_DATABASE
        )

        if batch_size is None:
            batch_size = _env_int("CHAT_GRAPH_BATCH_SIZE", self.DEFAULT_BATCH_SIZE)
        if queue_capacity is None:
            queue_capacity = _env_int("CHAT_GRAPH_QUEUE_CAPACITY", self.DEFAULT_QUEUE_CAPACITY)

        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if queue_capacity < 1:
            raise ValueError(f"queue_capacity must be positive, got {queue_capacity}")

        self._batch_size = batch_size
        self._queue_capacity = queue_capacity

    @property
    def neo4j_uri(self) -> str:
        """Get the Neo4j Bolt URI."""
        return self._neo4j_uri

    @property
    def neo4j_user(self) -> str:
        """Get the Neo4j username."""
        return self._neo4j_user

    @property
    def neo4j_password(self) -> Optional[str]:
        """Get the Neo4j password, if configured."""
        return self._neo4j_password

    @property
    def neo4j_database(self) -> str:
        """Get the Neo4j database name."""
        return self._neo4j_database

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def queue_capacity(self) -> int:
        return self._queue_capacity

    def validate(self) -> bool:
        """
        Validate that the store credentials are complete.

        Returns:
            True if a URI, user and password are all configured.
        """
        return bool(self._neo4j_uri and self._neo4j_user and self._neo4j_password)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get or create the global configuration instance.

    Returns:
        Config instance.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def set_config(config: Optional[Config]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Config instance to use, or None to reset to the environment.
    """
    global _config
    _config = config
