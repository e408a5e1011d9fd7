"""
chat-graph - Load exported chat-history archives into a Neo4j graph.

This package provides functionality to:
- Parse markup (HTML) and line-oriented transcript exports into threads
- Resolve participants and infer message direction
- Ingest threads into Neo4j in batched, idempotent participant upserts
"""

__version__ = "0.1.0"

from chatgraph.config import get_config, Config

__all__ = [
    "get_config",
    "Config",
]
