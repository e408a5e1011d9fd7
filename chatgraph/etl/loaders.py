"""
Graph store loaders.

A batch of Threads is written as two bulk operations, in this order:

    1. upsert participants  MERGE by identifier, overwrite name
    2. create messages      MATCH sender and recipients, CREATE the message
                            node with SENT and TO relationships

Operation 2 looks participants up by identifier, so it must run after
operation 1 for the same batch. Participants are idempotent across runs;
messages are not (a re-run creates duplicate Message nodes).

Design Decisions:
    1. Payloads are plain lists of dicts so any GraphStore can consume them
    2. Participants are not deduplicated across threads before sending;
       the MERGE makes repeats harmless
    3. Every driver failure is re-raised as StoreError, never retried
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence
import logging

from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from chatgraph.etl.models import Thread

logger = logging.getLogger(__name__)

ParticipantRecord = Dict[str, str]
MessageRecord = Dict[str, Any]

CONSTRAINT_QUERIES = (
    "CREATE CONSTRAINT participant_identifier IF NOT EXISTS "
    "FOR (p:Participant) REQUIRE p.identifier IS UNIQUE",
)

UPSERT_PARTICIPANTS_QUERY = """
UNWIND $participants AS participant
MERGE (p:Participant {identifier: participant.identifier})
SET p.name = participant.name
"""

CREATE_MESSAGES_QUERY = """
UNWIND $messages AS message
MATCH (sender:Participant {identifier: message.sender})
CREATE (m:Message {content: message.content, timestamp: datetime(message.timestamp)})
CREATE (sender)-[:SENT]->(m)
WITH m, message
UNWIND message.recipients AS recipient_identifier
MATCH (recipient:Participant {identifier: recipient_identifier})
CREATE (m)-[:TO]->(recipient)
"""


class StoreError(Exception):
    """A graph store connection or bulk operation failed."""


def participant_records(batch: Sequence[Thread]) -> List[ParticipantRecord]:
    """
    Build the upsert payload: one record per participant per thread.

    Args:
        batch: Threads of one batch.

    Returns:
        [{"identifier": ..., "name": ...}, ...]
    """
    return [
        {"identifier": participant.identifier, "name": participant.name}
        for thread in batch
        for participant in thread.participants
    ]


def message_records(batch: Sequence[Thread]) -> List[MessageRecord]:
    """
    Build the message payload: one record per message, in arrival order.

    Args:
        batch: Threads of one batch.

    Returns:
        [{"sender", "recipients", "content", "timestamp"}, ...] with the
        timestamp as ISO-8601 including its offset.
    """
    return [
        {
            "sender": message.sender.identifier,
            "recipients": [recipient.identifier for recipient in message.recipients],
            "content": message.content,
            "timestamp": message.timestamp.isoformat(),
        }
        for thread in batch
        for message in thread.messages
    ]


class GraphStore(Protocol):
    """The two bulk operations the ingestion pipeline needs."""

    def upsert_participants(self, records: List[ParticipantRecord]) -> None:
        ...

    def create_messages(self, records: List[MessageRecord]) -> None:
        ...

    def close(self) -> None:
        ...


class Neo4jGraphStore:
    """
    GraphStore backed by one Neo4j driver.

    The store is not thread-safe by contract: exactly one consumer owns it.
    """

    def __init__(
        self,
        uri: str,
        user: str,
        password: str,
        database: Optional[str] = None,
        ensure_schema: bool = True,
    ):
        """
        Connect and verify connectivity.

        Args:
            uri: Bolt URI.
            user: Username.
            password: Password.
            database: Target database (server default when None).
            ensure_schema: Create the participant uniqueness constraint.

        Raises:
            StoreError: If the connection cannot be established.
        """
        self.uri = uri
        self.database = database
        self._driver = None
        try:
            self._driver = GraphDatabase.driver(uri, auth=(user, password))
            self._driver.verify_connectivity()
        except (Neo4jError, DriverError, OSError) as e:
            logger.error(f"Failed to connect to Neo4j at {uri}: {e}")
            self.close()
            raise StoreError(f"Failed to connect to Neo4j at {uri}: {e}") from e

        logger.info(f"Connected to Neo4j: {uri}")

        if ensure_schema:
            for query in CONSTRAINT_QUERIES:
                self._run(query, {}, "ensure constraints")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _run(self, query: str, parameters: Dict[str, Any], operation: str) -> None:
        if self._driver is None:
            raise StoreError(f"Neo4j {operation} failed: store is closed")
        try:
            self._driver.execute_query(query, parameters_=parameters, database_=self.database)
        except (Neo4jError, DriverError, OSError) as e:
            logger.error(f"Neo4j {operation} failed: {e}")
            raise StoreError(f"Neo4j {operation} failed: {e}") from e

    def upsert_participants(self, records: List[ParticipantRecord]) -> None:
        """Merge-or-create each participant by identifier and set its name."""
        self._run(UPSERT_PARTICIPANTS_QUERY, {"participants": records}, "upsert participants")

    def create_messages(self, records: List[MessageRecord]) -> None:
        """Create message nodes linked to their sender and recipients."""
        self._run(CREATE_MESSAGES_QUERY, {"messages": records}, "create messages")

    def close(self) -> None:
        """Close the driver."""
        if self._driver is not None:
            self._driver.close()
            self._driver = None
            logger.info("Neo4j connection closed")
