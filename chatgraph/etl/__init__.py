"""
ETL (Extract, Transform, Load) module for chat-graph.

Turns exported chat-history documents into Threads and loads them into a
Neo4j graph.

Architecture Overview:
    documents                  parsers                    graph store
    ├── *.html (markup)   →    MarkupThreadParser    ┐
    └── *.txt  (log)      →    TranscriptThreadParser┴→ Thread
                                                          │ ThreadChannel
                                                          ▼
                                IngestionPipeline → (:Participant)-[:SENT]->
                                                    (:Message)-[:TO]->(:Participant)

Key Design Decisions:
    1. One shared data model (Participant, Message, Thread) for both formats
    2. Identity resolution runs over a whole thread before directions are inferred
    3. Parsing and writing are decoupled by a bounded channel
    4. Each batch is two ordered bulk operations: participants, then messages
"""

from chatgraph.etl.models import (
    DEFAULT_SELF,
    EPOCH,
    SELF_MARKER,
    UNKNOWN_IDENTIFIER,
    Message,
    Participant,
    Thread,
)
from chatgraph.etl.normalizers import normalize_identifier
from chatgraph.etl.labels import extract_labels
from chatgraph.etl.identity import ResolvedParticipants, infer_recipients, resolve_participants
from chatgraph.etl.parsers import ThreadParseError, ThreadParser
from chatgraph.etl.markup_parser import MarkupThreadParser
from chatgraph.etl.transcript_parser import TranscriptThreadParser
from chatgraph.etl.discovery import (
    InputResolutionError,
    expand_input,
    iter_documents,
    parser_for_path,
)
from chatgraph.etl.channel import ChannelClosedError, ThreadChannel
from chatgraph.etl.loaders import (
    GraphStore,
    Neo4jGraphStore,
    StoreError,
    message_records,
    participant_records,
)
from chatgraph.etl.pipeline import IngestionPipeline, IngestResult, run_ingest

__all__ = [
    # Model
    "Participant",
    "Message",
    "Thread",
    "DEFAULT_SELF",
    "EPOCH",
    "SELF_MARKER",
    "UNKNOWN_IDENTIFIER",
    # Extraction
    "normalize_identifier",
    "extract_labels",
    "resolve_participants",
    "infer_recipients",
    "ResolvedParticipants",
    # Parsers
    "ThreadParser",
    "ThreadParseError",
    "MarkupThreadParser",
    "TranscriptThreadParser",
    # Discovery
    "InputResolutionError",
    "expand_input",
    "iter_documents",
    "parser_for_path",
    # Loading
    "ThreadChannel",
    "ChannelClosedError",
    "GraphStore",
    "Neo4jGraphStore",
    "StoreError",
    "participant_records",
    "message_records",
    "IngestionPipeline",
    "IngestResult",
    "run_ingest",
]
