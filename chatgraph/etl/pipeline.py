"""
Ingestion pipeline orchestration.

Parsing and writing run concurrently, joined by a bounded ThreadChannel:

    producer (calling thread)            consumer (writer thread)
    ─────────────────────────            ────────────────────────
    for each document:                   for each thread received:
        parse -> Thread                      add to batch
        channel.send(thread)  ──────────►    batch full -> flush
    channel.close()                      remainder -> final flush

Flush semantics:
    - A batch is flushed as soon as it holds batch_size threads
    - A non-empty remainder is flushed once when the stream closes
    - Each flush is two ordered bulk operations: participants, then messages
    - The pipeline keeps no participant/message state between batches

Failure semantics:
    - A store error stops the consumer immediately; the batch in flight is
      not cleared and nothing is retried. The channel is aborted, the
      producer stops, and the store error is raised to the caller.
    - A parse error stops the producer; the channel is aborted, so queued
      threads and the partial batch are not written, and the parse error
      is raised to the caller. If the store had already failed, the store
      error is raised instead, chained to the parse error.
    - Batches flushed before the failure stay committed.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging
import threading

from chatgraph.etl.channel import ChannelClosedError, ThreadChannel
from chatgraph.etl.discovery import parser_for_path
from chatgraph.etl.loaders import GraphStore, message_records, participant_records
from chatgraph.etl.models import Thread
from chatgraph.etl.parsers import ThreadParser

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Result of an ingestion run."""

    threads_received: int = 0
    batches_flushed: int = 0
    participants_sent: int = 0
    messages_sent: int = 0
    documents_parsed: int = 0
    duration_seconds: float = 0.0

    def __str__(self) -> str:
        return (
            f"Ingested {self.threads_received} threads in {self.batches_flushed} batches\n"
            f"  Documents parsed: {self.documents_parsed}\n"
            f"  Participants sent: {self.participants_sent}\n"
            f"  Messages sent: {self.messages_sent}\n"
            f"  Duration: {self.duration_seconds:.2f}s"
        )


class IngestionPipeline:
    """
    Accumulates Threads into fixed-size batches and flushes them to a store.

    Not thread-safe; run() is meant to be the only user of the store.
    """

    def __init__(self, store: GraphStore, batch_size: int):
        """
        Args:
            store: Graph store receiving the bulk operations.
            batch_size: Maximum number of threads per batch.

        Raises:
            ValueError: If batch_size is not positive.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.store = store
        self.batch_size = batch_size
        self.result = IngestResult()

    def flush(self, batch: List[Thread]) -> None:
        """
        Write one batch: upsert participants, then create messages.

        Raises:
            StoreError: Propagated unchanged from the store.
        """
        participants = participant_records(batch)
        messages = message_records(batch)

        logger.debug(f"Upserting {len(participants)} participants")
        self.store.upsert_participants(participants)

        logger.debug(f"Creating {len(messages)} messages")
        self.store.create_messages(messages)

        self.result.batches_flushed += 1
        self.result.participants_sent += len(participants)
        self.result.messages_sent += len(messages)

    def run(self, threads: Iterable[Thread]) -> IngestResult:
        """
        Consume threads until the stream ends, flushing full batches.

        Args:
            threads: Stream of threads, usually a ThreadChannel.

        Returns:
            IngestResult with counts for this pipeline.
        """
        batch: List[Thread] = []

        for thread in threads:
            batch.append(thread)
            self.result.threads_received += 1

            if len(batch) >= self.batch_size:
                logger.info(f"Sending batch of {len(batch)} threads to the graph store")
                self.flush(batch)
                batch.clear()
                logger.info(
                    f"Batch sent. Total threads processed: {self.result.threads_received}"
                )

        if batch:
            logger.info(f"Sending final batch of {len(batch)} threads to the graph store")
            self.flush(batch)
            batch.clear()

        logger.info(f"Ingestion completed. Total threads processed: {self.result.threads_received}")
        return self.result


def run_ingest(
    documents: Iterable[Path],
    store: GraphStore,
    batch_size: int,
    queue_capacity: int,
    parser: Optional[ThreadParser] = None,
    on_parsed: Optional[Callable[[Path, Thread], None]] = None,
) -> IngestResult:
    """
    Parse documents and ingest them through a bounded channel.

    Args:
        documents: Paths to parse, in order.
        store: Graph store, used only by the writer thread.
        batch_size: Threads per flushed batch.
        queue_capacity: Channel capacity between parser and writer.
        parser: Parser for every document; chosen per path when None.
        on_parsed: Called in the producer after each document is parsed.

    Returns:
        IngestResult for the whole run.

    Raises:
        ThreadParseError: A document could not be parsed.
        StoreError: A bulk operation or the connection failed.
    """
    start_time = datetime.now()
    channel = ThreadChannel(queue_capacity)
    pipeline = IngestionPipeline(store, batch_size)
    outcome: Dict[str, Any] = {}

    def consume() -> None:
        try:
            outcome["result"] = pipeline.run(channel)
        except Exception as e:
            outcome["error"] = e
            channel.abort(e)

    consumer = threading.Thread(target=consume, name="chat-graph-writer", daemon=True)
    consumer.start()

    documents_parsed = 0
    try:
        for path in documents:
            thread = (parser or parser_for_path(path)).parse_file(path)
            documents_parsed += 1
            if on_parsed is not None:
                on_parsed(path, thread)
            channel.send(thread)
    except ChannelClosedError:
        logger.error("Writer stopped; no further documents will be parsed")
    except BaseException as e:
        logger.error(f"Parsing aborted the ingestion run: {e}")
        channel.abort(e)
        consumer.join()
        # A store failure that stopped the writer first is the root cause
        writer_error = outcome.get("error")
        if writer_error is not None and not isinstance(writer_error, ChannelClosedError):
            raise writer_error from e
        raise
    else:
        channel.close()

    consumer.join()

    if "error" in outcome:
        raise outcome["error"]

    result: IngestResult = outcome["result"]
    result.documents_parsed = documents_parsed
    result.duration_seconds = (datetime.now() - start_time).total_seconds()
    logger.info(f"Ingestion run finished in {result.duration_seconds:.2f}s")
    return result
