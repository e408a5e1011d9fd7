"""
Structured-markup thread parser.

Parses one HTML conversation export (the hCard-style markup used by
Google Voice "Text" and "Group Conversation" exports) into a Thread.

Document shape:
    <div class="tags">Labels: Inbox, Starred</div>
    <div class="message">
      <abbr class="dt" title="2021-01-01T13:00:00.000-05:00">Jan 1</abbr>
      <cite class="sender vcard">
        <a class="tel" href="tel:+14155551234"><span class="fn">Alice</span></a>
      </cite>
      <q>Hello</q>
    </div>

Field anomalies are defaulted (Unknown identifier, empty name, EPOCH
timestamp, empty content); only a message with no sender block at all is
fatal, because its direction cannot be inferred.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union
import logging

from bs4 import BeautifulSoup, Tag

from chatgraph.etl.identity import infer_recipients, resolve_participants
from chatgraph.etl.labels import extract_document_labels
from chatgraph.etl.models import EPOCH, UNKNOWN_IDENTIFIER, Message, Participant, Thread
from chatgraph.etl.normalizers import normalize_identifier
from chatgraph.etl.parsers import PathLike, ThreadParseError, read_document

logger = logging.getLogger(__name__)

MESSAGE_SELECTOR = ".message"
DATETIME_SELECTOR = ".dt"
SENDER_SELECTOR = ".sender"
PHONE_SELECTOR = "a.tel"
NAME_SELECTOR = "span.fn, abbr.fn"
CONTENT_SELECTOR = "q"

# Millisecond precision with a named offset, e.g. 2021-01-01T13:00:00.000-05:00
DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"


def parse_timestamp(value: Optional[str]) -> datetime:
    """
    Parse an export timestamp to UTC, defaulting to EPOCH.

    Args:
        value: The title attribute of a datetime element.

    Returns:
        Timezone-aware UTC datetime; EPOCH when missing or unparseable.
    """
    if not value:
        return EPOCH
    try:
        return datetime.strptime(value.strip(), DATETIME_FORMAT).astimezone(timezone.utc)
    except (ValueError, OverflowError):
        logger.debug(f"Unparseable timestamp {value!r}, defaulting to epoch")
        return EPOCH


def read_sender(sender_element: Tag) -> Participant:
    """Build a Participant from a sender block, applying field defaults."""
    identifier = UNKNOWN_IDENTIFIER
    phone_element = sender_element.select_one(PHONE_SELECTOR)
    if phone_element is not None:
        href = phone_element.get("href") or ""
        if href.startswith("tel:"):
            identifier = normalize_identifier(href)

    name = ""
    name_element = sender_element.select_one(NAME_SELECTOR)
    if name_element is not None:
        name = name_element.get_text()

    return Participant(identifier=identifier, name=name)


class MarkupThreadParser:
    """Parser for structured-markup (HTML) exports."""

    name = "markup"

    def parse(self, document: Union[str, bytes], path: Optional[PathLike] = None) -> Thread:
        """
        Parse one markup document into a Thread.

        Args:
            document: Full document text.
            path: Source path, used only for error context.

        Returns:
            Thread, with zero messages if no message blocks exist.

        Raises:
            ThreadParseError: If a message block has no sender block.
        """
        soup = BeautifulSoup(document, "html.parser")
        message_elements = soup.select(MESSAGE_SELECTOR)

        # First pass: every sender, before any recipients are computed
        senders: List[Participant] = []
        for index, element in enumerate(message_elements):
            sender_element = element.select_one(SENDER_SELECTOR)
            if sender_element is None:
                raise ThreadParseError(f"Message {index} has no sender block", path)
            senders.append(read_sender(sender_element))

        resolved = resolve_participants(senders)

        # Second pass: build messages against the settled participant set
        messages: List[Message] = []
        for index, (element, raw_sender) in enumerate(zip(message_elements, senders)):
            sender = resolved.lookup(raw_sender.identifier)
            recipients = infer_recipients(
                sender, resolved.participants, resolved.self_participant
            )
            if not recipients:
                logger.warning(
                    f"Dropping message {index}: self is the only participant"
                    + (f" in {path}" if path else "")
                )
                continue

            dt_element = element.select_one(DATETIME_SELECTOR)
            timestamp = parse_timestamp(dt_element.get("title") if dt_element else None)

            content_element = element.select_one(CONTENT_SELECTOR)
            content = content_element.get_text() if content_element is not None else ""

            messages.append(
                Message(
                    sender=sender,
                    recipients=recipients,
                    timestamp=timestamp,
                    content=content,
                )
            )

        return Thread.build(
            messages=messages,
            participants=resolved.participants,
            labels=extract_document_labels(soup),
        )

    def parse_file(self, path: PathLike) -> Thread:
        """
        Read and parse a markup file.

        Raises:
            ThreadParseError: If the file is unreadable or structurally invalid.
        """
        thread = self.parse(read_document(path), path=path)
        logger.debug(f"Parsed {Path(path).name}: {thread.message_count} messages")
        return thread
