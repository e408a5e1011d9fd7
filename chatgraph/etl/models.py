"""
Conversation data model shared by both parsers and the ingestion pipeline.

Ownership is hierarchical: a Thread owns its Messages, and a Message's
sender and recipients are entries of the Thread's participant set.

Design Decisions:
    1. Participant identity is the identifier alone; the display name is
       informational and excluded from equality and hashing
    2. All timestamps are timezone-aware UTC; unparseable ones become EPOCH
    3. Thread.message_count is derived from the message tuple, never stored
    4. Everything is frozen once a parser hands a Thread over
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Tuple

# Sentinel identifier for a participant whose contact identifier is missing
UNKNOWN_IDENTIFIER = "Unknown"

# Display name that marks the archive owner in exported documents
SELF_MARKER = "Me"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Participant:
    """A uniquely identified person or contact in a conversation."""

    identifier: str
    name: str = field(default="", compare=False)

    def to_dict(self) -> Dict[str, str]:
        return {"identifier": self.identifier, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Participant":
        return cls(identifier=data["identifier"], name=data.get("name", ""))


# Default "self" identity when a document never names the archive owner
DEFAULT_SELF = Participant(UNKNOWN_IDENTIFIER, SELF_MARKER)


@dataclass(frozen=True)
class Message:
    """
    A single message within a thread.

    Raises:
        ValueError: If recipients is empty, contains duplicates, or
            contains the sender.
    """

    sender: Participant
    recipients: Tuple[Participant, ...]
    timestamp: datetime = EPOCH
    content: str = ""

    def __post_init__(self) -> None:
        recipients = tuple(self.recipients)
        object.__setattr__(self, "recipients", recipients)

        if not recipients:
            raise ValueError("Message must have at least one recipient")
        if len(set(recipients)) != len(recipients):
            raise ValueError("Message recipients must be unique")
        if self.sender in recipients:
            raise ValueError(f"Sender {self.sender.identifier!r} cannot also be a recipient")
        if self.timestamp.tzinfo is None:
            raise ValueError("Message timestamp must be timezone-aware")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender.to_dict(),
            "recipients": [p.to_dict() for p in self.recipients],
            "timestamp": self.timestamp.isoformat(),
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            sender=Participant.from_dict(data["sender"]),
            recipients=tuple(Participant.from_dict(p) for p in data["recipients"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            content=data.get("content", ""),
        )


def _dedupe_participants(participants: Iterable[Participant]) -> Tuple[Participant, ...]:
    """Deduplicate by identifier, keeping first-seen order and last-seen name."""
    by_identifier: Dict[str, Participant] = {}
    for participant in participants:
        by_identifier[participant.identifier] = participant
    return tuple(by_identifier.values())


@dataclass(frozen=True)
class Thread:
    """
    One parsed conversation document.

    Use Thread.build() to construct one from loose parts; it enforces
    that every participant referenced by a message is in the participant set.
    """

    messages: Tuple[Message, ...] = ()
    participants: Tuple[Participant, ...] = ()
    labels: Tuple[str, ...] = ()

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @classmethod
    def build(
        cls,
        messages: Iterable[Message],
        participants: Iterable[Participant] = (),
        labels: Iterable[str] = (),
    ) -> "Thread":
        """
        Build a Thread, closing the participant set over all messages.

        Args:
            messages: Messages in document order.
            participants: Known participants; deduplicated by identifier.
            labels: Label strings; deduplicated, order kept.

        Returns:
            A frozen Thread.
        """
        messages = tuple(messages)

        referenced: List[Participant] = list(participants)
        known = {p.identifier for p in referenced}
        for message in messages:
            for participant in (message.sender, *message.recipients):
                if participant.identifier not in known:
                    known.add(participant.identifier)
                    referenced.append(participant)

        return cls(
            messages=messages,
            participants=_dedupe_participants(referenced),
            labels=tuple(dict.fromkeys(labels)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "participants": [p.to_dict() for p in self.participants],
            "labels": list(self.labels),
            "message_count": self.message_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Thread":
        """Rebuild a Thread from to_dict() output. message_count is recomputed."""
        return cls.build(
            messages=(Message.from_dict(m) for m in data.get("messages", [])),
            participants=(Participant.from_dict(p) for p in data.get("participants", [])),
            labels=data.get("labels", []),
        )
