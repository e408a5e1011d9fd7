"""
Participant identity resolution and message direction inference.

Resolution is a two-pass process. The first pass sees every sender of a
thread and settles the participant set and the "self" participant; only
then can recipients be computed, because a later message may be the one
that reveals who "self" is.

Resolution Strategy:
    1. Participants are keyed by normalized identifier; the last-seen
       display name wins
    2. A sender whose display name is exactly the self-marker ("Me") is self
    3. Without a self-marker, self is whoever holds the Unknown identifier,
       or a synthesized Participant("Unknown", "Me") added to the set

Direction Policy:
    - sender is self: recipients are every other participant
    - sender is anyone else: the only recipient is self
    True group addressing (a message sent to a subset) is not reconstructed.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple
import logging

from chatgraph.etl.models import DEFAULT_SELF, SELF_MARKER, Participant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedParticipants:
    """Outcome of the first pass over a thread's senders."""

    participants: Tuple[Participant, ...]
    self_participant: Participant
    self_synthesized: bool = False

    def lookup(self, identifier: str) -> Participant:
        """
        Return the canonical participant for an identifier.

        Raises:
            KeyError: If the identifier was not seen during resolution.
        """
        for participant in self.participants:
            if participant.identifier == identifier:
                return participant
        raise KeyError(identifier)


def resolve_participants(senders: Iterable[Participant]) -> ResolvedParticipants:
    """
    Resolve the deduplicated participant set and the self participant.

    Args:
        senders: One Participant per message, in document order, built from
            each message's sender block with field defaults already applied.

    Returns:
        ResolvedParticipants. When senders is empty the set is empty and
        self is the default sentinel (not added to the set).
    """
    by_identifier: Dict[str, Participant] = {}
    self_identifier: Optional[str] = None

    for sender in senders:
        by_identifier[sender.identifier] = sender
        if sender.name == SELF_MARKER:
            self_identifier = sender.identifier

    if not by_identifier:
        return ResolvedParticipants((), DEFAULT_SELF, self_synthesized=True)

    synthesized = False
    if self_identifier is None:
        self_identifier = DEFAULT_SELF.identifier
        if self_identifier not in by_identifier:
            by_identifier[self_identifier] = DEFAULT_SELF
            synthesized = True
            logger.debug("No self-marker found; using default self participant")

    return ResolvedParticipants(
        participants=tuple(by_identifier.values()),
        self_participant=by_identifier[self_identifier],
        self_synthesized=synthesized,
    )


def infer_recipients(
    sender: Participant,
    participants: Iterable[Participant],
    self_participant: Participant,
) -> Tuple[Participant, ...]:
    """
    Compute the recipients of a message from its sender.

    Args:
        sender: Resolved sender of the message.
        participants: The thread's full participant set.
        self_participant: The thread's resolved self participant.

    Returns:
        Every participant except self when self sent the message,
        otherwise just (self,). May be empty if self is alone in the thread.
    """
    if sender == self_participant:
        return tuple(p for p in participants if p != self_participant)
    return (self_participant,)
