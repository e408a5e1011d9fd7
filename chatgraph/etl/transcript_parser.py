"""
Line-oriented transcript parser.

Parses a flat-text chat log, one message per line with continuation lines:

    Labels: Family, Archived
    Jan 1, 2021, 1:00:00 PM EST: Alice: Hello
    world
    [deleted]
    Jan 1, 2021, 1:05:00 PM EST: Bob: Hi Alice

The parser is a fold over the lines. The state is the labels seen so far
plus an optional draft message (None means no message is in progress):

    step(state, line) -> (state, emitted message or None)
    finish(state)     -> final message or None

Line kinds:
    label line        replaces the label set
    deleted line      discarded
    timestamp line    flushes the draft, starts a new one from
                      "<timestamp>: <sender>: <content>"
    continuation      appended to the draft as "\\n" + line, or dropped

Only an unreadable file is fatal. Malformed lines are dropped or treated
as continuations.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Tuple, Union
import logging
import re

from chatgraph.etl.labels import extract_labels
from chatgraph.etl.models import DEFAULT_SELF, Message, Participant, Thread
from chatgraph.etl.parsers import PathLike, read_document

logger = logging.getLogger(__name__)

DELIMITER = ": "
LABEL_PREFIX = "labels:"
DELETED_PREFIX = "[deleted]"

# This format carries no membership data, so every message goes to one placeholder
RECIPIENT_PLACEHOLDER = DEFAULT_SELF

# Transcript senders are display strings; they get their own identifier
# namespace so they never collide with phone, email or placeholder keys
SENDER_PREFIX = "name:"

ZONE_OFFSETS = {
    "UTC": 0,
    "GMT": 0,
    "EST": -5,
    "EDT": -4,
    "CST": -6,
    "CDT": -5,
    "MST": -7,
    "MDT": -6,
    "PST": -8,
    "PDT": -7,
    "BST": 1,
    "CET": 1,
    "CEST": 2,
}

_US_LONG = r"[A-Z][a-z]{2} \d{1,2}, \d{4},? \d{1,2}:\d{2}(?::\d{2})? [AP]M"
_US_LONG_FORMATS = (
    "%b %d, %Y, %I:%M:%S %p",
    "%b %d, %Y %I:%M:%S %p",
    "%b %d, %Y, %I:%M %p",
    "%b %d, %Y %I:%M %p",
)
_ISO = r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:\.\d{1,6})?"
_ISO_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S.%f",
)

# A zone token a bare pattern tolerates but ignores
_BARE_ZONE = r"(?: [A-Z]{2,5})?"


class ZoneKind(Enum):
    ABBREVIATION = "abbreviation"
    OFFSET = "offset"
    LOCAL = "local"


@dataclass(frozen=True)
class TimestampPattern:
    """
    One recognized timestamp layout.

    The regex must match the whole candidate. A bare pattern also accepts
    one trailing zone token, which it ignores, so patterns carrying a zone
    must be tried first. Any other trailing text means the line is not a
    timestamp line.
    """

    name: str
    regex: Pattern
    formats: Tuple[str, ...]
    zone: ZoneKind


# Tried in order; first successful parse wins
TIMESTAMP_PATTERNS: Tuple[TimestampPattern, ...] = (
    TimestampPattern(
        "us-long-zone",
        re.compile(rf"(?P<stamp>{_US_LONG}) (?P<zone>[A-Z]{{2,5}})"),
        _US_LONG_FORMATS,
        ZoneKind.ABBREVIATION,
    ),
    TimestampPattern(
        "iso-offset",
        re.compile(rf"(?P<stamp>{_ISO}) ?(?P<zone>Z|[+-]\d{{2}}:?\d{{2}})"),
        _ISO_FORMATS,
        ZoneKind.OFFSET,
    ),
    TimestampPattern(
        "us-long",
        re.compile(rf"(?P<stamp>{_US_LONG}){_BARE_ZONE}"),
        _US_LONG_FORMATS,
        ZoneKind.LOCAL,
    ),
    TimestampPattern(
        "iso-local",
        re.compile(rf"(?P<stamp>{_ISO}){_BARE_ZONE}"),
        _ISO_FORMATS,
        ZoneKind.LOCAL,
    ),
)


def _parse_offset(value: str) -> Optional[tzinfo]:
    if value == "Z":
        return timezone.utc
    sign = -1 if value[0] == "-" else 1
    digits = value[1:].replace(":", "")
    hours, minutes = int(digits[:2]), int(digits[2:])
    if hours > 23 or minutes > 59:
        return None
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def _resolve_zone(pattern: TimestampPattern, zone: Optional[str], local_tz: tzinfo) -> Optional[tzinfo]:
    if pattern.zone is ZoneKind.LOCAL:
        return local_tz
    if pattern.zone is ZoneKind.OFFSET:
        return _parse_offset(zone or "")
    hours = ZONE_OFFSETS.get(zone or "")
    if hours is None:
        return None
    return timezone(timedelta(hours=hours))


def parse_timestamp(
    candidate: str,
    patterns: Tuple[TimestampPattern, ...] = TIMESTAMP_PATTERNS,
    local_tz: tzinfo = timezone.utc,
) -> Optional[datetime]:
    """
    Parse a timestamp prefix against the known patterns, in priority order.

    Args:
        candidate: Text before the first delimiter of a line.
        patterns: Ordered patterns to try.
        local_tz: Zone assumed for patterns that carry none.

    Returns:
        Timezone-aware UTC datetime, or None if no pattern parses.
    """
    candidate = candidate.strip()
    for pattern in patterns:
        match = pattern.regex.fullmatch(candidate)
        if match is None:
            continue

        tz = _resolve_zone(pattern, match.groupdict().get("zone"), local_tz)
        if tz is None:
            logger.debug(f"Pattern {pattern.name} matched {candidate!r} with unknown zone")
            continue

        stamp = match.group("stamp")
        for fmt in pattern.formats:
            try:
                parsed = datetime.strptime(stamp, fmt)
            except ValueError:
                continue
            try:
                return parsed.replace(tzinfo=tz).astimezone(timezone.utc)
            except OverflowError:
                logger.debug(f"Timestamp {stamp!r} is out of range in UTC")
                return None

    return None


def transcript_participant(display: str) -> Participant:
    """Participant for a transcript sender, keyed in the name namespace."""
    return Participant(f"{SENDER_PREFIX}{display}", display)


class LineKind(Enum):
    LABEL = "label"
    DELETED = "deleted"
    TIMESTAMP = "timestamp"
    CONTINUATION = "continuation"


@dataclass(frozen=True)
class Draft:
    """A message whose content may still grow through continuation lines."""

    sender: str
    timestamp: datetime
    content: str

    def to_message(self) -> Message:
        return Message(
            sender=transcript_participant(self.sender),
            recipients=(RECIPIENT_PLACEHOLDER,),
            timestamp=self.timestamp,
            content=self.content.rstrip("\n"),
        )


@dataclass(frozen=True)
class ParseState:
    """Fold state: current labels and the in-progress draft, if any."""

    draft: Optional[Draft] = None
    labels: Tuple[str, ...] = ()


def classify_line(
    line: str,
    local_tz: tzinfo = timezone.utc,
) -> Tuple[LineKind, Optional[datetime]]:
    """
    Classify one line.

    Returns:
        (kind, timestamp); timestamp is set only for TIMESTAMP lines.
    """
    lowered = line.lstrip().lower()
    if lowered.startswith(LABEL_PREFIX):
        return LineKind.LABEL, None
    if lowered.startswith(DELETED_PREFIX):
        return LineKind.DELETED, None

    prefix, sep, _ = line.partition(DELIMITER)
    if sep:
        timestamp = parse_timestamp(prefix, local_tz=local_tz)
        if timestamp is not None:
            return LineKind.TIMESTAMP, timestamp

    return LineKind.CONTINUATION, None


def step(
    state: ParseState,
    line: str,
    local_tz: tzinfo = timezone.utc,
) -> Tuple[ParseState, Optional[Message]]:
    """
    Advance the fold by one line.

    Args:
        state: Current fold state.
        line: One physical line, without its line terminator.
        local_tz: Zone assumed for timestamps that carry none.

    Returns:
        (new state, message flushed by this line or None).
    """
    kind, timestamp = classify_line(line, local_tz)

    if kind is LineKind.LABEL:
        return replace(state, labels=extract_labels(line)), None

    if kind is LineKind.DELETED:
        return state, None

    if kind is LineKind.TIMESTAMP:
        emitted = state.draft.to_message() if state.draft else None
        parts = line.split(DELIMITER, 2)
        if len(parts) != 3:
            logger.debug(f"Dropping malformed message line: {line!r}")
            return replace(state, draft=None), emitted
        _, sender, content = parts
        sender = sender.strip()
        if not sender:
            logger.warning(f"Dropping message line with empty sender: {line!r}")
            return replace(state, draft=None), emitted
        draft = Draft(sender=sender, timestamp=timestamp, content=content)
        return replace(state, draft=draft), emitted

    if state.draft is None:
        logger.debug(f"Dropping continuation line with no message: {line!r}")
        return state, None

    draft = replace(state.draft, content=f"{state.draft.content}\n{line}")
    return replace(state, draft=draft), None


def finish(state: ParseState) -> Optional[Message]:
    """Flush the in-progress draft at end of input."""
    return state.draft.to_message() if state.draft else None


class TranscriptThreadParser:
    """Parser for line-oriented transcript exports."""

    name = "transcript"

    def __init__(self, local_tz: tzinfo = timezone.utc):
        """
        Args:
            local_tz: Zone assumed for timestamps that carry no zone.
        """
        self.local_tz = local_tz

    def parse(self, document: Union[str, Iterable[str]]) -> Thread:
        """
        Parse a transcript into a Thread.

        Args:
            document: Full text, or an iterable of lines.

        Returns:
            Thread with messages in line order.
        """
        lines = document.splitlines() if isinstance(document, str) else document

        state = ParseState()
        messages: List[Message] = []
        for raw_line in lines:
            state, emitted = step(state, raw_line.rstrip("\r\n"), self.local_tz)
            if emitted is not None:
                messages.append(emitted)

        last = finish(state)
        if last is not None:
            messages.append(last)

        return Thread.build(messages=messages, labels=state.labels)

    def parse_file(self, path: PathLike) -> Thread:
        """
        Read and parse a transcript file.

        Raises:
            ThreadParseError: If the file is unreadable.
        """
        thread = self.parse(read_document(path))
        logger.debug(f"Parsed {Path(path).name}: {thread.message_count} messages")
        return thread
