"""
Output renderers and run statistics for the command line.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Set
import json
import pprint

from chatgraph.etl.models import Thread
from chatgraph.utils import Colors, format_duration, format_message_count

OUTPUT_FORMATS = ("debug", "json", "default")


def render_debug(thread: Thread) -> str:
    """Render a thread as a pretty-printed dataclass dump."""
    return pprint.pformat(thread, width=100, sort_dicts=False)


def render_json(thread: Thread) -> str:
    """Render a thread as indented JSON (Thread.from_dict reads it back)."""
    return json.dumps(thread.to_dict(), indent=2, ensure_ascii=False)


def load_json(text: str) -> Thread:
    """Parse render_json() output back into a Thread."""
    return Thread.from_dict(json.loads(text))


@dataclass
class RunStatistics:
    """Statistics about one processing run."""

    started_at: datetime = field(default_factory=datetime.now)
    files_processed: int = 0
    messages_extracted: int = 0
    participant_ids: Set[str] = field(default_factory=set)
    finished_at: Optional[datetime] = None

    def add(self, thread: Thread) -> None:
        self.files_processed += 1
        self.messages_extracted += thread.message_count
        self.participant_ids.update(p.identifier for p in thread.participants)

    def finish(self) -> None:
        self.finished_at = datetime.now()

    @property
    def duration(self) -> timedelta:
        end = self.finished_at or datetime.now()
        return end - self.started_at

    @property
    def unique_participants(self) -> int:
        return len(self.participant_ids)

    @property
    def avg_messages_per_file(self) -> float:
        if not self.files_processed:
            return 0.0
        return self.messages_extracted / self.files_processed

    def __str__(self) -> str:
        return (
            f"\n{Colors.BOLD}Run Statistics:{Colors.ENDC}\n"
            f"Duration: {format_duration(self.duration)}\n"
            f"Files processed: {self.files_processed:,}\n"
            f"Messages extracted: {format_message_count(self.messages_extracted)}\n"
            f"Unique participants: {self.unique_participants:,}\n"
            f"Average messages per file: {self.avg_messages_per_file:.2f}"
        )
