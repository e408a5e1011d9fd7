"""
Pytest fixtures for chat-graph tests.

Fixture Categories:
    1. Document fixtures (markup factory, sample export files)
    2. Model fixtures (participants, threads)
    3. Store fixtures (in-memory GraphStore that records bulk operations)

Design Notes:
    - File fixtures use tmp_path for isolation between tests
    - The markup factory mimics the hCard layout of real exports
    - No test talks to a real Neo4j server; the driver is mocked or faked
"""

from datetime import datetime, timezone
from html import escape
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from chatgraph.config import set_config
from chatgraph.etl.models import DEFAULT_SELF, Message, Participant, Thread


def pytest_configure(config):
    config.addinivalue_line("markers", "property: Hypothesis property-based tests")
    config.addinivalue_line("markers", "integration: tests that need a live Neo4j server")


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the global Config singleton from leaking between tests."""
    set_config(None)
    yield
    set_config(None)


# =============================================================================
# Markup documents
# =============================================================================

# (title, tel, name, content); None omits the element entirely
MarkupMessage = Tuple[Optional[str], Optional[str], Optional[str], Optional[str]]


def _render_message(title, tel, name, content, sender_block: bool = True) -> str:
    parts = ['<div class="message">']
    if title is not None:
        parts.append(f'<abbr class="dt" title="{escape(title)}">{escape(title)}</abbr>:')
    if sender_block:
        name_html = f'<span class="fn">{escape(name)}</span>' if name is not None else ""
        if tel is not None:
            parts.append(
                f'<cite class="sender vcard"><a class="tel" href="tel:{escape(tel)}">'
                f"{name_html}</a></cite>:"
            )
        else:
            parts.append(f'<cite class="sender vcard">{name_html}</cite>:')
    if content is not None:
        parts.append(f"<q>{escape(content)}</q>")
    parts.append("</div>")
    return "".join(parts)


@pytest.fixture
def make_markup() -> Callable[..., str]:
    """
    Factory for markup export documents.

    Usage:
        make_markup([("2021-01-01T13:00:00.000-05:00", "+14155551234", "Alice", "Hi")],
                    tags="Labels: Inbox, Starred")
    """

    def _make(
        messages: Sequence[MarkupMessage],
        tags: Optional[str] = None,
        without_sender: Sequence[int] = (),
    ) -> str:
        body = []
        if tags is not None:
            body.append(f'<div class="tags">{escape(tags)}</div>')
        body.append('<div class="hChatLog hfeed">')
        for index, (title, tel, name, content) in enumerate(messages):
            body.append(
                _render_message(title, tel, name, content, sender_block=index not in without_sender)
            )
        body.append("</div>")
        return (
            "<!DOCTYPE html><html><head><meta charset=\"utf-8\"><title>Alice</title></head>"
            f"<body>{''.join(body)}</body></html>"
        )

    return _make


@pytest.fixture
def one_to_one_markup(make_markup) -> str:
    """A two-person conversation where the owner is marked as Me."""
    return make_markup(
        [
            ("2021-01-01T13:00:00.000-05:00", "+14155551234", "Alice", "Hello"),
            ("2021-01-01T13:01:00.000-05:00", "+14155550000", "Me", "Hi Alice"),
            ("2021-01-01T13:02:00.000-05:00", "+1 (415) 555-1234", "Alice", "How are you?"),
        ],
        tags="Labels: Inbox, Starred",
    )


@pytest.fixture
def export_dir(tmp_path: Path, one_to_one_markup: str, make_markup) -> Path:
    """A directory laid out like a markup export, with non-conversation files."""
    root = tmp_path / "Calls"
    root.mkdir()
    (root / "Alice - Text - 2021-01-01T18_00_00Z.html").write_text(
        one_to_one_markup, encoding="utf-8"
    )
    group = make_markup(
        [
            ("2021-02-01T09:00:00.000+00:00", "+14155551234", "Alice", "Group hi"),
            ("2021-02-01T09:01:00.000+00:00", "+14155552222", "Bob", "Hey all"),
            ("2021-02-01T09:02:00.000+00:00", "+14155550000", "Me", "Hello both"),
        ]
    )
    (root / "Group Conversation - 2021-02-01T09_00_00Z.html").write_text(group, encoding="utf-8")
    (root / "Alice - Voicemail - 2021-01-02T10_00_00Z.html").write_text(
        "<html></html>", encoding="utf-8"
    )
    (root / "notes.txt").write_text("not a conversation", encoding="utf-8")
    return root


# =============================================================================
# Transcript documents
# =============================================================================


@pytest.fixture
def sample_transcript() -> str:
    return "\n".join(
        [
            "Labels: Family, Archived",
            "Jan 1, 2021, 1:00:00 PM EST: Alice: Hello",
            "world",
            "[deleted]",
            "Jan 1, 2021, 1:05:00 PM EST: Bob: Hi Alice: how are you?",
            "Jan 1, 2021, 1:06:00 PM EST: malformed line without sender delimiter",
            "dangling continuation",
            "2021-01-01 18:07:00: Alice: Fine",
        ]
    )


@pytest.fixture
def sample_transcript_file(tmp_path: Path, sample_transcript: str) -> Path:
    path = tmp_path / "family.txt"
    path.write_text(sample_transcript, encoding="utf-8")
    return path


# =============================================================================
# Model fixtures
# =============================================================================


@pytest.fixture
def alice() -> Participant:
    return Participant("+14155551234", "Alice")


@pytest.fixture
def bob() -> Participant:
    return Participant("+14155552222", "Bob")


@pytest.fixture
def make_thread(alice: Participant) -> Callable[..., Thread]:
    """Factory for small threads: n inbound messages from alice to self."""

    def _make(n_messages: int = 1, sender: Optional[Participant] = None) -> Thread:
        sender = sender or alice
        base = datetime(2021, 1, 1, 12, 0, tzinfo=timezone.utc)
        messages = [
            Message(
                sender=sender,
                recipients=(DEFAULT_SELF,),
                timestamp=base.replace(minute=i % 60),
                content=f"message {i}",
            )
            for i in range(n_messages)
        ]
        return Thread.build(messages=messages)

    return _make


# =============================================================================
# Store fixtures
# =============================================================================


class FakeGraphStore:
    """GraphStore that records bulk operations and can fail on demand."""

    def __init__(self, fail_on_call: Optional[int] = None, error: Optional[Exception] = None):
        self.calls: List[Tuple[str, list]] = []
        self.fail_on_call = fail_on_call
        self.error = error
        self.closed = False

    def _record(self, operation: str, records: list) -> None:
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise self.error
        self.calls.append((operation, list(records)))

    def upsert_participants(self, records):
        self._record("participants", records)

    def create_messages(self, records):
        self._record("messages", records)

    def close(self):
        self.closed = True

    @property
    def operations(self) -> List[str]:
        return [operation for operation, _ in self.calls]

    @property
    def batch_message_counts(self) -> List[int]:
        return [len(records) for operation, records in self.calls if operation == "messages"]


@pytest.fixture
def fake_store() -> FakeGraphStore:
    return FakeGraphStore()


@pytest.fixture
def failing_store_factory() -> Callable[..., FakeGraphStore]:
    def _make(fail_on_call: int, error: Exception) -> FakeGraphStore:
        return FakeGraphStore(fail_on_call=fail_on_call, error=error)

    return _make
