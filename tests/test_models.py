"""
Tests for the shared conversation data model.
"""

from datetime import datetime, timezone

import pytest

from chatgraph.etl.models import (
    DEFAULT_SELF,
    EPOCH,
    Message,
    Participant,
    Thread,
)


class TestParticipant:
    """Tests for Participant identity semantics."""

    def test_equality_ignores_name(self):
        """Participants with the same identifier are the same entity."""
        assert Participant("+14155551234", "Alice") == Participant("+14155551234", "Ali")

    def test_hash_ignores_name(self):
        """Sets deduplicate by identifier."""
        people = {Participant("+1", "A"), Participant("+1", "B"), Participant("+2", "A")}
        assert len(people) == 2

    def test_different_identifier_not_equal(self):
        assert Participant("+1", "Alice") != Participant("+2", "Alice")

    def test_is_frozen(self):
        participant = Participant("+1", "Alice")
        with pytest.raises(AttributeError):
            participant.name = "Bob"  # type: ignore[misc]


class TestMessage:
    """Tests for Message invariants."""

    def test_valid_message(self, alice: Participant):
        message = Message(sender=alice, recipients=(DEFAULT_SELF,), content="hi")
        assert message.timestamp == EPOCH
        assert message.recipients == (DEFAULT_SELF,)

    def test_recipients_list_coerced_to_tuple(self, alice: Participant):
        message = Message(sender=alice, recipients=[DEFAULT_SELF])  # type: ignore[arg-type]
        assert isinstance(message.recipients, tuple)

    def test_empty_recipients_rejected(self, alice: Participant):
        with pytest.raises(ValueError, match="at least one recipient"):
            Message(sender=alice, recipients=())

    def test_duplicate_recipients_rejected(self, alice: Participant, bob: Participant):
        with pytest.raises(ValueError, match="unique"):
            Message(sender=alice, recipients=(bob, Participant(bob.identifier, "Robert")))

    def test_sender_in_recipients_rejected(self, alice: Participant):
        with pytest.raises(ValueError, match="cannot also be a recipient"):
            Message(sender=alice, recipients=(DEFAULT_SELF, alice))

    def test_naive_timestamp_rejected(self, alice: Participant):
        with pytest.raises(ValueError, match="timezone-aware"):
            Message(sender=alice, recipients=(DEFAULT_SELF,), timestamp=datetime(2021, 1, 1))


class TestThread:
    """Tests for Thread construction and derived values."""

    def test_message_count_is_derived(self, make_thread):
        thread = make_thread(3)
        assert thread.message_count == 3
        assert thread.message_count == len(thread.messages)

    def test_empty_thread(self):
        thread = Thread.build(messages=[])
        assert thread.message_count == 0
        assert thread.participants == ()
        assert thread.labels == ()

    def test_build_closes_participant_set(self, alice: Participant, bob: Participant):
        """Participants referenced only by messages are added to the set."""
        message = Message(sender=alice, recipients=(bob, DEFAULT_SELF))
        thread = Thread.build(messages=[message], participants=[alice])

        assert set(thread.participants) == {alice, bob, DEFAULT_SELF}
        assert thread.participants[0] == alice

    def test_build_dedupes_participants_last_name_wins(self):
        thread = Thread.build(
            messages=[],
            participants=[Participant("+1", "Old"), Participant("+2", "Bob"), Participant("+1", "New")],
        )
        assert [p.identifier for p in thread.participants] == ["+1", "+2"]
        assert thread.participants[0].name == "New"

    def test_build_dedupes_labels_in_order(self):
        thread = Thread.build(messages=[], labels=["Inbox", "Starred", "Inbox"])
        assert thread.labels == ("Inbox", "Starred")


class TestThreadSerialization:
    """Tests for to_dict / from_dict."""

    def test_to_dict_shape(self, make_thread):
        data = make_thread(2).to_dict()

        assert set(data) == {"messages", "participants", "labels", "message_count"}
        assert data["message_count"] == 2
        assert data["messages"][0]["timestamp"] == "2021-01-01T12:00:00+00:00"
        assert data["messages"][0]["recipients"] == [{"identifier": "Unknown", "name": "Me"}]

    def test_round_trip(self, alice: Participant, bob: Participant):
        ts = datetime(2021, 1, 1, 18, 0, tzinfo=timezone.utc)
        thread = Thread.build(
            messages=[
                Message(sender=alice, recipients=(DEFAULT_SELF,), timestamp=ts, content="hi"),
                Message(sender=DEFAULT_SELF, recipients=(alice, bob), timestamp=ts, content="yo"),
            ],
            labels=["Inbox"],
        )

        restored = Thread.from_dict(thread.to_dict())

        assert restored == thread
        assert restored.message_count == thread.message_count

    def test_from_dict_ignores_stored_message_count(self, make_thread):
        data = make_thread(2).to_dict()
        data["message_count"] = 99
        assert Thread.from_dict(data).message_count == 2
