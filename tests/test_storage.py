"""
Tests for the in-memory message log.

Tests cover:
- Append sets delivered status and keeps order
- Room history filtering
- Delete, edit, react and seen against single and duplicate ids
- Operations on unknown ids
"""

import pytest

from relay.schemas import Message
from relay.storage import MessageLog


def make_message(message_id, room=None, text="hello", **extra):
    return Message.model_validate({"id": message_id, "room": room, "text": text, **extra})


@pytest.fixture
def log():
    return MessageLog()


@pytest.fixture
def seeded_log(log):
    log.append(make_message("m1", room="general", text="first"))
    log.append(make_message("m2", room="random", text="second"))
    log.append(make_message("m3", text="global"))
    log.append(make_message("m4", room="general", text="fourth"))
    return log


class TestAppend:
    """Test storing messages."""

    def test_append_sets_delivered(self, log):
        stored = log.append(make_message("m1", status="seen"))

        assert stored.status == "delivered"
        assert len(log) == 1

    def test_order_is_preserved(self, seeded_log):
        assert [m.id for m in seeded_log.all()] == ["m1", "m2", "m3", "m4"]

    def test_duplicate_ids_are_both_stored(self, log):
        log.append(make_message("dup", text="a"))
        log.append(make_message("dup", text="b"))

        assert len(log) == 2

    def test_all_returns_snapshot(self, seeded_log):
        snapshot = seeded_log.all()
        seeded_log.delete("m1")

        assert len(snapshot) == 4
        assert len(seeded_log.all()) == 3


class TestHistory:
    """Test room-scoped history."""

    def test_history_filters_by_room(self, seeded_log):
        assert [m.id for m in seeded_log.history("general")] == ["m1", "m4"]

    def test_history_excludes_global_messages(self, seeded_log):
        ids = {m.id for room in ("general", "random") for m in seeded_log.history(room)}
        assert "m3" not in ids

    def test_history_of_unknown_room_is_empty(self, seeded_log):
        assert seeded_log.history("nowhere") == []


class TestMutations:
    """Test delete, edit, react and seen."""

    def test_delete_removes_message(self, seeded_log):
        assert seeded_log.delete("m1") == 1
        assert seeded_log.find("m1") is None
        assert [m.id for m in seeded_log.all()] == ["m2", "m3", "m4"]

    def test_delete_removes_all_duplicates(self, log):
        log.append(make_message("dup"))
        log.append(make_message("dup"))

        assert log.delete("dup") == 2
        assert len(log) == 0

    def test_delete_unknown_is_noop(self, seeded_log):
        assert seeded_log.delete("missing") == 0
        assert len(seeded_log) == 4

    def test_edit_updates_text_and_flag(self, seeded_log):
        assert seeded_log.edit("m2", "changed") == 1

        message = seeded_log.find("m2")
        assert message.text == "changed"
        assert message.edited is True
        assert message.status == "delivered"

    def test_edit_after_delete_affects_nothing(self, seeded_log):
        seeded_log.delete("m1")

        assert seeded_log.edit("m1", "ghost") == 0
        assert seeded_log.find("m1") is None

    def test_react_appends_in_order(self, seeded_log):
        seeded_log.react("m1", "👍")
        first = seeded_log.react("m1", "❤️")

        assert first.id == "m1"
        assert seeded_log.find("m1").reactions == ["👍", "❤️"]

    def test_react_returns_first_match(self, log):
        log.append(make_message("dup", room="a"))
        log.append(make_message("dup", room="b"))

        first = log.react("dup", "🔥")

        assert first.room == "a"
        assert all(m.reactions == ["🔥"] for m in log.all())

    def test_react_unknown_returns_none(self, seeded_log):
        assert seeded_log.react("missing", "👍") is None

    def test_mark_seen_sets_status(self, seeded_log):
        assert seeded_log.mark_seen("m4") == 1
        assert seeded_log.find("m4").status == "seen"

    def test_state_fields_are_independent(self, seeded_log):
        seeded_log.mark_seen("m1")
        seeded_log.edit("m1", "edited after seen")
        seeded_log.react("m1", "👍")

        message = seeded_log.find("m1")
        assert message.status == "seen"
        assert message.edited is True
        assert message.reactions == ["👍"]


class TestPayload:
    """Test the wire representation of stored messages."""

    def test_unknown_fields_are_echoed(self, log):
        log.append(make_message("m1", timestamp="10:00", fileName="cat.png"))

        payload = log.find("m1").to_payload()
        assert payload["timestamp"] == "10:00"
        assert payload["fileName"] == "cat.png"

    def test_file_data_uses_camel_case(self, log):
        log.append(make_message("m1", file=True, fileData="aGk="))

        payload = log.find("m1").to_payload()
        assert payload["fileData"] == "aGk="
        assert "file_data" not in payload

    def test_unset_fields_are_absent(self, log):
        log.append(Message.model_validate({"id": "m1"}))

        assert log.find("m1").to_payload() == {"id": "m1", "status": "delivered"}
