"""Tests for conversation history persistence."""

import json

import pytest

from fpl_chat.exceptions import StorageError
from fpl_chat.models.chat import Message, ToolCall, ToolCallStatus
from fpl_chat.services.history import HistoryConfig, HistoryStore
from fpl_chat.services.storage import FileKeyValueStore, InMemoryKeyValueStore


def make_conversation(count: int, content_size: int = 10) -> list[Message]:
    """Alternating user/assistant messages with numbered content."""
    return [
        Message(role="user" if i % 2 == 0 else "assistant", content=f"{i:04d}" + "x" * content_size)
        for i in range(count)
    ]


class FailingStore(InMemoryKeyValueStore):
    """Store whose writes fail with a non-quota error."""

    def set(self, key: str, value: bytes) -> None:
        raise StorageError("disk on fire")


@pytest.fixture
def storage() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def history(storage) -> HistoryStore:
    return HistoryStore(storage)


class TestSaveAndLoad:
    """Tests for the basic round trip."""

    def test_round_trip(self, history):
        """Test that saved messages load back with ids and content intact."""
        messages = make_conversation(4)
        assert history.save(messages) is True

        loaded = history.load()

        assert [m.id for m in loaded] == [m.id for m in messages]
        assert [m.content for m in loaded] == [m.content for m in messages]
        assert [m.role for m in loaded] == ["user", "assistant", "user", "assistant"]

    def test_record_shape(self, history, storage):
        """Test the stored record uses version 1 and camelCase updatedAt."""
        history.save(make_conversation(2))
        record = json.loads(storage.data[history.key])

        assert record["version"] == 1
        assert "updatedAt" in record
        assert len(record["messages"]) == 2

    def test_tool_calls_and_streaming_flags_are_not_restored(self, history):
        """Test that transient fields are dropped on save."""
        tool_call = ToolCall(id="t1", name="search_players", status=ToolCallStatus.COMPLETED, result=[1])
        messages = [
            Message.user("hi"),
            Message(role="assistant", content="Saka", thinking="hmm", tool_calls=[tool_call]),
        ]
        history.save(messages)

        loaded = history.load()

        assert loaded[1].tool_calls == []
        assert loaded[1].thinking == "hmm"
        assert all(m.is_streaming is False for m in loaded)

    def test_streaming_messages_are_skipped(self, history):
        """Test that an in-flight placeholder is never persisted."""
        history.save([Message.user("hi"), Message.assistant_placeholder()])
        assert [m.content for m in history.load()] == ["hi"]

    def test_load_missing_key(self, history):
        """Test that an empty store loads as an empty conversation."""
        assert history.load() == []
        assert history.exists() is False

    def test_key_is_scoped_by_conversation(self, storage):
        """Test that conversations do not share a record."""
        first = HistoryStore(storage, "first")
        second = HistoryStore(storage, "second")
        first.save(make_conversation(2))

        assert first.key == "fpl-chat-history:first"
        assert second.load() == []

    def test_clear(self, history, storage):
        """Test that clear removes the record."""
        history.save(make_conversation(2))
        assert history.exists() is True

        history.clear()

        assert history.key not in storage.data
        assert history.exists() is False


class TestLimits:
    """Tests for message count and byte budget trimming."""

    def test_keeps_last_hundred_messages(self, history):
        """Test that 150 messages persist as the last 100."""
        messages = make_conversation(150)
        history.save(messages)

        loaded = history.load()

        assert len(loaded) == 100
        assert [m.id for m in loaded] == [m.id for m in messages[50:]]

    def test_drops_oldest_pairs_over_byte_budget(self, storage):
        """Test that oversized history loses whole pairs from the front."""
        history = HistoryStore(storage, config=HistoryConfig(max_bytes=2000))
        messages = make_conversation(10, content_size=300)

        history.save(messages)

        assert len(storage.data[history.key]) <= 2000
        loaded = history.load()
        assert 0 < len(loaded) < 10
        assert len(loaded) % 2 == 0
        assert loaded[0].role == "user"
        assert [m.id for m in loaded] == [m.id for m in messages[-len(loaded) :]]

    def test_under_budget_is_untouched(self, storage):
        """Test that nothing is trimmed when the record fits."""
        history = HistoryStore(storage, config=HistoryConfig(max_bytes=500 * 1024))
        history.save(make_conversation(10, content_size=300))
        assert len(history.load()) == 10


class TestQuotaHandling:
    """Tests for storage capacity failures."""

    def test_falls_back_to_last_twenty(self):
        """Test that a quota error retries with the newest 20 messages."""
        messages = make_conversation(30, content_size=50)
        probe = HistoryStore(InMemoryKeyValueStore())
        probe.save(messages[-20:])
        twenty_bytes = len(probe.storage.data[probe.key])

        storage = InMemoryKeyValueStore(capacity_bytes=twenty_bytes + 100)
        history = HistoryStore(storage)

        assert history.save(messages) is True
        loaded = history.load()
        assert [m.id for m in loaded] == [m.id for m in messages[-20:]]

    def test_clears_when_fallback_also_fails(self, storage, history):
        """Test that a record that cannot be written at all is removed."""
        history.save(make_conversation(4))
        storage.capacity_bytes = 10

        assert history.save(make_conversation(6)) is False
        assert history.key not in storage.data

    def test_other_storage_errors_do_not_raise(self):
        """Test that a broken store makes save return False."""
        history = HistoryStore(FailingStore())
        assert history.save(make_conversation(2)) is False


class TestCorruptRecords:
    """Tests for unreadable stored data."""

    def test_version_mismatch_clears(self, history, storage):
        """Test that a record with another version is discarded and removed."""
        storage.data[history.key] = json.dumps(
            {"version": 2, "updatedAt": "2024-01-01T00:00:00Z", "messages": []}
        ).encode()

        assert history.load() == []
        assert history.key not in storage.data
        assert history.exists() is False

    @pytest.mark.parametrize("version", [True, 1.0, "1"])
    def test_version_must_be_integer_one(self, history, storage, version):
        """Test that values merely equal to 1 are treated as a mismatch."""
        history.save(make_conversation(2))
        record = json.loads(storage.data[history.key])
        record["version"] = version
        storage.data[history.key] = json.dumps(record).encode()

        assert history.exists() is False
        assert history.load() == []
        assert history.key not in storage.data

    def test_exists_false_for_other_version(self, history, storage):
        """Test that a readable record of another version does not count as stored."""
        history.save(make_conversation(2))
        record = json.loads(storage.data[history.key])
        record["version"] = 2
        storage.data[history.key] = json.dumps(record).encode()

        assert history.exists() is False

    def test_missing_version_clears(self, history, storage):
        """Test that a record without a version is treated as a mismatch."""
        storage.data[history.key] = b'{"messages": []}'
        assert history.load() == []
        assert history.key not in storage.data

    def test_malformed_json_clears(self, history, storage):
        """Test that unparseable bytes are discarded and removed."""
        storage.data[history.key] = b"{not json"

        assert history.load() == []
        assert history.key not in storage.data

    def test_invalid_shape_clears(self, history, storage):
        """Test that a version 1 record with bad messages is discarded."""
        storage.data[history.key] = b'{"version": 1, "updatedAt": "2024-01-01T00:00:00Z", "messages": "nope"}'

        assert history.load() == []
        assert history.key not in storage.data

    def test_exists_false_for_corrupt_record(self, history, storage):
        """Test that exists does not raise on garbage."""
        storage.data[history.key] = b"\xff\xfe"
        assert history.exists() is False


class TestFileKeyValueStore:
    """Tests for the on-disk store."""

    def test_set_get_remove(self, tmp_path):
        """Test the basic key lifecycle."""
        store = FileKeyValueStore(tmp_path / "history")

        assert store.get("fpl-chat-history:default") is None
        store.set("fpl-chat-history:default", b"{}")

        assert store.get("fpl-chat-history:default") == b"{}"
        assert (tmp_path / "history" / "fpl-chat-history_default.json").exists()

        store.remove("fpl-chat-history:default")
        store.remove("fpl-chat-history:default")
        assert store.get("fpl-chat-history:default") is None

    def test_history_on_disk(self, tmp_path):
        """Test that history survives a new store instance."""
        messages = make_conversation(4)
        HistoryStore(FileKeyValueStore(tmp_path)).save(messages)

        loaded = HistoryStore(FileKeyValueStore(tmp_path)).load()

        assert [m.id for m in loaded] == [m.id for m in messages]
