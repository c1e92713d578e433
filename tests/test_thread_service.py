"""Tests for ThreadStore."""

from datetime import datetime, timezone

import pytest

from twitter_adaptor.models import Message
from twitter_adaptor.services.thread_service import ThreadStore


def make_message(n: int) -> Message:
    return Message(
        sender_id="user1",
        timestamp=datetime.fromtimestamp(n, tz=timezone.utc),
        content=f"message {n}",
    )


class TestThreadStore:
    """Test bounded per-thread history."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = ThreadStore(history_limit=50)

    def test_get_or_create_is_idempotent(self):
        """Test the same context is returned for the same thread id."""
        first = self.store.get_or_create("thread-1")
        second = self.store.get_or_create("thread-1")

        assert first is second
        assert first.thread_id == "thread-1"
        assert first.history == []
        assert len(self.store) == 1

    def test_get_unknown_thread_returns_none(self):
        """Test get() does not create contexts."""
        assert self.store.get("missing") is None
        assert "missing" not in self.store

    def test_append_creates_thread_lazily(self):
        """Test appending to an unknown thread creates it."""
        context = self.store.append("thread-1", make_message(1))

        assert "thread-1" in self.store
        assert [m.content for m in context.history] == ["message 1"]

    def test_history_limit_evicts_oldest_first(self):
        """Test 51 appends with limit 50 keep messages 2..51."""
        for n in range(1, 52):
            self.store.append("thread-1", make_message(n))

        history = self.store.get("thread-1").history

        assert len(history) == 50
        assert history[0].content == "message 2"
        assert history[-1].content == "message 51"
        assert [m.content for m in history] == [f"message {n}" for n in range(2, 52)]

    def test_limit_holds_after_every_append(self):
        """Test history never exceeds the limit."""
        store = ThreadStore(history_limit=3)

        for n in range(10):
            context = store.append("t", make_message(n))
            assert len(context.history) <= 3

        assert [m.content for m in context.history] == ["message 7", "message 8", "message 9"]

    def test_eviction_is_per_thread(self):
        """Test filling one thread does not evict another."""
        store = ThreadStore(history_limit=2)
        store.append("a", make_message(1))
        for n in range(2, 6):
            store.append("b", make_message(n))

        assert [m.content for m in store.get("a").history] == ["message 1"]
        assert len(store.get("b").history) == 2

    def test_clear_drops_all_threads(self):
        """Test clear() forgets every thread."""
        self.store.append("a", make_message(1))
        self.store.append("b", make_message(2))

        self.store.clear()

        assert len(self.store) == 0
        assert self.store.get("a") is None

    def test_rejects_non_positive_limit(self):
        """Test a zero history limit is refused."""
        with pytest.raises(ValueError):
            ThreadStore(history_limit=0)
