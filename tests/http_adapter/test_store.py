"""Tests for the in-memory backing store."""

import pytest

from ClientRuntime.HttpAdapter.store import InMemoryBackingStore, InMemoryBackingStoreFactory


@pytest.fixture
def store():
    return InMemoryBackingStoreFactory().create_backing_store()


def test_values_set_before_initialization_are_clean(store):
    store.set("id", "1")
    store.initialization_completed = True
    store.return_only_changed_values = True
    assert store.enumerate_() == []
    assert store.get("id") is None


def test_changes_after_initialization_tracked(store):
    store.set("id", "1")
    store.initialization_completed = True
    store.set("name", None)
    store.set("id", "2")
    store.return_only_changed_values = True
    assert dict(store.enumerate_()) == {"name": None, "id": "2"}
    assert store.enumerate_keys_for_values_changed_to_null() == ["name"]


def test_subscribers_notified(store):
    events = []
    subscription = store.subscribe(lambda key, old, new: events.append((key, old, new)))
    store.set("id", "1")
    store.set("id", "2")
    store.unsubscribe(subscription)
    store.set("id", "3")
    assert events == [("id", None, "1"), ("id", "1", "2")]


def test_empty_key_rejected(store):
    with pytest.raises(ValueError):
        store.set("", 1)


def test_clear(store):
    store.set("id", "1")
    store.clear()
    assert list(store) == []
    assert isinstance(store, InMemoryBackingStore)
