"""Backing stores: change-tracking containers for fetched entities.

Generated models keep their field values in a :class:`BackingStore` so a client
can compute a partial update (only the values changed since the entity was
fetched).  The adapter owns a :class:`BackingStoreFactory`, defaulting to
:class:`InMemoryBackingStoreFactory`; it is not on the request hot path.
"""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

__all__ = [
    "BackingStore",
    "BackingStoreFactory",
    "InMemoryBackingStore",
    "InMemoryBackingStoreFactory",
]

Subscriber = Callable[[str, Any, Any], None]


class BackingStore(ABC):
    """Stores model values and tracks which ones changed after initialisation."""

    @abstractmethod
    def get(self, key: str) -> Any: ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None: ...

    @abstractmethod
    def enumerate_(self) -> List[Tuple[str, Any]]: ...

    @abstractmethod
    def enumerate_keys_for_values_changed_to_null(self) -> List[str]: ...

    @abstractmethod
    def subscribe(self, callback: Subscriber, subscription_id: Optional[str] = None) -> str: ...

    @abstractmethod
    def unsubscribe(self, subscription_id: str) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...

    initialization_completed: bool
    return_only_changed_values: bool


class InMemoryBackingStore(BackingStore):
    """Dictionary-backed store with per-key dirty tracking.

    Values written while ``initialization_completed`` is false (that is, while
    a parse node is populating the entity) are recorded as clean; later writes
    mark the key dirty.
    """

    def __init__(self) -> None:
        self._store: Dict[str, Tuple[bool, Any]] = {}
        self._subscribers: Dict[str, Subscriber] = {}
        self._lock = threading.Lock()
        self._initialization_completed = False
        self.return_only_changed_values = False

    @property
    def initialization_completed(self) -> bool:
        return self._initialization_completed

    @initialization_completed.setter
    def initialization_completed(self, value: bool) -> None:
        self._initialization_completed = value
        with self._lock:
            for key, (_, stored) in list(self._store.items()):
                self._store[key] = (not value, stored)

    def get(self, key: str) -> Any:
        if not key:
            raise ValueError("key cannot be empty")
        with self._lock:
            entry = self._store.get(key)
        if entry is None:
            return None
        changed, value = entry
        if self.return_only_changed_values and not changed:
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        if not key:
            raise ValueError("key cannot be empty")
        with self._lock:
            previous = self._store.get(key, (False, None))[1]
            self._store[key] = (self._initialization_completed, value)
            subscribers = list(self._subscribers.values())
        for callback in subscribers:
            callback(key, previous, value)

    def enumerate_(self) -> List[Tuple[str, Any]]:
        with self._lock:
            items = list(self._store.items())
        if self.return_only_changed_values:
            return [(key, value) for key, (changed, value) in items if changed]
        return [(key, value) for key, (_, value) in items]

    def enumerate_keys_for_values_changed_to_null(self) -> List[str]:
        with self._lock:
            return [key for key, (changed, value) in self._store.items() if changed and value is None]

    def subscribe(self, callback: Subscriber, subscription_id: Optional[str] = None) -> str:
        subscription_id = subscription_id or uuid.uuid4().hex
        with self._lock:
            self._subscribers[subscription_id] = callback
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> None:
        with self._lock:
            self._subscribers.pop(subscription_id, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        return iter(self.enumerate_())


class BackingStoreFactory(ABC):
    @abstractmethod
    def create_backing_store(self) -> BackingStore: ...


class InMemoryBackingStoreFactory(BackingStoreFactory):
    def create_backing_store(self) -> InMemoryBackingStore:
        return InMemoryBackingStore()
