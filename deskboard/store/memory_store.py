import copy
import threading
from typing import List, Optional, Tuple

from deskboard.config.logger import get_logger
from deskboard.store.remote_store import (
    ChangeCallback,
    DocumentData,
    ErrorCallback,
    merge_top_level,
    RemoteStore,
    Unsubscribe,
)

log = get_logger(__name__)


class MemoryStore(RemoteStore):
    """
    In-process document store. Behaves like a remote store with push
    notifications, so it works as a fake in tests and for throwaway sessions.
    Saves notify subscribers synchronously on the saving thread.
    """

    def __init__(self, initial: Optional[DocumentData] = None):
        self._lock = threading.RLock()
        self._data: Optional[DocumentData] = copy.deepcopy(initial)
        self._subscribers: List[Tuple[ChangeCallback, ErrorCallback]] = []
        self.saved: List[DocumentData] = []
        """Every document passed to `save()`, in order."""

    @property
    def data(self) -> Optional[DocumentData]:
        with self._lock:
            return copy.deepcopy(self._data)

    def fetch_once(self) -> Optional[DocumentData]:
        return self.data

    def save(self, data: DocumentData) -> None:
        with self._lock:
            self.saved.append(copy.deepcopy(data))
            self._write(data)

    def push_remote(self, data: DocumentData) -> None:
        """
        Simulate a write from another session. Not recorded in `saved`.
        """
        with self._lock:
            self._write(data)

    def fail_subscribers(self, error: Exception) -> None:
        """
        Simulate a broken push channel.
        """
        with self._lock:
            subscribers = list(self._subscribers)
        for _on_change, on_error in subscribers:
            on_error(error)

    def _write(self, data: DocumentData) -> None:
        self._data = merge_top_level(self._data, copy.deepcopy(data))
        snapshot = self._data
        for on_change, _on_error in list(self._subscribers):
            on_change(copy.deepcopy(snapshot))

    def subscribe(self, on_change: ChangeCallback, on_error: ErrorCallback) -> Unsubscribe:
        entry = (on_change, on_error)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe():
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


## Tests


def test_memory_store_notifies_and_merges():
    store = MemoryStore()
    assert store.fetch_once() is None

    seen = []
    unsubscribe = store.subscribe(seen.append, lambda e: None)
    store.save({"tabs": [{"id": "t1"}], "activeTabId": "t1"})
    store.push_remote({"activeTabId": "t2"})

    assert len(seen) == 2
    assert seen[1]["tabs"] == [{"id": "t1"}]
    assert seen[1]["activeTabId"] == "t2"
    assert len(store.saved) == 1

    unsubscribe()
    store.save({"activeTabId": "t3"})
    assert len(seen) == 2
    assert store.subscriber_count == 0


def test_memory_store_copies_data():
    data = {"tabs": [{"id": "t1"}]}
    store = MemoryStore(data)
    fetched = store.fetch_once()
    assert fetched is not None
    fetched["tabs"].append({"id": "t2"})
    assert store.data is not None and store.data["tabs"] == [{"id": "t1"}]
