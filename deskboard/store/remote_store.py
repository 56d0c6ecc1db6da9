from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

DocumentData = Dict[str, Any]
"""A workspace document in the persisted (camelCase, JSON-compatible) layout."""

ChangeCallback = Callable[[DocumentData], None]

ErrorCallback = Callable[[Exception], None]

Unsubscribe = Callable[[], None]

UPDATED_AT_KEY = "updatedAt"


class RemoteStore(ABC):
    """
    A key-value document backend holding the single workspace document.
    Calls may block. Callbacks may arrive on any thread.
    """

    @abstractmethod
    def fetch_once(self) -> Optional[DocumentData]:
        """Read the current document, or None if there isn't one yet."""
        pass

    @abstractmethod
    def save(self, data: DocumentData) -> None:
        """
        Upsert the document. Top-level keys are merged into what is stored, so keys
        not in `data` are preserved, but each value (including nested lists) replaces
        the stored value whole.
        """
        pass

    @abstractmethod
    def subscribe(self, on_change: ChangeCallback, on_error: ErrorCallback) -> Unsubscribe:
        """
        Call `on_change` with the full document whenever it changes, including after
        this process's own saves. Returns a function that stops the subscription.
        """
        pass


def iso_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def merge_top_level(existing: Optional[DocumentData], data: DocumentData) -> DocumentData:
    """
    Merge-style upsert: top-level keys of `data` overwrite, others are kept,
    and the update time is stamped.
    """
    merged = dict(existing or {})
    merged.update(data)
    merged[UPDATED_AT_KEY] = iso_timestamp()
    return merged


## Tests


def test_merge_top_level():
    existing = {"tabs": [{"id": "old"}], "bookmarks": [{"id": "b1"}], "extra": 1}
    merged = merge_top_level(existing, {"tabs": [{"id": "new"}], "activeTabId": "new"})
    assert merged["tabs"] == [{"id": "new"}]
    assert merged["bookmarks"] == [{"id": "b1"}]
    assert merged["extra"] == 1
    assert merged[UPDATED_AT_KEY].endswith("Z")
    assert existing["tabs"] == [{"id": "old"}]
