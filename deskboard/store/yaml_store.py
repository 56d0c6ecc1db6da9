import threading
from pathlib import Path
from typing import List, Optional, Tuple

from frontmatter_format import read_yaml_file, write_yaml_file

from deskboard.config.logger import get_logger
from deskboard.config.settings import global_settings
from deskboard.errors import StoreError
from deskboard.store.remote_store import (
    ChangeCallback,
    DocumentData,
    ErrorCallback,
    merge_top_level,
    RemoteStore,
    Unsubscribe,
)
from deskboard.util.log_calls import log_if_slow

log = get_logger(__name__)


def _file_version(path: Path) -> Optional[Tuple[int, int]]:
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    return stat.st_mtime_ns, stat.st_size


class YamlStore(RemoteStore):
    """
    Keep the workspace document as a YAML file. File writes are atomic but do not lock.

    Subscriptions poll the file for changes, so edits from other processes sharing the
    file (and this process's own saves) are delivered from a background thread.
    """

    def __init__(self, path: Path | str, poll_secs: Optional[float] = None):
        self.path = Path(path)
        self.poll_secs = poll_secs if poll_secs is not None else global_settings().remote_poll_secs
        self._write_lock = threading.Lock()
        self._watchers: List[threading.Event] = []

    def __str__(self) -> str:
        return f"YamlStore({self.path})"

    def _read(self) -> Optional[DocumentData]:
        if not self.path.exists():
            return None
        data = read_yaml_file(str(self.path))
        if data is None:
            return None
        if not isinstance(data, dict):
            raise StoreError(f"Expected a mapping in {self.path}, got {type(data).__name__}")
        return data

    def fetch_once(self) -> Optional[DocumentData]:
        return self._read()

    @log_if_slow(if_slower_than=0.5)
    def save(self, data: DocumentData) -> None:
        with self._write_lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            merged = merge_top_level(self._read(), data)
            write_yaml_file(merged, str(self.path))

    def subscribe(self, on_change: ChangeCallback, on_error: ErrorCallback) -> Unsubscribe:
        stop = threading.Event()
        self._watchers.append(stop)
        last_version = _file_version(self.path)

        def watch():
            nonlocal last_version
            while not stop.wait(self.poll_secs):
                version = _file_version(self.path)
                if version == last_version:
                    continue
                last_version = version
                try:
                    data = self._read()
                except Exception as e:
                    log.warning("Could not read changed workspace file %s: %s", self.path, e)
                    on_error(e)
                    continue
                if data is not None and not stop.is_set():
                    on_change(data)

        threading.Thread(target=watch, name=f"watch-{self.path.name}", daemon=True).start()

        def unsubscribe():
            stop.set()
            if stop in self._watchers:
                self._watchers.remove(stop)

        return unsubscribe

    def close(self) -> None:
        """
        Stop every subscription still polling this file.
        """
        for stop in self._watchers:
            stop.set()
        self._watchers.clear()


## Tests


def test_yaml_store_save_and_fetch(tmp_path):
    store = YamlStore(tmp_path / "ws" / "workspace.yml", poll_secs=0.01)
    assert store.fetch_once() is None

    store.save({"tabs": [{"id": "t1", "name": "메인"}], "activeTabId": "t1"})
    store.save({"activeTabId": "t1", "bookmarks": []})

    data = store.fetch_once()
    assert data is not None
    assert data["tabs"] == [{"id": "t1", "name": "메인"}]
    assert data["bookmarks"] == []
    assert "updatedAt" in data


def test_yaml_store_subscription(tmp_path):
    path = tmp_path / "workspace.yml"
    store = YamlStore(path, poll_secs=0.01)
    other_session = YamlStore(path, poll_secs=0.01)

    changed = threading.Event()
    seen = []

    def on_change(data):
        seen.append(data)
        changed.set()

    unsubscribe = store.subscribe(on_change, lambda e: None)
    try:
        other_session.save({"tabs": [{"id": "t9"}], "activeTabId": "t9"})
        assert changed.wait(5.0)
        assert seen[-1]["activeTabId"] == "t9"
    finally:
        unsubscribe()


def test_yaml_store_close_stops_watchers(tmp_path):
    path = tmp_path / "workspace.yml"
    store = YamlStore(path, poll_secs=0.01)
    seen = []
    store.subscribe(seen.append, lambda e: None)
    store.subscribe(seen.append, lambda e: None)
    assert len(store._watchers) == 2

    store.close()
    assert store._watchers == []
    # Let any poll already past its wait finish before writing.
    threading.Event().wait(0.05)
    seen.clear()

    YamlStore(path).save({"tabs": [{"id": "t1"}], "activeTabId": "t1"})
    threading.Event().wait(0.1)
    assert seen == []
