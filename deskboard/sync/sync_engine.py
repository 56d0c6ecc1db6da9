"""
Optimistic sync of the workspace document with a remote store.

The engine owns the one authoritative in-memory document. Local updates apply
immediately and are saved after a quiet period (debounced), so a burst of edits
becomes one write of the final document. Snapshots pushed by the store are applied
with a remote-update flag set, which blocks local updates until the next event
loop turn so a remote snapshot can't trigger a write of itself.

All public methods must be called on the event loop thread that ran `initialize()`.
Store callbacks may arrive on any thread and are marshalled onto that loop.
"""

import asyncio
import time
from collections import deque
from dataclasses import replace
from typing import Any, Deque, List, Optional, Set

from pydantic import ValidationError

from deskboard.config.logger import get_logger
from deskboard.config.settings import global_settings
from deskboard.config.text_styles import EMOJI_SAVED
from deskboard.errors import is_fatal, LoadError, SaveError, StoreError
from deskboard.model.normalize import load_document, normalize_document
from deskboard.model.workspace_model import dump_document, WorkspaceDocument
from deskboard.store.remote_store import DocumentData, RemoteStore, Unsubscribe
from deskboard.sync.sync_state import StateListener, SyncState
from deskboard.util.format_utils import fmt_count_items
from deskboard.util.log_calls import format_duration

log = get_logger(__name__)

RECENT_SAVES_MAX = 8
"""How many of our own saves to remember, to recognize their echoes from the store."""


class SyncEngine:
    def __init__(self, store: RemoteStore, debounce_secs: Optional[float] = None):
        self.store = store
        self.debounce_secs = (
            debounce_secs if debounce_secs is not None else global_settings().save_debounce_secs
        )

        self._state = SyncState()
        self._listeners: List[StateListener] = []

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._initialized = False
        self._closed = False

        self._remote_update = False
        self._recent_saves: Deque[WorkspaceDocument] = deque(maxlen=RECENT_SAVES_MAX)

        self._save_handle: Optional[asyncio.TimerHandle] = None
        self._pending_document: Optional[WorkspaceDocument] = None
        self._save_tasks: Set[asyncio.Task] = set()
        self._save_lock = asyncio.Lock()

    def __str__(self) -> str:
        return f"SyncEngine({self.store})"

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def document(self) -> Optional[WorkspaceDocument]:
        return self._state.document

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Optional[Exception]:
        return self._state.error

    @property
    def has_pending_save(self) -> bool:
        return self._save_handle is not None

    def add_listener(self, listener: StateListener):
        """
        Register a listener called with the new state after every change.
        Returns a function that removes it.
        """
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_state(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                log.error("Sync state listener %r failed: %s", listener, e, exc_info=True)

    async def initialize(self, default_document: WorkspaceDocument) -> SyncState:
        """
        Load the workspace, seeding the store with `default_document` if it has none,
        then subscribe to remote changes. Failures end up in `state.error` as a
        `LoadError`. There is no retry.
        """
        if self._initialized:
            log.warning("%s is already initialized, ignoring repeated initialize()", self)
            return self._state
        self._initialized = True
        self._loop = asyncio.get_running_loop()

        try:
            data = await asyncio.to_thread(self.store.fetch_once)
            if data and data.get("tabs"):
                document = load_document(data)
                log.info(
                    "Loaded workspace from %s (%s)",
                    self.store,
                    fmt_count_items(len(document.tabs), "tab"),
                )
            else:
                log.message("No workspace found in %s, starting a new one", self.store)
                document = normalize_document(default_document)
                await self._write(document)

            if self._closed:
                return self._state
            self._unsubscribe = self.store.subscribe(self._on_remote_change, self._on_remote_error)
        except Exception as e:
            load_error = LoadError(f"Could not load workspace from {self.store}: {e}")
            load_error.__cause__ = e
            log.error("%s", load_error, exc_info=is_fatal(e))
            self._set_state(loading=False, error=load_error)
            return self._state

        self._set_state(document=document, loading=False)
        return self._state

    def update(self, new_document: WorkspaceDocument) -> bool:
        """
        Replace the local document now and schedule a debounced save. Returns False if
        the update was ignored, which is always the case while a remote snapshot is
        being applied.
        """
        if self._remote_update:
            log.debug("Ignoring local update during remote snapshot")
            return False
        if self._closed:
            log.warning("Ignoring update on closed %s", self)
            return False
        if self._loop is None or self._state.loading or self._state.document is None:
            log.warning("Ignoring update before the workspace has loaded")
            return False
        if new_document is self._state.document:
            return False

        self._set_state(document=new_document)
        self._schedule_save(new_document)
        return True

    def _schedule_save(self, document: WorkspaceDocument) -> None:
        assert self._loop is not None
        if self._save_handle is not None:
            self._save_handle.cancel()
        self._pending_document = document
        self._save_handle = self._loop.call_later(self.debounce_secs, self._start_pending_save)

    def _start_pending_save(self) -> None:
        assert self._loop is not None
        self._save_handle = None
        document, self._pending_document = self._pending_document, None
        if document is None:
            return
        task = self._loop.create_task(self._save(document))
        self._save_tasks.add(task)
        task.add_done_callback(self._save_tasks.discard)

    async def _write(self, document: WorkspaceDocument) -> None:
        # Remember before writing, since the store may echo the write back right away.
        self._recent_saves.append(document)
        try:
            await asyncio.to_thread(self.store.save, dump_document(document))
        except Exception:
            # Nothing was written, so nothing will echo back.
            if self._recent_saves and self._recent_saves[-1] is document:
                self._recent_saves.pop()
            raise

    async def _save(self, document: WorkspaceDocument) -> None:
        # One save in flight at a time, so writes land in order.
        async with self._save_lock:
            start_time = time.time()
            try:
                await self._write(document)
            except Exception as e:
                save_error = SaveError(f"Could not save workspace to {self.store}: {e}")
                save_error.__cause__ = e
                log.error("%s", save_error, exc_info=is_fatal(e))
                self._set_state(save_error=save_error)
                return

            log.info(
                "%s Saved workspace to %s in %s",
                EMOJI_SAVED,
                self.store,
                format_duration(time.time() - start_time),
            )
            if self._state.save_error is not None:
                self._set_state(save_error=None)

    async def flush(self) -> None:
        """
        Save a pending debounced update now and wait for all saves to finish.
        """
        if self._save_handle is not None:
            self._save_handle.cancel()
            self._start_pending_save()
        if self._save_tasks:
            await asyncio.gather(*list(self._save_tasks))

    def close(self) -> None:
        """
        Tear down: drop any pending debounced save and stop the remote subscription.
        Saves already in flight are not cancelled.
        """
        if self._closed:
            return
        self._closed = True
        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None
            self._pending_document = None
            log.warning("Closing %s with unsaved changes", self)
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _call_on_loop(self, callback, *args) -> None:
        loop = self._loop
        if loop is None or self._closed:
            return
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            log.debug("Event loop is closed, dropping store callback %s", callback.__name__)

    def _on_remote_change(self, data: DocumentData) -> None:
        self._call_on_loop(self._apply_remote, data)

    def _on_remote_error(self, error: Exception) -> None:
        self._call_on_loop(self._record_remote_error, error)

    def _apply_remote(self, data: DocumentData) -> None:
        assert self._loop is not None
        if self._closed or self._state.document is None:
            return

        try:
            document = load_document(data)
        except ValidationError as e:
            log.warning("Ignoring malformed remote snapshot: %s", e)
            return

        if document in self._recent_saves:
            # Our own write coming back. Forget it and anything older.
            while self._recent_saves:
                if self._recent_saves.popleft() == document:
                    break
            log.debug("Ignoring echo of our own save")
            return
        if document == self._state.document:
            return

        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None
            self._pending_document = None
            log.message("Workspace changed in another session, unsaved local edits were replaced")

        log.info("Applying remote workspace snapshot")
        self._remote_update = True
        try:
            self._set_state(document=document)
        finally:
            self._loop.call_soon(self._end_remote_update)

    def _end_remote_update(self) -> None:
        self._remote_update = False

    def _record_remote_error(self, error: Exception) -> None:
        if self._closed:
            return
        store_error = StoreError(f"Workspace subscription failed: {error}")
        store_error.__cause__ = error
        log.error("%s", store_error, exc_info=is_fatal(error))
        self._set_state(error=store_error)


## Tests


def _doc(name: str = "메인", tab_id: str = "t1") -> WorkspaceDocument:
    from deskboard.model.defaults import new_tab

    tab = new_tab(name, is_main=True, tab_id=tab_id)
    return normalize_document(WorkspaceDocument(tabs=[tab], active_tab_id=tab_id))


def _renamed(doc: WorkspaceDocument, name: str) -> WorkspaceDocument:
    return doc.model_copy(update={"tabs": [doc.tabs[0].model_copy(update={"name": name})]})


def test_initialize_adopts_remote_document():
    from deskboard.store.memory_store import MemoryStore

    async def run():
        remote = _doc("원격", "r1")
        store = MemoryStore(dump_document(remote))
        engine = SyncEngine(store, debounce_secs=0.01)
        state = await engine.initialize(_doc())
        assert not state.loading and state.error is None
        assert state.ready
        assert state.document == remote
        assert store.saved == []
        assert store.subscriber_count == 1
        engine.close()
        assert store.subscriber_count == 0

    asyncio.run(run())


def test_initialize_seeds_empty_store():
    from deskboard.store.memory_store import MemoryStore

    async def run():
        for initial in [None, {"tabs": [], "activeTabId": ""}]:
            store = MemoryStore(initial)
            engine = SyncEngine(store, debounce_secs=0.01)
            default = _doc()
            state = await engine.initialize(default)
            assert state.document == default
            assert len(store.saved) == 1
            assert store.saved[0]["tabs"][0]["id"] == "t1"
            engine.close()

    asyncio.run(run())


def test_initialize_heals_dangling_active_tab():
    from deskboard.store.memory_store import MemoryStore

    async def run():
        data = dump_document(_doc())
        data["activeTabId"] = "deleted-tab"
        engine = SyncEngine(MemoryStore(data), debounce_secs=0.01)
        state = await engine.initialize(_doc("unused", "u1"))
        assert state.error is None
        assert state.document is not None and state.document.active_tab_id == "t1"
        engine.close()

    asyncio.run(run())


def test_load_error_is_fatal_and_blocks_updates():
    from deskboard.store.memory_store import MemoryStore

    class BrokenStore(MemoryStore):
        def fetch_once(self):
            raise ConnectionError("offline")

    async def run():
        store = BrokenStore()
        engine = SyncEngine(store, debounce_secs=0.01)
        states = []
        engine.add_listener(states.append)
        state = await engine.initialize(_doc())
        assert isinstance(state.error, LoadError)
        assert "offline" in str(state.error)
        assert not state.loading and state.document is None
        assert not state.ready
        assert states[-1] is state
        assert engine.update(_doc("x")) is False
        await asyncio.sleep(0.05)
        assert store.saved == []

    asyncio.run(run())


def test_initialize_only_once():
    from deskboard.store.memory_store import MemoryStore

    async def run():
        store = MemoryStore()
        engine = SyncEngine(store, debounce_secs=0.01)
        await engine.initialize(_doc())
        await engine.initialize(_doc("다른", "t2"))
        assert len(store.saved) == 1
        assert engine.document is not None and engine.document.tabs[0].id == "t1"
        engine.close()

    asyncio.run(run())


def test_update_before_initialize_is_ignored():
    from deskboard.store.memory_store import MemoryStore

    engine = SyncEngine(MemoryStore(), debounce_secs=0.01)
    assert engine.update(_doc()) is False
    assert engine.document is None


def test_debounce_coalesces_burst_into_last_document():
    from deskboard.store.memory_store import MemoryStore

    async def run():
        store = MemoryStore(dump_document(_doc()))
        engine = SyncEngine(store, debounce_secs=0.3)
        await engine.initialize(_doc("unused", "u1"))
        base = engine.document
        assert base is not None

        d1, d2, d3 = (_renamed(base, name) for name in ["D1", "D2", "D3"])
        for d in [d1, d2, d3]:
            assert engine.update(d)
            # Optimistic: visible right away.
            assert engine.document is d
            await asyncio.sleep(0.05)

        assert store.saved == []
        await asyncio.sleep(0.6)
        assert len(store.saved) == 1
        assert store.saved[0] == dump_document(d3)
        engine.close()

    asyncio.run(run())


def test_remote_snapshot_is_not_saved_back():
    from deskboard.store.memory_store import MemoryStore

    async def run():
        store = MemoryStore(dump_document(_doc()))
        engine = SyncEngine(store, debounce_secs=0.02)
        await engine.initialize(_doc("unused", "u1"))

        # A UI that reacts to every new document by pushing an update back.
        results = []
        armed = [True]

        def echoing_listener(state: SyncState):
            if armed[0] and state.document is not None:
                armed[0] = False
                results.append(engine.update(_renamed(state.document, "echo")))

        engine.add_listener(echoing_listener)
        remote = _renamed(_doc(), "다른 세션")
        store.push_remote(dump_document(remote))
        await asyncio.sleep(0.1)

        assert results == [False]
        assert engine.document == remote
        assert store.saved == []

        # The flag clears on the next loop turn, so later local edits go through.
        assert engine.update(_renamed(remote, "local"))
        await engine.flush()
        assert len(store.saved) == 1
        engine.close()

    asyncio.run(run())


def test_own_echo_does_not_revert_newer_local_edits():
    from deskboard.store.memory_store import MemoryStore

    class ManualPushStore(MemoryStore):
        def subscribe(self, on_change, on_error):
            self.on_change = on_change
            return lambda: None

    async def run():
        store = ManualPushStore(dump_document(_doc()))
        engine = SyncEngine(store, debounce_secs=0.02)
        await engine.initialize(_doc("unused", "u1"))
        base = engine.document
        assert base is not None

        d1 = _renamed(base, "D1")
        engine.update(d1)
        await engine.flush()
        d2 = _renamed(base, "D2")
        engine.update(d2)

        # The echo of the D1 save arrives late, while D2 is still pending.
        store.on_change(store.data)
        await asyncio.sleep(0.01)
        assert engine.document is d2
        assert engine.has_pending_save

        await engine.flush()
        assert store.saved[-1] == dump_document(d2)
        engine.close()

    asyncio.run(run())


def test_remote_snapshot_replaces_pending_local_edit():
    from deskboard.store.memory_store import MemoryStore

    class ManualPushStore(MemoryStore):
        def subscribe(self, on_change, on_error):
            self.on_change = on_change
            return lambda: None

    async def run():
        store = ManualPushStore(dump_document(_doc()))
        engine = SyncEngine(store, debounce_secs=0.05)
        await engine.initialize(_doc("unused", "u1"))
        base = engine.document
        assert base is not None

        engine.update(_renamed(base, "local"))
        remote = _renamed(base, "remote")
        store.on_change(dump_document(remote))
        await asyncio.sleep(0.15)

        assert engine.document == remote
        assert store.saved == []
        engine.close()

    asyncio.run(run())


def test_save_failure_keeps_local_state():
    from deskboard.store.memory_store import MemoryStore

    class FlakyStore(MemoryStore):
        failing = False

        def save(self, data):
            if self.failing:
                raise ConnectionError("write refused")
            super().save(data)

    async def run():
        store = FlakyStore(dump_document(_doc()))
        engine = SyncEngine(store, debounce_secs=0.01)
        await engine.initialize(_doc("unused", "u1"))
        base = engine.document
        assert base is not None

        store.failing = True
        d1 = _renamed(base, "D1")
        engine.update(d1)
        await engine.flush()
        assert isinstance(engine.state.save_error, SaveError)
        assert engine.state.error is None
        assert engine.document is d1

        store.failing = False
        d2 = _renamed(d1, "D2")
        engine.update(d2)
        await engine.flush()
        assert engine.state.save_error is None
        assert store.saved[-1]["tabs"][0]["name"] == "D2"
        engine.close()

    asyncio.run(run())


def test_failed_save_is_not_mistaken_for_an_echo():
    from deskboard.store.memory_store import MemoryStore

    class RefusingStore(MemoryStore):
        failing = False

        def save(self, data):
            if self.failing:
                raise ConnectionError("write refused")
            super().save(data)

        def subscribe(self, on_change, on_error):
            self.on_change = on_change
            return lambda: None

    async def run():
        store = RefusingStore(dump_document(_doc()))
        engine = SyncEngine(store, debounce_secs=0.01)
        await engine.initialize(_doc("unused", "u1"))
        base = engine.document
        assert base is not None

        store.failing = True
        d1 = _renamed(base, "D1")
        engine.update(d1)
        await engine.flush()
        assert isinstance(engine.state.save_error, SaveError)

        # Another session writes something else, then the same content as the failed save.
        other = _renamed(base, "other")
        store.on_change(dump_document(other))
        await asyncio.sleep(0.01)
        assert engine.document == other

        store.on_change(dump_document(d1))
        await asyncio.sleep(0.01)
        assert engine.document == d1
        engine.close()

    asyncio.run(run())


def test_close_cancels_pending_save():
    from deskboard.store.memory_store import MemoryStore

    async def run():
        store = MemoryStore(dump_document(_doc()))
        engine = SyncEngine(store, debounce_secs=0.02)
        await engine.initialize(_doc("unused", "u1"))
        assert engine.document is not None
        engine.update(_renamed(engine.document, "unsaved"))
        engine.close()
        await asyncio.sleep(0.1)
        assert store.saved == []
        assert store.subscriber_count == 0
        assert engine.update(_doc("later")) is False

    asyncio.run(run())


def test_subscription_error_is_reported():
    from deskboard.store.memory_store import MemoryStore

    async def run():
        store = MemoryStore(dump_document(_doc()))
        engine = SyncEngine(store, debounce_secs=0.01)
        await engine.initialize(_doc("unused", "u1"))
        store.fail_subscribers(PermissionError("denied"))
        await asyncio.sleep(0.01)
        assert isinstance(engine.error, StoreError)
        assert "denied" in str(engine.error)
        assert engine.document is not None
        engine.close()

    asyncio.run(run())


def test_malformed_remote_snapshot_is_ignored():
    from deskboard.store.memory_store import MemoryStore

    async def run():
        store = MemoryStore(dump_document(_doc()))
        engine = SyncEngine(store, debounce_secs=0.01)
        await engine.initialize(_doc("unused", "u1"))
        before = engine.document
        store.push_remote({"tabs": [{"name": "no id"}]})
        await asyncio.sleep(0.01)
        assert engine.document is before
        assert engine.error is None
        engine.close()

    asyncio.run(run())
