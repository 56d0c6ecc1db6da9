"""
The intent surface used by a UI: every intent computes the next document from the
engine's current one and submits it with `SyncEngine.update()`.

Intents that target a tab default to the active tab. Intents that can't be applied
(locked, missing, not allowed) are logged as a user-facing message and kept in
`last_rejection`; they never raise.
"""

from typing import Callable, Optional

from deskboard.config.logger import get_logger
from deskboard.errors import InvalidOperation, SelfExplanatoryError
from deskboard.model.defaults import DEFAULT_SECTION_COLOR, NEW_SECTION_TITLE
from deskboard.model.doc_access import active_tab
from deskboard.model.workspace_model import ParkingList, WorkspaceDocument
from deskboard.mutations import (
    aux_mutations,
    item_mutations,
    memo_mutations,
    section_mutations,
    tab_mutations,
)
from deskboard.mutations.memo_mutations import MemoClass
from deskboard.reorder.drag_engine import ReorderTransferEngine
from deskboard.sync.sync_engine import SyncEngine

log = get_logger(__name__)

Mutation = Callable[[WorkspaceDocument], WorkspaceDocument]


def _tab_for(doc: WorkspaceDocument, tab_id: Optional[str]) -> str:
    return tab_id or active_tab(doc).id


class MutationHandlers:
    def __init__(self, engine: SyncEngine):
        self.engine = engine
        self.drag = ReorderTransferEngine()
        self.last_rejection: Optional[SelfExplanatoryError] = None

    def _current(self) -> WorkspaceDocument:
        doc = self.engine.document
        if doc is None:
            raise InvalidOperation("Workspace is not loaded")
        return doc

    def _reject(self, error: SelfExplanatoryError) -> bool:
        self.last_rejection = error
        log.message("%s", error)
        return False

    def _submit(self, doc: WorkspaceDocument, new_doc: WorkspaceDocument) -> bool:
        if new_doc is doc or new_doc == doc:
            return False
        return self.engine.update(new_doc)

    def apply(self, mutation: Mutation) -> bool:
        """
        Apply a mutation to the current document. Returns True if the document changed.
        """
        self.last_rejection = None
        try:
            doc = self._current()
            new_doc = mutation(doc)
        except SelfExplanatoryError as e:
            return self._reject(e)
        return self._submit(doc, new_doc)

    # Tabs

    def add_tab(self, name: Optional[str] = None) -> bool:
        return self.apply(lambda doc: tab_mutations.add_tab(doc, name))

    def rename_tab(self, tab_id: str, name: str) -> bool:
        return self.apply(lambda doc: tab_mutations.rename_tab(doc, tab_id, name))

    def toggle_tab_lock(self, tab_id: str) -> bool:
        return self.apply(lambda doc: tab_mutations.toggle_tab_lock(doc, tab_id))

    def delete_tab(self, tab_id: str) -> bool:
        return self.apply(lambda doc: tab_mutations.delete_tab(doc, tab_id))

    def select_tab(self, tab_id: str) -> bool:
        return self.apply(lambda doc: tab_mutations.select_tab(doc, tab_id))

    def reorder_tab(self, tab_id: str, target_tab_id: str) -> bool:
        return self.apply(lambda doc: tab_mutations.reorder_tab(doc, tab_id, target_tab_id))

    def set_header_goals(
        self,
        goal1: Optional[str] = None,
        goal2: Optional[str] = None,
        tab_id: Optional[str] = None,
    ) -> bool:
        return self.apply(
            lambda doc: tab_mutations.set_header_goals(doc, _tab_for(doc, tab_id), goal1, goal2)
        )

    # Sections

    def add_section(
        self,
        title: str = NEW_SECTION_TITLE,
        color: str = DEFAULT_SECTION_COLOR,
        tab_id: Optional[str] = None,
    ) -> bool:
        return self.apply(
            lambda doc: section_mutations.add_section(doc, _tab_for(doc, tab_id), title, color)
        )

    def rename_section(self, section_id: str, title: str) -> bool:
        return self.apply(lambda doc: section_mutations.rename_section(doc, section_id, title))

    def set_section_color(self, section_id: str, color: str) -> bool:
        return self.apply(lambda doc: section_mutations.set_section_color(doc, section_id, color))

    def toggle_section_lock(self, section_id: str) -> bool:
        return self.apply(lambda doc: section_mutations.toggle_section_lock(doc, section_id))

    def delete_section(self, section_id: str) -> bool:
        return self.apply(lambda doc: section_mutations.delete_section(doc, section_id))

    def reorder_section(self, section_id: str, target_section_id: str) -> bool:
        return self.apply(
            lambda doc: section_mutations.reorder_section(doc, section_id, target_section_id)
        )

    def clear_section_completed(self, section_id: str) -> bool:
        return self.apply(lambda doc: section_mutations.clear_section_completed(doc, section_id))

    def clear_tab_completed(self, tab_id: Optional[str] = None) -> bool:
        return self.apply(
            lambda doc: section_mutations.clear_tab_completed(doc, _tab_for(doc, tab_id))
        )

    # Items

    def add_item(self, section_id: str, text: str = "") -> bool:
        return self.apply(lambda doc: item_mutations.add_item(doc, section_id, text))

    def edit_item_text(self, item_id: str, text: str) -> bool:
        return self.apply(lambda doc: item_mutations.edit_item_text(doc, item_id, text))

    def toggle_item(self, item_id: str) -> bool:
        return self.apply(lambda doc: item_mutations.toggle_item(doc, item_id))

    def delete_item(self, item_id: str) -> bool:
        return self.apply(lambda doc: item_mutations.delete_item(doc, item_id))

    def reorder_item(self, item_id: str, target_item_id: str) -> bool:
        return self.apply(lambda doc: item_mutations.reorder_item(doc, item_id, target_item_id))

    def move_item(self, item_id: str, dest_tab_id: str, dest_section_id: str) -> bool:
        return self.apply(
            lambda doc: item_mutations.move_item(doc, item_id, dest_tab_id, dest_section_id)
        )

    # Memos

    def get_memo(
        self, item_id: str, memo_class: MemoClass = MemoClass.section, tab_id: Optional[str] = None
    ) -> str:
        doc = self.engine.document
        if doc is None:
            return ""
        return memo_mutations.get_memo(doc, _tab_for(doc, tab_id), memo_class, item_id)

    def set_memo(
        self,
        item_id: str,
        text: str,
        memo_class: MemoClass = MemoClass.section,
        tab_id: Optional[str] = None,
    ) -> bool:
        return self.apply(
            lambda doc: memo_mutations.set_memo(
                doc, _tab_for(doc, tab_id), memo_class, item_id, text
            )
        )

    # Bookmarks

    def add_bookmark(self, label: str, url: str = "", color: str = "") -> bool:
        return self.apply(lambda doc: aux_mutations.add_bookmark(doc, label, url, color))

    def set_bookmark(
        self,
        bookmark_id: str,
        label: Optional[str] = None,
        url: Optional[str] = None,
        color: Optional[str] = None,
    ) -> bool:
        return self.apply(
            lambda doc: aux_mutations.set_bookmark(doc, bookmark_id, label, url, color)
        )

    def delete_bookmark(self, bookmark_id: str) -> bool:
        return self.apply(lambda doc: aux_mutations.delete_bookmark(doc, bookmark_id))

    def reorder_bookmark(self, bookmark_id: str, target_bookmark_id: str) -> bool:
        return self.apply(
            lambda doc: aux_mutations.reorder_bookmark(doc, bookmark_id, target_bookmark_id)
        )

    # Side notes and parking

    def set_side_note(
        self,
        index: int,
        title: Optional[str] = None,
        content: Optional[str] = None,
        tab_id: Optional[str] = None,
    ) -> bool:
        return self.apply(
            lambda doc: aux_mutations.set_side_note(
                doc, _tab_for(doc, tab_id), index, title, content
            )
        )

    def set_parking_text(self, text: str, tab_id: Optional[str] = None) -> bool:
        return self.apply(
            lambda doc: aux_mutations.set_parking_text(doc, _tab_for(doc, tab_id), text)
        )

    def add_parking_item(
        self, which: ParkingList, text: str = "", tab_id: Optional[str] = None
    ) -> bool:
        return self.apply(
            lambda doc: aux_mutations.add_parking_item(doc, _tab_for(doc, tab_id), which, text)
        )

    def edit_parking_item(
        self, which: ParkingList, item_id: str, text: str, tab_id: Optional[str] = None
    ) -> bool:
        return self.apply(
            lambda doc: aux_mutations.edit_parking_item(
                doc, _tab_for(doc, tab_id), which, item_id, text
            )
        )

    def toggle_parking_item(
        self, which: ParkingList, item_id: str, tab_id: Optional[str] = None
    ) -> bool:
        return self.apply(
            lambda doc: aux_mutations.toggle_parking_item(
                doc, _tab_for(doc, tab_id), which, item_id
            )
        )

    def delete_parking_item(
        self, which: ParkingList, item_id: str, tab_id: Optional[str] = None
    ) -> bool:
        return self.apply(
            lambda doc: aux_mutations.delete_parking_item(
                doc, _tab_for(doc, tab_id), which, item_id
            )
        )

    def reorder_parking_item(
        self, which: ParkingList, item_id: str, target_item_id: str, tab_id: Optional[str] = None
    ) -> bool:
        return self.apply(
            lambda doc: aux_mutations.reorder_parking_item(
                doc, _tab_for(doc, tab_id), which, item_id, target_item_id
            )
        )

    # Drag gestures

    def section_drag_start(self, section_id: str) -> None:
        self.drag.section_drag_start(section_id)

    def section_drag_over(self, section_id: str) -> None:
        self.drag.section_drag_over(section_id)

    def section_drop(self, target_section_id: str) -> bool:
        return self._drop(lambda doc: self.drag.section_drop(doc, target_section_id))

    def section_drag_end(self) -> None:
        self.drag.section_drag_end()

    def item_drag_start(self, item_id: str, section_id: str) -> None:
        self.drag.item_drag_start(item_id, section_id)

    def item_drag_over(self, item_id: str) -> None:
        self.drag.item_drag_over(item_id)

    def item_drop(self, target_section_id: str, target_item_id: Optional[str] = None) -> bool:
        return self._drop(
            lambda doc: self.drag.item_drop(doc, target_section_id, target_item_id)
        )

    def item_drag_end(self) -> None:
        self.drag.item_drag_end()

    def _drop(self, drop: Mutation) -> bool:
        self.last_rejection = None
        doc = self.engine.document
        if doc is None:
            return self._reject(InvalidOperation("Workspace is not loaded"))
        new_doc = drop(doc)
        if self.drag.last_rejection is not None:
            # Already reported by the drag engine.
            self.last_rejection = self.drag.last_rejection
            return False
        return self._submit(doc, new_doc)


## Tests


def _run_with_handlers(check, initial=None):
    import asyncio

    from deskboard.model.defaults import default_document
    from deskboard.store.memory_store import MemoryStore

    async def run():
        store = MemoryStore(initial)
        engine = SyncEngine(store, debounce_secs=0.01)
        await engine.initialize(default_document())
        try:
            check(MutationHandlers(engine), engine)
            await engine.flush()
        finally:
            engine.close()
        return store

    return asyncio.run(run())


def test_intents_default_to_active_tab():
    def check(handlers: MutationHandlers, engine: SyncEngine):
        assert handlers.add_tab()
        doc = engine.document
        assert doc is not None
        new_tab_id = doc.tabs[1].id
        assert doc.active_tab_id == new_tab_id

        assert handlers.add_section(title="장보기")
        doc = engine.document
        assert doc is not None
        assert [s.title for s in doc.tabs[1].sections] == ["장보기"]
        assert doc.tabs[0].sections == []

        section_id = doc.tabs[1].sections[0].id
        assert handlers.add_item(section_id, "우유")
        doc = engine.document
        assert doc is not None
        item_id = doc.tabs[1].sections[0].items[0].id
        assert handlers.set_memo(item_id, "저지방")
        assert handlers.get_memo(item_id) == "저지방"

    store = _run_with_handlers(check)
    saved = store.saved[-1]
    assert saved["tabs"][1]["sections"][0]["title"] == "장보기"
    assert list(saved["tabs"][1]["memos"].values()) == ["저지방"]


def test_rejected_intent_does_not_update():
    from deskboard.errors import MissingEntity

    def check(handlers: MutationHandlers, engine: SyncEngine):
        doc = engine.document
        assert doc is not None
        assert not handlers.delete_tab(doc.tabs[0].id)
        assert isinstance(handlers.last_rejection, InvalidOperation)
        assert engine.document is doc
        assert not engine.has_pending_save

        assert not handlers.toggle_item("missing")
        assert isinstance(handlers.last_rejection, MissingEntity)

        # A change that leaves the document equal is not submitted.
        assert not handlers.select_tab(doc.tabs[0].id)
        assert handlers.last_rejection is None
        assert not engine.has_pending_save

    store = _run_with_handlers(check)
    assert len(store.saved) == 1


def test_drag_gestures_through_handlers():
    from deskboard.errors import LockedDestination

    def check(handlers: MutationHandlers, engine: SyncEngine):
        handlers.add_section(title="A")
        handlers.add_section(title="B")
        doc = engine.document
        assert doc is not None
        a, b = doc.tabs[0].sections
        handlers.add_item(a.id, "x")
        handlers.toggle_section_lock(b.id)
        doc = engine.document
        assert doc is not None
        x = doc.tabs[0].sections[0].items[0]

        handlers.item_drag_start(x.id, a.id)
        assert not handlers.item_drop(b.id)
        assert isinstance(handlers.last_rejection, LockedDestination)
        handlers.item_drag_end()

        inbox = doc.tabs[0].inbox_section
        assert inbox is not None
        handlers.item_drag_start(x.id, a.id)
        assert handlers.item_drop(inbox.id)
        handlers.item_drag_end()

        handlers.section_drag_start(b.id)
        handlers.section_drag_over(a.id)
        assert handlers.section_drop(a.id)
        handlers.section_drag_end()

        doc = engine.document
        assert doc is not None
        assert [s.title for s in doc.tabs[0].sections] == ["B", "A"]
        assert doc.tabs[0].inbox_section is not None
        assert [i.text for i in doc.tabs[0].inbox_section.items] == ["x"]

    _run_with_handlers(check)


def test_handlers_before_load():
    from deskboard.store.memory_store import MemoryStore

    handlers = MutationHandlers(SyncEngine(MemoryStore(), debounce_secs=0.01))
    assert not handlers.add_tab()
    assert isinstance(handlers.last_rejection, InvalidOperation)
    assert not handlers.section_drop("s1")
    assert handlers.get_memo("a") == ""


def test_edit_keeps_fields_written_by_other_clients():
    photo = "data:image/jpeg;base64,AAAA"
    initial = {
        "tabs": [
            {
                "id": "t1",
                "name": "메인",
                "parkingInfo": {"text": "B2", "image": photo, "floorHint": "east"},
            }
        ],
        "activeTabId": "t1",
    }

    def check(handlers: MutationHandlers, engine: SyncEngine):
        assert handlers.rename_tab("t1", "renamed")

    store = _run_with_handlers(check, initial)
    saved = store.saved[-1]
    assert saved["tabs"][0]["name"] == "renamed"
    parking = saved["tabs"][0]["parkingInfo"]
    assert parking["image"] == photo
    assert parking["floorHint"] == "east"
    assert parking["text"] == "B2"
