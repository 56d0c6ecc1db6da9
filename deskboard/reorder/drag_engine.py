"""
Drag-and-drop gestures over sections and items, turned into document changes.

The drag state is transient and never part of the document. Drops take the current
document and return the next one. A drop that can't be applied returns the very
same document object, so callers can skip the update with an identity check.
"""

from dataclasses import dataclass, replace
from typing import Optional

from deskboard.config.logger import get_logger
from deskboard.errors import InvalidInput, InvalidTransfer, MissingEntity
from deskboard.model.doc_access import (
    item_index,
    locate_section,
    SectionSlot,
    with_section,
    with_tab,
)
from deskboard.model.workspace_model import WorkspaceDocument
from deskboard.reorder.relocate import relocate_item
from deskboard.reorder.splice import move_by_id

log = get_logger(__name__)


@dataclass(frozen=True)
class DragState:
    dragged_item_id: Optional[str] = None
    drag_over_item_id: Optional[str] = None
    source_section_id: Optional[str] = None
    dragged_section_id: Optional[str] = None
    drag_over_section_id: Optional[str] = None

    @property
    def is_dragging_item(self) -> bool:
        return bool(self.dragged_item_id)

    @property
    def is_dragging_section(self) -> bool:
        return bool(self.dragged_section_id)


class ReorderTransferEngine:
    def __init__(self):
        self.state = DragState()
        self.last_rejection: Optional[InvalidInput] = None
        """Why the last drop was refused, or None if it applied or was a no-op."""

    def _reject(self, doc: WorkspaceDocument, error: InvalidInput) -> WorkspaceDocument:
        self.last_rejection = error
        log.message("Drop refused: %s", error)
        return doc

    # Sections

    def section_drag_start(self, section_id: str) -> None:
        self.state = replace(self.state, dragged_section_id=section_id)

    def section_drag_over(self, section_id: str) -> None:
        dragged = self.state.dragged_section_id
        if dragged and dragged != section_id:
            self.state = replace(self.state, drag_over_section_id=section_id)

    def section_drop(self, doc: WorkspaceDocument, target_section_id: str) -> WorkspaceDocument:
        """
        Move the dragged section to the target's position among the tab's body sections.
        """
        self.last_rejection = None
        if not self.state.is_dragging_section:
            return doc
        dragged_id = self.state.dragged_section_id
        if dragged_id == target_section_id:
            return doc

        try:
            dragged = locate_section(doc, dragged_id)
            target = locate_section(doc, target_section_id)
        except MissingEntity as e:
            return self._reject(doc, e)

        if dragged.tab.id != target.tab.id:
            return self._reject(doc, InvalidTransfer("Sections can only be reordered within a tab"))
        if dragged.slot != SectionSlot.body or target.slot != SectionSlot.body:
            return self._reject(doc, InvalidTransfer("Fixed sections can't be reordered"))

        sections = move_by_id(dragged.tab.sections, dragged_id, target_section_id, lambda s: s.id)
        return with_tab(doc, dragged.tab.model_copy(update={"sections": sections}))

    def section_drag_end(self) -> None:
        self.state = replace(self.state, dragged_section_id=None, drag_over_section_id=None)

    # Items

    def item_drag_start(self, item_id: str, section_id: str) -> None:
        self.state = replace(self.state, dragged_item_id=item_id, source_section_id=section_id)

    def item_drag_over(self, item_id: str) -> None:
        if self.state.drag_over_item_id != item_id:
            self.state = replace(self.state, drag_over_item_id=item_id)

    def item_drop(
        self,
        doc: WorkspaceDocument,
        target_section_id: str,
        target_item_id: Optional[str] = None,
    ) -> WorkspaceDocument:
        """
        Drop the dragged item on a section, or on an item within it. Within the source
        section this reorders. Onto another section (on any tab) it transfers the item to
        the target item's index, or to the end if not dropped on an item.
        """
        self.last_rejection = None
        if not self.state.is_dragging_item:
            return doc
        dragged_id = self.state.dragged_item_id
        source_id = self.state.source_section_id
        if not source_id or dragged_id == target_item_id:
            return doc

        try:
            if source_id == target_section_id:
                return self._reorder_within(doc, target_section_id, dragged_id, target_item_id)

            target = locate_section(doc, target_section_id)
            index = None
            if target_item_id is not None:
                index = item_index(target.section, target_item_id)
                if index == -1:
                    index = None
            return relocate_item(doc, dragged_id, target.tab.id, target_section_id, index)
        except InvalidInput as e:
            return self._reject(doc, e)

    def _reorder_within(
        self,
        doc: WorkspaceDocument,
        section_id: str,
        dragged_id: str,
        target_item_id: Optional[str],
    ) -> WorkspaceDocument:
        if target_item_id is None:
            return doc
        loc = locate_section(doc, section_id)
        if item_index(loc.section, dragged_id) == -1:
            raise MissingEntity("item", dragged_id)
        if item_index(loc.section, target_item_id) == -1:
            raise MissingEntity("item", target_item_id)

        items = move_by_id(loc.section.items, dragged_id, target_item_id, lambda i: i.id)
        section = loc.section.model_copy(update={"items": items})
        return with_tab(doc, with_section(loc.tab, loc.slot, section))

    def item_drag_end(self) -> None:
        self.state = replace(
            self.state, dragged_item_id=None, drag_over_item_id=None, source_section_id=None
        )


## Tests


def _doc() -> WorkspaceDocument:
    from deskboard.model.workspace_model import Item, Section, Tab

    return WorkspaceDocument(
        tabs=[
            Tab(
                id="t1",
                name="메인",
                sections=[
                    Section(id="s1", items=[Item(id="a"), Item(id="b"), Item(id="c")]),
                    Section(id="s2", items=[Item(id="d")]),
                    Section(id="s3"),
                ],
                memos={"a": "memo a"},
                inbox_section=Section(id="in"),
                quotes_section=Section(id="q"),
            ),
            Tab(
                id="t2",
                name="새 페이지 2",
                sections=[Section(id="s4", items=[Item(id="e")]), Section(id="lk", is_locked=True)],
            ),
        ],
        active_tab_id="t1",
    )


def _ids(items) -> list:
    return [x.id for x in items]


def test_section_reorder():
    engine = ReorderTransferEngine()
    doc = _doc()

    engine.section_drag_start("s3")
    engine.section_drag_over("s3")
    assert engine.state.drag_over_section_id is None
    engine.section_drag_over("s1")
    assert engine.state.drag_over_section_id == "s1"

    new_doc = engine.section_drop(doc, "s1")
    assert _ids(new_doc.tabs[0].sections) == ["s3", "s1", "s2"]
    assert new_doc.tabs[1] is doc.tabs[1]

    engine.section_drag_end()
    assert engine.state == DragState()


def test_section_drop_noops():
    engine = ReorderTransferEngine()
    doc = _doc()

    # No drag in progress.
    assert engine.section_drop(doc, "s1") is doc

    engine.section_drag_start("s1")
    assert engine.section_drop(doc, "s1") is doc
    assert engine.last_rejection is None

    assert engine.section_drop(doc, "s4") is doc
    assert isinstance(engine.last_rejection, InvalidTransfer)

    assert engine.section_drop(doc, "q") is doc
    assert isinstance(engine.last_rejection, InvalidTransfer)

    assert engine.section_drop(doc, "gone") is doc
    assert isinstance(engine.last_rejection, MissingEntity)


def test_item_reorder_within_section():
    engine = ReorderTransferEngine()
    doc = _doc()

    engine.item_drag_start("a", "s1")
    engine.item_drag_over("c")
    assert engine.state.drag_over_item_id == "c"
    new_doc = engine.item_drop(doc, "s1", "c")
    assert _ids(new_doc.tabs[0].sections[0].items) == ["b", "c", "a"]
    assert new_doc.tabs[0].memos is doc.tabs[0].memos

    # Dropping onto itself, or onto the section's empty area, changes nothing.
    assert engine.item_drop(doc, "s1", "a") is doc
    assert engine.item_drop(doc, "s1") is doc

    engine.item_drag_end()
    assert engine.state == DragState()
    assert engine.item_drop(doc, "s1", "c") is doc


def test_item_reorder_gated_on_source_section():
    engine = ReorderTransferEngine()
    doc = _doc()
    # The dragged item was moved out of s1 mid-gesture.
    engine.item_drag_start("d", "s1")
    assert engine.item_drop(doc, "s1", "b") is doc
    assert isinstance(engine.last_rejection, MissingEntity)


def test_item_transfer_across_tabs():
    from deskboard.model.doc_access import count_items

    engine = ReorderTransferEngine()
    doc = _doc()

    engine.item_drag_start("a", "s1")
    new_doc = engine.item_drop(doc, "s4", "e")
    assert _ids(new_doc.tabs[1].sections[0].items) == ["a", "e"]
    assert _ids(new_doc.tabs[0].sections[0].items) == ["b", "c"]
    assert new_doc.tabs[1].memos == {"a": "memo a"}
    assert new_doc.tabs[0].memos == {}
    assert count_items(new_doc) == count_items(doc)


def test_item_transfer_appends_without_target_item():
    engine = ReorderTransferEngine()
    doc = _doc()
    engine.item_drag_start("b", "s1")
    new_doc = engine.item_drop(doc, "s2")
    assert _ids(new_doc.tabs[0].sections[1].items) == ["d", "b"]

    engine.item_drag_start("c", "s1")
    new_doc = engine.item_drop(new_doc, "in")
    assert new_doc.tabs[0].inbox_section is not None
    assert _ids(new_doc.tabs[0].inbox_section.items) == ["c"]


def test_item_transfer_to_locked_section_is_refused():
    from deskboard.errors import LockedDestination

    engine = ReorderTransferEngine()
    doc = _doc()
    engine.item_drag_start("a", "s1")
    assert engine.item_drop(doc, "lk") is doc
    assert isinstance(engine.last_rejection, LockedDestination)
    assert doc == _doc()
