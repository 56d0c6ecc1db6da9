"""
Intents for the auxiliary collections: bookmarks, side notes, and the parking panel.
"""

from typing import Callable, List, Optional

from deskboard.config.settings import SIDE_NOTE_SLOTS
from deskboard.errors import InvalidInput, MissingEntity
from deskboard.model.doc_access import get_tab, update_tab, without_memos
from deskboard.model.workspace_model import (
    Bookmark,
    Item,
    ParkingInfo,
    ParkingList,
    SideNote,
    WorkspaceDocument,
)
from deskboard.reorder.splice import move_by_id
from deskboard.util.identifier_utils import new_id

# Bookmarks


def _get_bookmark(doc: WorkspaceDocument, bookmark_id: str) -> Bookmark:
    bookmark = next((b for b in doc.bookmarks if b.id == bookmark_id), None)
    if bookmark is None:
        raise MissingEntity("bookmark", bookmark_id)
    return bookmark


def add_bookmark(
    doc: WorkspaceDocument, label: str, url: str = "", color: str = ""
) -> WorkspaceDocument:
    bookmark = Bookmark(id=new_id(), label=label, url=url, color=color)
    return doc.model_copy(update={"bookmarks": [*doc.bookmarks, bookmark]})


def set_bookmark(
    doc: WorkspaceDocument,
    bookmark_id: str,
    label: Optional[str] = None,
    url: Optional[str] = None,
    color: Optional[str] = None,
) -> WorkspaceDocument:
    bookmark = _get_bookmark(doc, bookmark_id)
    changes = {k: v for k, v in [("label", label), ("url", url), ("color", color)] if v is not None}
    if not changes:
        return doc
    updated = bookmark.model_copy(update=changes)
    return doc.model_copy(
        update={"bookmarks": [updated if b.id == bookmark_id else b for b in doc.bookmarks]}
    )


def delete_bookmark(doc: WorkspaceDocument, bookmark_id: str) -> WorkspaceDocument:
    _get_bookmark(doc, bookmark_id)
    return doc.model_copy(update={"bookmarks": [b for b in doc.bookmarks if b.id != bookmark_id]})


def reorder_bookmark(
    doc: WorkspaceDocument, bookmark_id: str, target_bookmark_id: str
) -> WorkspaceDocument:
    _get_bookmark(doc, bookmark_id)
    _get_bookmark(doc, target_bookmark_id)
    if bookmark_id == target_bookmark_id:
        return doc
    bookmarks = move_by_id(doc.bookmarks, bookmark_id, target_bookmark_id, lambda b: b.id)
    return doc.model_copy(update={"bookmarks": bookmarks})


# Side notes


def set_side_note(
    doc: WorkspaceDocument,
    tab_id: str,
    index: int,
    title: Optional[str] = None,
    content: Optional[str] = None,
) -> WorkspaceDocument:
    """
    Edit one of the tab's fixed side note slots, addressed by index.
    """
    if not 0 <= index < SIDE_NOTE_SLOTS:
        raise InvalidInput(f"Side note index must be 0 to {SIDE_NOTE_SLOTS - 1}: {index}")

    def update(tab):
        notes = list(tab.side_notes)
        # Tabs that skipped normalization may have fewer slots.
        notes.extend(SideNote() for _ in range(SIDE_NOTE_SLOTS - len(notes)))
        changes = {k: v for k, v in [("title", title), ("content", content)] if v is not None}
        notes[index] = notes[index].model_copy(update=changes)
        return tab.model_copy(update={"side_notes": notes})

    return update_tab(doc, tab_id, update)


# Parking panel


def _update_parking(
    doc: WorkspaceDocument, tab_id: str, fn: Callable[[ParkingInfo], ParkingInfo]
) -> WorkspaceDocument:
    return update_tab(
        doc, tab_id, lambda t: t.model_copy(update={"parking_info": fn(t.parking_info)})
    )


def _with_items(parking: ParkingInfo, which: ParkingList, items: List[Item]) -> ParkingInfo:
    return parking.model_copy(update={which.items_field: items})


def _parking_item_index(
    doc: WorkspaceDocument, tab_id: str, which: ParkingList, item_id: str
) -> int:
    items = get_tab(doc, tab_id).parking_info.items(which)
    for i, item in enumerate(items):
        if item.id == item_id:
            return i
    raise MissingEntity("item", item_id)


def set_parking_text(doc: WorkspaceDocument, tab_id: str, text: str) -> WorkspaceDocument:
    return _update_parking(doc, tab_id, lambda p: p.model_copy(update={"text": text}))


def add_parking_item(
    doc: WorkspaceDocument, tab_id: str, which: ParkingList, text: str = ""
) -> WorkspaceDocument:
    item = Item(id=new_id(), text=text)
    return _update_parking(doc, tab_id, lambda p: _with_items(p, which, [item, *p.items(which)]))


def _update_parking_item(
    doc: WorkspaceDocument,
    tab_id: str,
    which: ParkingList,
    item_id: str,
    fn: Callable[[Item], Item],
) -> WorkspaceDocument:
    index = _parking_item_index(doc, tab_id, which, item_id)

    def update(parking):
        items = list(parking.items(which))
        items[index] = fn(items[index])
        return _with_items(parking, which, items)

    return _update_parking(doc, tab_id, update)


def edit_parking_item(
    doc: WorkspaceDocument, tab_id: str, which: ParkingList, item_id: str, text: str
) -> WorkspaceDocument:
    return _update_parking_item(
        doc, tab_id, which, item_id, lambda i: i.model_copy(update={"text": text})
    )


def toggle_parking_item(
    doc: WorkspaceDocument, tab_id: str, which: ParkingList, item_id: str
) -> WorkspaceDocument:
    return _update_parking_item(
        doc, tab_id, which, item_id, lambda i: i.model_copy(update={"completed": not i.completed})
    )


def delete_parking_item(
    doc: WorkspaceDocument, tab_id: str, which: ParkingList, item_id: str
) -> WorkspaceDocument:
    _parking_item_index(doc, tab_id, which, item_id)

    def update(parking):
        items = [i for i in parking.items(which) if i.id != item_id]
        return parking.model_copy(
            update={
                which.items_field: items,
                which.memos_field: without_memos(parking.memos(which), [item_id]),
            }
        )

    return _update_parking(doc, tab_id, update)


def reorder_parking_item(
    doc: WorkspaceDocument, tab_id: str, which: ParkingList, item_id: str, target_item_id: str
) -> WorkspaceDocument:
    _parking_item_index(doc, tab_id, which, item_id)
    _parking_item_index(doc, tab_id, which, target_item_id)
    if item_id == target_item_id:
        return doc

    def update(parking):
        items = move_by_id(parking.items(which), item_id, target_item_id, lambda i: i.id)
        return _with_items(parking, which, items)

    return _update_parking(doc, tab_id, update)


## Tests


def _doc() -> WorkspaceDocument:
    from deskboard.model.defaults import default_document

    return default_document()


def test_bookmarks():
    import pytest

    doc = _doc()
    assert len(doc.bookmarks) == 15

    doc = set_bookmark(doc, "b1", url="https://example.com")
    assert doc.bookmarks[0].url == "https://example.com"
    assert doc.bookmarks[0].label == "호실관리"

    doc = add_bookmark(doc, "새 링크", "https://example.org", "#369D47")
    assert doc.bookmarks[-1].label == "새 링크"

    doc = reorder_bookmark(doc, doc.bookmarks[-1].id, "b1")
    assert doc.bookmarks[0].label == "새 링크"
    assert doc.bookmarks[1].id == "b1"

    doc = delete_bookmark(doc, "b2")
    assert "b2" not in [b.id for b in doc.bookmarks]
    with pytest.raises(MissingEntity):
        delete_bookmark(doc, "b2")


def test_side_notes():
    import pytest

    doc = _doc()
    tab_id = doc.tabs[0].id
    doc = set_side_note(doc, tab_id, 15, title="전화", content="010-0000-0000")
    doc = set_side_note(doc, tab_id, 15, content="010-1111-1111")
    note = doc.tabs[0].side_notes[15]
    assert (note.title, note.content) == ("전화", "010-1111-1111")
    assert len(doc.tabs[0].side_notes) == SIDE_NOTE_SLOTS

    with pytest.raises(InvalidInput):
        set_side_note(doc, tab_id, 16, title="x")


def test_parking_lists():
    from deskboard.mutations.memo_mutations import MemoClass, set_memo

    doc = _doc()
    tab_id = doc.tabs[0].id
    doc = set_parking_text(doc, tab_id, "B2 기둥 14")
    doc = add_parking_item(doc, tab_id, ParkingList.shopping, "우유")
    doc = add_parking_item(doc, tab_id, ParkingList.shopping, "계란")
    parking = doc.tabs[0].parking_info
    assert parking.text == "B2 기둥 14"
    assert [i.text for i in parking.shopping_list_items] == ["계란", "우유"]
    assert parking.checklist_items == []

    milk, eggs = parking.shopping_list_items[1].id, parking.shopping_list_items[0].id
    doc = edit_parking_item(doc, tab_id, ParkingList.shopping, milk, "저지방 우유")
    doc = toggle_parking_item(doc, tab_id, ParkingList.shopping, milk)
    doc = reorder_parking_item(doc, tab_id, ParkingList.shopping, milk, eggs)
    items = doc.tabs[0].parking_info.shopping_list_items
    assert [(i.text, i.completed) for i in items] == [("저지방 우유", True), ("계란", False)]

    doc = set_memo(doc, tab_id, MemoClass.shopping, milk, "1L")
    doc = delete_parking_item(doc, tab_id, ParkingList.shopping, milk)
    parking = doc.tabs[0].parking_info
    assert [i.id for i in parking.shopping_list_items] == [eggs]
    assert parking.shopping_list_memos == {}
