"""
Item memos. Memos are kept in maps keyed by item id on the tab, not on the item:
one map for section items and one per parking list.
"""

from enum import Enum
from typing import Dict

from deskboard.errors import MissingEntity
from deskboard.model.doc_access import get_tab, item_index, tab_sections, update_tab
from deskboard.model.workspace_model import ParkingList, Tab, WorkspaceDocument


class MemoClass(Enum):
    section = "section"
    checklist = "checklist"
    shopping = "shopping"

    @property
    def parking_list(self) -> ParkingList | None:
        if self == MemoClass.checklist:
            return ParkingList.checklist
        if self == MemoClass.shopping:
            return ParkingList.shopping
        return None


def memo_map(tab: Tab, memo_class: MemoClass) -> Dict[str, str]:
    parking_list = memo_class.parking_list
    if parking_list is None:
        return tab.memos
    return tab.parking_info.memos(parking_list)


def _has_item(tab: Tab, memo_class: MemoClass, item_id: str) -> bool:
    parking_list = memo_class.parking_list
    if parking_list is None:
        return any(item_index(section, item_id) != -1 for section in tab_sections(tab))
    return any(item.id == item_id for item in tab.parking_info.items(parking_list))


def _with_memo_map(tab: Tab, memo_class: MemoClass, memos: Dict[str, str]) -> Tab:
    parking_list = memo_class.parking_list
    if parking_list is None:
        return tab.model_copy(update={"memos": memos})
    parking_info = tab.parking_info.model_copy(update={parking_list.memos_field: memos})
    return tab.model_copy(update={"parking_info": parking_info})


def get_memo(doc: WorkspaceDocument, tab_id: str, memo_class: MemoClass, item_id: str) -> str:
    return memo_map(get_tab(doc, tab_id), memo_class).get(item_id, "")


def set_memo(
    doc: WorkspaceDocument, tab_id: str, memo_class: MemoClass, item_id: str, text: str
) -> WorkspaceDocument:
    """
    Set the memo of an item on the tab. Blank text removes the memo.
    """
    tab = get_tab(doc, tab_id)
    if not _has_item(tab, memo_class, item_id):
        raise MissingEntity("item", item_id)

    memos = memo_map(tab, memo_class)
    if text.strip():
        if memos.get(item_id) == text:
            return doc
        new_memos = {**memos, item_id: text}
    else:
        if item_id not in memos:
            return doc
        new_memos = {k: v for k, v in memos.items() if k != item_id}

    return update_tab(doc, tab_id, lambda t: _with_memo_map(t, memo_class, new_memos))


## Tests


def _doc() -> WorkspaceDocument:
    from deskboard.model.workspace_model import Item, ParkingInfo, Section

    return WorkspaceDocument(
        tabs=[
            Tab(
                id="t1",
                sections=[Section(id="s1", items=[Item(id="a")])],
                parking_info=ParkingInfo(
                    checklist_items=[Item(id="p1")], shopping_list_items=[Item(id="p2")]
                ),
            )
        ],
        active_tab_id="t1",
    )


def test_section_memos():
    doc = set_memo(_doc(), "t1", MemoClass.section, "a", "call first")
    assert doc.tabs[0].memos == {"a": "call first"}
    assert get_memo(doc, "t1", MemoClass.section, "a") == "call first"
    assert set_memo(doc, "t1", MemoClass.section, "a", "call first") is doc

    cleared = set_memo(doc, "t1", MemoClass.section, "a", "  ")
    assert cleared.tabs[0].memos == {}
    assert get_memo(cleared, "t1", MemoClass.section, "a") == ""


def test_parking_memos():
    doc = set_memo(_doc(), "t1", MemoClass.checklist, "p1", "trunk")
    doc = set_memo(doc, "t1", MemoClass.shopping, "p2", "2 packs")
    parking = doc.tabs[0].parking_info
    assert parking.checklist_memos == {"p1": "trunk"}
    assert parking.shopping_list_memos == {"p2": "2 packs"}
    assert doc.tabs[0].memos == {}


def test_memo_for_missing_item():
    import pytest

    with pytest.raises(MissingEntity):
        set_memo(_doc(), "t1", MemoClass.checklist, "a", "wrong list")
    with pytest.raises(MissingEntity):
        set_memo(_doc(), "t9", MemoClass.section, "a", "no tab")
