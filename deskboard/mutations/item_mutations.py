from typing import Callable

from deskboard.errors import InvalidOperation
from deskboard.model.doc_access import (
    item_index,
    locate_item,
    locate_section,
    SectionSlot,
    with_section,
    with_tab,
    without_memos,
)
from deskboard.model.workspace_model import Item, WorkspaceDocument
from deskboard.reorder.relocate import relocate_item
from deskboard.reorder.splice import move_by_id
from deskboard.util.identifier_utils import new_id
from deskboard.util.quote_text import extract_shared_quote


def _clean_text(slot: SectionSlot, text: str) -> str:
    # Quotes are often pasted from a reading app's share sheet.
    return extract_shared_quote(text) if slot == SectionSlot.quotes else text


def _update_item(
    doc: WorkspaceDocument, item_id: str, fn: Callable[[Item, SectionSlot], Item]
) -> WorkspaceDocument:
    loc = locate_item(doc, item_id)
    section_loc = loc.section_location
    items = list(loc.section.items)
    items[loc.index] = fn(loc.item, section_loc.slot)
    section = loc.section.model_copy(update={"items": items})
    return with_tab(doc, with_section(loc.tab, section_loc.slot, section))


def add_item(doc: WorkspaceDocument, section_id: str, text: str = "") -> WorkspaceDocument:
    """
    Add an item at the top of a section.
    """
    loc = locate_section(doc, section_id)
    item = Item(id=new_id(), text=_clean_text(loc.slot, text))
    section = loc.section.model_copy(update={"items": [item, *loc.section.items]})
    return with_tab(doc, with_section(loc.tab, loc.slot, section))


def edit_item_text(doc: WorkspaceDocument, item_id: str, text: str) -> WorkspaceDocument:
    return _update_item(
        doc, item_id, lambda item, slot: item.model_copy(update={"text": _clean_text(slot, text)})
    )


def toggle_item(doc: WorkspaceDocument, item_id: str) -> WorkspaceDocument:
    return _update_item(
        doc, item_id, lambda item, _slot: item.model_copy(update={"completed": not item.completed})
    )


def delete_item(doc: WorkspaceDocument, item_id: str) -> WorkspaceDocument:
    """
    Delete an item and its memo.
    """
    loc = locate_item(doc, item_id)
    section = loc.section.model_copy(
        update={"items": [i for i in loc.section.items if i.id != item_id]}
    )
    tab = with_section(loc.tab, loc.section_location.slot, section)
    tab = tab.model_copy(update={"memos": without_memos(tab.memos, [item_id])})
    return with_tab(doc, tab)


def reorder_item(doc: WorkspaceDocument, item_id: str, target_item_id: str) -> WorkspaceDocument:
    """
    Move an item to the stored position of another item in the same section.
    """
    loc = locate_item(doc, item_id)
    if item_index(loc.section, target_item_id) == -1:
        raise InvalidOperation("Items can only be reordered within a section")
    if item_id == target_item_id:
        return doc
    items = move_by_id(loc.section.items, item_id, target_item_id, lambda i: i.id)
    section = loc.section.model_copy(update={"items": items})
    return with_tab(doc, with_section(loc.tab, loc.section_location.slot, section))


def move_item(
    doc: WorkspaceDocument, item_id: str, dest_tab_id: str, dest_section_id: str
) -> WorkspaceDocument:
    """
    Explicit "move to..." action: append the item to a chosen section on a chosen tab.
    Same rules as a drag transfer.
    """
    return relocate_item(doc, item_id, dest_tab_id, dest_section_id, index=None)


## Tests


def _doc() -> WorkspaceDocument:
    from deskboard.model.workspace_model import Section, Tab

    return WorkspaceDocument(
        tabs=[
            Tab(
                id="t1",
                name="새 페이지",
                sections=[],
                inbox_section=Section(id="in", title="IN-BOX"),
                quotes_section=Section(id="q", title="명언"),
            ),
            Tab(
                id="t2",
                name="메인",
                sections=[
                    Section(
                        id="s1",
                        title="S1",
                        items=[Item(id="a", text="buy milk"), Item(id="b"), Item(id="c")],
                    )
                ],
                memos={"b": "memo b"},
            ),
        ],
        active_tab_id="t2",
    )


def test_add_item_prepends():
    doc = add_item(_doc(), "s1", "new")
    items = doc.tabs[1].sections[0].items
    assert [i.text for i in items][:2] == ["new", "buy milk"]
    assert len(items[0].id) == 9 and not items[0].completed


def test_quote_text_is_cleaned():
    shared = "책은 도끼다 - 박웅현, 밀리의 서재\nhttps://millie.page.link/abc"
    doc = add_item(_doc(), "q", shared)
    quotes = doc.tabs[0].quotes_section
    assert quotes is not None and quotes.items[0].text == "책은 도끼다"

    # Only the quotes section cleans text.
    doc = add_item(doc, "s1", shared)
    assert doc.tabs[1].sections[0].items[0].text == shared

    doc = edit_item_text(doc, quotes.items[0].id, shared)
    quotes = doc.tabs[0].quotes_section
    assert quotes is not None and quotes.items[0].text == "책은 도끼다"


def test_edit_toggle_delete():
    doc = edit_item_text(_doc(), "a", "buy oat milk")
    doc = toggle_item(doc, "a")
    item = doc.tabs[1].sections[0].items[0]
    assert (item.text, item.completed) == ("buy oat milk", True)

    doc = delete_item(doc, "b")
    assert [i.id for i in doc.tabs[1].sections[0].items] == ["a", "c"]
    assert doc.tabs[1].memos == {}


def test_reorder_item():
    import pytest

    doc = _doc()
    moved = reorder_item(doc, "c", "a")
    assert [i.id for i in moved.tabs[1].sections[0].items] == ["c", "a", "b"]
    assert reorder_item(doc, "a", "a") is doc
    with pytest.raises(InvalidOperation):
        reorder_item(doc, "a", "missing")


def test_move_item_to_inbox_of_other_tab():
    doc = move_item(_doc(), "a", "t1", "in")
    main_s1 = doc.tabs[1].sections[0]
    inbox = doc.tabs[0].inbox_section
    assert [i.id for i in main_s1.items] == ["b", "c"]
    assert inbox is not None and inbox.items == [Item(id="a", text="buy milk", completed=False)]
    assert doc.tabs[0].memos == {}
    assert doc.tabs[1].memos == {"b": "memo b"}


def test_move_item_scenario_from_empty_memos():
    from deskboard.model.workspace_model import Section, Tab

    doc = WorkspaceDocument(
        tabs=[
            Tab(id="p", name="새 페이지", inbox_section=Section(id="in")),
            Tab(
                id="m",
                name="메인",
                sections=[Section(id="s1", items=[Item(id="a", text="buy milk")])],
            ),
        ],
        active_tab_id="m",
    )
    moved = move_item(doc, "a", "p", "in")
    assert moved.tabs[1].sections[0].items == []
    assert moved.tabs[0].inbox_section is not None
    assert [i.id for i in moved.tabs[0].inbox_section.items] == ["a"]
    assert moved.tabs[0].memos == {} and moved.tabs[1].memos == {}
