"""
The one relocation primitive shared by drag transfers and the explicit "move item"
action, so both apply the same rules.
"""

from typing import Optional

from deskboard.config.logger import get_logger
from deskboard.config.text_styles import EMOJI_BREADCRUMB_SEP
from deskboard.errors import LockedDestination, SelfTransfer
from deskboard.model.doc_access import (
    get_tab,
    locate_item,
    locate_section_in_tab,
    with_section,
    with_tab,
)
from deskboard.model.workspace_model import Section, Tab, WorkspaceDocument
from deskboard.util.format_utils import fmt_text

log = get_logger(__name__)


def _breadcrumb(tab: Tab, section: Section) -> str:
    return f"{tab.name} {EMOJI_BREADCRUMB_SEP} {section.title}"


def relocate_item(
    doc: WorkspaceDocument,
    item_id: str,
    dest_tab_id: str,
    dest_section_id: str,
    index: Optional[int] = None,
) -> WorkspaceDocument:
    """
    Move an item to another section, possibly on another tab, inserting it at `index`
    in the destination (appending if None or past the end).

    Memos are tab-scoped, so the item's memo moves only when the tab changes.
    All checks happen before anything is built, so a rejected move never yields
    a partial document. Raises `MissingEntity`, `SelfTransfer`, or `LockedDestination`.
    """
    source = locate_item(doc, item_id)
    dest = locate_section_in_tab(doc, dest_tab_id, dest_section_id)

    if source.section.id == dest.section.id:
        raise SelfTransfer(f"Item is already in section {dest.section.title!r}")
    if dest.section.is_locked:
        raise LockedDestination(f"Section {dest.section.title!r} is locked")

    cross_tab = source.tab.id != dest.tab.id
    memo = source.tab.memos.get(item_id) if cross_tab else None

    # Remove from the source.
    source_section = source.section.model_copy(
        update={"items": [i for i in source.section.items if i.id != item_id]}
    )
    source_tab = with_section(source.tab, source.section_location.slot, source_section)
    if memo is not None:
        source_tab = source_tab.model_copy(
            update={"memos": {k: v for k, v in source_tab.memos.items() if k != item_id}}
        )
    doc = with_tab(doc, source_tab)

    # Insert into the destination, re-reading its tab in case it's the same one.
    dest_tab = get_tab(doc, dest_tab_id)
    items = list(dest.section.items)
    at = len(items) if index is None else max(0, min(index, len(items)))
    items.insert(at, source.item)
    dest_tab = with_section(dest_tab, dest.slot, dest.section.model_copy(update={"items": items}))
    if memo is not None:
        dest_tab = dest_tab.model_copy(update={"memos": {**dest_tab.memos, item_id: memo}})

    log.info(
        "Moved item %s: %s to %s",
        fmt_text(source.item.text),
        _breadcrumb(source.tab, source.section),
        _breadcrumb(dest.tab, dest.section),
    )
    return with_tab(doc, dest_tab)


## Tests


def _doc() -> WorkspaceDocument:
    from deskboard.model.workspace_model import Item

    return WorkspaceDocument(
        tabs=[
            Tab(
                id="t1",
                name="메인",
                sections=[
                    Section(id="s1", title="S1", items=[Item(id="a"), Item(id="b"), Item(id="c")]),
                    Section(id="s2", title="S2", items=[Item(id="d")]),
                ],
                memos={"a": "memo a", "d": "memo d"},
                inbox_section=Section(id="in", title="IN-BOX"),
            ),
            Tab(
                id="t2",
                name="새 페이지 2",
                sections=[
                    Section(id="s3", title="S3", items=[Item(id="e")]),
                    Section(id="locked", title="L", is_locked=True),
                ],
            ),
        ],
        active_tab_id="t1",
    )


def test_cross_tab_transfer_migrates_memo():
    from deskboard.model.doc_access import count_items

    doc = _doc()
    moved = relocate_item(doc, "a", "t2", "s3", index=0)

    t1, t2 = moved.tabs
    assert [i.id for i in t1.sections[0].items] == ["b", "c"]
    assert [i.id for i in t2.sections[0].items] == ["a", "e"]
    assert "a" not in t1.memos
    assert t2.memos == {"a": "memo a"}
    assert count_items(moved) == count_items(doc)

    # Untouched subtrees are shared.
    assert t1.sections[1] is doc.tabs[0].sections[1]
    assert t2.sections[1] is doc.tabs[1].sections[1]


def test_same_tab_transfer_keeps_memos():
    doc = _doc()
    moved = relocate_item(doc, "a", "t1", "s2")
    tab = moved.tabs[0]
    assert [i.id for i in tab.sections[1].items] == ["d", "a"]
    assert tab.memos is doc.tabs[0].memos


def test_transfer_into_fixed_slot():
    doc = _doc()
    moved = relocate_item(doc, "e", "t1", "in")
    assert moved.tabs[0].inbox_section is not None
    assert [i.id for i in moved.tabs[0].inbox_section.items] == ["e"]
    assert moved.tabs[1].sections[0].items == []


def test_index_is_clamped():
    moved = relocate_item(_doc(), "a", "t1", "s2", index=99)
    assert [i.id for i in moved.tabs[0].sections[1].items] == ["d", "a"]


def test_rejections():
    import pytest

    from deskboard.errors import MissingEntity

    doc = _doc()
    with pytest.raises(SelfTransfer):
        relocate_item(doc, "a", "t1", "s1")
    with pytest.raises(LockedDestination):
        relocate_item(doc, "a", "t2", "locked")
    with pytest.raises(MissingEntity):
        relocate_item(doc, "nope", "t2", "s3")
    with pytest.raises(MissingEntity):
        relocate_item(doc, "a", "t2", "s1")
    with pytest.raises(MissingEntity):
        relocate_item(doc, "a", "t9", "s3")
