"""
Lookups and copy-on-write replacement helpers for workspace documents.

The "main" tab is positional: it's whatever tab is first. That convention is
expressed here once, in `main_tab()` and `is_main_tab()`.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from deskboard.errors import MissingEntity
from deskboard.model.workspace_model import Item, Section, Tab, WorkspaceDocument


class SectionSlot(Enum):
    """
    Where a section lives on its tab: in the ordered body list or in one of the fixed slots.
    """

    body = "sections"
    inbox = "inbox_section"
    quotes = "quotes_section"
    goals = "goals_section"

    @property
    def is_fixed(self) -> bool:
        return self != SectionSlot.body


@dataclass(frozen=True)
class SectionLocation:
    tab_index: int
    tab: Tab
    slot: SectionSlot
    section: Section


@dataclass(frozen=True)
class ItemLocation:
    section_location: SectionLocation
    index: int
    item: Item

    @property
    def tab(self) -> Tab:
        return self.section_location.tab

    @property
    def section(self) -> Section:
        return self.section_location.section


def main_tab(doc: WorkspaceDocument) -> Tab:
    """
    The main tab, the sole owner of the inbox section.
    """
    return doc.tabs[0]


def is_main_tab(doc: WorkspaceDocument, tab_id: str) -> bool:
    return bool(doc.tabs) and doc.tabs[0].id == tab_id


def find_tab(doc: WorkspaceDocument, tab_id: str) -> Optional[Tab]:
    return next((t for t in doc.tabs if t.id == tab_id), None)


def get_tab(doc: WorkspaceDocument, tab_id: str) -> Tab:
    tab = find_tab(doc, tab_id)
    if tab is None:
        raise MissingEntity("tab", tab_id)
    return tab


def tab_index(doc: WorkspaceDocument, tab_id: str) -> int:
    for i, tab in enumerate(doc.tabs):
        if tab.id == tab_id:
            return i
    raise MissingEntity("tab", tab_id)


def active_tab(doc: WorkspaceDocument) -> Tab:
    """
    The active tab, falling back to the first tab if `active_tab_id` dangles.
    """
    return find_tab(doc, doc.active_tab_id) or doc.tabs[0]


def iter_tab_sections(tab: Tab) -> Iterable[Tuple[SectionSlot, Section]]:
    """
    All sections of a tab in display order: inbox, body sections, quotes, goals.
    """
    if tab.inbox_section is not None:
        yield SectionSlot.inbox, tab.inbox_section
    for section in tab.sections:
        yield SectionSlot.body, section
    if tab.quotes_section is not None:
        yield SectionSlot.quotes, tab.quotes_section
    if tab.goals_section is not None:
        yield SectionSlot.goals, tab.goals_section


def tab_sections(tab: Tab) -> List[Section]:
    return [section for _slot, section in iter_tab_sections(tab)]


def find_section_in_tab(tab: Tab, section_id: str) -> Optional[Tuple[SectionSlot, Section]]:
    for slot, section in iter_tab_sections(tab):
        if section.id == section_id:
            return slot, section
    return None


def locate_section(doc: WorkspaceDocument, section_id: str) -> SectionLocation:
    for i, tab in enumerate(doc.tabs):
        found = find_section_in_tab(tab, section_id)
        if found:
            slot, section = found
            return SectionLocation(i, tab, slot, section)
    raise MissingEntity("section", section_id)


def locate_section_in_tab(doc: WorkspaceDocument, tab_id: str, section_id: str) -> SectionLocation:
    i = tab_index(doc, tab_id)
    tab = doc.tabs[i]
    found = find_section_in_tab(tab, section_id)
    if not found:
        raise MissingEntity("section", section_id)
    slot, section = found
    return SectionLocation(i, tab, slot, section)


def item_index(section: Section, item_id: str) -> int:
    for i, item in enumerate(section.items):
        if item.id == item_id:
            return i
    return -1


def locate_item(doc: WorkspaceDocument, item_id: str) -> ItemLocation:
    for i, tab in enumerate(doc.tabs):
        for slot, section in iter_tab_sections(tab):
            index = item_index(section, item_id)
            if index != -1:
                return ItemLocation(
                    SectionLocation(i, tab, slot, section), index, section.items[index]
                )
    raise MissingEntity("item", item_id)


def with_section(tab: Tab, slot: SectionSlot, section: Section) -> Tab:
    """
    Copy of the tab with the section (matched by id within the slot) replaced.
    """
    if slot == SectionSlot.body:
        sections = [section if s.id == section.id else s for s in tab.sections]
        return tab.model_copy(update={"sections": sections})
    return tab.model_copy(update={slot.value: section})


def with_tab(doc: WorkspaceDocument, tab: Tab) -> WorkspaceDocument:
    """
    Copy of the document with the tab (matched by id) replaced.
    """
    return doc.model_copy(update={"tabs": [tab if t.id == tab.id else t for t in doc.tabs]})


def update_tab(doc: WorkspaceDocument, tab_id: str, fn: Callable[[Tab], Tab]) -> WorkspaceDocument:
    return with_tab(doc, fn(get_tab(doc, tab_id)))


def update_section(
    doc: WorkspaceDocument, section_id: str, fn: Callable[[Section], Section]
) -> WorkspaceDocument:
    loc = locate_section(doc, section_id)
    return with_tab(doc, with_section(loc.tab, loc.slot, fn(loc.section)))


def without_memos(memos: dict, item_ids: Iterable[str]) -> dict:
    """
    Copy of a memo map without the given keys, or the same map if none are present.
    """
    ids = set(item_ids)
    if not ids.intersection(memos):
        return memos
    return {k: v for k, v in memos.items() if k not in ids}


def count_items(doc: WorkspaceDocument) -> int:
    """
    Number of section items across the whole document (parking lists not included).
    """
    return sum(len(section.items) for tab in doc.tabs for section in tab_sections(tab))


def sorted_for_display(items: List[Item]) -> List[Item]:
    """
    Completed items sink to the bottom, otherwise stored order is kept. This is a
    read-time view only. Reordering and transfers always work on stored positions.
    """
    return sorted(items, key=lambda item: item.completed)


## Tests


def _doc() -> WorkspaceDocument:
    return WorkspaceDocument(
        tabs=[
            Tab(
                id="t1",
                name="메인",
                inbox_section=Section(id="inbox", items=[Item(id="i1")]),
                sections=[
                    Section(
                        id="s1",
                        items=[Item(id="a"), Item(id="b", completed=True), Item(id="c")],
                    )
                ],
                quotes_section=Section(id="q1"),
            ),
            Tab(id="t2", name="새 페이지", sections=[Section(id="s2")]),
        ],
        active_tab_id="t2",
    )


def test_main_and_active_tab():
    doc = _doc()
    assert main_tab(doc).id == "t1"
    assert is_main_tab(doc, "t1") and not is_main_tab(doc, "t2")
    assert active_tab(doc).id == "t2"
    dangling = doc.model_copy(update={"active_tab_id": "gone"})
    assert active_tab(dangling).id == "t1"


def test_locate():
    doc = _doc()
    loc = locate_item(doc, "c")
    assert (loc.tab.id, loc.section.id, loc.index) == ("t1", "s1", 2)
    assert locate_section(doc, "inbox").slot == SectionSlot.inbox
    assert locate_section(doc, "s2").tab_index == 1
    try:
        locate_item(doc, "zzz")
        assert False
    except MissingEntity as e:
        assert e.kind == "item"


def test_copy_on_write_keeps_untouched_subtrees():
    doc = _doc()
    new_doc = update_section(doc, "s2", lambda s: s.model_copy(update={"title": "Renamed"}))
    assert new_doc is not doc
    assert new_doc.tabs[0] is doc.tabs[0]
    assert new_doc.tabs[1].sections[0].title == "Renamed"
    assert doc.tabs[1].sections[0].title == ""


def test_counts_and_display_sort():
    doc = _doc()
    assert count_items(doc) == 4
    items = doc.tabs[0].sections[0].items
    assert [i.id for i in sorted_for_display(items)] == ["a", "c", "b"]
    assert [i.id for i in items] == ["a", "b", "c"]


def test_without_memos():
    memos = {"a": "x", "b": "y"}
    assert without_memos(memos, ["zz"]) is memos
    assert without_memos(memos, ["a"]) == {"b": "y"}
