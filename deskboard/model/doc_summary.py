from dataclasses import dataclass
from typing import List

from deskboard.model.doc_access import active_tab, iter_tab_sections, SectionSlot
from deskboard.model.workspace_model import WorkspaceDocument
from deskboard.util.format_utils import fmt_count_items


@dataclass(frozen=True)
class SectionSummary:
    section_id: str
    title: str
    slot: SectionSlot
    item_count: int
    completed_count: int
    is_locked: bool


@dataclass(frozen=True)
class TabSummary:
    tab_id: str
    name: str
    is_main: bool
    is_active: bool
    is_locked: bool
    sections: List[SectionSummary]

    @property
    def item_count(self) -> int:
        return sum(s.item_count for s in self.sections)

    def as_str(self) -> str:
        sections = fmt_count_items(len(self.sections), "section")
        return f"{self.name}: {sections}, {fmt_count_items(self.item_count, 'item')}"


def summarize(doc: WorkspaceDocument) -> List[TabSummary]:
    """
    Per-tab section and item counts, for navigation overviews.
    """
    active_id = active_tab(doc).id
    return [
        TabSummary(
            tab_id=tab.id,
            name=tab.name,
            is_main=(i == 0),
            is_active=(tab.id == active_id),
            is_locked=tab.is_locked,
            sections=[
                SectionSummary(
                    section_id=section.id,
                    title=section.title,
                    slot=slot,
                    item_count=len(section.items),
                    completed_count=sum(1 for item in section.items if item.completed),
                    is_locked=section.is_locked,
                )
                for slot, section in iter_tab_sections(tab)
            ],
        )
        for i, tab in enumerate(doc.tabs)
    ]


## Tests


def test_summarize():
    from deskboard.model.workspace_model import Item, Section, Tab

    doc = WorkspaceDocument(
        tabs=[
            Tab(
                id="t1",
                name="메인",
                inbox_section=Section(id="in", items=[Item(id="x", completed=True)]),
                sections=[Section(id="s1", items=[Item(id="a"), Item(id="b")], is_locked=True)],
            ),
            Tab(id="t2", name="새 페이지"),
        ],
        active_tab_id="t2",
    )
    main, other = summarize(doc)
    assert main.is_main and not main.is_active
    assert other.is_active
    assert main.item_count == 3
    assert main.sections[0].slot == SectionSlot.inbox
    assert main.sections[0].completed_count == 1
    assert main.sections[1].is_locked
    assert main.as_str() == "메인: 2 sections, 3 items"
