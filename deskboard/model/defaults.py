"""
Default values for new workspaces, tabs and sections.
"""

from typing import List, Optional

from deskboard.config.settings import SIDE_NOTE_SLOTS
from deskboard.model.workspace_model import (
    Bookmark,
    HeaderGoals,
    ParkingInfo,
    Section,
    SideNote,
    Tab,
    WorkspaceDocument,
)
from deskboard.util.identifier_utils import new_id

MAIN_TAB_NAME = "메인"

NEW_TAB_NAME = "새 페이지 {n}"

NEW_SECTION_TITLE = "새 섹션"

INBOX_TITLE = "IN-BOX"

QUOTES_TITLE = "명언"

GOALS_TITLE = "현안"

DEFAULT_SECTION_COLOR = "slate"

DEFAULT_BOOKMARKS = [
    ("b1", "호실관리", "#B89F1F"),
    ("b2", "호실수정", "#B89F1F"),
    ("b3", "호실시트", "#B89F1F"),
    ("b4", "북클립바", "#B89F1F"),
    ("b5", "등기소", "#0F5A9F"),
    ("b6", "정부24", "#0F5A9F"),
    ("b7", "토지이음", "#0F5A9F"),
    ("b8", "정보광장", "#0F5A9F"),
    ("b9", "원부장님계약", "#724C8F"),
    ("b10", "건강보험", "#724C8F"),
    ("b11", "네이버메일", "#724C8F"),
    ("b12", "공제가입(협회)", "#724C8F"),
    ("b13", "깃허브", "#369D47"),
    ("b14", "AI스튜디오", "#369D47"),
    ("b15", "구글시트", "#369D47"),
]


def new_section(title: str = NEW_SECTION_TITLE, color: str = DEFAULT_SECTION_COLOR) -> Section:
    return Section(id=new_id(), title=title, color=color)


def empty_side_notes() -> List[SideNote]:
    return [SideNote() for _ in range(SIDE_NOTE_SLOTS)]


def new_tab(name: str, is_main: bool = False, tab_id: Optional[str] = None) -> Tab:
    """
    A fully populated empty tab. Only a main tab gets an inbox section.
    """
    return Tab(
        id=tab_id or new_id(),
        name=name,
        sections=[],
        memos={},
        side_notes=empty_side_notes(),
        parking_info=ParkingInfo(),
        inbox_section=new_section(INBOX_TITLE) if is_main else None,
        quotes_section=new_section(QUOTES_TITLE),
        goals_section=new_section(GOALS_TITLE),
        is_locked=False,
        header_goals=HeaderGoals(),
    )


def default_bookmarks() -> List[Bookmark]:
    return [
        Bookmark(id=id, label=label, url="", color=color) for id, label, color in DEFAULT_BOOKMARKS
    ]


def default_document() -> WorkspaceDocument:
    """
    The document a brand new workspace is seeded with.
    """
    tab = new_tab(MAIN_TAB_NAME, is_main=True)
    return WorkspaceDocument(tabs=[tab], active_tab_id=tab.id, bookmarks=default_bookmarks())


## Tests


def test_default_document():
    doc = default_document()
    assert len(doc.tabs) == 1
    assert doc.active_tab_id == doc.tabs[0].id
    main = doc.tabs[0]
    assert main.inbox_section is not None and main.inbox_section.title == INBOX_TITLE
    assert len(main.side_notes) == SIDE_NOTE_SLOTS
    assert len(doc.bookmarks) == 15


def test_new_tab_has_no_inbox():
    tab = new_tab("새 페이지 2")
    assert tab.inbox_section is None
    assert tab.quotes_section is not None and tab.goals_section is not None
    assert tab.quotes_section.id != tab.goals_section.id
