"""
The data model for the workspace document: tabs of sections of checklist items,
plus bookmarks, side notes, and the parking panel.

All models are frozen. A mutation never edits a model in place but builds a new
one with `model_copy(update=...)`, so untouched subtrees keep their identity.
Documents are persisted with camelCase keys (`activeTabId`, `sideNotes`, ...).
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WorkspaceModel(BaseModel):
    # Keys we don't model are kept, so whole-object saves don't drop data written
    # by other clients.
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="allow",
    )


class Item(WorkspaceModel):
    """
    A single checklist entry. Its memo, if any, lives on the owning tab, not here.
    """

    id: str
    text: str = ""
    completed: bool = False


class Section(WorkspaceModel):
    """
    An ordered list of items with a title. Locked sections can't be deleted and
    don't accept transferred items.
    """

    id: str
    title: str = ""
    items: List[Item] = Field(default_factory=list)
    color: str = "slate"
    is_locked: bool = False


class ParkingList(Enum):
    """The two item lists of the parking panel."""

    checklist = "checklist"
    shopping = "shopping"

    @property
    def items_field(self) -> str:
        return "checklist_items" if self == ParkingList.checklist else "shopping_list_items"

    @property
    def memos_field(self) -> str:
        return "checklist_memos" if self == ParkingList.checklist else "shopping_list_memos"


class ParkingInfo(WorkspaceModel):
    text: str = ""
    image: Optional[str] = None
    """Parking photo as a data URL, if one was taken."""
    checklist_items: List[Item] = Field(default_factory=list)
    shopping_list_items: List[Item] = Field(default_factory=list)
    checklist_memos: Dict[str, str] = Field(default_factory=dict)
    shopping_list_memos: Dict[str, str] = Field(default_factory=dict)

    def items(self, which: ParkingList) -> List[Item]:
        return getattr(self, which.items_field)

    def memos(self, which: ParkingList) -> Dict[str, str]:
        return getattr(self, which.memos_field)


class Bookmark(WorkspaceModel):
    id: str
    label: str = ""
    url: str = ""
    color: str = ""


class SideNote(WorkspaceModel):
    title: str = ""
    content: str = ""


class HeaderGoals(WorkspaceModel):
    goal1: str = ""
    goal2: str = ""


class Tab(WorkspaceModel):
    """
    A page of the workspace. Only the first tab of a document owns an inbox section.
    """

    id: str
    name: str = ""
    sections: List[Section] = Field(default_factory=list)
    memos: Dict[str, str] = Field(default_factory=dict)
    side_notes: List[SideNote] = Field(default_factory=list)
    parking_info: ParkingInfo = Field(default_factory=ParkingInfo)
    inbox_section: Optional[Section] = None
    quotes_section: Optional[Section] = None
    goals_section: Optional[Section] = None
    is_locked: bool = False
    header_goals: Optional[HeaderGoals] = None


class WorkspaceDocument(WorkspaceModel):
    """
    The whole persisted state of a workspace.
    """

    # Stores merge top-level keys on save, so unknown ones like `updatedAt` are left out.
    model_config = ConfigDict(extra="ignore")

    tabs: List[Tab] = Field(default_factory=list)
    active_tab_id: str = ""
    bookmarks: List[Bookmark] = Field(default_factory=list)


def dump_document(doc: WorkspaceDocument) -> Dict[str, Any]:
    """
    Serialize to the persisted (camelCase, JSON-compatible) layout.
    """
    return doc.model_dump(mode="json", by_alias=True)


def parse_document(data: Dict[str, Any]) -> WorkspaceDocument:
    """
    Parse the persisted layout. Optional fields may be missing; see `normalize_document()`
    for filling them in. Raises `pydantic.ValidationError` on malformed data.
    """
    return WorkspaceDocument.model_validate(data)


## Tests


def test_camel_case_round_trip():
    doc = WorkspaceDocument(
        tabs=[
            Tab(
                id="t1",
                name="메인",
                sections=[Section(id="s1", title="S1", items=[Item(id="a", text="buy milk")])],
                memos={"a": "2 liters"},
                is_locked=True,
            )
        ],
        active_tab_id="t1",
    )
    data = dump_document(doc)
    assert data["activeTabId"] == "t1"
    assert data["tabs"][0]["isLocked"] is True
    assert data["tabs"][0]["parkingInfo"]["shoppingListItems"] == []
    assert "inboxSection" in data["tabs"][0]
    assert parse_document(data) == doc


def test_parse_tolerates_missing_and_unknown_fields():
    data = {
        "tabs": [{"id": "t1", "name": "메인", "parkingInfo": {"text": "B2", "zoom": 2}}],
        "activeTabId": "t1",
        "updatedAt": "2024-01-01T00:00:00Z",
    }
    doc = parse_document(data)
    assert doc.tabs[0].parking_info.text == "B2"
    assert dump_document(doc)["tabs"][0]["parkingInfo"]["zoom"] == 2
    assert "updatedAt" not in dump_document(doc)
    assert doc.tabs[0].quotes_section is None
    assert doc.bookmarks == []


def test_frozen_models():
    item = Item(id="a")
    try:
        item.text = "changed"  # type: ignore
        assert False
    except Exception as e:
        assert "frozen" in str(e).lower()


def test_parking_accessors():
    info = ParkingInfo(checklist_items=[Item(id="c")], shopping_list_memos={"s": "two"})
    assert info.items(ParkingList.checklist)[0].id == "c"
    assert info.memos(ParkingList.shopping) == {"s": "two"}
