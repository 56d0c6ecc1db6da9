"""
Load-time normalization. Stored documents carry no version field, and older ones
may be missing fields added later. Every loaded document goes through
`normalize_document()` once, so the rest of the code can assume the full shape.
"""

from typing import Any, Dict

from deskboard.config.logger import get_logger
from deskboard.config.settings import SIDE_NOTE_SLOTS
from deskboard.model.defaults import (
    GOALS_TITLE,
    INBOX_TITLE,
    MAIN_TAB_NAME,
    new_section,
    new_tab,
    QUOTES_TITLE,
)
from deskboard.model.workspace_model import (
    HeaderGoals,
    parse_document,
    SideNote,
    Tab,
    WorkspaceDocument,
)

log = get_logger(__name__)


def _normalize_tab(tab: Tab, is_main: bool) -> Tab:
    update: Dict[str, Any] = {}

    if len(tab.side_notes) != SIDE_NOTE_SLOTS:
        notes = list(tab.side_notes[:SIDE_NOTE_SLOTS])
        if len(tab.side_notes) > SIDE_NOTE_SLOTS:
            log.warning(
                "Tab %r has %s side notes, keeping the first %s",
                tab.name,
                len(tab.side_notes),
                SIDE_NOTE_SLOTS,
            )
        notes.extend(SideNote() for _ in range(SIDE_NOTE_SLOTS - len(notes)))
        update["side_notes"] = notes

    if is_main and tab.inbox_section is None:
        update["inbox_section"] = new_section(INBOX_TITLE)
    if tab.quotes_section is None:
        update["quotes_section"] = new_section(QUOTES_TITLE)
    if tab.goals_section is None:
        update["goals_section"] = new_section(GOALS_TITLE)
    if tab.header_goals is None:
        update["header_goals"] = HeaderGoals()

    if not update:
        return tab
    log.debug("Filled in defaults for tab %r: %s", tab.name, ", ".join(update))
    return tab.model_copy(update=update)


def normalize_document(doc: WorkspaceDocument) -> WorkspaceDocument:
    """
    Fill every optional field with its default and repair the invariants:
    at least one tab, 16 side-note slots per tab, an inbox on the main tab, and an
    `active_tab_id` that points at an existing tab. Returns the same object if
    nothing needed fixing.
    """
    tabs = doc.tabs
    if not tabs:
        log.warning("Workspace has no tabs, adding a main tab")
        tabs = [new_tab(MAIN_TAB_NAME, is_main=True)]

    new_tabs = [_normalize_tab(tab, is_main=(i == 0)) for i, tab in enumerate(tabs)]
    tabs_changed = any(a is not b for a, b in zip(new_tabs, doc.tabs)) or len(new_tabs) != len(
        doc.tabs
    )

    active_tab_id = doc.active_tab_id
    if not any(tab.id == active_tab_id for tab in new_tabs):
        log.info("Active tab %r not found, falling back to the first tab", active_tab_id)
        active_tab_id = new_tabs[0].id

    if not tabs_changed and active_tab_id == doc.active_tab_id:
        return doc
    return doc.model_copy(update={"tabs": new_tabs, "active_tab_id": active_tab_id})


def load_document(data: Dict[str, Any]) -> WorkspaceDocument:
    """
    Parse and normalize a document in the persisted layout.
    """
    return normalize_document(parse_document(data))


## Tests


def test_normalize_fills_defaults():
    doc = load_document(
        {
            "tabs": [
                {"id": "t1", "name": "메인", "sideNotes": [{"title": "a", "content": "b"}]},
                {"id": "t2", "name": "새 페이지"},
            ],
            "activeTabId": "missing",
        }
    )
    main, other = doc.tabs
    assert doc.active_tab_id == "t1"
    assert len(main.side_notes) == SIDE_NOTE_SLOTS
    assert main.side_notes[0].title == "a"
    assert main.inbox_section is not None
    assert other.inbox_section is None
    assert other.quotes_section is not None and other.goals_section is not None
    assert main.header_goals == HeaderGoals()
    assert main.memos == {}


def test_normalize_is_identity_when_complete():
    doc = normalize_document(load_document({"tabs": [{"id": "t1"}], "activeTabId": "t1"}))
    assert normalize_document(doc) is doc


def test_normalize_empty_document():
    doc = normalize_document(WorkspaceDocument())
    assert len(doc.tabs) == 1
    assert doc.active_tab_id == doc.tabs[0].id
    assert doc.tabs[0].inbox_section is not None


def test_normalize_truncates_extra_side_notes():
    notes = [{"title": str(i)} for i in range(SIDE_NOTE_SLOTS + 3)]
    doc = load_document({"tabs": [{"id": "t1", "sideNotes": notes}], "activeTabId": "t1"})
    assert len(doc.tabs[0].side_notes) == SIDE_NOTE_SLOTS
    assert doc.tabs[0].side_notes[-1].title == str(SIDE_NOTE_SLOTS - 1)
