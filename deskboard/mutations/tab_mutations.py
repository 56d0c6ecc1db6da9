"""
Tab intents. Each takes a document and returns the next one.
"""

from typing import Optional

from deskboard.config.logger import get_logger
from deskboard.errors import InvalidOperation, LockedEntity
from deskboard.model.defaults import new_tab, NEW_TAB_NAME
from deskboard.model.doc_access import get_tab, is_main_tab, update_tab, without_memos
from deskboard.model.workspace_model import HeaderGoals, WorkspaceDocument
from deskboard.reorder.splice import move_by_id

log = get_logger(__name__)


def add_tab(doc: WorkspaceDocument, name: Optional[str] = None) -> WorkspaceDocument:
    """
    Append a new empty tab and make it active.
    """
    tab = new_tab(name or NEW_TAB_NAME.format(n=len(doc.tabs) + 1))
    return doc.model_copy(update={"tabs": [*doc.tabs, tab], "active_tab_id": tab.id})


def rename_tab(doc: WorkspaceDocument, tab_id: str, name: str) -> WorkspaceDocument:
    return update_tab(doc, tab_id, lambda t: t.model_copy(update={"name": name}))


def toggle_tab_lock(doc: WorkspaceDocument, tab_id: str) -> WorkspaceDocument:
    return update_tab(doc, tab_id, lambda t: t.model_copy(update={"is_locked": not t.is_locked}))


def delete_tab(doc: WorkspaceDocument, tab_id: str) -> WorkspaceDocument:
    """
    Delete a tab and everything on it. Locked tabs, the last tab, and the main
    tab (which owns the inbox) can't be deleted.
    """
    tab = get_tab(doc, tab_id)
    if tab.is_locked:
        raise LockedEntity(f"Tab {tab.name!r} is locked")
    if len(doc.tabs) <= 1:
        raise InvalidOperation("Can't delete the last tab")
    if is_main_tab(doc, tab_id):
        raise InvalidOperation(f"Tab {tab.name!r} holds the inbox and can't be deleted")

    tabs = [t for t in doc.tabs if t.id != tab_id]
    active_tab_id = tabs[0].id if doc.active_tab_id == tab_id else doc.active_tab_id
    log.info("Deleted tab %r", tab.name)
    return doc.model_copy(update={"tabs": tabs, "active_tab_id": active_tab_id})


def select_tab(doc: WorkspaceDocument, tab_id: str) -> WorkspaceDocument:
    get_tab(doc, tab_id)
    if doc.active_tab_id == tab_id:
        return doc
    return doc.model_copy(update={"active_tab_id": tab_id})


def reorder_tab(doc: WorkspaceDocument, tab_id: str, target_tab_id: str) -> WorkspaceDocument:
    """
    Move a tab to the target tab's position. If that changes which tab comes first,
    the inbox and its items' memos move along to the new main tab, so there is
    still exactly one inbox and it's on the main tab.
    """
    get_tab(doc, tab_id)
    get_tab(doc, target_tab_id)
    tabs = move_by_id(doc.tabs, tab_id, target_tab_id, lambda t: t.id)

    old_main, new_main = doc.tabs[0], tabs[0]
    if new_main.id != old_main.id and old_main.inbox_section is not None:
        inbox = old_main.inbox_section
        inbox_ids = [item.id for item in inbox.items]
        moved_memos = {k: v for k, v in old_main.memos.items() if k in inbox_ids}

        demoted = old_main.model_copy(
            update={"inbox_section": None, "memos": without_memos(old_main.memos, inbox_ids)}
        )
        promoted = new_main.model_copy(
            update={"inbox_section": inbox, "memos": {**new_main.memos, **moved_memos}}
        )
        tabs = [
            promoted if t.id == promoted.id else demoted if t.id == demoted.id else t for t in tabs
        ]
        log.info("Inbox moved from tab %r to %r", old_main.name, new_main.name)

    return doc.model_copy(update={"tabs": tabs})


def set_header_goals(
    doc: WorkspaceDocument,
    tab_id: str,
    goal1: Optional[str] = None,
    goal2: Optional[str] = None,
) -> WorkspaceDocument:
    def update(tab):
        goals = tab.header_goals or HeaderGoals()
        changes = {}
        if goal1 is not None:
            changes["goal1"] = goal1
        if goal2 is not None:
            changes["goal2"] = goal2
        return tab.model_copy(update={"header_goals": goals.model_copy(update=changes)})

    return update_tab(doc, tab_id, update)


## Tests


def _doc() -> WorkspaceDocument:
    from deskboard.model.defaults import default_document

    return add_tab(add_tab(default_document()), "세 번째")


def test_add_and_select_tab():
    doc = _doc()
    assert [t.name for t in doc.tabs] == ["메인", "새 페이지 2", "세 번째"]
    assert doc.active_tab_id == doc.tabs[2].id
    assert doc.tabs[1].inbox_section is None

    selected = select_tab(doc, doc.tabs[0].id)
    assert selected.active_tab_id == doc.tabs[0].id
    assert select_tab(selected, doc.tabs[0].id) is selected


def test_rename_and_lock():
    doc = _doc()
    tab_id = doc.tabs[1].id
    doc = rename_tab(doc, tab_id, "업무")
    doc = toggle_tab_lock(doc, tab_id)
    assert doc.tabs[1].name == "업무"
    assert doc.tabs[1].is_locked


def test_delete_tab_rules():
    import pytest

    from deskboard.model.defaults import default_document

    doc = _doc()
    second, third = doc.tabs[1].id, doc.tabs[2].id

    deleted = delete_tab(doc, third)
    assert [t.id for t in deleted.tabs] == [doc.tabs[0].id, second]
    # The active tab was deleted, so the first tab becomes active.
    assert deleted.active_tab_id == doc.tabs[0].id

    with pytest.raises(LockedEntity):
        delete_tab(toggle_tab_lock(doc, second), second)
    with pytest.raises(InvalidOperation):
        delete_tab(doc, doc.tabs[0].id)
    single = default_document()
    with pytest.raises(InvalidOperation):
        delete_tab(single, single.tabs[0].id)


def test_reorder_tab_moves_inbox():
    from deskboard.model.workspace_model import Item, Section

    doc = _doc()
    main = doc.tabs[0]
    assert main.inbox_section is not None
    inbox = main.inbox_section.model_copy(update={"items": [Item(id="x", text="call")]})
    main = main.model_copy(update={"inbox_section": inbox, "memos": {"x": "memo x", "y": "memo y"}})
    main = main.model_copy(update={"sections": [Section(id="s1", items=[Item(id="y")])]})
    doc = doc.model_copy(update={"tabs": [main, *doc.tabs[1:]]})

    third = doc.tabs[2]
    reordered = reorder_tab(doc, third.id, main.id)
    assert [t.id for t in reordered.tabs] == [third.id, main.id, doc.tabs[1].id]

    new_main, old_main = reordered.tabs[0], reordered.tabs[1]
    assert new_main.inbox_section == inbox
    assert new_main.memos == {"x": "memo x"}
    assert old_main.inbox_section is None
    assert old_main.memos == {"y": "memo y"}

    # Reordering that keeps the same first tab leaves the inbox alone.
    swapped = reorder_tab(doc, doc.tabs[2].id, doc.tabs[1].id)
    assert swapped.tabs[0] is doc.tabs[0]


def test_set_header_goals():
    doc = _doc()
    tab_id = doc.tabs[0].id
    doc = set_header_goals(doc, tab_id, goal1="운동")
    doc = set_header_goals(doc, tab_id, goal2="독서")
    goals = doc.tabs[0].header_goals
    assert goals is not None and (goals.goal1, goals.goal2) == ("운동", "독서")
