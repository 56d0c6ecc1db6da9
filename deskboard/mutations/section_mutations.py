"""
Section intents. Sections are addressed by id across the whole document; only
body sections can be deleted or reordered.
"""

from deskboard.config.logger import get_logger
from deskboard.errors import InvalidOperation, LockedEntity
from deskboard.model.defaults import DEFAULT_SECTION_COLOR, new_section, NEW_SECTION_TITLE
from deskboard.model.doc_access import (
    iter_tab_sections,
    locate_section,
    SectionSlot,
    update_section,
    update_tab,
    with_section,
    with_tab,
    without_memos,
)
from deskboard.model.workspace_model import Section, WorkspaceDocument
from deskboard.reorder.splice import move_by_id

log = get_logger(__name__)


def add_section(
    doc: WorkspaceDocument,
    tab_id: str,
    title: str = NEW_SECTION_TITLE,
    color: str = DEFAULT_SECTION_COLOR,
) -> WorkspaceDocument:
    section = new_section(title, color)
    return update_tab(
        doc, tab_id, lambda t: t.model_copy(update={"sections": [*t.sections, section]})
    )


def rename_section(doc: WorkspaceDocument, section_id: str, title: str) -> WorkspaceDocument:
    return update_section(doc, section_id, lambda s: s.model_copy(update={"title": title}))


def set_section_color(doc: WorkspaceDocument, section_id: str, color: str) -> WorkspaceDocument:
    return update_section(doc, section_id, lambda s: s.model_copy(update={"color": color}))


def toggle_section_lock(doc: WorkspaceDocument, section_id: str) -> WorkspaceDocument:
    return update_section(
        doc, section_id, lambda s: s.model_copy(update={"is_locked": not s.is_locked})
    )


def delete_section(doc: WorkspaceDocument, section_id: str) -> WorkspaceDocument:
    """
    Delete a body section with its items, pruning the items' memos from the tab.
    """
    loc = locate_section(doc, section_id)
    if loc.slot.is_fixed:
        raise InvalidOperation(f"Section {loc.section.title!r} is fixed and can't be deleted")
    if loc.section.is_locked:
        raise LockedEntity(f"Section {loc.section.title!r} is locked")

    tab = loc.tab.model_copy(
        update={
            "sections": [s for s in loc.tab.sections if s.id != section_id],
            "memos": without_memos(loc.tab.memos, [item.id for item in loc.section.items]),
        }
    )
    log.info("Deleted section %r from tab %r", loc.section.title, loc.tab.name)
    return with_tab(doc, tab)


def reorder_section(
    doc: WorkspaceDocument, section_id: str, target_section_id: str
) -> WorkspaceDocument:
    """
    Move a body section to the position of another body section on the same tab.
    """
    loc = locate_section(doc, section_id)
    target = locate_section(doc, target_section_id)
    if loc.tab.id != target.tab.id:
        raise InvalidOperation("Sections can only be reordered within a tab")
    if loc.slot != SectionSlot.body or target.slot != SectionSlot.body:
        raise InvalidOperation("Fixed sections can't be reordered")
    if section_id == target_section_id:
        return doc

    sections = move_by_id(loc.tab.sections, section_id, target_section_id, lambda s: s.id)
    return with_tab(doc, loc.tab.model_copy(update={"sections": sections}))


def _uncheck_all(section: Section) -> Section:
    if not any(item.completed for item in section.items):
        return section
    items = [i.model_copy(update={"completed": False}) if i.completed else i for i in section.items]
    return section.model_copy(update={"items": items})


def clear_section_completed(doc: WorkspaceDocument, section_id: str) -> WorkspaceDocument:
    """
    Uncheck every completed item of a section, for reusable checklists.
    """
    loc = locate_section(doc, section_id)
    section = _uncheck_all(loc.section)
    if section is loc.section:
        return doc
    return with_tab(doc, with_section(loc.tab, loc.slot, section))


def clear_tab_completed(doc: WorkspaceDocument, tab_id: str) -> WorkspaceDocument:
    """
    Uncheck every completed item in all sections of a tab.
    """

    def clear(tab):
        for slot, section in list(iter_tab_sections(tab)):
            cleared = _uncheck_all(section)
            if cleared is not section:
                tab = with_section(tab, slot, cleared)
        return tab

    return update_tab(doc, tab_id, clear)


## Tests


def _doc() -> WorkspaceDocument:
    from deskboard.model.workspace_model import Item, Tab

    return WorkspaceDocument(
        tabs=[
            Tab(
                id="t1",
                sections=[
                    Section(id="s1", items=[Item(id="a", completed=True), Item(id="b")]),
                    Section(id="s2", is_locked=True),
                    Section(id="s3"),
                ],
                memos={"a": "memo a", "z": "other"},
                inbox_section=Section(id="in", items=[Item(id="c", completed=True)]),
                quotes_section=Section(id="q"),
            ),
            Tab(id="t2", sections=[Section(id="s4")]),
        ],
        active_tab_id="t1",
    )


def test_add_and_edit_section():
    doc = add_section(_doc(), "t1")
    added = doc.tabs[0].sections[-1]
    assert (added.title, added.color, added.items) == (NEW_SECTION_TITLE, "slate", [])

    doc = rename_section(doc, added.id, "할 일")
    doc = set_section_color(doc, added.id, "blue")
    doc = toggle_section_lock(doc, added.id)
    section = doc.tabs[0].sections[-1]
    assert (section.title, section.color, section.is_locked) == ("할 일", "blue", True)


def test_delete_section_prunes_memos():
    import pytest

    doc = _doc()
    deleted = delete_section(doc, "s1")
    assert [s.id for s in deleted.tabs[0].sections] == ["s2", "s3"]
    assert deleted.tabs[0].memos == {"z": "other"}

    with pytest.raises(LockedEntity):
        delete_section(doc, "s2")
    with pytest.raises(InvalidOperation):
        delete_section(doc, "in")
    with pytest.raises(InvalidOperation):
        delete_section(doc, "q")


def test_reorder_section():
    import pytest

    doc = _doc()
    moved = reorder_section(doc, "s1", "s3")
    assert [s.id for s in moved.tabs[0].sections] == ["s2", "s3", "s1"]
    assert reorder_section(doc, "s1", "s1") is doc
    with pytest.raises(InvalidOperation):
        reorder_section(doc, "s1", "s4")
    with pytest.raises(InvalidOperation):
        reorder_section(doc, "s1", "in")


def test_clear_completed():
    doc = _doc()
    cleared = clear_section_completed(doc, "s1")
    assert [i.completed for i in cleared.tabs[0].sections[0].items] == [False, False]
    assert cleared.tabs[0].inbox_section == doc.tabs[0].inbox_section
    assert clear_section_completed(cleared, "s1") is cleared

    all_cleared = clear_tab_completed(doc, "t1")
    tab = all_cleared.tabs[0]
    assert tab.inbox_section is not None
    assert not any(i.completed for s in [tab.inbox_section, *tab.sections] for i in s.items)
    assert tab.sections[1] is doc.tabs[0].sections[1]
