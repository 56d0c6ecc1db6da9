"""
Command line entry point for inspecting and seeding a file-backed workspace.
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from rich.text import Text
from rich.tree import Tree

from deskboard.config.logger import get_console, get_logger
from deskboard.config.settings import APP_NAME, global_settings
from deskboard.config.setup import setup
from deskboard.config.text_styles import EMOJI_HINT, EMOJI_LOCKED, EMOJI_SUCCESS
from deskboard.errors import UnexpectedError
from deskboard.model.defaults import default_document
from deskboard.model.doc_access import SectionSlot
from deskboard.model.doc_summary import summarize
from deskboard.model.normalize import load_document
from deskboard.model.workspace_model import WorkspaceDocument
from deskboard.store.yaml_store import YamlStore
from deskboard.sync.sync_engine import SyncEngine
from deskboard.util.format_utils import fmt_count_items
from deskboard.version import get_version

log = get_logger(__name__)

COMMANDS = {
    "summary": "Show the tabs and sections of the workspace.",
    "init": "Create the workspace file with the default tabs and bookmarks, if it's missing.",
}

USAGE = f"""Usage: {APP_NAME} [--version | --help] <command> [store_path]

Commands:
{chr(10).join(f"  {name:<10}{desc}" for name, desc in COMMANDS.items())}

The store path defaults to $DESKBOARD_STORE_PATH or {global_settings().store_path}.
"""


def render_tree(doc: WorkspaceDocument, title: str = "Workspace") -> Tree:
    tree = Tree(Text(title, style="deskboard.tab"))
    for tab in summarize(doc):
        style = "deskboard.active_tab" if tab.is_active else "deskboard.tab"
        label = Text(tab.name or "(untitled)", style=style)
        if tab.is_locked:
            label.append(f" {EMOJI_LOCKED}", style="deskboard.locked")
        label.append(f"  {fmt_count_items(tab.item_count, 'item')}", style="deskboard.count")
        branch = tree.add(label)

        for section in tab.sections:
            fixed = section.slot != SectionSlot.body
            line = Text(
                section.title or "(untitled)", style="deskboard.fixed_section" if fixed else ""
            )
            if section.is_locked:
                line.append(f" {EMOJI_LOCKED}", style="deskboard.locked")
            counts = f"  {section.completed_count}/{section.item_count}"
            line.append(counts, style="deskboard.count")
            branch.add(line)
    return tree


def summary_command(store: YamlStore) -> int:
    data = store.fetch_once()
    if not data or not data.get("tabs"):
        log.message("No workspace in %s", store.path)
        print(f"{EMOJI_HINT} Run `{APP_NAME} init` to create one.")
        return 1
    doc = load_document(data)
    get_console().print(render_tree(doc, title=str(store.path)))
    return 0


async def init_workspace(store: YamlStore) -> WorkspaceDocument:
    """
    Load the workspace through a sync engine, which seeds the store if it's empty.
    """
    engine = SyncEngine(store)
    try:
        state = await engine.initialize(default_document())
    finally:
        engine.close()
    if state.error:
        raise state.error
    if state.document is None:
        raise UnexpectedError(f"Workspace in {store.path} loaded without a document")
    return state.document


def init_command(store: YamlStore) -> int:
    existed = bool((store.fetch_once() or {}).get("tabs"))
    doc = asyncio.run(init_workspace(store))
    if existed:
        print(f"Workspace already exists: {store.path}")
    else:
        print(f"{EMOJI_SUCCESS} Created workspace: {store.path}")
    get_console().print(render_tree(doc, title=str(store.path)))
    return 0


def parse_args(argv: List[str]) -> Tuple[str, Optional[Path]]:
    # Simple enough to parse by hand.
    if argv == ["--version"]:
        print(f"{APP_NAME} {get_version()}")
        sys.exit(0)
    elif not argv or argv == ["--help"]:
        print(USAGE)
        sys.exit(0)
    elif argv[0].startswith("-"):
        print(f"Unrecognized option: {argv[0]}", file=sys.stderr)
        sys.exit(2)
    elif argv[0] not in COMMANDS or len(argv) > 2:
        print(USAGE, file=sys.stderr)
        sys.exit(2)

    store_path = Path(argv[1]).expanduser() if len(argv) > 1 else None
    return argv[0], store_path


def main():
    command, store_path = parse_args(sys.argv[1:])

    # Ensure logging is set up before anything else.
    setup()

    store = YamlStore(store_path or global_settings().store_path)
    try:
        if command == "summary":
            status = summary_command(store)
        else:
            status = init_command(store)
    finally:
        store.close()
    sys.exit(status)


if __name__ == "__main__":
    main()


## Tests


def _render(tree: Tree) -> str:
    from io import StringIO

    from rich.console import Console

    console = Console(file=StringIO(), width=100, color_system=None)
    console.print(tree)
    output = console.file.getvalue()  # type: ignore
    return output


def test_render_tree():
    from deskboard.model.workspace_model import Item, Section, Tab

    doc = WorkspaceDocument(
        tabs=[
            Tab(
                id="t1",
                name="메인",
                sections=[
                    Section(
                        id="s1", title="오늘", items=[Item(id="a", completed=True), Item(id="b")]
                    )
                ],
                inbox_section=Section(id="in", title="IN-BOX"),
            ),
            Tab(id="t2", name="보관", is_locked=True),
        ],
        active_tab_id="t1",
    )
    output = _render(render_tree(doc))
    assert "메인" in output and "2 items" in output
    assert "오늘  1/2" in output
    assert "IN-BOX  0/0" in output
    assert f"보관 {EMOJI_LOCKED}" in output


def test_parse_args(capsys):
    import pytest

    assert parse_args(["summary"]) == ("summary", None)
    command, path = parse_args(["init", "/tmp/ws.yml"])
    assert command == "init" and path == Path("/tmp/ws.yml")

    with pytest.raises(SystemExit) as e:
        parse_args(["--bogus"])
    assert e.value.code == 2
    with pytest.raises(SystemExit) as e:
        parse_args(["frobnicate"])
    assert e.value.code == 2
    with pytest.raises(SystemExit) as e:
        parse_args(["--help"])
    assert e.value.code == 0
    assert "summary" in capsys.readouterr().out


def test_init_and_summary(tmp_path, capsys):
    store = YamlStore(tmp_path / "workspace.yml", poll_secs=0.05)
    assert summary_command(store) == 1

    assert init_command(store) == 0
    data = store.fetch_once()
    assert data is not None and data["tabs"][0]["name"] == "메인"
    assert len(data["bookmarks"]) == 15

    # A second init keeps the existing document.
    tab_id = data["tabs"][0]["id"]
    assert init_command(store) == 0
    data = store.fetch_once()
    assert data is not None and data["tabs"][0]["id"] == tab_id

    assert summary_command(store) == 0
