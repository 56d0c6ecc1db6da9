from functools import cache

import regex
from inflect import engine
from strif import abbreviate_str


@cache
def inflect():
    return engine()


def single_line(text: str) -> str:
    """
    Convert newlines and other whitespace to spaces.
    """
    return regex.sub(r"\s+", " ", text).strip()


def fmt_count_items(count: int, name: str = "item") -> str:
    """
    Format a count and a name as a pluralized phrase, e.g. "1 item" or "2 items".
    """
    return f"{count} {inflect().plural(name, count)}"  # type: ignore


def fmt_text(text: str, max_len: int = 40) -> str:
    """
    One-line abbreviated form of user text for log messages, with a placeholder if empty.
    """
    if not text or not text.strip():
        return "(empty)"
    return repr(abbreviate_str(single_line(text), max_len=max_len))


## Tests


def test_fmt_count_items():
    assert fmt_count_items(1, "item") == "1 item"
    assert fmt_count_items(2, "section") == "2 sections"
    assert fmt_count_items(0, "tab") == "0 tabs"


def test_fmt_text():
    assert fmt_text("") == "(empty)"
    assert fmt_text("buy\n  milk") == "'buy milk'"
    assert len(fmt_text("x" * 100, max_len=10)) <= 12
