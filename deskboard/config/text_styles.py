"""
Emoji and Rich styles used in console logging.
"""

import re

from rich.highlighter import RegexHighlighter

EMOJI_HINT = "👉"

EMOJI_WARN = "△"

EMOJI_ERROR = EMOJI_WARN + EMOJI_WARN

EMOJI_SAVED = "⩣"

EMOJI_TIMING = "⏱"

EMOJI_SUCCESS = "[✓]"

EMOJI_FAILURE = "[✗]"

EMOJI_LOCKED = "🔒"

EMOJI_BREADCRUMB_SEP = "›"


RICH_STYLES = {
    "deskboard.warn": "bright_red",
    "deskboard.saved": "bright_blue",
    "deskboard.timing": "dim",
    "deskboard.success": "bold green",
    "deskboard.failure": "bold red",
    "deskboard.locked": "yellow",
    "deskboard.tab": "bold",
    "deskboard.active_tab": "bold cyan",
    "deskboard.fixed_section": "magenta",
    "deskboard.count": "dim",
}


class DeskboardHighlighter(RegexHighlighter):
    """
    Highlight the status emoji we use in log messages.
    """

    base_style = "deskboard."
    highlights = [
        f"(?P<warn>{re.escape(EMOJI_WARN)})",
        f"(?P<saved>{re.escape(EMOJI_SAVED)})",
        f"(?P<timing>{re.escape(EMOJI_TIMING)})",
        f"(?P<success>{re.escape(EMOJI_SUCCESS)})",
        f"(?P<failure>{re.escape(EMOJI_FAILURE)})",
        f"(?P<locked>{re.escape(EMOJI_LOCKED)})",
    ]
