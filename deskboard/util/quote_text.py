"""
Cleanup of quotes pasted from reading apps' share buttons.
"""

SHARE_MARKERS = ["밀리의서재", "밀리의 서재", "millie.page.link"]

ATTRIBUTION_SEP = " - "


def extract_shared_quote(text: str) -> str:
    """
    Text shared from the Millie reading app looks like
    "quote - <Book Title>, Author 지음 - 밀리의서재\\nhttps://millie.page.link/...".
    Keep only the quote itself. Any other text is returned unchanged.
    """
    if not text or not text.strip():
        return text

    if not any(marker in text for marker in SHARE_MARKERS):
        return text

    sep_index = text.find(ATTRIBUTION_SEP)
    if sep_index == -1:
        return text

    return text[:sep_index].strip()


## Tests


def test_extract_shared_quote():
    shared = (
        "  모든 것은 지나간다 - <어떤 책>, 홍길동 지음 - 밀리의서재\n"
        "https://millie.page.link/abc"
    )
    assert extract_shared_quote(shared) == "모든 것은 지나간다"
    assert extract_shared_quote("plain - text") == "plain - text"
    assert extract_shared_quote("밀리의서재 without separator") == "밀리의서재 without separator"
    assert extract_shared_quote("") == ""
    assert extract_shared_quote("   ") == "   "
