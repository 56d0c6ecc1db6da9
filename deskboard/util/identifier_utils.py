"""Some tools for string identifiers.

Note we prefer base 36 as it's shorter and friendlier than base64 or
hex, and is case insensitive so suitable for document keys.
"""

import secrets

ID_LENGTH = 9


def base36_encode(n):
    """Base 36 encode an integer."""

    chars = "0123456789abcdefghijklmnopqrstuvwxyz"
    encoded = ""

    while n > 0:
        n, remainder = divmod(n, 36)
        encoded = chars[remainder] + encoded

    return encoded


def new_id(length: int = ID_LENGTH) -> str:
    """
    New random id for a tab, section, item or bookmark, e.g. "k3x9q0z1m".
    Always exactly `length` base 36 characters.
    """
    n = secrets.randbelow(36**length)
    return base36_encode(n).rjust(length, "0")


## Tests


def test_base36_encode():
    assert base36_encode(0) == ""
    assert base36_encode(35) == "z"
    assert base36_encode(36) == "10"


def test_new_id():
    ids = {new_id() for _ in range(200)}
    assert len(ids) == 200
    assert all(len(i) == ID_LENGTH and i.isalnum() for i in ids)
    assert len(new_id(4)) == 4
