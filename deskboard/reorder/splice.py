from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")


def splice_move(seq: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """
    Move one element: remove it, then insert it at `to_index` of the shortened
    list. This is a move, not a swap, so moving down lands the element just
    before where the target ends up. Returns a new list.
    """
    if not (0 <= from_index < len(seq)) or not (0 <= to_index < len(seq)):
        raise IndexError(f"Index out of range for splice: {from_index} -> {to_index} of {len(seq)}")
    result = list(seq)
    moved = result.pop(from_index)
    result.insert(to_index, moved)
    return result


def move_by_id(
    seq: Sequence[T], moved_id: str, target_id: str, get_id: Callable[[T], str]
) -> List[T]:
    """
    Move the element with `moved_id` to the position of the element with `target_id`.
    Returns the same sequence (as a list, unchanged) if either id is missing or they
    are equal.
    """
    ids = [get_id(x) for x in seq]
    if moved_id == target_id or moved_id not in ids or target_id not in ids:
        return list(seq)
    return splice_move(seq, ids.index(moved_id), ids.index(target_id))


## Tests


def test_splice_move():
    assert splice_move(["a", "b", "c", "d"], 0, 2) == ["b", "c", "a", "d"]
    assert splice_move(["a", "b", "c", "d"], 3, 1) == ["a", "d", "b", "c"]
    assert splice_move(["a", "b"], 1, 1) == ["a", "b"]

    original = ["a", "b", "c"]
    moved = splice_move(original, 2, 0)
    assert moved == ["c", "a", "b"]
    assert original == ["a", "b", "c"]


def test_splice_preserves_relative_order_of_others():
    seq = list("abcdefg")
    for i in range(len(seq)):
        for j in range(len(seq)):
            moved = splice_move(seq, i, j)
            assert sorted(moved) == sorted(seq)
            assert moved[j] == seq[i]
            assert [x for x in moved if x != seq[i]] == [x for x in seq if x != seq[i]]


def test_splice_out_of_range():
    import pytest

    with pytest.raises(IndexError):
        splice_move(["a"], 0, 1)


def test_move_by_id():
    seq = [{"id": "x"}, {"id": "y"}, {"id": "z"}]

    def get_id(e):
        return e["id"]

    def ids(s):
        return [get_id(e) for e in s]

    assert ids(move_by_id(seq, "z", "x", get_id)) == ["z", "x", "y"]
    assert ids(move_by_id(seq, "x", "x", get_id)) == ["x", "y", "z"]
    assert ids(move_by_id(seq, "missing", "x", get_id)) == ["x", "y", "z"]
