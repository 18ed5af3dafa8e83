"""Tests for the diff engine."""

from ftt.core.diff import diff, diff_snapshots
from ftt.core.snapshot_index import Snapshot


def test_classifies_every_change():
    before = {"a.txt": "h1", "b.txt": "h2", "gone.txt": "h3"}
    after = {"a.txt": "h9", "b.txt": "h2", "c.txt": "h4"}

    result = diff(before, after)

    assert result.added == ["c.txt"]
    assert result.modified == ["a.txt"]
    assert result.deleted == ["gone.txt"]
    assert result.unchanged_count == 1
    assert result.change_count == 3


def test_identical_mappings_are_empty():
    files = {"a.txt": "h1", "dir/b.txt": "h2"}

    result = diff(files, dict(files))

    assert result.is_empty
    assert result.unchanged_count == 2


def test_every_path_lands_in_exactly_one_bucket():
    before = {f"f{i}": f"h{i % 3}" for i in range(0, 20)}
    after = {f"f{i}": f"h{i % 4}" for i in range(10, 30)}

    result = diff(before, after)
    buckets = [set(result.added), set(result.modified), set(result.deleted)]

    for i, left in enumerate(buckets):
        for right in buckets[i + 1:]:
            assert not left & right

    changed = set().union(*buckets)
    unchanged = {p for p in before.keys() & after.keys() if before[p] == after[p]}
    assert changed | unchanged == before.keys() | after.keys()
    assert not changed & unchanged
    assert len(unchanged) == result.unchanged_count
    for path in result.modified:
        assert before[path] != after[path]


def test_empty_sides():
    files = {"a.txt": "h1"}

    assert diff({}, files).added == ["a.txt"]
    assert diff(files, {}).deleted == ["a.txt"]
    assert diff({}, {}).is_empty


def test_diff_snapshots_and_to_dict():
    one = Snapshot(id=1, files={"a.txt": "hello"})
    two = Snapshot(id=2, files={"a.txt": "goodbye", "c.txt": "new"})

    assert diff_snapshots(one, two).to_dict() == {
        "added": ["c.txt"],
        "modified": ["a.txt"],
        "deleted": [],
        "unchanged": 0,
    }
