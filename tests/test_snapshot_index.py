"""Tests for the snapshot index, tag registry and selector resolution."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from ftt.core.blob_store import BlobStore
from ftt.core.errors import (
    AmbiguousSelector,
    InvalidLabel,
    IOFailure,
    NoSnapshots,
    OutOfRange,
    UnknownSnapshot,
    UnknownTag,
)
from ftt.core.scanner import fingerprint, scan
from ftt.core.snapshot_index import (
    ByAge,
    ById,
    ByOffset,
    ByTag,
    Snapshot,
    SnapshotIndex,
    TagRegistry,
    make_selector,
    parse_duration,
    resolve,
)


@pytest.fixture
def meta(project):
    return project / ".ftt"


@pytest.fixture
def blobs(meta):
    return BlobStore(meta / "blobs")


def _index_of(*ids):
    return SnapshotIndex("unused.json", [Snapshot(id=i, files={}) for i in ids])


class TestSnapshotIndex:
    def test_missing_file_is_empty(self, meta):
        index = SnapshotIndex.load(meta / "index.json")
        assert len(index) == 0
        assert index.latest() is None
        assert index.next_id() == 1

    def test_ids_are_sequential(self, project, meta, blobs):
        for n in range(1, 5):
            (project / "a.txt").write_text(f"version {n}")
            index = SnapshotIndex.load(meta / "index.json")
            snapshot, _ = index.append(scan(project), project, blobs)
            assert snapshot.id == n

        assert SnapshotIndex.load(meta / "index.json").ids == [1, 2, 3, 4]

    def test_next_id_follows_max(self):
        assert _index_of(1, 2, 7).next_id() == 8

    def test_append_persists_blobs_and_index(self, project, meta, blobs):
        index = SnapshotIndex.load(meta / "index.json")
        snapshot, written = index.append(scan(project), project, blobs, message="first")

        assert written == 2
        assert blobs.get(snapshot.files["a.txt"]) == b"hello"

        reloaded = SnapshotIndex.load(meta / "index.json")
        assert reloaded.get(1).files == snapshot.files
        assert reloaded.get(1).message == "first"
        assert reloaded.get(1).created_at is not None

    def test_identical_content_is_stored_once(self, project, meta, blobs):
        (project / "copy.txt").write_text("hello")

        index = SnapshotIndex.load(meta / "index.json")
        _, written = index.append(scan(project), project, blobs)

        assert written == 2  # "hello" and "world"
        assert len(blobs) == 2

        _, written_again = index.append(scan(project), project, blobs)
        assert written_again == 0

    def test_writes_descriptor(self, project, meta, blobs):
        index = SnapshotIndex.load(meta / "index.json")
        snapshot, _ = index.append(scan(project), project, blobs, descriptors_dir=meta / "snapshots")

        descriptor = json.loads((meta / "snapshots" / "1.json").read_text())
        assert descriptor["id"] == 1
        assert descriptor["files"] == dict(snapshot.files)

    def test_file_changed_after_scan_is_dropped(self, project, meta, blobs):
        mapping = scan(project)
        (project / "b.txt").write_text("changed behind our back")

        index = SnapshotIndex.load(meta / "index.json")
        snapshot, _ = index.append(mapping, project, blobs)

        assert set(snapshot.files) == {"a.txt"}
        for digest in snapshot.files.values():
            assert digest in blobs

    def test_corrupt_index_is_an_error(self, meta):
        meta.mkdir()
        (meta / "index.json").write_text("{not json")

        with pytest.raises(IOFailure):
            SnapshotIndex.load(meta / "index.json")

    @pytest.mark.parametrize("key", ["../x", "/etc/passwd", "a/../../x", ""])
    def test_paths_escaping_root_are_an_error(self, meta, key):
        meta.mkdir()
        (meta / "index.json").write_text(json.dumps([{"id": 1, "files": {key: fingerprint(b"x")}}]))

        with pytest.raises(IOFailure):
            SnapshotIndex.load(meta / "index.json")

    def test_snapshot_files_are_read_only(self):
        source = {"a.txt": "h1"}
        snapshot = Snapshot(id=1, files=source)
        source["b.txt"] = "h2"

        assert dict(snapshot.files) == {"a.txt": "h1"}
        with pytest.raises(TypeError):
            snapshot.files["c.txt"] = "h3"

    def test_loads_entries_without_timestamp(self, meta):
        meta.mkdir()
        (meta / "index.json").write_text(json.dumps([{"id": 1, "files": {"a.txt": fingerprint(b"hello")}}]))

        index = SnapshotIndex.load(meta / "index.json")

        assert index.get(1).timestamp == ""
        assert index.get(1).created_at is None

    def test_save_failure_is_hard_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        index = SnapshotIndex(blocker / "index.json", [Snapshot(id=1, files={})])

        with pytest.raises(IOFailure):
            index.save()


class TestTagRegistry:
    def test_tag_and_reload(self, meta):
        meta.mkdir()
        tags = TagRegistry.load(meta / "tags.json")
        tags.tag("v1", 2, _index_of(1, 2))
        tags.save()

        assert TagRegistry.load(meta / "tags.json").get("v1") == 2
        assert json.loads((meta / "tags.json").read_text()) == {"tags": {"v1": 2}}

    def test_unknown_snapshot_rejected(self, meta):
        tags = TagRegistry.load(meta / "tags.json")
        with pytest.raises(UnknownSnapshot):
            tags.tag("v1", 9, _index_of(1, 2))
        assert "v1" not in tags

    def test_overwrite_label(self):
        tags = TagRegistry("unused.json")
        index = _index_of(1, 2)
        tags.tag("release", 1, index)
        tags.tag("release", 2, index)
        assert tags.get("release") == 2
        assert tags.labels_for(1) == []

    def test_empty_label_rejected(self):
        with pytest.raises(InvalidLabel):
            TagRegistry("unused.json").tag("  ", 1, _index_of(1))

    def test_corrupt_tags_is_an_error(self, meta):
        meta.mkdir()
        (meta / "tags.json").write_text("[1, 2]")
        with pytest.raises(IOFailure):
            TagRegistry.load(meta / "tags.json")


class TestResolve:
    def test_by_id(self):
        assert resolve(ById(2), _index_of(1, 2, 3), TagRegistry("t.json")).id == 2

    def test_by_offset(self):
        index = _index_of(1, 2, 3)
        tags = TagRegistry("t.json")
        assert resolve(ByOffset(0), index, tags).id == 3
        assert resolve(ByOffset(2), index, tags).id == 1

    def test_offset_out_of_range(self):
        with pytest.raises(OutOfRange) as excinfo:
            resolve(ByOffset(3), _index_of(1, 2, 3), TagRegistry("t.json"))
        assert excinfo.value.available == 3

    def test_negative_offset_out_of_range(self):
        with pytest.raises(OutOfRange):
            resolve(ByOffset(-1), _index_of(1), TagRegistry("t.json"))

    def test_by_tag(self):
        tags = TagRegistry("t.json", {"v1": 2})
        assert resolve(ByTag("v1"), _index_of(1, 2), tags).id == 2

    def test_unknown_tag(self):
        with pytest.raises(UnknownTag):
            resolve(ByTag("nope"), _index_of(1), TagRegistry("t.json"))

    def test_tag_pointing_nowhere(self):
        with pytest.raises(UnknownSnapshot):
            resolve(ByTag("v1"), _index_of(1), TagRegistry("t.json", {"v1": 5}))

    def test_unknown_id(self):
        with pytest.raises(UnknownSnapshot):
            resolve(ById(5), _index_of(1), TagRegistry("t.json"))

    def test_no_selector(self):
        with pytest.raises(AmbiguousSelector):
            resolve(None, _index_of(1), TagRegistry("t.json"))

    def test_empty_index(self):
        with pytest.raises(NoSnapshots):
            resolve(ByOffset(0), _index_of(), TagRegistry("t.json"))

    def test_by_age(self):
        index = SnapshotIndex("unused.json", [
            Snapshot(id=1, files={}, timestamp="2026-01-01T00:00:00+00:00"),
            Snapshot(id=2, files={}, timestamp="2026-01-02T00:00:00+00:00"),
        ])
        now = datetime(2026, 1, 2, 6, tzinfo=timezone.utc)
        tags = TagRegistry("t.json")

        assert resolve(ByAge(timedelta(hours=1), now=now), index, tags).id == 2
        assert resolve(ByAge(timedelta(hours=12), now=now), index, tags).id == 1
        with pytest.raises(OutOfRange):
            resolve(ByAge(timedelta(days=3), now=now), index, tags)


class TestMakeSelector:
    def test_each_kind(self):
        assert make_selector(snapshot_id="3") == ById(3)
        assert make_selector(tag="v1") == ByTag("v1")
        assert make_selector(back="0") == ByOffset(0)
        assert make_selector(ago="2h") == ByAge(timedelta(hours=2))

    def test_none_given(self):
        with pytest.raises(AmbiguousSelector):
            make_selector()

    def test_several_given(self):
        with pytest.raises(AmbiguousSelector):
            make_selector(snapshot_id=1, tag="v1")

    def test_non_numeric(self):
        with pytest.raises(AmbiguousSelector):
            make_selector(back="two")


class TestParseDuration:
    def test_units(self):
        assert parse_duration("1d") == timedelta(days=1)
        assert parse_duration("5h") == timedelta(hours=5)
        assert parse_duration("30m") == timedelta(minutes=30)

    @pytest.mark.parametrize("text", ["", "d", "5", "5s", "-1d", "1.5h"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)
