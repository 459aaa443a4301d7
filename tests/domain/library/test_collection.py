"""Tests for track records and the in-memory collection."""

import threading

import pytest

from track_catalog.domain.library.collection import DuplicateTrackError, TrackCollection
from track_catalog.domain.library.models import TrackRecord, create_track, new_track_id


class TestTrackRecord:
    """Tests for the record model."""

    def test_new_ids_are_unique(self) -> None:
        """new_track_id generates distinct ids."""
        ids = {new_track_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_create_track_defaults_source_path(self) -> None:
        """Source path defaults to the name."""
        record = create_track("song.mp3")
        assert record.name == "song.mp3"
        assert record.source_path == "song.mp3"
        assert record.metadata is None

    def test_meta_tolerates_missing_metadata(self, make_record) -> None:
        """meta() works when metadata is None."""
        record = make_record()
        assert record.meta("tempo") is None
        assert record.meta("tempo", 0) == 0

    def test_with_metadata_returns_copy(self, make_record) -> None:
        """with_metadata leaves the original untouched."""
        record = make_record(title="Old")
        updated = record.with_metadata({"title": "New"})

        assert record.meta("title") == "Old"
        assert updated.meta("title") == "New"
        assert updated.id == record.id

    def test_display_title_falls_back_to_name(self, make_record) -> None:
        """Display title falls back to the file name."""
        assert make_record(name="a.mp3").display_title() == "a.mp3"
        assert make_record(name="a.mp3", title="Song").display_title() == "Song"

    def test_dict_round_trip(self, make_record) -> None:
        """Records survive to_dict/from_dict."""
        record = make_record(title="Song", tempo=128, key="8B")
        assert TrackRecord.from_dict(record.to_dict()) == record


class TestTrackCollection:
    """Tests for collection ownership and atomic replacement."""

    def test_duplicate_ids_rejected(self, make_record) -> None:
        """Duplicate ids raise DuplicateTrackError."""
        with pytest.raises(DuplicateTrackError):
            TrackCollection([make_record(id="a"), make_record(id="a", name="b.mp3")])

    def test_snapshot_is_immutable_view(self, make_record) -> None:
        """Snapshots do not change after later writes."""
        collection = TrackCollection([make_record(id="a")])
        before = collection.snapshot()

        collection.add_new([make_record(id="b", name="b.mp3")])

        assert len(before) == 1
        assert len(collection.snapshot()) == 2

    def test_add_new_skips_known_paths(self, make_record) -> None:
        """add_new skips records for known paths."""
        collection = TrackCollection([make_record(id="a", name="a.mp3")])

        added = collection.add_new(
            [
                make_record(id="x", name="a.mp3"),  # same source path
                make_record(id="b", name="b.mp3"),
            ]
        )

        assert [r.id for r in added] == ["b"]
        assert [r.id for r in collection.snapshot()] == ["a", "b"]

    def test_add_new_rejects_reused_id(self, make_record) -> None:
        """add_new rejects an id already in use."""
        collection = TrackCollection([make_record(id="a", name="a.mp3")])
        with pytest.raises(DuplicateTrackError):
            collection.add_new([make_record(id="a", name="other.mp3")])

    def test_update_replaces_single_record(self, make_record) -> None:
        """update swaps only the target record."""
        collection = TrackCollection(
            [make_record(id="a", name="a.mp3"), make_record(id="b", name="b.mp3")]
        )

        updated = collection.update("b", lambda r: r.with_metadata({"tempo": 120}))

        assert updated.meta("tempo") == 120
        assert collection.get("b").meta("tempo") == 120
        assert collection.get("a").metadata is None
        assert [r.id for r in collection.snapshot()] == ["a", "b"]

    def test_update_unknown_id(self, make_record) -> None:
        """update returns None for an unknown id."""
        collection = TrackCollection([make_record(id="a")])
        assert collection.update("missing", lambda r: r) is None

    def test_update_cannot_change_id(self, make_record) -> None:
        """update refuses to change a record's id."""
        collection = TrackCollection([make_record(id="a")])
        with pytest.raises(ValueError):
            collection.update("a", lambda r: r._replace(id="z"))

    def test_concurrent_updates_do_not_lose_writes(self, make_record) -> None:
        """Updates to the same record from many threads all land."""
        collection = TrackCollection([make_record(id="a", counter=0)])

        def bump(record):
            metadata = dict(record.metadata)
            metadata["counter"] += 1
            return record.with_metadata(metadata)

        threads = [
            threading.Thread(target=lambda: collection.update("a", bump))
            for _ in range(50)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert collection.get("a").meta("counter") == 50

    def test_transform_replaces_whole_snapshot(self, make_record) -> None:
        """transform installs the derived snapshot."""
        collection = TrackCollection([make_record(id="a"), make_record(id="b", name="b")])

        result = collection.transform(lambda snap: [r for r in snap if r.id == "b"])

        assert [r.id for r in result] == ["b"]
        assert len(collection) == 1

    def test_replace_all(self, make_record) -> None:
        """replace_all swaps the whole collection."""
        collection = TrackCollection([make_record(id="a")])

        collection.replace_all([make_record(id="x", name="x.mp3"), make_record(id="y", name="y.mp3")])

        assert [r.id for r in collection.snapshot()] == ["x", "y"]
        with pytest.raises(DuplicateTrackError):
            collection.replace_all([make_record(id="z"), make_record(id="z")])
        assert len(collection) == 2
