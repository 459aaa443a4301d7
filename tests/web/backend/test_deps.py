"""Tests for shared backend dependencies."""

import threading
from unittest.mock import patch

from track_catalog.domain.library.collection import TrackCollection
from web.backend import deps


class TestPersist:
    """Tests for saving the collection after a change."""

    def test_saves_current_snapshot(self, make_record) -> None:
        """persist hands the current snapshot to storage."""
        collection = TrackCollection([make_record(name="a.mp3")])

        with patch("web.backend.deps.storage.save_all", return_value=True) as save_all:
            assert deps.persist(collection) is True

        save_all.assert_called_once_with(collection.snapshot())

    def test_failure_is_reported_not_raised(self, make_record) -> None:
        """A failed save returns False."""
        collection = TrackCollection([make_record()])

        with patch("web.backend.deps.storage.save_all", return_value=False):
            assert deps.persist(collection) is False

    def test_last_save_holds_newest_records(self, make_record) -> None:
        """A slow earlier save cannot overwrite a newer one."""
        record = make_record(name="a.mp3", title="Old")
        collection = TrackCollection([record])
        saved = []
        first_started = threading.Event()
        release_first = threading.Event()

        def slow_save(snapshot):
            if not saved and not first_started.is_set():
                first_started.set()
                release_first.wait(timeout=5)
            saved.append(snapshot)
            return True

        with patch("web.backend.deps.storage.save_all", side_effect=slow_save):
            first = threading.Thread(target=deps.persist, args=(collection,))
            first.start()
            assert first_started.wait(timeout=5)

            collection.update(
                record.id,
                lambda r: r._replace(metadata={**r.metadata, "title": "New"}),
            )
            second = threading.Thread(target=deps.persist, args=(collection,))
            second.start()

            release_first.set()
            first.join(timeout=5)
            second.join(timeout=5)

        assert len(saved) == 2
        assert saved[-1][0].metadata["title"] == "New"
