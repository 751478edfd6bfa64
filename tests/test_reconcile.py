"""Tests for merging a fresh playlist listing into tracked state."""

import pytest

from conftest import PLAYLIST_ID, make_items
from playlist_digest.jobs import (
    CatalogItem,
    CollectionConfig,
    ItemRecord,
    JSONStateStore,
    StageStatus,
    reconcile_items,
)


class TestReconcile:
    def test_idempotent(self, store):
        before = store.state_path.stat().st_mtime_ns
        assert reconcile_items(store, make_items("A", "B", "C")) == []
        assert reconcile_items(store, make_items("A", "B", "C")) == []
        assert store.state_path.stat().st_mtime_ns == before

    def test_appends_new_items_after_highest_index(self, store):
        added = reconcile_items(store, make_items("A", "B", "C", "D", "E"))
        assert added == ["D", "E"]

        record = store.get_record()
        assert record.videos["D"].output_dir == "04-video-d"
        assert record.videos["E"].output_dir == "05-video-e"
        assert record.total_videos == 5

    def test_preserves_tracked_progress(self, store):
        store.update_summary_stage("A", StageStatus.COMPLETED, timestamps=["00:01:00"])
        store.update_capture_stage("A", StageStatus.COMPLETED, 1, ["00-01-00.png"])
        before = store.get_item("A")

        reconcile_items(
            store, [CatalogItem(id="A", title="Renamed upstream")] + make_items("D")
        )

        after = store.get_item("A")
        assert after == before
        assert after.title == "Video A"

    def test_removed_items_stay_tracked(self, store):
        reconcile_items(store, make_items("A"))
        assert set(store.get_record().videos) == {"A", "B", "C"}

    def test_successive_growth_keeps_numbering(self, temp_output):
        store = JSONStateStore(temp_output, PLAYLIST_ID)
        store.initialize(PLAYLIST_ID, "T", CollectionConfig(), make_items("A"))
        reconcile_items(store, make_items("A", "B"))
        reconcile_items(store, make_items("A", "B", "C"))

        slugs = sorted(item.output_dir for item in store.get_record().videos.values())
        assert slugs == ["01-video-a", "02-video-b", "03-video-c"]

    def test_index_continues_from_max_not_count(self, store):
        store.add_items({"X": ItemRecord(title="X", output_dir="07-x")})

        reconcile_items(store, make_items("A", "B", "C", "X", "D"))

        assert store.get_item("D").output_dir == "08-video-d"

    def test_duplicate_new_ids_added_once(self, store):
        added = reconcile_items(store, make_items("D", "D"))
        assert added == ["D"]

    def test_requires_loaded_state(self, temp_output):
        store = JSONStateStore(temp_output, PLAYLIST_ID)
        with pytest.raises(RuntimeError):
            reconcile_items(store, make_items("A"))

    def test_state_survives_reload(self, store, temp_output):
        reconcile_items(store, make_items("A", "B", "C", "D"))
        record = JSONStateStore(temp_output, PLAYLIST_ID).load()
        assert "D" in record.videos
        assert record.videos["D"].summary.status == StageStatus.PENDING
