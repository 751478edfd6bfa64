import tempfile
import threading
from pathlib import Path

import pytest

from playlist_digest.jobs import (
    CaptureResult,
    CatalogFetcher,
    CatalogItem,
    CollectionConfig,
    FrameCapturer,
    JSONStateStore,
    PlaylistInfo,
    Summarizer,
    SummarySection,
    VideoInfo,
    VideoSummary,
)
from playlist_digest.jobs.naming import timestamp_to_filename

PLAYLIST_ID = "PLtest123"


def video_id_from_url(url: str) -> str:
    return url.split("v=", 1)[1]


class FakeCatalog(CatalogFetcher):
    """In-memory catalog; ``items`` can be mutated between runs."""

    def __init__(self, items, title="Test Playlist"):
        self.items = list(items)
        self.title = title

    def get_playlist_info(self, playlist_id):
        return PlaylistInfo(id=playlist_id, title=self.title, video_count=len(self.items))

    def get_playlist_items(self, playlist_id):
        return list(self.items)

    def get_video(self, video_id):
        for item in self.items:
            if item.id == video_id:
                return VideoInfo(id=item.id, title=item.title)
        raise KeyError(video_id)


class FakeSummarizer(Summarizer):
    """Returns canned timestamps per video id; ids in ``fail_ids`` raise."""

    def __init__(self, timestamps=None, default=("00:01:00",), fail_ids=()):
        self.timestamps = dict(timestamps or {})
        self.default = list(default)
        self.fail_ids = set(fail_ids)
        self.calls = []
        self._lock = threading.Lock()

    def summarize(self, video_url, locale):
        video_id = video_id_from_url(video_url)
        with self._lock:
            self.calls.append(video_id)
        if video_id in self.fail_ids:
            raise RuntimeError(f"summarizer exploded for {video_id}")
        stamps = self.timestamps.get(video_id, self.default)
        return VideoSummary(
            overview=f"Overview of {video_id}",
            sections=[SummarySection(timestamp=t, title=f"Part {t}", content="...") for t in stamps],
            key_points=["point"],
        )


class FakeCapturer(FrameCapturer):
    """Succeeds for every timestamp except those in ``fail_timestamps``."""

    def __init__(self, fail_timestamps=(), raise_for=()):
        self.fail_timestamps = set(fail_timestamps)
        self.raise_for = set(raise_for)
        self.requests = []
        self._lock = threading.Lock()

    def capture_many(self, video_url, timestamps, output_dir):
        video_id = video_id_from_url(video_url)
        with self._lock:
            self.requests.append((video_id, list(timestamps)))
        if video_id in self.raise_for:
            raise RuntimeError("capture backend crashed")
        results = []
        for timestamp in timestamps:
            if timestamp in self.fail_timestamps:
                results.append(
                    CaptureResult(
                        timestamp=timestamp,
                        filename=timestamp_to_filename(timestamp),
                        success=False,
                        error="frame not found",
                    )
                )
            else:
                results.append(
                    CaptureResult(
                        timestamp=timestamp,
                        filename=timestamp_to_filename(timestamp),
                        success=True,
                    )
                )
        return results


def make_items(*ids):
    return [CatalogItem(id=item_id, title=f"Video {item_id}") for item_id in ids]


@pytest.fixture
def temp_output():
    """Create temporary output directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_output):
    """JSONStateStore initialized with videos A, B, C (screenshots enabled)."""
    s = JSONStateStore(temp_output, PLAYLIST_ID)
    s.initialize(PLAYLIST_ID, "Test Playlist", CollectionConfig(), make_items("A", "B", "C"))
    return s
