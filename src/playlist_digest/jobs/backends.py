from __future__ import annotations

"""Abstract base classes for state storage and external collaborators.

This module defines the interfaces the pipeline core depends on. The core
never talks to YouTube, Gemini, yt-dlp or the filesystem layout directly;
it only sees these contracts.
"""

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

if TYPE_CHECKING:
    from .models import (
        CaptureResult,
        CatalogItem,
        CollectionConfig,
        CollectionRecord,
        ItemRecord,
        PlaylistInfo,
        RunStats,
        StageStatus,
        VideoInfo,
        VideoSummary,
    )


class StateStore(ABC):
    """Abstract owner of one playlist's state document.

    Implementations must provide:
    - A single re-entrant ``lock`` that serializes every mutation-then-save
    - Whole-document persistence after every mutation (no partial writes)
    - Deep-copied reads, so callers never alias the shared record
    """

    lock: threading.RLock

    @abstractmethod
    def load(self) -> Optional["CollectionRecord"]:
        """Read and parse the persisted document.

        Returns:
            The record, or None if no state file exists yet

        Implementation notes:
        - Absence is not an error
        - A present but unparseable file should raise StateFileError
        """
        pass

    @abstractmethod
    def initialize(
        self,
        playlist_id: str,
        playlist_title: str,
        config: "CollectionConfig",
        items: Sequence["CatalogItem"],
    ) -> "CollectionRecord":
        """Build a fresh record and persist it immediately.

        Implementation notes:
        - Each item gets slug ``{index:02d}-{sanitized title}`` (1-based)
        - Both stages start ``pending``, capture ``total`` starts at 0
        """
        pass

    @abstractmethod
    def save(self) -> None:
        """Serialize the full record and overwrite the backing file.

        Implementation notes:
        - MUST refresh ``updated_at``
        - Should write atomically (temp file + rename)
        """
        pass

    @abstractmethod
    def update_summary_stage(
        self,
        item_id: str,
        status: "StageStatus",
        timestamps: Optional[List[str]] = None,
        error: Optional[str] = None,
    ) -> None:
        """Replace the summarize stage state of an item.

        Implementation notes:
        - ``completed`` stamps ``completed_at``
        - ``completed`` with timestamps seeds capture ``total`` if still 0
        - No-op for untracked ids
        """
        pass

    @abstractmethod
    def update_capture_stage(
        self,
        item_id: str,
        status: "StageStatus",
        completed_count: int,
        files: List[str],
        error: Optional[str] = None,
        total: Optional[int] = None,
    ) -> None:
        """Replace the capture stage state of an item.

        Implementation notes:
        - ``files`` must already include previously produced outputs;
          the store overwrites, it never merges
        - ``total`` defaults to the stored value
        - No-op for untracked ids
        """
        pass

    @abstractmethod
    def add_items(self, records: Dict[str, "ItemRecord"]) -> None:
        """Append new item records and recompute ``total_videos``."""
        pass

    @abstractmethod
    def get_record(self) -> Optional["CollectionRecord"]:
        """Deep copy of the current record (None before load/initialize)."""
        pass

    @abstractmethod
    def get_item(self, item_id: str) -> Optional["ItemRecord"]:
        """Deep copy of one item record, or None if untracked."""
        pass

    @abstractmethod
    def get_pending_ids(self) -> List[str]:
        """Ids of every item not yet done, in insertion order."""
        pass

    @abstractmethod
    def get_failed_ids(self) -> List[str]:
        """Ids of every failed item, in insertion order."""
        pass

    @abstractmethod
    def get_stats(self) -> "RunStats":
        """Aggregate counts; the four buckets partition ``total``."""
        pass

    @abstractmethod
    def item_dir(self, item_id: str) -> Path:
        """Output directory of one item."""
        pass


class CatalogFetcher(ABC):
    """Source of playlist and video metadata."""

    @abstractmethod
    def get_playlist_info(self, playlist_id: str) -> "PlaylistInfo":
        """Fetch playlist metadata.

        Raises:
            CollectionNotFoundError: If the playlist does not exist
        """
        pass

    @abstractmethod
    def get_playlist_items(self, playlist_id: str) -> List["CatalogItem"]:
        """Fetch every item of the playlist, in playlist order."""
        pass

    @abstractmethod
    def get_video(self, video_id: str) -> "VideoInfo":
        """Fetch one video's metadata.

        Raises:
            CollectionNotFoundError: If the video does not exist
        """
        pass


class Summarizer(ABC):
    """Generative summarization service."""

    @abstractmethod
    def summarize(self, video_url: str, locale: str) -> "VideoSummary":
        """Summarize one video.

        Implementation notes:
        - Owns its own timeout and retry policy
        - Raises on failure; the executor records the message
        """
        pass


class FrameCapturer(ABC):
    """Extracts still frames from a video at given timestamps."""

    @abstractmethod
    def capture_many(
        self, video_url: str, timestamps: List[str], output_dir: Path
    ) -> List["CaptureResult"]:
        """Capture one screenshot per timestamp.

        Returns:
            One CaptureResult per requested timestamp

        Implementation notes:
        - Per-timestamp failures are reported in the results, not raised
        - Filenames must follow ``naming.timestamp_to_filename``
        """
        pass


class DocumentWriter(ABC):
    """Turns a completed summary into a document on disk."""

    @abstractmethod
    def write(
        self, item_dir: Path, video_url: str, item: "ItemRecord", summary: "VideoSummary"
    ) -> Path:
        """Write the document and return its path."""
        pass
