"""JSON-file implementation of StateStore.

This module provides the local-first, crash-safe state store using:
- One JSON document per playlist at ``<output>/playlist-<id>/state.json``
- Whole-document atomic writes (temp file + os.replace)
- A single re-entrant lock that serializes every mutation-then-save
- Deep-copied reads so workers never share mutable state
"""

import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..exceptions import StateFileError
from .backends import StateStore
from .models import (
    CaptureState,
    CatalogItem,
    CollectionConfig,
    CollectionRecord,
    ItemClass,
    ItemRecord,
    RunStats,
    StageStatus,
    SummaryState,
    utcnow,
)
from .naming import make_slug

logger = logging.getLogger(__name__)

STATE_FILENAME = "state.json"


def collection_dir_for(output_dir, playlist_id: str) -> Path:
    """Deterministic location of a playlist's outputs and state."""
    return Path(output_dir) / f"playlist-{playlist_id}"


class JSONStateStore(StateStore):
    """File-backed state store for one playlist.

    Features:
    - Atomic whole-document writes
    - Thread-safe mutations (one RLock, shared with the reconciler)
    - Pure projections: stage updates overwrite, never merge
    """

    def __init__(self, output_dir, playlist_id: str):
        """Initialize store.

        Args:
            output_dir: Base output directory
            playlist_id: Stable playlist identifier

        Nothing is read until load() is called.
        """
        self.playlist_id = playlist_id
        self.collection_dir = collection_dir_for(output_dir, playlist_id)
        self.state_path = self.collection_dir / STATE_FILENAME
        self.lock = threading.RLock()
        self._record: Optional[CollectionRecord] = None

    # --- lifecycle ---

    def load(self) -> Optional[CollectionRecord]:
        with self.lock:
            if not self.state_path.exists():
                return None
            try:
                content = self.state_path.read_text(encoding="utf-8")
                self._record = CollectionRecord.model_validate_json(content)
            except (OSError, ValidationError) as e:
                raise StateFileError(
                    f"Cannot read state file {self.state_path}: {e}",
                    suggestion="Fix or remove the file to start tracking from scratch.",
                ) from e
            logger.debug(
                "Loaded state for %s (%d items)", self.playlist_id, len(self._record.videos)
            )
            return self._record.model_copy(deep=True)

    def initialize(
        self,
        playlist_id: str,
        playlist_title: str,
        config: CollectionConfig,
        items: Sequence[CatalogItem],
    ) -> CollectionRecord:
        with self.lock:
            now = utcnow()
            videos: Dict[str, ItemRecord] = {}
            for index, item in enumerate(items, start=1):
                if item.id in videos:
                    continue
                videos[item.id] = ItemRecord(
                    title=item.title, output_dir=make_slug(index, item.title)
                )

            self._record = CollectionRecord(
                playlist_id=playlist_id,
                playlist_title=playlist_title,
                config=config,
                total_videos=len(videos),
                created_at=now,
                updated_at=now,
                videos=videos,
            )
            self.save()
            logger.info("Initialized state for %s with %d items", playlist_id, len(videos))
            return self._record.model_copy(deep=True)

    def save(self) -> None:
        with self.lock:
            if self._record is None:
                return

            self._record.updated_at = utcnow()
            self.collection_dir.mkdir(parents=True, exist_ok=True)

            payload = self._record.model_dump_json(by_alias=True, indent=2)
            temp_path = self.state_path.with_suffix(".json.tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(temp_path, self.state_path)

    # --- mutations ---

    def update_summary_stage(
        self,
        item_id: str,
        status: StageStatus,
        timestamps: Optional[List[str]] = None,
        error: Optional[str] = None,
    ) -> None:
        with self.lock:
            item = self._get_tracked(item_id)
            if item is None:
                return

            item.summary = SummaryState(
                status=status,
                completed_at=utcnow() if status == StageStatus.COMPLETED else None,
                timestamps=list(timestamps) if timestamps is not None else None,
                error=error,
            )

            # Seed the capture total once; a later retry must not disturb it
            if (
                status == StageStatus.COMPLETED
                and timestamps is not None
                and item.screenshots.total == 0
            ):
                item.screenshots.total = len(timestamps)

            self.save()

    def update_capture_stage(
        self,
        item_id: str,
        status: StageStatus,
        completed_count: int,
        files: List[str],
        error: Optional[str] = None,
        total: Optional[int] = None,
    ) -> None:
        with self.lock:
            item = self._get_tracked(item_id)
            if item is None:
                return

            item.screenshots = CaptureState(
                status=status,
                total=item.screenshots.total if total is None else total,
                completed=completed_count,
                files=list(files),
                error=error,
            )
            self.save()

    def add_items(self, records: Dict[str, ItemRecord]) -> None:
        with self.lock:
            record = self._require_record()
            if not records:
                return
            for item_id, item in records.items():
                record.videos[item_id] = item
            record.total_videos = len(record.videos)
            self.save()

    def reset_stale_in_progress(self) -> int:
        """Crash recovery: return stages left ``in_progress`` to ``pending``.

        Returns:
            Count of items touched

        Capture keeps its produced files and count. Only reporting benefits;
        in-progress items are already part of the pending set.
        """
        with self.lock:
            record = self._require_record()
            count = 0
            for item in record.videos.values():
                touched = False
                if item.summary.status == StageStatus.IN_PROGRESS:
                    item.summary = SummaryState(status=StageStatus.PENDING)
                    touched = True
                if item.screenshots.status == StageStatus.IN_PROGRESS:
                    item.screenshots.status = StageStatus.PENDING
                    touched = True
                count += int(touched)
            if count:
                self.save()
                logger.info("Reset %d interrupted items to pending", count)
            return count

    def reset_failed(self) -> int:
        """Return failed stages to ``pending`` (keeps produced screenshots).

        Returns:
            Count of items touched
        """
        with self.lock:
            record = self._require_record()
            count = 0
            for item in record.videos.values():
                touched = False
                if item.summary.status == StageStatus.FAILED:
                    item.summary = SummaryState(status=StageStatus.PENDING)
                    touched = True
                if item.screenshots.status == StageStatus.FAILED:
                    item.screenshots.status = StageStatus.PENDING
                    item.screenshots.error = None
                    touched = True
                count += int(touched)
            if count:
                self.save()
            return count

    # --- reads ---

    def get_record(self) -> Optional[CollectionRecord]:
        with self.lock:
            if self._record is None:
                return None
            return self._record.model_copy(deep=True)

    def get_item(self, item_id: str) -> Optional[ItemRecord]:
        with self.lock:
            item = self._get_tracked(item_id)
            return item.model_copy(deep=True) if item is not None else None

    def get_pending_ids(self) -> List[str]:
        return [
            item_id
            for item_id, item_class in self._classified()
            if item_class != ItemClass.DONE
        ]

    def get_failed_ids(self) -> List[str]:
        return [
            item_id
            for item_id, item_class in self._classified()
            if item_class == ItemClass.FAILED
        ]

    def get_stats(self) -> RunStats:
        stats = RunStats()
        for _, item_class in self._classified():
            stats.total += 1
            if item_class == ItemClass.DONE:
                stats.completed += 1
            elif item_class == ItemClass.FAILED:
                stats.failed += 1
            elif item_class == ItemClass.IN_PROGRESS:
                stats.in_progress += 1
            else:
                stats.pending += 1
        return stats

    def item_dir(self, item_id: str) -> Path:
        with self.lock:
            item = self._get_tracked(item_id)
            if item is None:
                raise KeyError(f"Untracked item: {item_id}")
            return self.collection_dir / item.output_dir

    # --- helpers ---

    def _require_record(self) -> CollectionRecord:
        if self._record is None:
            raise RuntimeError("State not loaded (call load() or initialize() first)")
        return self._record

    def _get_tracked(self, item_id: str) -> Optional[ItemRecord]:
        if self._record is None:
            return None
        return self._record.videos.get(item_id)

    def _classified(self):
        with self.lock:
            if self._record is None:
                return []
            capture_enabled = self._record.config.with_screenshots
            return [
                (item_id, item.classify(capture_enabled))
                for item_id, item in self._record.videos.items()
            ]
