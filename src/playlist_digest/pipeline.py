"""Playlist-level orchestration on top of the job-state core.

This module provides the higher-level API used by the CLI: it loads or
creates the state document, reconciles the playlist listing, recovers from
interrupted runs, drives the scheduler, and renders its events.

Usage:
    # Process (or resume) a playlist
    stats = pipeline.run_playlist(config, "https://www.youtube.com/playlist?list=PL...",
                                  catalog, summarizer, capturer)

    # Inspect persisted state
    status = pipeline.get_status(output_dir="./output", playlist_id="PL...")
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from tqdm import tqdm

from .config import get_config_value
from .exceptions import EmptyCollectionError, StateFileError
from .jobs import (
    CaptureExecutor,
    CatalogFetcher,
    CollectionConfig,
    CollectionRecord,
    FrameCapturer,
    ItemCompleted,
    ItemFailed,
    JSONStateStore,
    PipelineScheduler,
    RunFinished,
    RunStarted,
    RunStats,
    Summarizer,
    SummarizeExecutor,
    reconcile_items,
)
from .jobs.naming import sanitize_title, timestamp_to_filename
from .jobs.stages import SCREENSHOT_SUBDIR
from .markdown import MarkdownWriter
from .models import DigestConfig
from .youtube import parse_playlist_id, parse_video_id

logger = logging.getLogger(__name__)


@dataclass
class FailedItem:
    item_id: str
    title: str
    error: str


@dataclass
class CollectionStatus:
    """Snapshot of a persisted playlist for ``status`` and the API."""

    playlist_id: str
    playlist_title: str
    state_path: Path
    stats: RunStats
    failed: List[FailedItem] = field(default_factory=list)


def prepare_collection(
    store: JSONStateStore,
    catalog: CatalogFetcher,
    playlist_id: str,
    collection_config: CollectionConfig,
) -> Tuple[CollectionRecord, List[str]]:
    """Load or initialize the state document and merge the current listing.

    Returns:
        (record, newly added ids). On first run every item counts as new.

    Raises:
        CollectionNotFoundError: If the playlist does not exist
        EmptyCollectionError: If a new playlist has no items
        StateFileError: If an existing state file cannot be parsed
    """
    record = store.load()

    if record is None:
        info = catalog.get_playlist_info(playlist_id)
        items = catalog.get_playlist_items(playlist_id)
        if not items:
            raise EmptyCollectionError(
                f"Playlist {playlist_id} has no available videos.",
                suggestion="Check that the playlist is public and its videos are not private.",
            )
        record = store.initialize(playlist_id, info.title, collection_config, items)
        return record, list(record.videos)

    added = reconcile_items(store, catalog.get_playlist_items(playlist_id))
    return store.get_record(), added


def run_collection(
    store: JSONStateStore,
    summarizer: Summarizer,
    capturer: FrameCapturer,
    concurrency: int = 1,
    writer: Optional[MarkdownWriter] = None,
    on_error: Optional[Callable[[str, Exception], None]] = None,
    show_progress: bool = True,
) -> RunStats:
    """Run both stages for every pending item of a loaded store.

    Locale and capture mode come from the state document, so a resumed
    playlist keeps the settings it was created with.

    Returns:
        Final RunStats over the whole playlist
    """
    record = store.get_record()
    if record is None:
        raise RuntimeError("State not loaded (call load() or initialize() first)")

    store.reset_stale_in_progress()
    pending = store.get_pending_ids()

    if not pending:
        print("Nothing to do: every video is already processed.")
        return store.get_stats()

    capture_enabled = record.config.with_screenshots
    if writer is None:
        writer = MarkdownWriter(locale=record.config.locale, with_screenshots=capture_enabled)

    scheduler = PipelineScheduler(
        store,
        SummarizeExecutor(store, summarizer, record.config.locale, writer=writer),
        CaptureExecutor(store, capturer),
        capture_enabled=capture_enabled,
        on_error=on_error,
    )

    stats = store.get_stats()
    progress = None
    events = scheduler.run(pending, concurrency)
    try:
        for event in events:
            if isinstance(event, RunStarted):
                print(f"\nProcessing {event.total} videos with {event.workers} workers...")
                progress = tqdm(total=event.total, unit="video", disable=not show_progress)
            elif isinstance(event, ItemCompleted):
                progress.update(1)
                progress.write(f"  ✓ [{event.finished}/{event.total}] {event.title}")
            elif isinstance(event, ItemFailed):
                progress.update(1)
                progress.write(
                    f"  ✗ [{event.finished}/{event.total}] {event.title} ({event.stage}): {event.error}"
                )
            elif isinstance(event, RunFinished):
                if progress is not None:
                    progress.close()
                stats = event.stats
                print(f"\nRun finished in {event.duration_s:.1f}s")
    finally:
        # Stops new claims when the loop exits early (Ctrl-C)
        events.close()

    return stats


def run_playlist(
    config: DigestConfig,
    playlist_url: str,
    catalog: CatalogFetcher,
    summarizer: Summarizer,
    capturer: FrameCapturer,
    on_error: Optional[Callable[[str, Exception], None]] = None,
) -> RunStats:
    """Main entry point for the CLI ``summarize --playlist`` command."""
    playlist_id = parse_playlist_id(playlist_url) if "list=" in playlist_url else playlist_url
    output_dir = get_config_value(config, "run.output_dir", "./output")

    print("--- Starting Playlist Digest ---")
    print(f"Playlist: {playlist_id}")

    store = JSONStateStore(output_dir, playlist_id)
    collection_config = CollectionConfig(
        locale=config.run.locale, with_screenshots=config.run.with_screenshots
    )
    record, added = prepare_collection(store, catalog, playlist_id, collection_config)

    print(f"Title: {record.playlist_title}")
    print(f"State: {store.state_path}")
    if added and len(added) != len(record.videos):
        print(f"Found {len(added)} new videos since the last run.")

    if (
        record.config.with_screenshots != collection_config.with_screenshots
        or record.config.locale != collection_config.locale
    ):
        print(
            f"Note: resuming with the playlist's saved settings "
            f"(locale={record.config.locale}, screenshots={record.config.with_screenshots})."
        )

    stats = run_collection(
        store,
        summarizer,
        capturer,
        concurrency=config.run.concurrency,
        on_error=on_error,
    )
    print_stats(record.playlist_title, stats)
    return stats


def summarize_single_video(
    config: DigestConfig,
    video_url: str,
    catalog: CatalogFetcher,
    summarizer: Summarizer,
    capturer: FrameCapturer,
) -> Path:
    """Summarize one video without tracking state.

    Output goes to ``<output_dir>/<sanitized-title>/``. Errors propagate.

    Returns:
        Directory holding README.md (and screenshots/)
    """
    video_id = parse_video_id(video_url)
    video = catalog.get_video(video_id)
    print(f"Video: {video.title}")

    start_time = time.time()
    locale = config.run.locale
    summary = summarizer.summarize(video.url, locale)
    print(f"Summary done: {len(summary.sections)} sections")

    output_dir = Path(config.run.output_dir) / sanitize_title(video.title)
    writer = MarkdownWriter(locale=locale, with_screenshots=config.run.with_screenshots)
    writer.write_document(output_dir, video.url, video.title, summary, video)

    if config.run.with_screenshots and summary.timestamps:
        results = capturer.capture_many(
            video.url, summary.timestamps, output_dir / SCREENSHOT_SUBDIR
        )
        ok = sum(1 for r in results if r.success)
        print(f"Screenshots: {ok}/{len(results)}")
        for result in results:
            if not result.success:
                logger.warning(
                    "Screenshot %s failed: %s",
                    timestamp_to_filename(result.timestamp),
                    result.error,
                )

    print(f"Done in {time.time() - start_time:.1f}s: {output_dir}")
    return output_dir


def get_status(output_dir: str, playlist_id: str) -> CollectionStatus:
    """Read-only view of a persisted playlist.

    Raises:
        StateFileError: If no state document exists or it cannot be parsed
    """
    store = JSONStateStore(output_dir, playlist_id)
    record = store.load()
    if record is None:
        raise StateFileError(
            f"No state file found at {store.state_path}",
            suggestion="Run 'playlist-digest summarize -p <playlist>' first.",
        )

    failed = []
    for item_id in store.get_failed_ids():
        item = record.videos[item_id]
        error = item.summary.error or item.screenshots.error or "Unknown error"
        failed.append(FailedItem(item_id=item_id, title=item.title, error=error))

    return CollectionStatus(
        playlist_id=record.playlist_id,
        playlist_title=record.playlist_title,
        state_path=store.state_path,
        stats=store.get_stats(),
        failed=failed,
    )


def retry_failed(output_dir: str, playlist_id: str) -> int:
    """Reset failed stages to pending so the next run picks them up.

    Returns:
        Number of items reset
    """
    store = JSONStateStore(output_dir, playlist_id)
    if store.load() is None:
        raise StateFileError(
            f"No state file found at {store.state_path}",
            suggestion="Run 'playlist-digest summarize -p <playlist>' first.",
        )

    count = store.reset_failed()
    print(f"Marked {count} failed videos for retry")
    return count


def print_stats(title: str, stats: RunStats) -> None:
    print("\n" + "=" * 60)
    print(f"PLAYLIST: {title[:48]}")
    print("=" * 60)
    print(f"Completed:            {stats.completed}")
    print(f"In Progress:          {stats.in_progress}")
    print(f"Failed:               {stats.failed}")
    print(f"Pending:              {stats.pending}")
    print(f"Total:                {stats.total}")
    print("=" * 60)
