"""Stage executors: thin policy layers around one collaborator each.

Each executor reads the item's current sub-state, decides whether work is
needed, calls its collaborator, and records the outcome through the store.
Collaborator exceptions become ``failed`` stage states; nothing is re-raised.
"""

import logging
from typing import List, Optional

from .backends import DocumentWriter, FrameCapturer, StateStore, Summarizer
from .models import CaptureState, StageStatus, SummaryState, video_url
from .naming import timestamp_from_filename

logger = logging.getLogger(__name__)

SCREENSHOT_SUBDIR = "screenshots"
MAX_ERROR_CHARS = 500


def describe_error(exc: BaseException) -> str:
    """Short, single-line description of an exception for state files."""
    message = str(exc) or type(exc).__name__
    return message[:MAX_ERROR_CHARS]


class SummarizeExecutor:
    """Runs the summarize stage for one item."""

    def __init__(
        self,
        store: StateStore,
        summarizer: Summarizer,
        locale: str,
        writer: Optional[DocumentWriter] = None,
    ):
        self.store = store
        self.summarizer = summarizer
        self.locale = locale
        self.writer = writer

    def run(self, item_id: str) -> SummaryState:
        item = self.store.get_item(item_id)
        if item is None:
            raise KeyError(f"Untracked item: {item_id}")

        if item.summary.status == StageStatus.COMPLETED:
            logger.debug("Summary already completed: %s", item.title)
            return item.summary

        self.store.update_summary_stage(item_id, StageStatus.IN_PROGRESS)
        url = video_url(item_id)

        try:
            summary = self.summarizer.summarize(url, self.locale)
            if self.writer is not None:
                self.writer.write(self.store.item_dir(item_id), url, item, summary)
        except Exception as e:
            error = describe_error(e)
            logger.warning("Summarize failed for %s: %s", item.title, error)
            self.store.update_summary_stage(item_id, StageStatus.FAILED, error=error)
            return self.store.get_item(item_id).summary

        self.store.update_summary_stage(
            item_id, StageStatus.COMPLETED, timestamps=summary.timestamps
        )
        logger.info("Summary completed: %s (%d sections)", item.title, len(summary.sections))
        return self.store.get_item(item_id).summary


class CaptureExecutor:
    """Runs the capture stage for one item, retrying only what is missing.

    Already-produced timestamps are recovered from the recorded filenames;
    only the set difference is requested from the capturer, and new files
    are appended to the existing list.
    """

    def __init__(self, store: StateStore, capturer: FrameCapturer):
        self.store = store
        self.capturer = capturer

    @staticmethod
    def remaining_timestamps(declared: List[str], capture: CaptureState) -> List[str]:
        """Declared timestamps with no screenshot yet, in declared order."""
        produced = {timestamp_from_filename(f) for f in capture.files}
        remaining: List[str] = []
        for timestamp in declared:
            if timestamp not in produced and timestamp not in remaining:
                remaining.append(timestamp)
        return remaining

    def run(self, item_id: str) -> CaptureState:
        item = self.store.get_item(item_id)
        if item is None:
            raise KeyError(f"Untracked item: {item_id}")

        if item.summary.status != StageStatus.COMPLETED:
            logger.debug("Capture skipped, summary not completed: %s", item.title)
            return item.screenshots

        declared = item.summary.timestamps or []
        capture = item.screenshots
        existing = list(capture.files)
        remaining = self.remaining_timestamps(declared, capture)

        if not remaining:
            if capture.status == StageStatus.COMPLETED and capture.total == len(declared):
                logger.debug("Screenshots already completed: %s", item.title)
                return capture
            self.store.update_capture_stage(
                item_id,
                StageStatus.COMPLETED,
                len(existing),
                existing,
                total=len(declared),
            )
            return self.store.get_item(item_id).screenshots

        self.store.update_capture_stage(
            item_id, StageStatus.IN_PROGRESS, len(existing), existing, total=len(declared)
        )
        output_dir = self.store.item_dir(item_id) / SCREENSHOT_SUBDIR

        try:
            results = self.capturer.capture_many(video_url(item_id), remaining, output_dir)
        except Exception as e:
            error = describe_error(e)
            logger.warning("Capture failed for %s: %s", item.title, error)
            self.store.update_capture_stage(
                item_id, StageStatus.FAILED, len(existing), existing, error=error
            )
            return self.store.get_item(item_id).screenshots

        final = list(existing)
        succeeded = set()
        errors = []
        for result in results:
            if result.success:
                succeeded.add(result.timestamp)
                if result.filename not in final:
                    final.append(result.filename)
            else:
                errors.append(f"{result.timestamp}: {result.error or 'unknown error'}")

        missing = [t for t in remaining if t not in succeeded]
        if missing:
            if not errors:
                errors.append(f"no result for {', '.join(missing)}")
            status = StageStatus.FAILED
            error: Optional[str] = "; ".join(errors)[:MAX_ERROR_CHARS]
        else:
            status = StageStatus.COMPLETED
            error = None

        self.store.update_capture_stage(item_id, status, len(final), final, error=error)
        logger.info(
            "Screenshots for %s: %d/%d (%s)", item.title, len(final), len(declared), status.value
        )
        return self.store.get_item(item_id).screenshots
