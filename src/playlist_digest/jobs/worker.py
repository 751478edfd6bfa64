"""Bounded worker pool that drives the two-stage pipeline per item.

This module provides concurrent playlist processing with:
- ThreadPoolExecutor sized to min(concurrency, pending items)
- A shared cursor: each worker pulls the next unclaimed id, no re-queuing
- Per-item failure isolation: one item's exception never reaches siblings
- An event stream (queue.Queue) consumed by the calling thread
- Closing the stream early stops new claims; in-flight items still finish
"""

import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from ..exceptions import StageFailedError
from .backends import StateStore
from .events import ItemCompleted, ItemFailed, ItemStarted, PipelineEvent, RunFinished, RunStarted
from .models import ItemClass, ItemRecord, StageStatus
from .stages import CaptureExecutor, SummarizeExecutor, describe_error

logger = logging.getLogger(__name__)

_WORKER_DONE = object()


class _Cursor:
    """Shared position in the pending list plus the finished tally."""

    def __init__(self, item_ids: Sequence[str]):
        self._item_ids = list(item_ids)
        self._next = 0
        self._finished = 0
        self._lock = threading.Lock()
        self._stopped = threading.Event()

    def stop(self) -> None:
        self._stopped.set()

    def claim(self) -> Optional[str]:
        with self._lock:
            if self._stopped.is_set() or self._next >= len(self._item_ids):
                return None
            item_id = self._item_ids[self._next]
            self._next += 1
            return item_id

    def finish(self, emit: Optional[Callable[[int], None]] = None) -> int:
        """Count one finished item; ``emit`` runs under the lock so events stay in tally order."""
        with self._lock:
            self._finished += 1
            if emit is not None:
                emit(self._finished)
            return self._finished


class PipelineScheduler:
    """Runs Summarize then (optionally) Capture for every pending item.

    Re-entering an already-advanced item is cheap and safe: both executors
    skip work that their stage state says is done.
    """

    def __init__(
        self,
        store: StateStore,
        summarize: SummarizeExecutor,
        capture: CaptureExecutor,
        capture_enabled: bool = True,
        on_error: Optional[Callable[[str, Exception], None]] = None,
    ):
        """Initialize scheduler.

        Args:
            store: State store shared by all workers
            summarize: Summarize stage executor
            capture: Capture stage executor
            capture_enabled: Whether the capture stage runs at all
            on_error: Optional callback for every failed item; receives the escaped
                exception, or a StageFailedError when a stage recorded the failure
        """
        self.store = store
        self.summarize = summarize
        self.capture = capture
        self.capture_enabled = capture_enabled
        self.on_error = on_error

    def run(self, pending_ids: Sequence[str], concurrency: int = 1) -> Iterator[PipelineEvent]:
        """Process ``pending_ids`` with at most ``concurrency`` workers.

        Returns:
            Iterator of events, ending with RunFinished

        Raises:
            ValueError: If concurrency < 1 (raised immediately, not on iteration)
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        return self._run(list(pending_ids), concurrency)

    def _run(self, item_ids: List[str], concurrency: int) -> Iterator[PipelineEvent]:
        start_time = time.time()
        n_workers = min(concurrency, len(item_ids))

        yield RunStarted(total=len(item_ids), workers=n_workers)

        if n_workers > 0:
            events: "queue.Queue" = queue.Queue()
            cursor = _Cursor(item_ids)

            with ThreadPoolExecutor(
                max_workers=n_workers, thread_name_prefix="digest-worker"
            ) as executor:
                futures = [
                    executor.submit(self._worker_loop, cursor, len(item_ids), events)
                    for _ in range(n_workers)
                ]

                remaining_workers = n_workers
                try:
                    while remaining_workers:
                        event = events.get()
                        if event is _WORKER_DONE:
                            remaining_workers -= 1
                            continue
                        yield event
                finally:
                    # Consumer stopped reading: no new claims, in-flight items still finish
                    cursor.stop()

                for future in futures:
                    future.result()

        yield RunFinished(stats=self.store.get_stats(), duration_s=time.time() - start_time)

    def _worker_loop(self, cursor: _Cursor, total: int, events: "queue.Queue") -> None:
        try:
            while True:
                item_id = cursor.claim()
                if item_id is None:
                    break
                self._process_item(item_id, cursor, total, events)
        finally:
            events.put(_WORKER_DONE)

    def _process_item(
        self, item_id: str, cursor: _Cursor, total: int, events: "queue.Queue"
    ) -> None:
        item = self.store.get_item(item_id)
        if item is None:
            logger.warning("Skipping untracked item %s", item_id)
            cursor.finish()
            return

        events.put(ItemStarted(item_id=item_id, title=item.title))

        failure: Optional[Tuple[str, str]] = None
        try:
            summary = self.summarize.run(item_id)
            if self.capture_enabled and summary.status == StageStatus.COMPLETED:
                self.capture.run(item_id)
        except Exception as e:
            error = describe_error(e)
            stage = self._record_failure(item_id, error)
            logger.error("Item %s failed during %s: %s", item_id, stage, error, exc_info=True)
            self._notify_error(item_id, e)
            failure = (stage, error)
        else:
            final = self.store.get_item(item_id)
            if final.classify(self.capture_enabled) == ItemClass.FAILED:
                failure = _failed_stage(final)
                self._notify_error(item_id, StageFailedError(item_id, *failure))

        if failure is None:
            cursor.finish(
                lambda n: events.put(
                    ItemCompleted(item_id=item_id, title=item.title, finished=n, total=total)
                )
            )
            return

        stage, error = failure
        cursor.finish(
            lambda n: events.put(
                ItemFailed(
                    item_id=item_id,
                    title=item.title,
                    stage=stage,
                    error=error,
                    finished=n,
                    total=total,
                )
            )
        )

    def _record_failure(self, item_id: str, error: str) -> str:
        """Record an escaped exception through whichever stage was active."""
        with self.store.lock:
            item = self.store.get_item(item_id)
            if item.summary.status != StageStatus.COMPLETED:
                self.store.update_summary_stage(item_id, StageStatus.FAILED, error=error)
                return "summary"
            self.store.update_capture_stage(
                item_id,
                StageStatus.FAILED,
                item.screenshots.completed,
                item.screenshots.files,
                error=error,
            )
            return "screenshots"

    def _notify_error(self, item_id: str, exc: Exception) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(item_id, exc)
        except Exception:
            logger.exception("Error callback raised for %s", item_id)


def _failed_stage(item: ItemRecord) -> Tuple[str, str]:
    if item.summary.status == StageStatus.FAILED:
        return "summary", item.summary.error or "Unknown error"
    return "screenshots", item.screenshots.error or "Unknown error"
