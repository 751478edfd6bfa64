"""Tests for the summarize and capture stage executors."""

from conftest import FakeCapturer, FakeSummarizer
from playlist_digest.jobs import CaptureExecutor, SummarizeExecutor, StageStatus
from playlist_digest.jobs.models import CaptureState
from playlist_digest.markdown import MarkdownWriter

TIMESTAMPS = ["00:01:00", "00:05:00", "00:10:00"]


class TestSummarizeExecutor:
    def test_success_records_timestamps(self, store):
        summarizer = FakeSummarizer(timestamps={"A": TIMESTAMPS})
        state = SummarizeExecutor(store, summarizer, "en").run("A")

        assert state.status == StageStatus.COMPLETED
        assert state.timestamps == TIMESTAMPS
        assert state.completed_at is not None
        assert store.get_item("A").screenshots.total == 3

    def test_failure_is_recorded_not_raised(self, store):
        summarizer = FakeSummarizer(fail_ids={"A"})
        state = SummarizeExecutor(store, summarizer, "en").run("A")

        assert state.status == StageStatus.FAILED
        assert "exploded" in state.error
        assert store.get_failed_ids() == ["A"]

    def test_completed_summary_is_skipped(self, store):
        store.update_summary_stage("A", StageStatus.COMPLETED, timestamps=["00:01:00"])
        summarizer = FakeSummarizer()

        SummarizeExecutor(store, summarizer, "en").run("A")

        assert summarizer.calls == []

    def test_failed_summary_is_retried(self, store):
        store.update_summary_stage("A", StageStatus.FAILED, error="old")
        summarizer = FakeSummarizer()

        state = SummarizeExecutor(store, summarizer, "en").run("A")

        assert summarizer.calls == ["A"]
        assert state.status == StageStatus.COMPLETED
        assert state.error is None

    def test_writer_produces_readme(self, store):
        writer = MarkdownWriter(locale="en")
        SummarizeExecutor(store, FakeSummarizer(), "en", writer=writer).run("A")

        readme = store.item_dir("A") / "README.md"
        assert readme.exists()
        assert "Overview of A" in readme.read_text(encoding="utf-8")


class TestCaptureExecutor:
    def test_remaining_timestamps(self):
        capture = CaptureState(
            status=StageStatus.FAILED,
            total=3,
            completed=2,
            files=["00-01-00.png", "00-05-00.png"],
        )
        assert CaptureExecutor.remaining_timestamps(TIMESTAMPS, capture) == ["00:10:00"]

    def test_partial_capture_merge(self, store):
        """A failed capture with 2 of 3 files requests only the missing one."""
        store.update_summary_stage("A", StageStatus.COMPLETED, timestamps=TIMESTAMPS)
        store.update_capture_stage(
            "A", StageStatus.FAILED, 2, ["00-01-00.png", "00-05-00.png"], error="x"
        )
        capturer = FakeCapturer()

        state = CaptureExecutor(store, capturer).run("A")

        assert capturer.requests == [("A", ["00:10:00"])]
        assert state.status == StageStatus.COMPLETED
        assert state.completed == 3
        assert state.files == ["00-01-00.png", "00-05-00.png", "00-10-00.png"]
        assert state.error is None

    def test_partial_success_is_failed_and_keeps_files(self, store):
        store.update_summary_stage("A", StageStatus.COMPLETED, timestamps=TIMESTAMPS)
        capturer = FakeCapturer(fail_timestamps={"00:05:00"})

        state = CaptureExecutor(store, capturer).run("A")

        assert state.status == StageStatus.FAILED
        assert state.files == ["00-01-00.png", "00-10-00.png"]
        assert state.completed == 2
        assert state.total == 3
        assert "00:05:00" in state.error

        # Next attempt only asks for what is still missing
        capturer.fail_timestamps.clear()
        state = CaptureExecutor(store, capturer).run("A")
        assert capturer.requests[-1] == ("A", ["00:05:00"])
        assert state.status == StageStatus.COMPLETED
        assert state.completed == 3

    def test_capturer_exception_preserves_existing_files(self, store):
        store.update_summary_stage("A", StageStatus.COMPLETED, timestamps=TIMESTAMPS)
        store.update_capture_stage("A", StageStatus.FAILED, 1, ["00-01-00.png"], error="x")
        capturer = FakeCapturer(raise_for={"A"})

        state = CaptureExecutor(store, capturer).run("A")

        assert state.status == StageStatus.FAILED
        assert state.files == ["00-01-00.png"]
        assert "crashed" in state.error

    def test_no_timestamps_completes_immediately(self, store):
        store.update_summary_stage("A", StageStatus.COMPLETED, timestamps=[])
        capturer = FakeCapturer()

        state = CaptureExecutor(store, capturer).run("A")

        assert capturer.requests == []
        assert state.status == StageStatus.COMPLETED
        assert state.total == 0

    def test_completed_capture_is_noop(self, store):
        store.update_summary_stage("A", StageStatus.COMPLETED, timestamps=["00:01:00"])
        store.update_capture_stage("A", StageStatus.COMPLETED, 1, ["00-01-00.png"])
        capturer = FakeCapturer()

        CaptureExecutor(store, capturer).run("A")

        assert capturer.requests == []

    def test_capture_waits_for_completed_summary(self, store):
        capturer = FakeCapturer()

        state = CaptureExecutor(store, capturer).run("A")

        assert capturer.requests == []
        assert state.status == StageStatus.PENDING
        assert store.get_item("A").screenshots.status == StageStatus.PENDING

        store.update_summary_stage("A", StageStatus.FAILED, error="x")
        state = CaptureExecutor(store, capturer).run("A")
        assert state.status == StageStatus.PENDING
