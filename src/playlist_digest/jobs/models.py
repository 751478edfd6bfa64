"""Pydantic models for the persisted playlist state document.

This module defines the type-safe models used throughout the jobs system.
The state document is written as camelCase JSON so that files produced by
earlier versions of the tool stay readable.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StageStatus(str, Enum):
    """Per-stage processing states.

    State transitions:
        pending → in_progress      (executor starts work)
        in_progress → completed    (collaborator succeeded)
        in_progress → failed       (collaborator raised / partial capture)
        in_progress → pending      (crash recovery at run start)
        failed → in_progress       (automatic retry on next run)
        failed → pending           (manual retry via `retry` command)
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ItemClass(str, Enum):
    """Derived, never-persisted classification of an item."""

    DONE = "done"
    FAILED = "failed"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"


class _StateModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SummaryState(_StateModel):
    """Summarize stage state."""

    status: StageStatus = Field(default=StageStatus.PENDING)
    completed_at: Optional[datetime] = Field(default=None, description="Set on completion")
    timestamps: Optional[List[str]] = Field(
        default=None, description="Section timestamps that drive the capture stage"
    )
    error: Optional[str] = Field(default=None, description="Last error message")


class CaptureState(_StateModel):
    """Capture stage state.

    ``completed`` always equals ``len(files)``; ``files`` only ever grows
    across retries (enforced by the capture executor).
    """

    status: StageStatus = Field(default=StageStatus.PENDING)
    total: int = Field(default=0, ge=0, description="Expected screenshot count")
    completed: int = Field(default=0, ge=0, description="Screenshots produced so far")
    files: List[str] = Field(default_factory=list, description="Produced screenshot filenames")
    error: Optional[str] = Field(default=None, description="Last error message")

    @model_validator(mode="after")
    def completed_matches_files(self) -> "CaptureState":
        if self.completed != len(self.files):
            raise ValueError(
                f"completed ({self.completed}) must equal number of files ({len(self.files)})"
            )
        return self


class ItemRecord(_StateModel):
    """One tracked video."""

    title: str
    output_dir: str = Field(..., description="Output slug, assigned once (e.g. 01-my-title)")
    summary: SummaryState = Field(default_factory=SummaryState)
    screenshots: CaptureState = Field(default_factory=CaptureState)

    def classify(self, capture_enabled: bool) -> ItemClass:
        return classify_item(self.summary, self.screenshots, capture_enabled)


class CollectionConfig(_StateModel):
    """Run configuration frozen into the state document at creation."""

    locale: str = "ko"
    with_screenshots: bool = True


class CollectionRecord(_StateModel):
    """Run-level state document for one playlist."""

    playlist_id: str
    playlist_title: str = ""
    config: CollectionConfig = Field(default_factory=CollectionConfig)
    total_videos: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    videos: Dict[str, ItemRecord] = Field(default_factory=dict)

    def classify(self, item_id: str) -> ItemClass:
        return self.videos[item_id].classify(self.config.with_screenshots)


class RunStats(BaseModel):
    """Strict partition of tracked items; the four buckets sum to ``total``."""

    total: int = 0
    completed: int = 0
    in_progress: int = 0
    failed: int = 0
    pending: int = 0


def classify_item(
    summary: SummaryState, screenshots: CaptureState, capture_enabled: bool
) -> ItemClass:
    """Single source of truth for item classification.

    When the capture stage is disabled its state is ignored entirely, so an
    item can never be both done and failed.
    """
    statuses = [summary.status]
    if capture_enabled:
        statuses.append(screenshots.status)

    if StageStatus.FAILED in statuses:
        return ItemClass.FAILED

    if summary.status == StageStatus.COMPLETED and (
        not capture_enabled or screenshots.status == StageStatus.COMPLETED
    ):
        return ItemClass.DONE

    if StageStatus.IN_PROGRESS in statuses:
        return ItemClass.IN_PROGRESS

    return ItemClass.PENDING


# --- Collaborator payloads ---


class CatalogItem(BaseModel):
    """Minimal item identity returned by the catalog fetcher."""

    id: str
    title: str


class PlaylistInfo(BaseModel):
    id: str
    title: str
    description: str = ""
    channel_title: str = ""
    video_count: int = 0


class VideoInfo(BaseModel):
    id: str
    title: str
    description: str = ""
    channel_title: str = ""
    published_at: str = ""
    duration_seconds: int = 0
    thumbnail_url: str = ""

    @property
    def url(self) -> str:
        return video_url(self.id)


class SummarySection(BaseModel):
    timestamp: str = Field(..., description="Section start, HH:MM:SS or MM:SS")
    title: str = ""
    content: str = ""
    screenshot_timestamp: Optional[str] = None


class VideoSummary(BaseModel):
    """Structured summary returned by the summarizer."""

    overview: str = ""
    sections: List[SummarySection] = Field(default_factory=list)
    key_points: List[str] = Field(default_factory=list)

    @property
    def timestamps(self) -> List[str]:
        return [section.timestamp for section in self.sections]


@dataclass
class CaptureResult:
    """Outcome of capturing one screenshot."""

    timestamp: str
    filename: str
    success: bool
    error: Optional[str] = None


def video_url(video_id: str) -> str:
    """Canonical watch URL for a video id."""
    return f"https://www.youtube.com/watch?v={video_id}"
