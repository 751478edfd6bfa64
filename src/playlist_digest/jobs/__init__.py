"""Resumable two-stage job tracking and scheduling."""

from .backends import CatalogFetcher, DocumentWriter, FrameCapturer, StateStore, Summarizer
from .events import (
    ItemCompleted,
    ItemFailed,
    ItemStarted,
    PipelineEvent,
    RunFinished,
    RunStarted,
)
from .json_store import JSONStateStore, collection_dir_for
from .models import (
    CaptureResult,
    CaptureState,
    CatalogItem,
    CollectionConfig,
    CollectionRecord,
    ItemClass,
    ItemRecord,
    PlaylistInfo,
    RunStats,
    StageStatus,
    SummarySection,
    SummaryState,
    VideoInfo,
    VideoSummary,
    classify_item,
    video_url,
)
from .reconcile import reconcile_items
from .stages import CaptureExecutor, SummarizeExecutor
from .worker import PipelineScheduler

__all__ = [
    "CatalogFetcher",
    "DocumentWriter",
    "FrameCapturer",
    "StateStore",
    "Summarizer",
    "ItemCompleted",
    "ItemFailed",
    "ItemStarted",
    "PipelineEvent",
    "RunFinished",
    "RunStarted",
    "JSONStateStore",
    "collection_dir_for",
    "CaptureResult",
    "CaptureState",
    "CatalogItem",
    "CollectionConfig",
    "CollectionRecord",
    "ItemClass",
    "ItemRecord",
    "PlaylistInfo",
    "RunStats",
    "StageStatus",
    "SummarySection",
    "SummaryState",
    "VideoInfo",
    "VideoSummary",
    "classify_item",
    "video_url",
    "reconcile_items",
    "CaptureExecutor",
    "SummarizeExecutor",
    "PipelineScheduler",
]
