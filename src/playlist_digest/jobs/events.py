"""Events produced by the pipeline scheduler.

The scheduler yields these instead of calling back into the caller, so the
CLI, the API, or a test can consume the same stream in its own way.
"""

from dataclasses import dataclass, field

from .models import RunStats


@dataclass
class PipelineEvent:
    """Base class for scheduler events."""


@dataclass
class RunStarted(PipelineEvent):
    total: int
    workers: int


@dataclass
class ItemStarted(PipelineEvent):
    item_id: str
    title: str


@dataclass
class ItemCompleted(PipelineEvent):
    """An item reached a terminal state without any failed stage.

    ``finished`` counts items finished so far in this run (successes and
    failures alike). It says nothing about the item's position in the
    pending list.
    """

    item_id: str
    title: str
    finished: int
    total: int


@dataclass
class ItemFailed(PipelineEvent):
    item_id: str
    title: str
    stage: str
    error: str
    finished: int
    total: int


@dataclass
class RunFinished(PipelineEvent):
    stats: RunStats = field(default_factory=RunStats)
    duration_s: float = 0.0
