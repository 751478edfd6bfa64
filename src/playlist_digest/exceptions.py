"""Typed exceptions for playlist-digest.

Two families:

    DigestError (base) - precondition errors, raised before the pipeline runs
    ├── ConfigError - missing or invalid configuration / secrets
    ├── CollectionNotFoundError - playlist or video does not exist
    ├── EmptyCollectionError - playlist has no items to track
    └── StateFileError - state.json exists but cannot be parsed

    CollaboratorError (base) - failures of external services
    ├── CatalogError - YouTube Data API failures
    ├── SummarizerError - Gemini failures
    └── StageFailedError - a stage recorded a failed state for an item

Collaborator errors raised inside a stage are recorded into that stage's state
and never abort the run.
"""

from typing import Optional


class DigestError(Exception):
    """Base class for errors that abort a run before any state is touched."""

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.suggestion:
            return f"{self.message} Suggestion: {self.suggestion}"
        return self.message


class ConfigError(DigestError):
    """Raised when configuration or required secrets are missing or invalid."""


class CollectionNotFoundError(DigestError):
    """Raised when the requested playlist (or video) cannot be found."""


class EmptyCollectionError(DigestError):
    """Raised when a playlist contains no items at all."""


class StateFileError(DigestError):
    """Raised when an existing state document cannot be parsed."""


class CollaboratorError(Exception):
    """Base class for failures reported by an external collaborator."""

    def __init__(self, message: str, service: str = "Unknown") -> None:
        self.service = service
        self.message = message
        super().__init__(f"[{service}] {message}")


class CatalogError(CollaboratorError):
    """Raised when the catalog API returns an error or malformed payload."""

    def __init__(self, message: str) -> None:
        super().__init__(message, service="YouTube")


class SummarizerError(CollaboratorError):
    """Raised when the summarization service fails or returns unusable output."""

    def __init__(self, message: str, retryable: bool = False) -> None:
        self.retryable = retryable
        super().__init__(message, service="Gemini")


class StageFailedError(CollaboratorError):
    """Reported to error callbacks when a stage recorded ``failed`` for an item."""

    def __init__(self, item_id: str, stage: str, message: str) -> None:
        self.item_id = item_id
        self.stage = stage
        super().__init__(message, service=stage)
