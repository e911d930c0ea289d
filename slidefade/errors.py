"""Exception taxonomy surfaced by the slidefade pipeline."""

from __future__ import annotations

from .config import Messages


class PipelineError(Exception):
    """Base class for failures reported to pipeline callers.

    ``user_message`` is the normalized text suitable for display, while the
    exception message may carry more detail for logs.
    """

    default_message = Messages.ERROR_PROCESSING

    def __init__(self, message: str | None = None, *, user_message: str | None = None) -> None:
        super().__init__(message or user_message or self.default_message)
        self.user_message = user_message or self.default_message


class InvalidInputCount(PipelineError, ValueError):
    """Raised when a layout receives too few or too many images."""


class InvalidDuration(PipelineError, ValueError):
    """Raised when a display or transition duration is out of bounds."""


class InvalidLayout(PipelineError, ValueError):
    """Raised when layout parameters such as the grid size are unusable."""

    default_message = Messages.ERROR_GRID_SIZE


class ImageReadError(PipelineError):
    """Raised when an image cannot be decoded to probe its dimensions."""


class EngineUnavailable(PipelineError):
    """Raised when the media engine cannot be initialized."""

    default_message = Messages.ERROR_ENGINE_LOAD


class EngineExecutionFailed(PipelineError):
    """Raised when staging, running, or reading from the engine fails."""


class PipelineBusy(PipelineError):
    """Raised when a run is requested while another is still in flight."""

    default_message = Messages.ERROR_BUSY
