"""Run-scoped pipeline state and progress reporting."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Dict, Optional, Tuple

from .types import PipelineState, Stage

logger = logging.getLogger(__name__)

StateObserver = Callable[[PipelineState], None]

# Progress milestones per stage: (start, end) on a 0-100 scale.
STAGE_BANDS: Dict[Stage, Tuple[int, int]] = {
    Stage.IDLE: (0, 0),
    Stage.ANALYZING_INPUTS: (0, 10),
    Stage.ACQUIRING_ENGINE: (10, 20),
    Stage.STAGING_INPUTS: (20, 40),
    Stage.COMPILING: (40, 40),
    Stage.EXECUTING: (40, 90),
    Stage.RETRIEVING_OUTPUT: (90, 95),
    Stage.CLEANING_UP: (95, 100),
    Stage.COMPLETE: (100, 100),
}


class ProgressTracker:
    """Owns the PipelineState of one run and publishes copies to an observer.

    Progress is clamped so it never moves backwards within a run.
    """

    def __init__(self, observer: Optional[StateObserver] = None) -> None:
        self._observer = observer
        self._state = PipelineState()
        self._band = STAGE_BANDS[Stage.IDLE]

    @property
    def state(self) -> PipelineState:
        return replace(self._state)

    def begin(self) -> None:
        self._state.is_running = True
        self._state.last_error = None
        self._publish()

    def enter(self, stage: Stage, message: str, *, advance: bool = True) -> None:
        """Move to ``stage``; with ``advance`` progress jumps to the band start."""
        self._state.stage = stage
        self._state.message = message
        if advance:
            self._band = STAGE_BANDS.get(stage, self._band)
            self._raise_to(self._band[0])
        self._publish()

    def advance(self, fraction: float) -> None:
        """Report ``fraction`` (0..1) of the current stage's band as done."""
        start, end = self._band
        fraction = min(1.0, max(0.0, fraction))
        if self._raise_to(int(start + (end - start) * fraction)):
            self._publish()

    def complete(self, message: str) -> None:
        self._state.stage = Stage.COMPLETE
        self._state.message = message
        self._state.is_running = False
        self._band = STAGE_BANDS[Stage.COMPLETE]
        self._raise_to(100)
        self._publish()

    def fail(self, message: str) -> None:
        self._state.stage = Stage.ERROR
        self._state.message = message
        self._state.last_error = message
        self._state.is_running = False
        self._publish()

    def _raise_to(self, value: int) -> bool:
        if value <= self._state.progress:
            return False
        self._state.progress = min(100, value)
        return True

    def _publish(self) -> None:
        if self._observer is None:
            return
        try:
            self._observer(self.state)
        except Exception:
            logger.exception("Pipeline observer raised while handling %s", self._state.stage.value)
