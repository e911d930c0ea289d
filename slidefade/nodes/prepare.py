"""Nodes preparing a run: image analysis and engine acquisition."""

from __future__ import annotations

from dataclasses import asdict

from ..analyzer import analyze_images, with_dimensions
from ..config import Messages
from ..progress import ProgressTracker
from ..types import RunState, Stage
from .base import BaseNode


class AnalyzeInputs(BaseNode):
    """Fills in natural dimensions for every image, preserving order."""

    def __init__(self, run_id: str, logger) -> None:
        super().__init__(
            name="AnalyzeInputs",
            stage=Stage.ANALYZING_INPUTS,
            message=Messages.ANALYZING_IMAGES,
            run_id=run_id,
            logger=logger,
        )

    async def run(self, state: RunState, progress: ProgressTracker) -> RunState:
        self.log_input("\n".join(image.filename for image in state.images))

        analysis = await analyze_images(state.images)
        state.analysis = analysis
        state.images = with_dimensions(state.images, analysis)
        progress.advance(1.0)

        self.log_output(
            {
                "dimensions": [asdict(dim) for dim in analysis.dimensions],
                "canvas": asdict(analysis.canvas),
            }
        )
        return state


class AcquireEngine(BaseNode):
    """Obtains the shared media engine, loading it on first use."""

    def __init__(self, run_id: str, logger, handle) -> None:
        super().__init__(
            name="AcquireEngine",
            stage=Stage.ACQUIRING_ENGINE,
            message=Messages.LOADING_ENGINE,
            run_id=run_id,
            logger=logger,
        )
        self._handle = handle

    async def run(self, state: RunState, progress: ProgressTracker) -> RunState:
        state.engine = await self._handle.acquire()
        progress.advance(1.0)
        self.log_output({"engine": type(state.engine).__name__, "status": self._handle.status.value})
        return state
