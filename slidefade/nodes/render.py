"""Nodes staging inputs, running the engine, and cleaning up after it."""

from __future__ import annotations

import logging
from typing import List

from ..config import Messages, PipelineConfig
from ..errors import EngineExecutionFailed
from ..graph.serialize import map_label, serialize_graph
from ..progress import ProgressTracker
from ..types import RunState, Stage
from ..utils.files import staged_name
from .base import BaseNode

log = logging.getLogger(__name__)


class StageInputs(BaseNode):
    """Writes every image into the engine's storage under a run-scoped name."""

    def __init__(self, run_id: str, logger, config: PipelineConfig) -> None:
        super().__init__(
            name="StageInputs",
            stage=Stage.STAGING_INPUTS,
            message=Messages.STAGING_INPUTS,
            run_id=run_id,
            logger=logger,
        )
        self._config = config

    async def run(self, state: RunState, progress: ProgressTracker) -> RunState:
        state.output_name = f"{self.run_id}-{state.job.output_name}"
        total = len(state.images)
        for index, image in enumerate(state.images):
            name = staged_name(self.run_id, index, image.filename, self._config.default_extension)
            # Recorded before writing so cleanup also covers a half-written file.
            state.staged_names.append(name)
            try:
                await state.engine.write_input(name, image.data)
            except Exception as exc:
                raise EngineExecutionFailed(f"Staging {image.filename} as {name} failed: {exc}") from exc
            progress.advance((index + 1) / total)

        self.log_output({"staged": list(state.staged_names), "output": state.output_name})
        return state


class CompileGraph(BaseNode):
    """Compiles the job's filter graph and the engine argv."""

    def __init__(self, run_id: str, logger, config: PipelineConfig) -> None:
        super().__init__(
            name="CompileGraph",
            stage=Stage.COMPILING,
            message=Messages.COMPILING,
            run_id=run_id,
            logger=logger,
        )
        self._config = config

    async def run(self, state: RunState, progress: ProgressTracker) -> RunState:
        graph = state.job.compile(state.analysis, self._config)
        graph_text = serialize_graph(graph)

        argv: List[str] = []
        for name in state.staged_names:
            argv.extend(["-i", name])
        argv.extend(["-filter_complex", graph_text, "-map", map_label(graph)])
        argv.extend(state.job.encode_args(self._config))
        argv.extend(["-y", state.output_name])

        state.graph = graph
        state.graph_text = graph_text
        state.argv = argv

        self.log_input(graph_text)
        self.log_output({"sink": graph.sink, "labels": graph.labels, "argv": argv})
        return state


class ExecuteGraph(BaseNode):
    """Runs the compiled command as one opaque engine invocation."""

    def __init__(self, run_id: str, logger) -> None:
        super().__init__(
            name="ExecuteGraph",
            stage=Stage.EXECUTING,
            message=Messages.GENERATING_VIDEO,
            run_id=run_id,
            logger=logger,
        )

    async def run(self, state: RunState, progress: ProgressTracker) -> RunState:
        expected = state.job.expected_duration(len(state.images))

        def on_progress(seconds: float) -> None:
            if expected:
                progress.advance(seconds / expected)

        try:
            await state.engine.run(state.argv, on_progress)
        except Exception as exc:
            raise EngineExecutionFailed(f"Engine run failed: {exc}") from exc
        progress.advance(1.0)
        self.log_output({"output": state.output_name})
        return state


class RetrieveOutput(BaseNode):
    """Reads the produced artifact back out of the engine."""

    def __init__(self, run_id: str, logger) -> None:
        super().__init__(
            name="RetrieveOutput",
            stage=Stage.RETRIEVING_OUTPUT,
            message=Messages.RETRIEVING_OUTPUT,
            run_id=run_id,
            logger=logger,
        )

    async def run(self, state: RunState, progress: ProgressTracker) -> RunState:
        try:
            state.output = await state.engine.read_output(state.output_name)
        except Exception as exc:
            raise EngineExecutionFailed(f"Reading {state.output_name} failed: {exc}") from exc
        progress.advance(1.0)
        self.log_output({"output": state.output_name, "bytes": len(state.output)})
        return state


class CleanupFiles(BaseNode):
    """Deletes staged inputs and the output from engine storage.

    A delete that fails is logged and the remaining files are still removed.
    """

    def __init__(self, run_id: str, logger) -> None:
        super().__init__(
            name="CleanupFiles",
            stage=Stage.CLEANING_UP,
            message=Messages.CLEANING_UP,
            run_id=run_id,
            logger=logger,
        )

    async def run(self, state: RunState, progress: ProgressTracker) -> RunState:
        names = list(state.staged_names)
        if state.output_name:
            names.append(state.output_name)
        failed = await delete_files(state.engine, names, progress)
        self.log_output({"deleted": [name for name in names if name not in failed], "failed": failed})
        return state


async def delete_files(engine, names: List[str], progress: ProgressTracker | None = None) -> List[str]:
    """Delete ``names`` one by one; return the names whose delete raised."""
    failed: List[str] = []
    if engine is None:
        return failed
    for index, name in enumerate(names):
        try:
            await engine.delete_file(name)
        except Exception as exc:
            log.warning("Could not delete %s: %s", name, exc)
            failed.append(name)
        if progress is not None:
            progress.advance((index + 1) / len(names))
    return failed
