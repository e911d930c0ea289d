"""Pipeline orchestration for slidefade runs."""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence

from .config import Messages, PipelineConfig
from .errors import PipelineBusy, PipelineError
from .jobs import ComparisonJob, GridJob, Job, SlideshowJob
from .nodes.base import Node
from .nodes.prepare import AcquireEngine, AnalyzeInputs
from .nodes.render import CleanupFiles, CompileGraph, ExecuteGraph, RetrieveOutput, StageInputs, delete_files
from .progress import ProgressTracker, StateObserver
from .services.engine import EngineHandle, build_engine
from .types import ImageInput, PipelineState, RunResult, RunState, Stage
from .utils.run_logger import RunLogger

log = logging.getLogger(__name__)


class MediaPipeline:
    """Drives one run at a time through analyze, stage, compile, execute, and cleanup.

    The engine handle may be shared between pipelines; each run reports to its
    own observer, and a pipeline refuses a second run while one is in flight.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        engine_handle: EngineHandle | None = None,
    ) -> None:
        self.config = config or PipelineConfig.from_env()
        self.logger = RunLogger(base_dir=self.config.runs_dir)
        self.engine_handle = engine_handle or EngineHandle(build_engine(self.config))
        self._active = False
        self._last_state = PipelineState()
        self._current: Optional[RunState] = None
        self._abandoned: List[RunState] = []

    @property
    def is_running(self) -> bool:
        return self._active

    @property
    def state(self) -> PipelineState:
        """Latest state published by the current or most recent run."""
        return self._last_state

    @property
    def pending_files(self) -> List[str]:
        """Engine files left behind by runs that never reached cleanup."""
        return [name for state in self._abandoned for name in self._cleanup_names(state)]

    async def create_slideshow(
        self,
        images: Iterable[ImageInput],
        *,
        display_duration: float | None = None,
        transition_duration: float | None = None,
        observer: StateObserver | None = None,
    ) -> RunResult:
        job = SlideshowJob.from_config(self.config, display_duration, transition_duration)
        return await self.run(job, images, observer=observer)

    async def create_comparison(
        self, images: Iterable[ImageInput], *, observer: StateObserver | None = None
    ) -> RunResult:
        return await self.run(ComparisonJob(), images, observer=observer)

    async def create_grid(
        self,
        images: Iterable[ImageInput],
        *,
        width: int,
        height: int,
        observer: StateObserver | None = None,
    ) -> RunResult:
        return await self.run(GridJob(width=width, height=height), images, observer=observer)

    async def run(
        self,
        job: Job,
        images: Iterable[ImageInput],
        *,
        observer: StateObserver | None = None,
    ) -> RunResult:
        """Execute ``job`` over ``images`` and return the produced artifact."""
        if self._active:
            raise PipelineBusy()
        self._active = True

        run_id = self._new_run_id()
        state = RunState(run_id=run_id, job=job, images=list(images))
        tracker = ProgressTracker(lambda snapshot: self._publish(snapshot, observer))
        try:
            return await self._run(state, tracker)
        finally:
            if tracker.state.is_running:
                # Only reachable when the run was cancelled; staged files stay pending.
                tracker.fail("Run cancelled")
                if self._current is not None and self._cleanup_names(self._current):
                    self._abandoned.append(self._current)
            self._current = None
            self._active = False

    async def cleanup(self) -> List[str]:
        """Delete files left by abandoned runs; return names that failed."""
        abandoned, self._abandoned = self._abandoned, []
        failed: List[str] = []
        for state in abandoned:
            failed.extend(await delete_files(state.engine, self._cleanup_names(state)))
        return failed

    def reset(self) -> None:
        """Return the observable state to Idle."""
        if self._active:
            raise PipelineBusy()
        self._last_state = PipelineState()

    async def _run(self, state: RunState, tracker: ProgressTracker) -> RunResult:
        try:
            state.job.validate(len(state.images), self.config)
        except ValueError as exc:
            tracker.fail(self._user_message(exc))
            raise

        tracker.begin()
        self._current = state
        try:
            for node in self._build_nodes(state.run_id):
                tracker.enter(node.stage, node.message)
                state = self._current = await self._invoke_node(node, state, tracker)
        except Exception as exc:
            if isinstance(exc, PipelineError):
                error = exc
            else:
                error = PipelineError(str(exc), user_message=Messages.ERROR_PROCESSING)
            log.error("Run %s failed in %s: %s", state.run_id, tracker.state.stage.value, exc)
            names = self._cleanup_names(state)
            if names:
                tracker.enter(Stage.CLEANING_UP, Messages.CLEANING_UP, advance=False)
                await delete_files(state.engine, names)
            self._current = None
            tracker.fail(error.user_message)
            if error is exc:
                raise
            raise error from exc

        self._current = None
        tracker.complete(Messages.PROCESSING_COMPLETE)
        return RunResult(
            run_id=state.run_id,
            output_name=state.output_name or "",
            data=state.output or b"",
            graph_text=state.graph_text or "",
        )

    def _build_nodes(self, run_id: str) -> Sequence[Node]:
        """Construct the stage nodes for one run, in execution order."""
        return [
            AnalyzeInputs(run_id=run_id, logger=self.logger),
            AcquireEngine(run_id=run_id, logger=self.logger, handle=self.engine_handle),
            StageInputs(run_id=run_id, logger=self.logger, config=self.config),
            CompileGraph(run_id=run_id, logger=self.logger, config=self.config),
            ExecuteGraph(run_id=run_id, logger=self.logger),
            RetrieveOutput(run_id=run_id, logger=self.logger),
            CleanupFiles(run_id=run_id, logger=self.logger),
        ]

    async def _invoke_node(self, node: Node, state: RunState, tracker: ProgressTracker) -> RunState:
        """Execute a node while emitting structured IO traces."""
        self._log_step_io(node.name, "input", state)

        started = time.perf_counter()
        updated_state = await node.run(state, tracker)
        elapsed = time.perf_counter() - started

        self._log_step_io(node.name, "output", updated_state, elapsed)
        return updated_state

    def _publish(self, snapshot: PipelineState, observer: StateObserver | None) -> None:
        self._last_state = snapshot
        if observer is not None:
            observer(snapshot)

    @staticmethod
    def _cleanup_names(state: RunState) -> List[str]:
        names = list(state.staged_names)
        if state.output_name:
            names.append(state.output_name)
        return names

    @staticmethod
    def _user_message(exc: Exception) -> str:
        return exc.user_message if isinstance(exc, PipelineError) else str(exc)

    def _snapshot_state(self, state: RunState) -> Any:
        """Return a compact serialisable view of the state for logging."""
        raw = {
            "run_id": state.run_id,
            "job": {"name": state.job.name, **(asdict(state.job) if is_dataclass(state.job) else {})},
            "images": [
                {"filename": image.filename, "width": image.width, "height": image.height, "data": image.data}
                for image in state.images
            ],
            "analysis": asdict(state.analysis) if state.analysis else None,
            "staged_names": state.staged_names,
            "output_name": state.output_name,
            "graph_text": state.graph_text,
            "output": state.output,
        }
        return self._strip_empty(raw)

    def _strip_empty(self, value: Any) -> Any:
        """Recursively remove empty containers for cleaner logging."""
        if isinstance(value, dict):
            return {k: self._strip_empty(v) for k, v in value.items() if not self._is_empty(v)}
        if isinstance(value, (list, tuple)):
            return [self._strip_empty(item) for item in value if not self._is_empty(item)]
        return value

    @staticmethod
    def _is_empty(value: Any) -> bool:
        """Return True if the provided value is considered empty for logging."""
        if value is None:
            return True
        if isinstance(value, (str, bytes)) and len(value) == 0:
            return True
        if isinstance(value, (list, tuple, set, dict)) and len(value) == 0:
            return True
        return False

    def _log_step_io(self, step: str, direction: str, state: RunState, elapsed: float | None = None) -> None:
        """Debug-log the state entering and leaving each step."""
        if not log.isEnabledFor(logging.DEBUG):
            return
        prefix = ">>" if direction == "input" else "<<"
        timing = f" [{elapsed:.2f}s]" if elapsed is not None else ""
        body = json.dumps(self._snapshot_state(state), ensure_ascii=False, indent=2, default=self._json_default)
        log.debug("[%s] %s %s%s:\n%s", step, prefix, direction, timing, body)

    @staticmethod
    def _json_default(obj: Any) -> Any:
        """Fallback serializer for non-JSON compatible objects."""
        if isinstance(obj, (bytes, bytearray)):
            return f"<{len(obj)} bytes>"
        if is_dataclass(obj):
            return asdict(obj)
        if isinstance(obj, set):
            return list(obj)
        return str(obj)

    @staticmethod
    def _new_run_id() -> str:
        """Return a unique run identifier that sorts by start time."""
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        return f"{stamp}-{uuid.uuid4().hex[:8]}"
