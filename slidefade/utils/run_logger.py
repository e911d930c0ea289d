"""Utilities for keeping per-run step input and output logs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .files import ensure_dir, write_json, write_text


@dataclass(slots=True)
class StepLogPaths:
    """Convenience container with derived log file paths."""

    input_path: Path
    output_path: Path


class RunLogger:
    """Persists step inputs and outputs under ``runs/<run_id>``.

    With no base directory the logger is disabled and every call is a no-op.
    """

    def __init__(self, base_dir: str | Path | None = "runs") -> None:
        self._base_dir = ensure_dir(base_dir) if base_dir else None

    @property
    def enabled(self) -> bool:
        return self._base_dir is not None

    def step_paths(self, run_id: str, step_name: str) -> StepLogPaths:
        """Return the paths used for logging a specific step."""
        if self._base_dir is None:
            raise RuntimeError("Run logging is disabled")
        run_root = ensure_dir(self._base_dir / run_id)
        input_path = run_root / f"{step_name}-input.txt"
        output_path = run_root / f"{step_name}-output.json"
        return StepLogPaths(input_path=input_path, output_path=output_path)

    def log_input(self, run_id: str, step_name: str, text: str) -> None:
        """Persist the raw step input (graph text, argv, ...)."""
        if self._base_dir is None:
            return
        write_text(self.step_paths(run_id, step_name).input_path, text)

    def log_output(self, run_id: str, step_name: str, response: Any) -> None:
        """Persist the structured step output."""
        if self._base_dir is None:
            return
        write_json(self.step_paths(run_id, step_name).output_path, response)
