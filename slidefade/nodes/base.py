"""Node abstractions shared by concrete pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..progress import ProgressTracker
from ..types import RunState, Stage
from ..utils.run_logger import RunLogger


class Node(Protocol):
    """A pipeline stage that mutates the run state."""

    name: str
    stage: Stage
    message: str

    async def run(self, state: RunState, progress: ProgressTracker) -> RunState:
        ...


@dataclass(slots=True)
class BaseNode:
    """Convenience base for nodes needing run log support."""

    name: str
    stage: Stage
    message: str
    run_id: str
    logger: RunLogger

    def log_input(self, text: str) -> None:
        """Persist what the stage consumed."""
        self.logger.log_input(self.run_id, self.name, text)

    def log_output(self, response: object) -> None:
        """Persist what the stage produced."""
        self.logger.log_output(self.run_id, self.name, response)
