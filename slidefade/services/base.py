"""Media engine protocol consumed by the pipeline."""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

ProgressCallback = Callable[[float], None]


class MediaEngine(Protocol):
    """An external transcoder addressed through named files in its own storage."""

    async def initialize(self) -> bool:
        """Load the engine; return False when it cannot run here."""
        ...

    async def write_input(self, name: str, data: bytes) -> None:
        ...

    async def run(self, argv: Sequence[str], on_progress: Optional[ProgressCallback] = None) -> None:
        """Execute one command; ``on_progress`` receives seconds of output produced."""
        ...

    async def read_output(self, name: str) -> bytes:
        ...

    async def delete_file(self, name: str) -> None:
        """Remove ``name``; absent files are ignored."""
        ...

    async def terminate(self) -> None:
        ...
