"""In-memory media engine used for mock runs and tests."""

from __future__ import annotations

import json
from typing import Dict, List, Optional, Sequence

from .base import ProgressCallback


class InMemoryEngine:
    """Dict-backed stand-in that records commands instead of transcoding.

    ``run`` writes a JSON manifest of the argv under the output name (the last
    argv item) so the pipeline stays observable end to end.
    """

    def __init__(
        self,
        *,
        available: bool = True,
        fail_run: bool = False,
        reported_seconds: Sequence[float] = (),
    ) -> None:
        self.available = available
        self.fail_run = fail_run
        self.reported_seconds = list(reported_seconds)
        self.files: Dict[str, bytes] = {}
        self.commands: List[List[str]] = []
        self.deleted: List[str] = []
        self.initialize_calls = 0
        self.terminate_calls = 0

    async def initialize(self) -> bool:
        self.initialize_calls += 1
        return self.available

    async def write_input(self, name: str, data: bytes) -> None:
        self.files[name] = bytes(data)

    async def run(self, argv: Sequence[str], on_progress: Optional[ProgressCallback] = None) -> None:
        args = list(argv)
        self.commands.append(args)
        if self.fail_run:
            raise RuntimeError("mock engine configured to fail")

        inputs = [args[i + 1] for i, arg in enumerate(args[:-1]) if arg == "-i"]
        missing = [name for name in inputs if name not in self.files]
        if missing:
            raise FileNotFoundError(f"inputs not staged: {missing}")

        for seconds in self.reported_seconds:
            if on_progress is not None:
                on_progress(seconds)
        manifest = {"argv": args, "inputs": inputs}
        self.files[args[-1]] = json.dumps(manifest, indent=2).encode("utf-8")

    async def read_output(self, name: str) -> bytes:
        try:
            return self.files[name]
        except KeyError as exc:
            raise FileNotFoundError(name) from exc

    async def delete_file(self, name: str) -> None:
        self.deleted.append(name)
        self.files.pop(name, None)

    async def terminate(self) -> None:
        self.terminate_calls += 1
        self.files.clear()
