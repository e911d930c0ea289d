"""Media engine backed by a local ffmpeg binary."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from ..utils.files import atomic_write, ensure_dir, read_binary
from .base import ProgressCallback

logger = logging.getLogger(__name__)

_PROGRESS_KEYS = ("out_time_us", "out_time_ms")
_STDERR_TAIL = 2000


class FFmpegEngine:
    """Runs ffmpeg subprocesses inside a private working directory.

    Input and output names are plain file names resolved against the working
    directory, so argv built by the pipeline never carries host paths.
    """

    def __init__(self, binary: Optional[str] = None, work_dir: str | Path | None = None) -> None:
        self._binary_hint = binary
        self._work_dir_hint = Path(work_dir) if work_dir else None
        self._binary: Optional[str] = None
        self._work_dir: Optional[Path] = None
        self._owns_work_dir = False

    @property
    def work_dir(self) -> Optional[Path]:
        return self._work_dir

    async def initialize(self) -> bool:
        """Locate and smoke-test ffmpeg, then prepare the working directory."""
        if self._binary is not None:
            return True

        binary = shutil.which(self._binary_hint or "ffmpeg")
        if binary is None:
            logger.warning("ffmpeg not found (looked for %s)", self._binary_hint or "ffmpeg on PATH")
            return False

        proc = await asyncio.create_subprocess_exec(
            binary,
            "-hide_banner",
            "-version",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            logger.warning("ffmpeg -version failed: %s", stderr.decode("utf-8", errors="replace").strip())
            return False

        logger.info("Using %s", stdout.decode("utf-8", errors="replace").splitlines()[0] if stdout else binary)
        if self._work_dir_hint is not None:
            self._work_dir = ensure_dir(self._work_dir_hint)
            self._owns_work_dir = False
        else:
            self._work_dir = Path(tempfile.mkdtemp(prefix="slidefade-"))
            self._owns_work_dir = True
        self._binary = binary
        return True

    async def write_input(self, name: str, data: bytes) -> None:
        await asyncio.to_thread(atomic_write, self._resolve(name), data)

    async def run(self, argv: Sequence[str], on_progress: Optional[ProgressCallback] = None) -> None:
        """Run ffmpeg with ``argv``; raise RuntimeError on a non-zero exit."""
        binary = self._require_binary()
        cmd = [binary, "-hide_banner", "-nostats", "-progress", "pipe:1", *argv]
        logger.debug("ffmpeg: %s", " ".join(cmd))

        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(self._work_dir),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.gather(
                self._read_progress(proc.stdout, on_progress),
                proc.stderr.read(),
            )
            returncode = await proc.wait()
        except BaseException:
            # The child must not outlive a cancelled run.
            if proc.returncode is None:
                logger.warning("Killing ffmpeg (pid=%d)", proc.pid)
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
            raise
        if returncode != 0:
            stderr_text = stderr.decode("utf-8", errors="replace")
            logger.error("ffmpeg FAILED (rc=%d):\n%s", returncode, stderr_text[-_STDERR_TAIL:])
            raise RuntimeError(f"ffmpeg failed (rc={returncode}): {stderr_text[-500:].strip()}")

    async def read_output(self, name: str) -> bytes:
        return await asyncio.to_thread(read_binary, self._resolve(name))

    async def delete_file(self, name: str) -> None:
        if self._work_dir is None:
            return
        self._resolve(name).unlink(missing_ok=True)

    async def terminate(self) -> None:
        if self._work_dir is not None and self._owns_work_dir:
            await asyncio.to_thread(shutil.rmtree, self._work_dir, True)
        self._binary = None
        self._work_dir = None

    @staticmethod
    async def _read_progress(stream: asyncio.StreamReader, on_progress: Optional[ProgressCallback]) -> None:
        """Consume ``-progress`` key=value lines, reporting output seconds."""
        while True:
            raw = await stream.readline()
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").strip()
            key, _, value = line.partition("=")
            # ffmpeg reports out_time_ms in microseconds as well.
            if on_progress is not None and key in _PROGRESS_KEYS and value.lstrip("-").isdigit():
                on_progress(max(0, int(value)) / 1_000_000)

    def _require_binary(self) -> str:
        if self._binary is None or self._work_dir is None:
            raise RuntimeError("ffmpeg engine not initialized")
        return self._binary

    def _resolve(self, name: str) -> Path:
        self._require_binary()
        if not name or Path(name).name != name or name in (".", ".."):
            raise ValueError(f"Engine file names must be plain file names, got {name!r}")
        return self._work_dir / name
