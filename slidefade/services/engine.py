"""Shared, lazily initialized handle around a media engine."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import List

from ..config import Messages, PipelineConfig
from ..errors import EngineUnavailable
from .base import MediaEngine
from .ffmpeg import FFmpegEngine
from .memory import InMemoryEngine

logger = logging.getLogger(__name__)


def build_engine(config: PipelineConfig) -> MediaEngine:
    """Return the engine selected by ``config``."""
    if config.enable_mock_engine:
        return InMemoryEngine()
    return FFmpegEngine(binary=config.ffmpeg_binary, work_dir=config.work_dir)


class EngineStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class EngineHandle:
    """Single-flight initialization for an engine shared across runs.

    The first caller performs ``engine.initialize()``; callers arriving while
    that is in flight park a future on the wait list and receive the same
    outcome. A failed initialization is retried by the next caller.
    """

    def __init__(self, engine: MediaEngine) -> None:
        self._engine = engine
        self._status = EngineStatus.UNINITIALIZED
        self._waiters: List[asyncio.Future[bool]] = []

    @property
    def engine(self) -> MediaEngine:
        return self._engine

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status is EngineStatus.READY

    async def acquire(self) -> MediaEngine:
        """Return the ready engine, initializing it at most once concurrently."""
        if self._status is EngineStatus.READY:
            return self._engine

        if self._status is EngineStatus.INITIALIZING:
            waiter: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            ready = await waiter
        else:
            ready = await self._initialize()

        if not ready:
            raise EngineUnavailable(user_message=Messages.ERROR_ENGINE_LOAD)
        return self._engine

    async def _initialize(self) -> bool:
        self._status = EngineStatus.INITIALIZING
        ready = False
        try:
            ready = bool(await self._engine.initialize())
        except asyncio.CancelledError:
            # Nobody owns the load any more; waiters see a failure and the next caller retries.
            self._status = EngineStatus.UNINITIALIZED
            self._settle(False)
            raise
        except Exception:
            logger.exception("Media engine failed to load")

        self._status = EngineStatus.READY if ready else EngineStatus.FAILED
        if not ready:
            logger.warning("Media engine unavailable")
        self._settle(ready)
        return ready

    def _settle(self, ready: bool) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(ready)

    async def terminate(self) -> None:
        """Release the engine; the next ``acquire`` loads it again.

        A load still in flight is awaited first so a late success cannot
        leave a live engine behind a handle marked uninitialized.
        """
        if self._status is EngineStatus.INITIALIZING:
            waiter: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            await waiter
        if self._status is EngineStatus.READY:
            await self._engine.terminate()
        self._status = EngineStatus.UNINITIALIZED
