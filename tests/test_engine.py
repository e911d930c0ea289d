"""Tests for the shared engine handle and the engine implementations."""

from __future__ import annotations

import asyncio
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from helpers import make_image_bytes
from slidefade.errors import EngineUnavailable
from slidefade.services.engine import EngineHandle, EngineStatus
from slidefade.services.ffmpeg import FFmpegEngine
from slidefade.services.memory import InMemoryEngine


class SlowEngine(InMemoryEngine):
    """Initialization that blocks until the test releases it."""

    def __init__(self, *, available: bool = True, raises: bool = False) -> None:
        super().__init__(available=available)
        self.release = asyncio.Event()
        self.raises = raises

    async def initialize(self) -> bool:
        self.initialize_calls += 1
        await self.release.wait()
        if self.raises:
            raise OSError("core failed to load")
        return self.available


class EngineHandleTest(unittest.IsolatedAsyncioTestCase):
    async def test_concurrent_acquire_initializes_once(self) -> None:
        engine = SlowEngine()
        handle = EngineHandle(engine)

        first = asyncio.create_task(handle.acquire())
        second = asyncio.create_task(handle.acquire())
        await asyncio.sleep(0)
        self.assertEqual(handle.status, EngineStatus.INITIALIZING)
        engine.release.set()

        self.assertIs(await first, engine)
        self.assertIs(await second, engine)
        self.assertEqual(engine.initialize_calls, 1)
        self.assertTrue(handle.is_ready)

        await handle.acquire()
        self.assertEqual(engine.initialize_calls, 1)

    async def test_concurrent_failure_is_shared(self) -> None:
        engine = SlowEngine(available=False)
        handle = EngineHandle(engine)

        tasks = [asyncio.create_task(handle.acquire()) for _ in range(3)]
        await asyncio.sleep(0)
        engine.release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        self.assertTrue(all(isinstance(result, EngineUnavailable) for result in results))
        self.assertEqual(engine.initialize_calls, 1)
        self.assertEqual(handle.status, EngineStatus.FAILED)

    async def test_failed_initialization_is_retried(self) -> None:
        engine = InMemoryEngine(available=False)
        handle = EngineHandle(engine)
        with self.assertRaises(EngineUnavailable):
            await handle.acquire()

        engine.available = True
        self.assertIs(await handle.acquire(), engine)
        self.assertEqual(engine.initialize_calls, 2)

    async def test_initialize_exception_counts_as_unavailable(self) -> None:
        engine = SlowEngine(raises=True)
        engine.release.set()
        handle = EngineHandle(engine)
        with self.assertRaises(EngineUnavailable):
            await handle.acquire()
        self.assertEqual(handle.status, EngineStatus.FAILED)

    async def test_cancelled_initialization_releases_waiters(self) -> None:
        engine = SlowEngine()
        handle = EngineHandle(engine)

        owner = asyncio.create_task(handle.acquire())
        await asyncio.sleep(0)
        waiter = asyncio.create_task(handle.acquire())
        await asyncio.sleep(0)
        owner.cancel()

        with self.assertRaises(asyncio.CancelledError):
            await owner
        with self.assertRaises(EngineUnavailable):
            await waiter
        self.assertEqual(handle.status, EngineStatus.UNINITIALIZED)

    async def test_terminate_resets_handle(self) -> None:
        engine = InMemoryEngine()
        handle = EngineHandle(engine)
        await handle.acquire()
        await handle.terminate()
        self.assertEqual(handle.status, EngineStatus.UNINITIALIZED)
        await handle.acquire()
        self.assertEqual(engine.initialize_calls, 2)

    async def test_terminate_waits_for_inflight_initialization(self) -> None:
        engine = SlowEngine()
        handle = EngineHandle(engine)

        loading = asyncio.create_task(handle.acquire())
        await asyncio.sleep(0)
        stopping = asyncio.create_task(handle.terminate())
        await asyncio.sleep(0)
        self.assertFalse(stopping.done())

        engine.release.set()
        await loading
        await stopping
        self.assertEqual(engine.terminate_calls, 1)
        self.assertEqual(handle.status, EngineStatus.UNINITIALIZED)

    async def test_terminate_after_failed_inflight_load(self) -> None:
        engine = SlowEngine(available=False)
        handle = EngineHandle(engine)

        loading = asyncio.create_task(handle.acquire())
        await asyncio.sleep(0)
        stopping = asyncio.create_task(handle.terminate())
        await asyncio.sleep(0)
        engine.release.set()

        with self.assertRaises(EngineUnavailable):
            await loading
        await stopping
        self.assertEqual(engine.terminate_calls, 0)
        self.assertEqual(handle.status, EngineStatus.UNINITIALIZED)


class InMemoryEngineTest(unittest.IsolatedAsyncioTestCase):
    async def test_run_writes_manifest_output(self) -> None:
        engine = InMemoryEngine(reported_seconds=[0.5, 1.0])
        await engine.write_input("a.png", b"1")
        seen = []
        await engine.run(["-i", "a.png", "-y", "out.mp4"], seen.append)
        self.assertEqual(seen, [0.5, 1.0])
        self.assertIn(b'"a.png"', await engine.read_output("out.mp4"))

    async def test_run_requires_staged_inputs(self) -> None:
        engine = InMemoryEngine()
        with self.assertRaises(FileNotFoundError):
            await engine.run(["-i", "missing.png", "-y", "out.mp4"])

    async def test_delete_missing_is_noop(self) -> None:
        engine = InMemoryEngine()
        await engine.delete_file("nothing.png")
        self.assertEqual(engine.deleted, ["nothing.png"])


class FFmpegEngineTest(unittest.IsolatedAsyncioTestCase):
    async def test_missing_binary_is_unavailable(self) -> None:
        engine = FFmpegEngine(binary="definitely-not-ffmpeg-binary")
        self.assertFalse(await engine.initialize())

    async def test_operations_require_initialization(self) -> None:
        engine = FFmpegEngine()
        with self.assertRaises(RuntimeError):
            await engine.run(["-version"])
        # Nothing was initialized, so there is nothing to delete.
        await engine.delete_file("anything.png")

    @unittest.skipUnless(shutil.which("ffmpeg"), "ffmpeg not installed")
    async def test_round_trip_in_work_dir(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            engine = FFmpegEngine(work_dir=tmp)
            self.assertTrue(await engine.initialize())

            with self.assertRaises(ValueError):
                await engine.write_input("../escape.png", b"x")

            await engine.write_input("in.png", make_image_bytes((32, 24)))
            self.assertTrue((Path(tmp) / "in.png").exists())
            await engine.run(["-i", "in.png", "-vf", "scale=16:12", "-y", "out.png"])
            self.assertTrue((await engine.read_output("out.png")).startswith(b"\x89PNG"))

            await engine.delete_file("out.png")
            await engine.delete_file("out.png")
            self.assertFalse((Path(tmp) / "out.png").exists())

            with self.assertRaises(RuntimeError):
                await engine.run(["-i", "missing.png", "-y", "never.png"])

            await engine.terminate()
            # Caller-provided work dirs are left in place.
            self.assertTrue(Path(tmp).exists())

    @unittest.skipUnless(shutil.which("ffmpeg"), "ffmpeg not installed")
    async def test_cancelled_run_kills_ffmpeg(self) -> None:
        spawned = []
        real_exec = asyncio.create_subprocess_exec

        async def recording_exec(*args, **kwargs):
            proc = await real_exec(*args, **kwargs)
            spawned.append(proc)
            return proc

        with tempfile.TemporaryDirectory() as tmp:
            engine = FFmpegEngine(work_dir=tmp)
            self.assertTrue(await engine.initialize())

            reported = asyncio.Event()
            argv = ["-re", "-f", "lavfi", "-i", "testsrc=size=32x24:rate=5", "-t", "60", "-f", "null", "-"]
            with mock.patch("asyncio.create_subprocess_exec", recording_exec):
                task = asyncio.create_task(engine.run(argv, lambda seconds: reported.set()))
                await asyncio.wait_for(reported.wait(), timeout=15)
                task.cancel()
                with self.assertRaises(asyncio.CancelledError):
                    await task

            self.assertEqual(len(spawned), 1)
            self.assertIsNotNone(spawned[0].returncode)
            await engine.terminate()


if __name__ == "__main__":
    unittest.main()
