#!/usr/bin/env python3
"""Render a tiny slideshow with the real ffmpeg engine to verify the install."""

from __future__ import annotations

import argparse
import asyncio
import sys
import textwrap
from io import BytesIO
from pathlib import Path
from typing import Iterable, List

from PIL import Image

from slidefade.config import PipelineConfig
from slidefade.errors import PipelineError
from slidefade.pipeline import MediaPipeline
from slidefade.services.engine import EngineHandle
from slidefade.services.ffmpeg import FFmpegEngine
from slidefade.types import ImageInput

_COLOURS = ("#d9534f", "#5cb85c", "#428bca")


def _solid_png(colour: str, size: tuple[int, int]) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, colour).save(buffer, format="PNG")
    return buffer.getvalue()


def _sample_images(count: int) -> List[ImageInput]:
    # Mixed sizes and one odd width so the even-canvas rounding is exercised.
    sizes = [(161, 120), (120, 160), (200, 150)]
    return [
        ImageInput(data=_solid_png(_COLOURS[i % 3], sizes[i % 3]), filename=f"sample{i}.png")
        for i in range(count)
    ]


async def run_check(binary: str | None, count: int, output: Path) -> int:
    config = PipelineConfig(runs_dir=None, ffmpeg_binary=binary)
    handle = EngineHandle(FFmpegEngine(binary=binary))
    pipeline = MediaPipeline(config, engine_handle=handle)
    try:
        result = await pipeline.create_slideshow(
            _sample_images(count),
            display_duration=0.5,
            transition_duration=0.2,
            observer=lambda state: print(f"  {state.progress:3d}% {state.stage.value}"),
        )
    except PipelineError as exc:
        print(f"Engine check failed: {exc} ({exc.user_message})", file=sys.stderr)
        return 1
    finally:
        await handle.terminate()

    output.write_bytes(result.data)
    print(f"Filter graph:\n{result.graph_text}\n")
    print(f"Wrote {len(result.data)} bytes to {output}")
    return 0


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent(
            """\
            Smoke-test the ffmpeg engine by rendering a short slideshow from generated images.
            Exits non-zero when ffmpeg is missing or the render fails.
            """
        ),
    )
    parser.add_argument("--ffmpeg", help="ffmpeg binary to use instead of the one on PATH.")
    parser.add_argument("--count", type=int, default=3, help="Number of generated slides (at least 2).")
    parser.add_argument("--output", default="engine-check.mp4", help="Where to write the rendered video.")
    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    return asyncio.run(run_check(args.ffmpeg, args.count, Path(args.output)))


if __name__ == "__main__":
    raise SystemExit(main())
