"""Command-line entry point for the slidefade pipeline."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from slidefade.config import PipelineConfig
from slidefade.errors import PipelineError
from slidefade.pipeline import MediaPipeline
from slidefade.types import ImageInput, PipelineState


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Build a crossfade slideshow, comparison, or grid from images.")
    parser.add_argument(
        "image_paths",
        nargs="+",
        help="Paths to the input images, in display order.",
    )
    parser.add_argument(
        "--tool",
        choices=("slideshow", "comparison", "grid"),
        default="slideshow",
        help="What to build from the images.",
    )
    parser.add_argument("--display-duration", type=float, help="Seconds each slide is shown.")
    parser.add_argument("--transition-duration", type=float, help="Seconds each crossfade lasts.")
    parser.add_argument("--grid-width", type=int, default=1920, help="Grid output width in pixels.")
    parser.add_argument("--grid-height", type=int, default=1080, help="Grid output height in pixels.")
    parser.add_argument("-o", "--output", help="Where to write the result (defaults to the artifact name).")
    parser.add_argument("--mock", action="store_true", help="Use the in-memory engine instead of ffmpeg.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every pipeline step.")
    return parser.parse_args(argv)


def _load_images(paths: list[str]) -> list[ImageInput]:
    images = []
    for raw_path in paths:
        path = Path(raw_path).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"Input image not found: {raw_path}")
        images.append(ImageInput(data=path.read_bytes(), filename=path.name))
    return images


def _print_progress(state: PipelineState) -> None:
    print(f"[{state.progress:3d}%] {state.stage.value}: {state.message}", flush=True)


async def _run(args: argparse.Namespace) -> int:
    config = PipelineConfig.from_env()
    if args.mock:
        config.enable_mock_engine = True
    pipeline = MediaPipeline(config)
    images = _load_images(args.image_paths)

    try:
        if args.tool == "comparison":
            result = await pipeline.create_comparison(images, observer=_print_progress)
        elif args.tool == "grid":
            result = await pipeline.create_grid(
                images, width=args.grid_width, height=args.grid_height, observer=_print_progress
            )
        else:
            result = await pipeline.create_slideshow(
                images,
                display_duration=args.display_duration,
                transition_duration=args.transition_duration,
                observer=_print_progress,
            )
    except PipelineError as exc:
        print(f"Error: {exc.user_message}", file=sys.stderr)
        return 1
    finally:
        await pipeline.engine_handle.terminate()

    output_path = Path(args.output or result.output_name[len(result.run_id) + 1 :])
    output_path.write_bytes(result.data)
    print("Generation completed.")
    print(f"Output: {output_path}")
    if config.runs_dir:
        print(f"Step logs stored under {Path(config.runs_dir) / result.run_id}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point used by ``python run.py``."""
    args = parse_args(argv or sys.argv[1:])
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s  %(levelname)-5s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
