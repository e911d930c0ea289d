"""Per-tool job definitions run by the media pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, List, Optional, Protocol

from .config import Messages, PipelineConfig
from .errors import InvalidInputCount, InvalidLayout
from .graph.compiler import compile_slideshow, slide_timings, validate_timing
from .graph.layouts import compile_comparison, compile_grid
from .types import FilterGraph, ImageAnalysis


class Job(Protocol):
    """What the pipeline needs to know about one kind of output."""

    name: str
    output_name: str

    def validate(self, count: int, config: PipelineConfig) -> None:
        ...

    def compile(self, analysis: ImageAnalysis, config: PipelineConfig) -> FilterGraph:
        ...

    def encode_args(self, config: PipelineConfig) -> List[str]:
        ...

    def expected_duration(self, count: int) -> Optional[float]:
        ...


@dataclass(frozen=True, slots=True)
class SlideshowJob:
    """Crossfade slideshow video."""

    name: ClassVar[str] = "slideshow"
    output_name: ClassVar[str] = "slideshow.mp4"

    display_duration: float = 1.5
    transition_duration: float = 0.5
    fps: int = 30

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        display_duration: float | None = None,
        transition_duration: float | None = None,
    ) -> "SlideshowJob":
        return cls(
            display_duration=config.display_duration if display_duration is None else display_duration,
            transition_duration=config.transition_duration if transition_duration is None else transition_duration,
            fps=config.fps,
        )

    def validate(self, count: int, config: PipelineConfig) -> None:
        if count > config.max_slideshow_images:
            raise InvalidInputCount(
                f"Slideshow accepts at most {config.max_slideshow_images} images, got {count}",
                user_message=Messages.ERROR_MAX_FILES.format(limit=config.max_slideshow_images),
            )
        validate_timing(count, self.display_duration, self.transition_duration, config.timing_limits)

    def compile(self, analysis: ImageAnalysis, config: PipelineConfig) -> FilterGraph:
        return compile_slideshow(
            analysis.sizes,
            self.display_duration,
            self.transition_duration,
            self.fps,
            analysis.canvas,
            config.timing_limits,
        )

    def encode_args(self, config: PipelineConfig) -> List[str]:
        return [
            "-c:v",
            config.video_codec,
            "-pix_fmt",
            "yuv420p",
            "-preset",
            config.video_preset,
            "-movflags",
            "+faststart",
        ]

    def expected_duration(self, count: int) -> Optional[float]:
        """Length of the encoded video: the last fade offset plus the final slide."""
        if count < 2:
            return None
        last = slide_timings(count, self.display_duration, self.transition_duration, self.fps)[-1]
        return self.display_duration * (count - 1) + last.duration


@dataclass(frozen=True, slots=True)
class ComparisonJob:
    """Two images side by side in one still."""

    name: ClassVar[str] = "comparison"
    output_name: ClassVar[str] = "comparison.png"

    def validate(self, count: int, config: PipelineConfig) -> None:
        if count != 2:
            raise InvalidInputCount(
                f"Comparison needs exactly 2 images, got {count}",
                user_message=Messages.ERROR_MIN_FILES_COMPARISON,
            )

    def compile(self, analysis: ImageAnalysis, config: PipelineConfig) -> FilterGraph:
        return compile_comparison(analysis.sizes)

    def encode_args(self, config: PipelineConfig) -> List[str]:
        return []

    def expected_duration(self, count: int) -> Optional[float]:
        return None


@dataclass(frozen=True, slots=True)
class GridJob:
    """N-up grid of images in one still of ``width`` x ``height``."""

    name: ClassVar[str] = "grid"
    output_name: ClassVar[str] = "grid.png"

    width: int = 1920
    height: int = 1080

    def validate(self, count: int, config: PipelineConfig) -> None:
        if count < 1:
            raise InvalidInputCount("Grid needs at least 1 image", user_message=Messages.ERROR_MIN_FILES_GRID)
        if self.width <= 0 or self.height <= 0:
            raise InvalidLayout(f"Grid size must be positive, got {self.width}x{self.height}")

    def compile(self, analysis: ImageAnalysis, config: PipelineConfig) -> FilterGraph:
        return compile_grid(analysis.sizes, self.width, self.height)

    def encode_args(self, config: PipelineConfig) -> List[str]:
        return []

    def expected_duration(self, count: int) -> Optional[float]:
        return None
