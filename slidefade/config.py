"""Configuration containers for the slidefade pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar


class Messages:
    """User-facing progress and error strings."""

    ANALYZING_IMAGES = "Analyzing images..."
    LOADING_ENGINE = "Loading media engine..."
    STAGING_INPUTS = "Preparing inputs..."
    COMPILING = "Building filter graph..."
    GENERATING_VIDEO = "Generating video..."
    RETRIEVING_OUTPUT = "Retrieving output..."
    CLEANING_UP = "Cleaning up..."
    PROCESSING_COMPLETE = "Processing complete!"
    ERROR_MIN_FILES_SLIDESHOW = "Please upload at least 2 images"
    ERROR_MIN_FILES_COMPARISON = "Please upload exactly 2 images"
    ERROR_MIN_FILES_GRID = "Please upload at least 1 image"
    ERROR_MAX_FILES = "Maximum {limit} images allowed"
    ERROR_DISPLAY_DURATION = "Display duration must be between {low} and {high} seconds"
    ERROR_TRANSITION_DURATION = "Transition duration must be between {low} and {high} seconds"
    ERROR_ENGINE_LOAD = "Failed to load the media engine. Please try again."
    ERROR_PROCESSING = "An error occurred during processing"
    ERROR_IMAGE_READ = "Could not read image: {filename}"
    ERROR_BUSY = "A pipeline run is already in progress"
    ERROR_GRID_SIZE = "Grid width and height must be positive"


@dataclass(frozen=True, slots=True)
class TimingLimits:
    """Inclusive bounds for the slideshow display and transition durations."""

    display_min: float = 0.5
    display_max: float = 10.0
    transition_min: float = 0.1
    transition_max: float = 3.0


@dataclass(slots=True)
class PipelineConfig:
    """Static configuration applied to every pipeline run."""

    env_prefix: ClassVar[str] = "SLIDEFADE_"

    runs_dir: str | None = "runs"
    enable_mock_engine: bool = False
    ffmpeg_binary: str | None = None
    work_dir: str | None = None
    display_duration: float = 1.5
    transition_duration: float = 0.5
    fps: int = 30
    max_slideshow_images: int = 20
    display_duration_min: float = 0.5
    display_duration_max: float = 10.0
    transition_duration_min: float = 0.1
    transition_duration_max: float = 3.0
    default_extension: str = "jpg"
    video_codec: str = "libx264"
    video_preset: str = "fast"

    @property
    def timing_limits(self) -> TimingLimits:
        return TimingLimits(
            display_min=self.display_duration_min,
            display_max=self.display_duration_max,
            transition_min=self.transition_duration_min,
            transition_max=self.transition_duration_max,
        )

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Create a config object populated from environment variables."""
        prefix = cls.env_prefix
        return cls(
            runs_dir=os.getenv(f"{prefix}RUNS_DIR", "runs") or None,
            enable_mock_engine=os.getenv(f"{prefix}ENABLE_MOCKS", "false").lower() == "true",
            ffmpeg_binary=os.getenv(f"{prefix}FFMPEG_BINARY"),
            work_dir=os.getenv(f"{prefix}WORK_DIR"),
            display_duration=float(os.getenv(f"{prefix}DISPLAY_DURATION", "1.5")),
            transition_duration=float(os.getenv(f"{prefix}TRANSITION_DURATION", "0.5")),
            fps=int(os.getenv(f"{prefix}FPS", "30")),
            max_slideshow_images=int(os.getenv(f"{prefix}MAX_IMAGES", "20")),
            display_duration_min=float(os.getenv(f"{prefix}DISPLAY_DURATION_MIN", "0.5")),
            display_duration_max=float(os.getenv(f"{prefix}DISPLAY_DURATION_MAX", "10")),
            transition_duration_min=float(os.getenv(f"{prefix}TRANSITION_DURATION_MIN", "0.1")),
            transition_duration_max=float(os.getenv(f"{prefix}TRANSITION_DURATION_MAX", "3")),
            default_extension=os.getenv(f"{prefix}DEFAULT_EXTENSION", "jpg"),
            video_codec=os.getenv(f"{prefix}VIDEO_CODEC", "libx264"),
            video_preset=os.getenv(f"{prefix}VIDEO_PRESET", "fast"),
        )
