"""slidefade package.

Turns an ordered set of still images into a crossfade slideshow (or a
comparison/grid still) by compiling an ffmpeg filter graph and running it
through a staged, progress-reporting pipeline.
"""

from .pipeline import MediaPipeline  # noqa: F401

__all__ = ["MediaPipeline"]
