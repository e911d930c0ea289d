"""Compile slideshow timing and layout into a crossfade filter graph."""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from ..config import Messages, TimingLimits
from ..errors import InvalidDuration, InvalidInputCount
from ..types import CanvasDimensions, FilterGraph, FilterKind, FilterNode, FilterStep, SlideTiming
from .serialize import format_number, format_offset

SINK_LABEL = "vfinal"
TRANSITION = "fade"
PIXEL_FORMAT = "yuva420p"
PAD_COLOR = "black"

# Rounding applied before ceil() so 1.1 + 0.3 style float noise cannot add a frame.
_PRECISION = 9


def slide_duration(index: int, total: int, display_duration: float, transition_duration: float) -> float:
    """Return how long slide ``index`` of ``total`` stays on screen.

    Edge slides take part in a single transition and get half of it; interior
    slides overlap with both neighbours and get all of it.
    """
    if index in (0, total - 1):
        return round(display_duration + transition_duration / 2, _PRECISION)
    return round(display_duration + transition_duration, _PRECISION)


def slide_timings(
    total: int, display_duration: float, transition_duration: float, fps: int
) -> List[SlideTiming]:
    timings: List[SlideTiming] = []
    for index in range(total):
        duration = slide_duration(index, total, display_duration, transition_duration)
        frame_count = max(1, math.ceil(round(duration * fps, _PRECISION)))
        timings.append(
            SlideTiming(duration=duration, frame_count=frame_count, loop_count=max(0, frame_count - 1))
        )
    return timings


def crossfade_offsets(total: int, display_duration: float) -> List[float]:
    """Offsets for the ``total - 1`` transitions, linear in the display duration."""
    return [round(display_duration * (index + 1), _PRECISION) for index in range(total - 1)]


def validate_timing(
    count: int,
    display_duration: float,
    transition_duration: float,
    limits: TimingLimits,
) -> None:
    """Raise if the slide count or durations cannot produce a slideshow."""
    if count < 2:
        raise InvalidInputCount(
            f"Slideshow needs at least 2 images, got {count}",
            user_message=Messages.ERROR_MIN_FILES_SLIDESHOW,
        )
    if not limits.display_min <= display_duration <= limits.display_max:
        raise InvalidDuration(
            f"Display duration {display_duration} outside [{limits.display_min}, {limits.display_max}]",
            user_message=Messages.ERROR_DISPLAY_DURATION.format(
                low=format_number(limits.display_min), high=format_number(limits.display_max)
            ),
        )
    if transition_duration < 0 or not limits.transition_min <= transition_duration <= limits.transition_max:
        raise InvalidDuration(
            f"Transition duration {transition_duration} outside "
            f"[{limits.transition_min}, {limits.transition_max}]",
            user_message=Messages.ERROR_TRANSITION_DURATION.format(
                low=format_number(limits.transition_min), high=format_number(limits.transition_max)
            ),
        )


def compile_slideshow(
    sizes: Sequence[Tuple[int, int]],
    display_duration: float,
    transition_duration: float,
    fps: int,
    canvas: CanvasDimensions,
    limits: TimingLimits = TimingLimits(),
) -> FilterGraph:
    """Build the slideshow filter graph.

    Every input becomes a looped still ``v{i}`` sized to ``canvas``; the streams
    are then folded left to right through ``xfade`` nodes, the last of which
    writes the sink label.
    """
    count = len(sizes)
    validate_timing(count, display_duration, transition_duration, limits)
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")

    nodes: List[FilterNode] = [
        _slide_node(index, timing, fps, canvas)
        for index, timing in enumerate(slide_timings(count, display_duration, transition_duration, fps))
    ]

    previous = "v0"
    for index, offset in enumerate(crossfade_offsets(count, display_duration)):
        output = SINK_LABEL if index == count - 2 else f"vout{index + 1}"
        nodes.append(
            FilterNode(
                kind=FilterKind.CROSSFADE,
                steps=(
                    FilterStep(
                        "xfade",
                        (
                            ("transition", TRANSITION),
                            ("duration", format_number(transition_duration)),
                            ("offset", format_offset(offset)),
                        ),
                    ),
                ),
                inputs=(previous, f"v{index + 1}"),
                output=output,
            )
        )
        previous = output

    return FilterGraph(nodes=tuple(nodes), sink=SINK_LABEL)


def _slide_node(index: int, timing: SlideTiming, fps: int, canvas: CanvasDimensions) -> FilterNode:
    width = str(canvas.width)
    height = str(canvas.height)
    steps = (
        FilterStep("scale", ((None, width), (None, height), ("force_original_aspect_ratio", "decrease"))),
        FilterStep("pad", ((None, width), (None, height), (None, "(ow-iw)/2"), (None, "(oh-ih)/2"), (None, PAD_COLOR))),
        FilterStep("setsar", ((None, "1"),)),
        FilterStep("fps", ((None, str(fps)),)),
        FilterStep("format", ((None, PIXEL_FORMAT),)),
        FilterStep("loop", (("loop", str(timing.loop_count)), ("size", "1"), ("start", "0"))),
        FilterStep("trim", (("duration", format_number(timing.duration)),)),
        FilterStep("setpts", ((None, "PTS-STARTPTS"),)),
    )
    return FilterNode(kind=FilterKind.LOOP_TRIM, steps=steps, inputs=(f"{index}:v",), output=f"v{index}")
