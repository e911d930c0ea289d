"""Still-image layouts that share the pipeline but not the slideshow timing."""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from ..config import Messages
from ..errors import InvalidInputCount, InvalidLayout
from ..types import FilterGraph, FilterKind, FilterNode, FilterStep

STACK_SINK = "outv"


def compile_comparison(sizes: Sequence[Tuple[int, int]]) -> FilterGraph:
    """Place two images side by side at their common (tallest) height."""
    if len(sizes) != 2:
        raise InvalidInputCount(
            f"Comparison needs exactly 2 images, got {len(sizes)}",
            user_message=Messages.ERROR_MIN_FILES_COMPARISON,
        )
    common_height = str(max(height for _, height in sizes))
    nodes = [
        FilterNode(
            kind=FilterKind.SCALE_PAD,
            steps=(FilterStep("scale", ((None, "-1"), (None, common_height))),),
            inputs=(f"{index}:v",),
            output=label,
        )
        for index, label in enumerate(("left", "right"))
    ]
    nodes.append(
        FilterNode(
            kind=FilterKind.HSTACK,
            steps=(FilterStep("hstack", (("inputs", "2"),)),),
            inputs=("left", "right"),
            output=STACK_SINK,
        )
    )
    return FilterGraph(nodes=tuple(nodes), sink=STACK_SINK)


def grid_shape(count: int) -> Tuple[int, int]:
    """Return ``(cols, rows)`` for a near-square grid holding ``count`` cells."""
    cols = math.ceil(math.sqrt(count))
    rows = math.ceil(count / cols)
    return cols, rows


def compile_grid(sizes: Sequence[Tuple[int, int]], width: int, height: int) -> FilterGraph:
    """Fit every image into an equal cell of a ``width`` x ``height`` grid."""
    count = len(sizes)
    if count < 1:
        raise InvalidInputCount("Grid needs at least 1 image", user_message=Messages.ERROR_MIN_FILES_GRID)
    if width <= 0 or height <= 0:
        raise InvalidLayout(f"Grid size must be positive, got {width}x{height}")

    cols, rows = grid_shape(count)
    cell_width = str(width // cols)
    cell_height = str(height // rows)

    nodes: List[FilterNode] = []
    for index in range(count):
        nodes.append(
            FilterNode(
                kind=FilterKind.SCALE_PAD,
                steps=(
                    FilterStep(
                        "scale",
                        ((None, cell_width), (None, cell_height), ("force_original_aspect_ratio", "decrease")),
                    ),
                    FilterStep(
                        "pad",
                        ((None, cell_width), (None, cell_height), (None, "(ow-iw)/2"), (None, "(oh-ih)/2")),
                    ),
                ),
                inputs=(f"{index}:v",),
                output=f"img{index}",
            )
        )

    if count == 1:
        # xstack refuses a single input; the lone cell is the result.
        return FilterGraph(nodes=tuple(nodes), sink=nodes[0].output)

    positions = [
        f"{(index % cols) * (width // cols)}_{(index // cols) * (height // rows)}" for index in range(count)
    ]
    nodes.append(
        FilterNode(
            kind=FilterKind.XSTACK,
            steps=(FilterStep("xstack", (("inputs", str(count)), ("layout", "|".join(positions)))),),
            inputs=tuple(node.output for node in nodes),
            output=STACK_SINK,
        )
    )
    return FilterGraph(nodes=tuple(nodes), sink=STACK_SINK)
