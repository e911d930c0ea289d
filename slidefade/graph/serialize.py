"""Render filter graph nodes into ffmpeg ``-filter_complex`` text."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..types import FilterGraph, FilterNode, FilterStep


def format_number(value: float) -> str:
    """Shortest decimal form: ``2``, ``1.75``, ``0.5``."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def format_offset(value: float) -> str:
    """Transition offsets always carry two decimals.

    Ties on the exact binary value round away from zero (``1.125`` gives
    ``1.13``), where ``%.2f`` would round half to even.
    """
    return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def serialize_step(step: FilterStep) -> str:
    if not step.params:
        return step.name
    args = ":".join(value if key is None else f"{key}={value}" for key, value in step.params)
    return f"{step.name}={args}"


def serialize_node(node: FilterNode) -> str:
    inputs = "".join(f"[{label}]" for label in node.inputs)
    chain = ",".join(serialize_step(step) for step in node.steps)
    return f"{inputs}{chain}[{node.output}]"


def serialize_graph(graph: FilterGraph) -> str:
    """Join node statements with ``;`` and no surrounding whitespace."""
    return ";".join(serialize_node(node) for node in graph.nodes)


def map_label(graph: FilterGraph) -> str:
    """The ``-map`` argument selecting the graph's sink."""
    return f"[{graph.sink}]"
