"""Core data models used across the slidefade pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple


class Stage(str, Enum):
    """Pipeline states, in the order a successful run visits them."""

    IDLE = "Idle"
    ANALYZING_INPUTS = "AnalyzingInputs"
    ACQUIRING_ENGINE = "AcquiringEngine"
    STAGING_INPUTS = "StagingInputs"
    COMPILING = "Compiling"
    EXECUTING = "Executing"
    RETRIEVING_OUTPUT = "RetrievingOutput"
    CLEANING_UP = "CleaningUp"
    COMPLETE = "Complete"
    ERROR = "Error"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETE, Stage.ERROR)


class FilterKind(str, Enum):
    """Operation performed by a filter graph node."""

    SCALE_PAD = "scale-pad"
    LOOP_TRIM = "loop-trim"
    CROSSFADE = "crossfade"
    HSTACK = "hstack"
    XSTACK = "xstack"


TRANSFORM_KINDS = frozenset({FilterKind.SCALE_PAD, FilterKind.LOOP_TRIM})


@dataclass(slots=True)
class ImageInput:
    """An image supplied by the caller, in slide order."""

    data: bytes
    filename: str
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def has_dimensions(self) -> bool:
        return self.width is not None and self.height is not None


@dataclass(frozen=True, slots=True)
class CanvasDimensions:
    """Output frame size; both sides are even."""

    width: int
    height: int


@dataclass(frozen=True, slots=True)
class ImageDimensions:
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class ImageAnalysis:
    """Probed dimensions for an image set."""

    dimensions: Tuple[ImageDimensions, ...]
    max_width: int
    max_height: int

    @property
    def canvas(self) -> CanvasDimensions:
        return CanvasDimensions(
            width=self.max_width + self.max_width % 2,
            height=self.max_height + self.max_height % 2,
        )

    @property
    def sizes(self) -> List[Tuple[int, int]]:
        return [(dim.width, dim.height) for dim in self.dimensions]


@dataclass(frozen=True, slots=True)
class SlideTiming:
    """How long a slide is shown and how many frames that takes."""

    duration: float
    frame_count: int
    loop_count: int


@dataclass(frozen=True, slots=True)
class FilterStep:
    """A single ffmpeg filter with ordered parameters.

    Parameters with a ``None`` key are emitted positionally.
    """

    name: str
    params: Tuple[Tuple[Optional[str], str], ...] = ()


@dataclass(frozen=True, slots=True)
class FilterNode:
    """A labelled chain of filter steps."""

    kind: FilterKind
    steps: Tuple[FilterStep, ...]
    inputs: Tuple[str, ...]
    output: str

    @property
    def is_transform(self) -> bool:
        return self.kind in TRANSFORM_KINDS


@dataclass(frozen=True, slots=True)
class FilterGraph:
    """Ordered filter nodes plus the label selected for encoding."""

    nodes: Tuple[FilterNode, ...]
    sink: str

    @property
    def transform_nodes(self) -> List[FilterNode]:
        return [node for node in self.nodes if node.is_transform]

    @property
    def crossfade_nodes(self) -> List[FilterNode]:
        return [node for node in self.nodes if node.kind is FilterKind.CROSSFADE]

    @property
    def labels(self) -> List[str]:
        return [node.output for node in self.nodes]


@dataclass(slots=True)
class PipelineState:
    """Observable progress of a single run."""

    stage: Stage = Stage.IDLE
    progress: int = 0
    message: str = ""
    is_running: bool = False
    last_error: Optional[str] = None


@dataclass(slots=True)
class RunState:
    """Mutable state passed between stage nodes."""

    run_id: str
    job: Any
    images: List[ImageInput] = field(default_factory=list)
    analysis: Optional[ImageAnalysis] = None
    engine: Any = None
    staged_names: List[str] = field(default_factory=list)
    output_name: Optional[str] = None
    graph: Optional[FilterGraph] = None
    graph_text: Optional[str] = None
    argv: List[str] = field(default_factory=list)
    output: Optional[bytes] = None


@dataclass(frozen=True, slots=True)
class RunResult:
    """What a successful run hands back to the caller."""

    run_id: str
    output_name: str
    data: bytes
    graph_text: str
