"""Layer and segment models produced by segmentation."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

Point3D = Tuple[float, float, float]


class SegmentKind(Enum):
    """What a run of motion is doing."""

    PERIMETER = "perimeter"
    INFILL = "infill"
    TRAVEL = "travel"
    WIPE = "wipe"
    SUPPORT = "support"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Segment:
    """Contiguous, classified run of motion within a layer.

    Attributes:
        kind: Segment classification
        origin: Position the first move starts from
        points: Target point of each move, in the order the moves were emitted
        line_indices: Source line of each point (same length as points)
        extruding: Whether the moves deposit material
    """

    kind: SegmentKind
    origin: Point3D
    points: Tuple[Point3D, ...]
    line_indices: Tuple[int, ...]
    extruding: bool

    def __post_init__(self) -> None:
        """Validate that every point has exactly one source line."""
        if not self.points:
            raise ValueError("segment must contain at least one point")
        if len(self.points) != len(self.line_indices):
            raise ValueError(
                f"points and line_indices must have equal length: "
                f"{len(self.points)} != {len(self.line_indices)}"
            )

    @property
    def path(self) -> Tuple[Point3D, ...]:
        """Origin followed by every point."""
        return (self.origin,) + self.points

    @property
    def line_range(self) -> Tuple[int, int]:
        """First and last source line covered by this segment."""
        return (self.line_indices[0], self.line_indices[-1])

    @property
    def length(self) -> float:
        """XY path length in mm."""
        path = self.path
        return sum(
            math.hypot(b[0] - a[0], b[1] - a[1]) for a, b in zip(path, path[1:])
        )


@dataclass(frozen=True)
class SegmentationAmbiguity:
    """A move whose kind could not be determined (recorded as UNKNOWN)."""

    line_index: int
    layer_index: int
    reason: str


@dataclass(frozen=True)
class Layer:
    """Horizontal slice of the print.

    Attributes:
        index: 0-based, contiguous layer index
        z: Layer height in mm
        segments: Segments in source order
    """

    index: int
    z: float
    segments: Tuple[Segment, ...]

    def __post_init__(self) -> None:
        """Validate layer index."""
        if self.index < 0:
            raise ValueError(f"index must be non-negative, got {self.index}")

    def segments_of(self, kind: SegmentKind) -> Tuple[Segment, ...]:
        """Segments of a single kind."""
        return tuple(seg for seg in self.segments if seg.kind is kind)

    @property
    def line_range(self) -> Optional[Tuple[int, int]]:
        """First and last source line covered by the layer's segments."""
        if not self.segments:
            return None
        return (self.segments[0].line_range[0], self.segments[-1].line_range[1])


@dataclass(frozen=True)
class SegmentationResult:
    """Layers built from one parse result.

    Attributes:
        layers: Layers with contiguous indices starting at 0
        ambiguities: Moves classified as UNKNOWN and why
        used_markers: True when explicit slicer markers drove layer boundaries
    """

    layers: Tuple[Layer, ...]
    ambiguities: Tuple[SegmentationAmbiguity, ...] = ()
    used_markers: bool = False

    def layer_for_line(self, line_index: int) -> Optional[int]:
        """Index of the layer whose line range contains ``line_index``."""
        for layer in self.layers:
            line_range = layer.line_range
            if line_range and line_range[0] <= line_index <= line_range[1]:
                return layer.index
        return None


@dataclass(frozen=True)
class TemperatureSample:
    """Target temperatures in effect at the start of a layer."""

    layer_index: int
    nozzle_temp: Optional[float] = None
    bed_temp: Optional[float] = None


@dataclass(frozen=True)
class SpeedSummary:
    """Feed rate statistics in mm/min (None when there were no such moves)."""

    print_min: Optional[float] = None
    print_max: Optional[float] = None
    print_avg: Optional[float] = None
    travel_avg: Optional[float] = None
