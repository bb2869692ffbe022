"""Layer and segment reconstruction from parsed G-code.

The segmenter groups motion commands into layers and, within each layer,
into contiguous runs of moves of the same kind (perimeter, infill, travel,
wipe, support).

Layer boundaries come from one of two sources:
- Explicit slicer markers (``;LAYER:n``, ``;LAYER_CHANGE``,
  ``; layer num/total_layer_count: n/m``, ``; layer n``). When any marker
  exists, markers alone decide layer boundaries. Start-up moves before the
  first marker (homing travel, prime lines) belong to layer 0.
- Otherwise, Z increases: an extruding move more than
  ``min_layer_z_step`` above the current layer opens a new layer. Travel
  moves never open a layer, so Z-hops do not split layers.

How an extruding move is classified is a replaceable strategy
(``MoveClassifier``), since slicers disagree on conventions.
"""

import heapq
import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from gcode_report.models.layer import (
    Layer,
    Point3D,
    Segment,
    SegmentationAmbiguity,
    SegmentationResult,
    SegmentKind,
)
from gcode_report.models.motion import CommandKind, CommentLine, MotionCommand, ParseResult

logger = logging.getLogger(__name__)

LAYER_MARKERS = (
    re.compile(r"^LAYER:\s*-?\d+", re.I),
    re.compile(r"^LAYER_CHANGE\b", re.I),
    re.compile(r"^layer num/total_layer_count:\s*\d+\s*/\s*\d+", re.I),
    re.compile(r"^layer\s+\d+", re.I),
)
Z_MARKER = re.compile(r"^Z:\s*([-+]?[0-9]*\.?[0-9]+)", re.I)
FEATURE_MARKERS = (
    re.compile(r"^TYPE:\s*(.+)$", re.I),
    re.compile(r"^FEATURE(?::\s*|\s+)(.+)$", re.I),
)
WIPE_START = re.compile(r"^WIPE_START\b", re.I)
WIPE_END = re.compile(r"^WIPE_END\b", re.I)


@dataclass(frozen=True)
class SegmenterConfig:
    """Thresholds used to build layers and segments.

    Attributes:
        min_layer_z_step: Minimum Z increase (mm) of an extruding move that
            opens a new layer when no layer markers are present
        min_xy_move: Minimum XY displacement (mm) for a move to produce a point
        extrusion_epsilon: E delta (mm) above which a move counts as extruding
        wipe_max_retraction: Largest retraction (mm) during an XY move that is
            still treated as a wipe rather than a travel
    """

    min_layer_z_step: float = 0.05
    min_xy_move: float = 0.001
    extrusion_epsilon: float = 1e-5
    wipe_max_retraction: float = 2.0

    def __post_init__(self) -> None:
        """Validate thresholds."""
        if self.min_layer_z_step <= 0:
            raise ValueError(f"min_layer_z_step must be positive, got {self.min_layer_z_step}")
        if self.min_xy_move < 0:
            raise ValueError(f"min_xy_move must be non-negative, got {self.min_xy_move}")
        if self.extrusion_epsilon < 0:
            raise ValueError(
                f"extrusion_epsilon must be non-negative, got {self.extrusion_epsilon}"
            )
        if self.wipe_max_retraction < 0:
            raise ValueError(
                f"wipe_max_retraction must be non-negative, got {self.wipe_max_retraction}"
            )


def feature_kind(feature: Optional[str]) -> Optional[SegmentKind]:
    """Map a slicer feature name to a segment kind.

    Covers Cura (``WALL-OUTER``, ``FILL``, ``SKIN``), PrusaSlicer/OrcaSlicer
    (``External perimeter``, ``Solid infill``) and BambuStudio
    (``Outer wall``, ``Sparse infill``, ``Top surface``) naming.

    Returns:
        The matching kind, or None when the feature is unknown or missing
    """
    if not feature:
        return None
    name = feature.strip().lower()
    if "support" in name:
        return SegmentKind.SUPPORT
    if "wall" in name or "perimeter" in name or name in ("skirt", "brim", "skirt/brim"):
        return SegmentKind.PERIMETER
    if any(word in name for word in ("infill", "fill", "skin", "surface", "bridge", "ironing")):
        return SegmentKind.INFILL
    return None


class MoveClassifier(ABC):
    """Strategy deciding the kind of an extruding move."""

    @abstractmethod
    def classify(self, command: MotionCommand, feature: Optional[str]) -> SegmentKind:
        """Return the kind of ``command``.

        Args:
            command: Extruding move with XY displacement
            feature: Most recent feature marker text, if any

        Returns:
            Segment kind, UNKNOWN when undecidable
        """


class MarkerClassifier(MoveClassifier):
    """Classify by the slicer's feature markers only."""

    def classify(self, command: MotionCommand, feature: Optional[str]) -> SegmentKind:
        return feature_kind(feature) or SegmentKind.UNKNOWN


class FeedRateClassifier(MoveClassifier):
    """Classify by feature markers, falling back to a feed-rate threshold.

    Slicers print perimeters slower than infill, so unmarked moves at or
    below ``perimeter_max_feed`` count as perimeter and faster ones as infill.

    Args:
        perimeter_max_feed: Highest perimeter feed rate in mm/min (default: 1800)
    """

    def __init__(self, perimeter_max_feed: float = 1800.0):
        if perimeter_max_feed <= 0:
            raise ValueError(f"perimeter_max_feed must be positive, got {perimeter_max_feed}")
        self.perimeter_max_feed = perimeter_max_feed

    def classify(self, command: MotionCommand, feature: Optional[str]) -> SegmentKind:
        kind = feature_kind(feature)
        if kind is not None:
            return kind
        if command.feed_rate is None:
            return SegmentKind.UNKNOWN
        if command.feed_rate <= self.perimeter_max_feed:
            return SegmentKind.PERIMETER
        return SegmentKind.INFILL

    def __repr__(self) -> str:
        return f"FeedRateClassifier(perimeter_max_feed={self.perimeter_max_feed})"


class _Run:
    """Segment under construction."""

    def __init__(self, kind: SegmentKind, extruding: bool, origin: Point3D):
        self.kind = kind
        self.extruding = extruding
        self.origin = origin
        self.points: List[Point3D] = []
        self.line_indices: List[int] = []

    def to_segment(self) -> Segment:
        return Segment(
            kind=self.kind,
            origin=self.origin,
            points=tuple(self.points),
            line_indices=tuple(self.line_indices),
            extruding=self.extruding,
        )


class _LayerBuilder:
    """Layer under construction."""

    def __init__(self, index: int, z: Optional[float] = None):
        self.index = index
        self.z = z
        self.marker_z: Optional[float] = None
        self.segments: List[Segment] = []
        self.run: Optional[_Run] = None

    @property
    def has_segments(self) -> bool:
        return bool(self.segments) or self.run is not None

    def flush(self) -> None:
        if self.run is not None:
            self.segments.append(self.run.to_segment())
            self.run = None

    def build(self, fallback_z: float) -> Layer:
        self.flush()
        z = self.marker_z if self.marker_z is not None else self.z
        if z is None:
            z = self.segments[0].points[0][2] if self.segments else fallback_z
        return Layer(index=self.index, z=z, segments=tuple(self.segments))


def _is_layer_marker(text: str) -> bool:
    return any(pattern.match(text) for pattern in LAYER_MARKERS)


def _feature_marker(text: str) -> Optional[str]:
    for pattern in FEATURE_MARKERS:
        match = pattern.match(text)
        if match:
            return match.group(1).strip()
    return None


class LayerSegmenter:
    """Build layers and classified segments from a ParseResult.

    Args:
        config: Segmentation thresholds (default: SegmenterConfig())
        classifier: Strategy for extruding moves (default: MarkerClassifier())

    Example:
        >>> from gcode_report.parser import parse_gcode
        >>> result = parse_gcode(";LAYER:0\\nG1 X10 E1\\n;LAYER:1\\nG1 Z0.4\\nG1 X0 E2\\n")
        >>> segmentation = LayerSegmenter().segment(result)
        >>> [layer.index for layer in segmentation.layers]
        [0, 1]
    """

    def __init__(
        self,
        config: Optional[SegmenterConfig] = None,
        classifier: Optional[MoveClassifier] = None,
    ):
        self.config = config or SegmenterConfig()
        self.classifier = classifier or MarkerClassifier()

    def __repr__(self) -> str:
        return f"LayerSegmenter(config={self.config!r}, classifier={self.classifier!r})"

    def segment(self, parse_result: ParseResult) -> SegmentationResult:
        """Segment a parse result into layers.

        Args:
            parse_result: Output of MotionParser.parse

        Returns:
            SegmentationResult with contiguous layer indices starting at 0.
            Input without any XY motion yields zero layers.
        """
        used_markers = any(_is_layer_marker(comment.text) for comment in parse_result.comments)

        layers: List[Layer] = []
        ambiguities: List[SegmentationAmbiguity] = []
        builder = _LayerBuilder(index=0)
        position: Point3D = (0.0, 0.0, 0.0)
        feature: Optional[str] = None
        in_wipe = False
        seen_marker = False

        items: List[Union[MotionCommand, CommentLine]] = list(
            heapq.merge(
                parse_result.commands,
                parse_result.comments,
                key=lambda item: item.line_index,
            )
        )

        for item in items:
            if isinstance(item, CommentLine):
                text = item.text
                if used_markers and _is_layer_marker(text):
                    if not seen_marker:
                        # Start-up moves before the first marker belong to layer 0
                        seen_marker = True
                        builder.flush()
                        builder.z = None
                    elif builder.has_segments:
                        layers.append(builder.build(position[2]))
                        logger.debug(
                            "Layer %d closed at line %d (marker)", builder.index, item.line_index
                        )
                        builder = _LayerBuilder(index=len(layers))
                    continue
                z_match = Z_MARKER.match(text)
                if z_match and used_markers:
                    builder.marker_z = float(z_match.group(1))
                    continue
                marker = _feature_marker(text)
                if marker is not None:
                    feature = marker
                elif WIPE_START.match(text):
                    in_wipe = True
                elif WIPE_END.match(text):
                    in_wipe = False
                continue

            if not item.is_motion:
                continue

            target: Point3D = item.position
            xy_move = math.hypot(target[0] - position[0], target[1] - position[1])
            if xy_move <= self.config.min_xy_move:
                position = target
                continue

            extruding = (
                item.e_delta > self.config.extrusion_epsilon and item.kind is not CommandKind.RAPID
            )

            if extruding:
                if builder.z is None:
                    builder.z = target[2]
                elif not used_markers and target[2] > builder.z + self.config.min_layer_z_step:
                    if builder.has_segments:
                        layers.append(builder.build(position[2]))
                        logger.debug(
                            "Layer %d closed at line %d (Z %.3f -> %.3f)",
                            builder.index,
                            item.line_index,
                            builder.z,
                            target[2],
                        )
                        builder = _LayerBuilder(index=len(layers), z=target[2])
                    else:
                        builder.z = target[2]

            kind = self._classify(item, extruding, feature, in_wipe)
            run = builder.run
            if run is None or run.kind is not kind or run.extruding != extruding:
                builder.flush()
                run = _Run(kind=kind, extruding=extruding, origin=position)
                builder.run = run
                if kind is SegmentKind.UNKNOWN:
                    reason = (
                        f"unrecognized feature {feature!r}" if feature else "no feature marker"
                    )
                    ambiguities.append(
                        SegmentationAmbiguity(
                            line_index=item.line_index,
                            layer_index=builder.index,
                            reason=reason,
                        )
                    )
            run.points.append(target)
            run.line_indices.append(item.line_index)
            position = target

        if builder.has_segments:
            layers.append(builder.build(position[2]))

        return SegmentationResult(
            layers=tuple(layers),
            ambiguities=tuple(ambiguities),
            used_markers=used_markers,
        )

    def _classify(
        self,
        command: MotionCommand,
        extruding: bool,
        feature: Optional[str],
        in_wipe: bool,
    ) -> SegmentKind:
        if extruding:
            return self.classifier.classify(command, feature)
        retraction = -command.e_delta
        if in_wipe or self.config.extrusion_epsilon < retraction <= self.config.wipe_max_retraction:
            return SegmentKind.WIPE
        return SegmentKind.TRAVEL


def segment_layers(
    parse_result: ParseResult,
    config: Optional[SegmenterConfig] = None,
    classifier: Optional[MoveClassifier] = None,
) -> Tuple[Layer, ...]:
    """Segment a parse result and return only the layers."""
    return LayerSegmenter(config, classifier).segment(parse_result).layers
