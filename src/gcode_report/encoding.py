"""Compact line-segment buffers for toolpath renderers.

Each segment path is flattened into line pairs ``(x1, y1, z1, x2, y2, z2)``
stored as little-endian float32 and base64 encoded, one buffer per
category (extrusion, travel, wipe, support) and layer.
"""

import base64
from typing import Dict, Iterable, Union

import numpy as np

from gcode_report.models.layer import Layer, Segment, SegmentationResult, SegmentKind

FLOATS_PER_PAIR = 6

# Buffer category per segment kind; support is drawn separately from other extrusion
_CATEGORY = {
    SegmentKind.PERIMETER: "extrusion",
    SegmentKind.INFILL: "extrusion",
    SegmentKind.UNKNOWN: "extrusion",
    SegmentKind.SUPPORT: "support",
    SegmentKind.TRAVEL: "travel",
    SegmentKind.WIPE: "wipe",
}
CATEGORIES = ("extrusion", "travel", "wipe", "support")


def segment_pairs(segments: Iterable[Segment]) -> np.ndarray:
    """Line pairs of every segment path.

    Args:
        segments: Segments to flatten

    Returns:
        float32 array of shape (N, 6), one row per consecutive point pair
    """
    rows = []
    for segment in segments:
        path = np.asarray(segment.path, dtype=np.float32)
        rows.append(np.hstack([path[:-1], path[1:]]))
    if not rows:
        return np.empty((0, FLOATS_PER_PAIR), dtype=np.float32)
    return np.vstack(rows)


def encode_float32(values: np.ndarray) -> str:
    """Base64 of the little-endian float32 bytes of ``values``."""
    data = np.ascontiguousarray(values, dtype="<f4")
    return base64.b64encode(data.tobytes()).decode("ascii")


def decode_float32(data: Union[str, bytes]) -> np.ndarray:
    """Inverse of ``encode_float32``, reshaped to (N, 6) line pairs.

    Raises:
        ValueError: If the payload is not a whole number of line pairs
    """
    raw = base64.b64decode(data)
    values = np.frombuffer(raw, dtype="<f4")
    if values.size % FLOATS_PER_PAIR:
        raise ValueError(
            f"buffer holds {values.size} floats, not a multiple of {FLOATS_PER_PAIR}"
        )
    return values.reshape(-1, FLOATS_PER_PAIR)


def layer_buffers(layer: Layer) -> Dict[str, object]:
    """Encoded buffers and pair counts for one layer.

    Returns:
        Dict with ``layerNum``, ``z`` and, per category, ``<category>Data``
        (base64) and ``<category>Count`` (number of line pairs)
    """
    grouped: Dict[str, list] = {category: [] for category in CATEGORIES}
    for segment in layer.segments:
        grouped[_CATEGORY[segment.kind]].append(segment)

    payload: Dict[str, object] = {"layerNum": layer.index, "z": layer.z}
    for category in CATEGORIES:
        pairs = segment_pairs(grouped[category])
        payload[f"{category}Data"] = encode_float32(pairs)
        payload[f"{category}Count"] = int(pairs.shape[0])
    return payload


def segments_payload(segmentation: SegmentationResult) -> Dict[str, object]:
    """Encoded buffers for every layer plus bounding box metadata."""
    points = [
        point
        for layer in segmentation.layers
        for segment in layer.segments
        for point in segment.path
    ]
    metadata: Dict[str, object] = {"layerCount": len(segmentation.layers)}
    if points:
        coords = np.asarray(points, dtype=float)
        low, high = coords.min(axis=0), coords.max(axis=0)
        metadata["boundingBox"] = {
            "minX": float(low[0]),
            "maxX": float(high[0]),
            "minY": float(low[1]),
            "maxY": float(high[1]),
            "minZ": float(low[2]),
            "maxZ": float(high[2]),
        }
    return {
        "layers": [layer_buffers(layer) for layer in segmentation.layers],
        "metadata": metadata,
    }
