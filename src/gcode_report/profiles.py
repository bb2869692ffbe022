"""Segmentation presets for common slicers."""

from enum import Enum
from typing import Optional

from gcode_report.segmenter import (
    FeedRateClassifier,
    MarkerClassifier,
    MoveClassifier,
    SegmenterConfig,
)


class SlicerProfile(Enum):
    """Slicer families with distinct G-code conventions."""

    GENERIC = "generic"  # Unknown slicer: no reliable feature markers
    CURA = "cura"  # ;LAYER:n and ;TYPE: markers, no wipe markers
    PRUSA = "prusa"  # ;LAYER_CHANGE, ;Z:, ;TYPE: and ;WIPE_START/;WIPE_END
    ORCA = "orca"  # Prusa-style markers plus ; FEATURE:
    BAMBU = "bambu"  # Orca-style markers, very fine layer heights
    SIMPLIFY3D = "simplify3d"  # ; layer n and ; feature markers


def create_segmenter_config(profile: SlicerProfile) -> SegmenterConfig:
    """
    Create a SegmenterConfig from a predefined slicer profile.

    Args:
        profile: Slicer profile to use

    Returns:
        SegmenterConfig with thresholds matching the slicer's conventions

    Examples:
        >>> cura = create_segmenter_config(SlicerProfile.CURA)
        >>> print(f"Wipe retraction limit: {cura.wipe_max_retraction} mm")
        Wipe retraction limit: 1.0 mm
    """
    if profile == SlicerProfile.GENERIC:
        return SegmenterConfig()
    elif profile == SlicerProfile.CURA:
        return SegmenterConfig(
            min_layer_z_step=0.05,
            wipe_max_retraction=1.0,  # mm - Cura retracts in place, rarely while moving
        )
    elif profile == SlicerProfile.PRUSA:
        return SegmenterConfig(
            min_layer_z_step=0.05,
            wipe_max_retraction=2.0,  # mm - wipe retracts while moving
        )
    elif profile == SlicerProfile.ORCA:
        return SegmenterConfig(
            min_layer_z_step=0.04,
            wipe_max_retraction=2.0,
        )
    elif profile == SlicerProfile.BAMBU:
        return SegmenterConfig(
            min_layer_z_step=0.03,  # mm - layer heights down to 0.04
            wipe_max_retraction=2.0,
        )
    elif profile == SlicerProfile.SIMPLIFY3D:
        return SegmenterConfig(
            min_layer_z_step=0.05,
            wipe_max_retraction=1.0,
        )
    else:
        raise ValueError(f"Unknown slicer profile: {profile}")


def create_classifier(profile: SlicerProfile) -> MoveClassifier:
    """
    Create the move classifier suited to a slicer profile.

    Slicers that write feature markers are classified by marker alone.
    GENERIC falls back to a feed-rate threshold for unmarked moves.

    Args:
        profile: Slicer profile to use

    Returns:
        MoveClassifier instance
    """
    if profile == SlicerProfile.GENERIC:
        return FeedRateClassifier()
    elif isinstance(profile, SlicerProfile):
        return MarkerClassifier()
    else:
        raise ValueError(f"Unknown slicer profile: {profile}")


def profile_for_slicer(slicer: Optional[str]) -> SlicerProfile:
    """
    Pick a profile from a detected slicer name (see ``scan_metadata``).

    Args:
        slicer: Slicer name such as "PrusaSlicer", or None

    Returns:
        Matching SlicerProfile, GENERIC when unknown
    """
    name = (slicer or "").lower()
    if "cura" in name:
        return SlicerProfile.CURA
    elif "prusa" in name or "superslicer" in name:
        return SlicerProfile.PRUSA
    elif "orca" in name:
        return SlicerProfile.ORCA
    elif "bambu" in name:
        return SlicerProfile.BAMBU
    elif "simplify3d" in name:
        return SlicerProfile.SIMPLIFY3D
    return SlicerProfile.GENERIC
