"""Slicer profile and classifier comparison example.

This example demonstrates:
- Segmenting the same unmarked G-code with different slicer profiles
- Replacing the move classifier with a custom strategy
- Seeing how ambiguous (unknown) moves are reported

Shows how to adapt the segmenter to G-code from an unknown slicer.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from plot_helper import save_layer_plot

from gcode_report.models.layer import SegmentKind
from gcode_report.parser import parse_gcode
from gcode_report.profiles import SlicerProfile, create_classifier, create_segmenter_config
from gcode_report.segmenter import FeedRateClassifier, LayerSegmenter, MoveClassifier

# No layer or feature markers: layers come from Z, kinds from the classifier
UNMARKED = """\
G28
G90
M83
G1 Z0.2 F600
G1 X10 Y10 F1200 E0.5
G1 X50 Y10 E1.6
G1 X50 Y50 E1.6
G1 E-0.8 F2400
G0 X30 Y30 F6000
G1 E0.8 F2400
G1 X40 Y40 F3600 E0.6
G1 X20 Y40 E0.8
G0 Z0.6 F600
G0 X10 Y10 Z0.4 F6000
G1 X50 Y10 F1200 E1.6
G1 X50 Y50 E1.6
"""


class ExtrusionAmountClassifier(MoveClassifier):
    """Treat moves that push a lot of filament as perimeter, the rest as infill."""

    def __init__(self, min_perimeter_e: float = 1.0):
        self.min_perimeter_e = min_perimeter_e

    def classify(self, command, feature):
        if command.e_delta >= self.min_perimeter_e:
            return SegmentKind.PERIMETER
        return SegmentKind.INFILL


def describe(name, segmenter, parsed):
    """Print one row per layer for a segmenter."""
    result = segmenter.segment(parsed)
    print(f"\n{name}")
    print("  " + "-" * 70)
    for layer in result.layers:
        kinds = ", ".join(seg.kind.value for seg in layer.segments)
        print(f"  Layer {layer.index} (Z {layer.z:.2f}): {kinds}")
    print(f"  Ambiguous runs: {len(result.ambiguities)}")
    return result


def main():
    """Compare profiles and classifiers on unmarked G-code."""

    print("=" * 80)
    print("SLICER PROFILES AND CLASSIFIERS")
    print("=" * 80)

    parsed = parse_gcode(UNMARKED)
    print(f"\nParsed {len(parsed.commands)} commands, {len(parsed.warnings)} warnings")

    for profile in (SlicerProfile.GENERIC, SlicerProfile.CURA, SlicerProfile.BAMBU):
        segmenter = LayerSegmenter(create_segmenter_config(profile), create_classifier(profile))
        describe(f"Profile: {profile.value}", segmenter, parsed)

    describe(
        "Feed threshold 1000 mm/min",
        LayerSegmenter(classifier=FeedRateClassifier(perimeter_max_feed=1000.0)),
        parsed,
    )
    result = describe(
        "Custom: extrusion amount", LayerSegmenter(classifier=ExtrusionAmountClassifier()), parsed
    )

    print("\n" + "=" * 80)
    print("GENERATING PLOT")
    print("=" * 80)
    output = Path(__file__).parent / "slicer_profiles_layer0.png"
    save_layer_plot(result.layers[0], str(output), title="Custom classifier, layer 0")
    print()


if __name__ == "__main__":
    main()
