"""Visualize a G-code file layer by layer.

Usage:
    python examples/visualize_layers.py path/to/file.gcode

Shows:
- Toolpath of the first, middle and last layer
- Path length per segment kind for every layer
- Nozzle and bed targets per layer
- The render buffer sizes sent to the analysis service
"""

import sys

import matplotlib.pyplot as plt

from gcode_report.encoding import segments_payload
from gcode_report.pipeline import GCodeAnalyzer
from gcode_report.visualize import plot_layer, plot_segment_composition, plot_temperatures


def summarize(prepared):
    """Print layer and buffer statistics."""
    segmentation = prepared.segmentation
    payload = segments_payload(segmentation)

    print(f"Layers: {len(segmentation.layers)} (markers: {segmentation.used_markers})")
    print(f"Parse warnings: {len(prepared.parse_result.warnings)}")
    print(f"Ambiguous runs: {len(segmentation.ambiguities)}")
    box = payload["metadata"].get("boundingBox")
    if box:
        print(
            f"Bounding box: X {box['minX']:.1f}..{box['maxX']:.1f}, "
            f"Y {box['minY']:.1f}..{box['maxY']:.1f}, Z {box['minZ']:.2f}..{box['maxZ']:.2f}"
        )

    totals = {"extrusion": 0, "travel": 0, "wipe": 0, "support": 0}
    for layer in payload["layers"]:
        for category in totals:
            totals[category] += layer[f"{category}Count"]
    print("Line pairs: " + ", ".join(f"{name} {count}" for name, count in totals.items()))


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    file_name = sys.argv[1]
    GCodeAnalyzer.validate_file_name(file_name)
    with open(file_name, encoding="utf-8", errors="replace") as handle:
        text = handle.read()

    prepared = GCodeAnalyzer().prepare(text)
    summarize(prepared)

    layers = prepared.segmentation.layers
    if not layers:
        print("No layers found")
        return

    for index in sorted({0, len(layers) // 2, len(layers) - 1}):
        plot_layer(layers[index], show=False)
    plot_segment_composition(layers, show=False)
    if prepared.temperatures:
        plot_temperatures(prepared.temperatures, show=False)
    plt.show()


if __name__ == "__main__":
    main()
