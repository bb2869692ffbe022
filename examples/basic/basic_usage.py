"""Basic usage example.

This example demonstrates:
- Parsing a small Cura-style G-code file
- Reading slicer metadata and segmented layers
- Building a local report (no analysis service needed)
- Saving layer plots

This is the simplest way to use gcode_report.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from plot_helper import generate_example_plots

from gcode_report import GCodeAnalyzer

SAMPLE = """\
;FLAVOR:Marlin
;TIME:1860
;Filament used: 1.42m
;Layer height: 0.2
;Generated with Cura_SteamEngine 5.4.0
;LAYER_COUNT:3
M140 S60
M104 S205
G28
G92 E0
;LAYER:0
G0 F6000 X20 Y20 Z0.2
;TYPE:WALL-OUTER
G1 F1200 X60 Y20 E1.6
G1 X60 Y60 E3.2
G1 X20 Y60 E4.8
G1 X20 Y20 E6.4
;TYPE:FILL
G1 F3000 X60 Y60 E8.2
G1 E7.4
G0 F6000 X20 Y60
G1 F2400 E8.2
G1 F3000 X60 Y20 E10.0
;LAYER:1
M104 S210
G0 X20 Y20 Z0.4
;TYPE:WALL-OUTER
G1 F1500 X60 Y20 E11.6
G1 X60 Y60 E13.2
G1 X20 Y60 E14.8
G1 X20 Y20 E16.4
;LAYER:2
G0 X20 Y20 Z0.6
;TYPE:WALL-OUTER
G1 F1500 X60 Y20 E18.0
G1 X60 Y60 E19.6
G1 X20 Y60 E21.2
G1 X20 Y20 E22.8
"""


def main():
    """Local analysis of a three-layer file."""

    print("=" * 80)
    print("BASIC G-CODE REPORT USAGE")
    print("=" * 80)

    analyzer = GCodeAnalyzer()
    prepared = analyzer.prepare(SAMPLE)
    meta = prepared.metadata

    print("\nSlicer Metadata:")
    print(f"  Slicer: {meta.slicer} {meta.slicer_version}")
    print(f"  Declared layers: {meta.layer_count}")
    print(f"  Estimated time: {meta.total_time_seconds:.0f} s")
    print(f"  Filament: {meta.filament_used_m} m")

    print("\nLayers:")
    print(f"  {'#':<4} {'Z':<8} {'Segments':<10} {'Lines':<12} {'Kinds'}")
    print(f"  {'':4} {'(mm)':<8}")
    print("  " + "-" * 70)

    for layer in prepared.segmentation.layers:
        first, last = layer.line_range
        kinds = ", ".join(seg.kind.value for seg in layer.segments)
        print(
            f"  {layer.index:<4} {layer.z:<8.2f} {len(layer.segments):<10} "
            f"{f'{first}-{last}':<12} {kinds}"
        )

    print("\nTelemetry:")
    speeds = prepared.speeds
    print(f"  Print feed: {speeds.print_min:.0f}-{speeds.print_max:.0f} mm/min")
    print(f"  Travel feed (avg): {speeds.travel_avg:.0f} mm/min")
    print(f"  Retractions: {prepared.retraction_count}")
    print(f"  Filament (summed E): {prepared.filament_mm:.1f} mm")
    for sample in prepared.temperatures:
        print(f"  Layer {sample.layer_index}: nozzle {sample.nozzle_temp} / bed {sample.bed_temp}")

    report = analyzer.report_local("sample.gcode", SAMPLE)
    print("\nLocal Report:")
    print(f"  Layers: {report.metrics.layer_count}")
    print(f"  Print time: {report.metrics.print_time_formatted}")
    print(f"  Score: {report.score:.0f} (no remote analysis)")

    print("\n" + "=" * 80)
    print("GENERATING PLOTS")
    print("=" * 80)
    generate_example_plots("basic_usage", prepared.segmentation.layers, prepared.temperatures)
    print()


if __name__ == "__main__":
    main()
