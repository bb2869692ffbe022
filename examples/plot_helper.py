"""Helper functions for creating matplotlib plots in examples."""

import os
from typing import Optional, Sequence

from gcode_report.models.layer import Layer, TemperatureSample
from gcode_report.visualize import plot_layer, plot_segment_composition, plot_temperatures


def _caller_dir() -> str:
    import inspect

    caller_file = inspect.stack()[2].filename
    return os.path.dirname(os.path.abspath(caller_file))


def save_layer_plot(layer: Layer, filename: str, title: Optional[str] = None) -> None:
    """Save the toolpath of one layer to file.

    Args:
        layer: Layer to draw
        filename: Output filename (e.g., "layer_0.png")
        title: Optional custom title
    """
    if not filename.endswith((".png", ".jpg", ".pdf")):
        filename += ".png"

    plot_layer(layer, title=title, show=False, save_path=filename)
    print(f"  Plot saved: {filename}")


def generate_example_plots(
    name: str,
    layers: Sequence[Layer],
    temperatures: Sequence[TemperatureSample],
    output_dir: Optional[str] = None,
) -> None:
    """Save first-layer, composition and temperature plots with automatic naming.

    Args:
        name: Base name for the plots (e.g., "basic_usage")
        layers: Segmented layers
        temperatures: Per-layer temperature samples
        output_dir: Optional output directory (defaults to caller's directory)
    """
    if output_dir is None:
        output_dir = _caller_dir()

    if not layers:
        print("  No layers to plot")
        return

    save_layer_plot(layers[0], os.path.join(output_dir, f"{name}_layer0.png"))

    path = os.path.join(output_dir, f"{name}_composition.png")
    plot_segment_composition(layers, show=False, save_path=path)
    print(f"  Plot saved: {path}")

    if temperatures:
        path = os.path.join(output_dir, f"{name}_temperatures.png")
        plot_temperatures(temperatures, show=False, save_path=path)
        print(f"  Plot saved: {path}")
