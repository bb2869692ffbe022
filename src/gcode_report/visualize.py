"""Diagnostic charts for segmented G-code.

This module provides static figures for offline inspection of layers,
per-layer temperatures and the mix of segment kinds across a print.
"""

from typing import Dict, List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from gcode_report.models.layer import Layer, SegmentKind, TemperatureSample

KIND_COLORS: Dict[SegmentKind, str] = {
    SegmentKind.PERIMETER: "tab:red",
    SegmentKind.INFILL: "tab:orange",
    SegmentKind.SUPPORT: "tab:green",
    SegmentKind.TRAVEL: "tab:gray",
    SegmentKind.WIPE: "tab:purple",
    SegmentKind.UNKNOWN: "tab:blue",
}


def _finish(fig: plt.Figure, save_path: Optional[str], show: bool) -> plt.Figure:
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    if show:
        plt.show()

    return fig


def plot_layer(
    layer: Layer,
    title: Optional[str] = None,
    show_travel: bool = True,
    show: bool = True,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Plot the XY toolpath of one layer, colored by segment kind.

    Args:
        layer: Layer to draw
        title: Optional custom title (default: layer index and Z)
        show_travel: Whether to draw travel moves (dashed)
        show: Whether to display the plot (default: True)
        save_path: Optional path to save the figure

    Returns:
        matplotlib Figure object

    Raises:
        ValueError: If the layer has no segments
    """
    if not layer.segments:
        raise ValueError(f"Cannot plot layer {layer.index}: no segments")

    fig, ax = plt.subplots(figsize=(8, 8))
    labelled = set()
    for segment in layer.segments:
        if segment.kind is SegmentKind.TRAVEL and not show_travel:
            continue
        path = np.asarray(segment.path)
        label = segment.kind.value if segment.kind not in labelled else None
        labelled.add(segment.kind)
        ax.plot(
            path[:, 0],
            path[:, 1],
            color=KIND_COLORS[segment.kind],
            linestyle="--" if segment.kind is SegmentKind.TRAVEL else "-",
            linewidth=0.6 if segment.kind is SegmentKind.TRAVEL else 1.2,
            alpha=0.5 if segment.kind is SegmentKind.TRAVEL else 0.9,
            label=label,
        )

    ax.set_title(title or f"Layer {layer.index} (Z = {layer.z:.2f} mm)")
    ax.set_xlabel("X (mm)")
    ax.set_ylabel("Y (mm)")
    ax.set_aspect("equal", adjustable="datalim")
    ax.legend()
    ax.grid(True, alpha=0.3)

    return _finish(fig, save_path, show)


def plot_temperatures(
    samples: Sequence[TemperatureSample],
    title: str = "Target Temperatures per Layer",
    show: bool = True,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Plot nozzle and bed targets against layer index.

    Layers without a target are left as gaps.

    Args:
        samples: Per-layer temperature samples
        title: Plot title
        show: Whether to display the plot
        save_path: Optional path to save the figure

    Returns:
        matplotlib Figure object
    """
    if not samples:
        raise ValueError("Cannot plot empty temperature list")

    layers = np.array([sample.layer_index for sample in samples])
    nozzle = np.array(
        [np.nan if s.nozzle_temp is None else s.nozzle_temp for s in samples], dtype=float
    )
    bed = np.array([np.nan if s.bed_temp is None else s.bed_temp for s in samples], dtype=float)

    fig, ax = plt.subplots(figsize=(12, 5))
    ax.step(layers, nozzle, where="post", color="tab:red", linewidth=2, label="Nozzle")
    ax.step(layers, bed, where="post", color="tab:blue", linewidth=2, label="Bed")
    ax.set_xlabel("Layer")
    ax.set_ylabel("Temperature (°C)")
    ax.set_title(title)
    ax.legend()
    ax.grid(True, alpha=0.3)

    return _finish(fig, save_path, show)


def plot_segment_composition(
    layers: Sequence[Layer],
    title: str = "Path Length by Segment Kind",
    show: bool = True,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Stacked bars of XY path length per segment kind for every layer.

    Args:
        layers: Layers to summarize
        title: Plot title
        show: Whether to display the plot
        save_path: Optional path to save the figure

    Returns:
        matplotlib Figure object
    """
    if not layers:
        raise ValueError("Cannot plot empty layer list")

    indices = np.array([layer.index for layer in layers])
    lengths: Dict[SegmentKind, List[float]] = {kind: [] for kind in SegmentKind}
    for layer in layers:
        for kind in SegmentKind:
            lengths[kind].append(sum(seg.length for seg in layer.segments_of(kind)))

    fig, ax = plt.subplots(figsize=(12, 5))
    bottom = np.zeros(len(layers))
    for kind in SegmentKind:
        values = np.array(lengths[kind])
        if not values.any():
            continue
        ax.bar(indices, values, bottom=bottom, color=KIND_COLORS[kind], label=kind.value)
        bottom += values

    ax.set_xlabel("Layer")
    ax.set_ylabel("Path Length (mm)")
    ax.set_title(title)
    ax.legend()
    ax.grid(True, alpha=0.3, axis="y")

    return _finish(fig, save_path, show)
