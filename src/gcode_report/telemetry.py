"""Print telemetry extracted from parsed G-code: temperatures, speeds, retractions."""

import bisect
import logging
from typing import List, Optional, Tuple

import numpy as np

from gcode_report.models.layer import SegmentationResult, SpeedSummary, TemperatureSample
from gcode_report.models.motion import CommandKind, ParseResult

logger = logging.getLogger(__name__)

NOZZLE_CODES = {"M104", "M109"}
BED_CODES = {"M140", "M190"}

# E displacement (mm) below which a move is neither extrusion nor retraction
EXTRUSION_EPSILON = 1e-5


def _temperature_events(parse_result: ParseResult, codes: set) -> Tuple[List[int], List[float]]:
    """Line indices and target values of temperature commands."""
    lines: List[int] = []
    values: List[float] = []
    for command in parse_result.commands:
        if command.code not in codes:
            continue
        target = command.params.get("S", command.params.get("R"))
        if target is None:
            logger.debug("Line %d: %s without target temperature", command.line_index, command.code)
            continue
        lines.append(command.line_index)
        values.append(target)
    return lines, values


def _target_at(
    lines: List[int], values: List[float], start: int, end: int
) -> Optional[float]:
    """Target in effect at ``start``, or the first one set within [start, end]."""
    before = bisect.bisect_left(lines, start)
    if before > 0:
        return values[before - 1]
    if before < len(lines) and lines[before] <= end:
        return values[before]
    return None


def extract_temperatures(
    parse_result: ParseResult, segmentation: SegmentationResult
) -> Tuple[TemperatureSample, ...]:
    """Nozzle and bed targets per layer.

    Each sample holds the target in effect when the layer starts, or the first
    target set inside the layer when none was set before it. Values stay None
    until the file sets them.

    Args:
        parse_result: Parsed file
        segmentation: Layers built from ``parse_result``

    Returns:
        One TemperatureSample per layer, in layer order
    """
    nozzle_lines, nozzle_values = _temperature_events(parse_result, NOZZLE_CODES)
    bed_lines, bed_values = _temperature_events(parse_result, BED_CODES)

    samples = []
    for layer in segmentation.layers:
        line_range = layer.line_range
        if line_range is None:
            samples.append(TemperatureSample(layer_index=layer.index))
            continue
        start, end = line_range
        samples.append(
            TemperatureSample(
                layer_index=layer.index,
                nozzle_temp=_target_at(nozzle_lines, nozzle_values, start, end),
                bed_temp=_target_at(bed_lines, bed_values, start, end),
            )
        )
    return tuple(samples)


def summarize_speeds(parse_result: ParseResult) -> SpeedSummary:
    """Feed rate statistics for printing and travel moves.

    Printing moves are G1/G2/G3 moves that extrude; travel moves are any other
    move with an X or Y word. Moves before the first F word are ignored.

    Returns:
        SpeedSummary in mm/min
    """
    print_feeds = []
    travel_feeds = []
    for command in parse_result.motion_commands():
        if command.feed_rate is None:
            continue
        if command.kind is CommandKind.LINEAR and command.e_delta > EXTRUSION_EPSILON:
            print_feeds.append(command.feed_rate)
        elif command.explicit_axes & {"X", "Y"}:
            travel_feeds.append(command.feed_rate)

    summary = SpeedSummary()
    if print_feeds:
        feeds = np.array(print_feeds)
        summary = SpeedSummary(
            print_min=float(feeds.min()),
            print_max=float(feeds.max()),
            print_avg=float(feeds.mean()),
        )
    if travel_feeds:
        summary = SpeedSummary(
            print_min=summary.print_min,
            print_max=summary.print_max,
            print_avg=summary.print_avg,
            travel_avg=float(np.mean(travel_feeds)),
        )
    return summary


def count_retractions(parse_result: ParseResult) -> int:
    """Number of retractions.

    A retraction is counted when the filament goes from primed to retracted,
    either through a negative E move or firmware retraction (G10). A wipe that
    retracts over several moves counts once. Extrusion or G11 re-primes.
    """
    count = 0
    retracted = False
    for command in parse_result.commands:
        if command.code == "G10":
            if not retracted:
                count += 1
            retracted = True
        elif command.code == "G11":
            retracted = False
        elif command.is_motion:
            if command.e_delta < -EXTRUSION_EPSILON:
                if not retracted:
                    count += 1
                retracted = True
            elif command.e_delta > EXTRUSION_EPSILON:
                retracted = False
    return count


def total_extrusion(parse_result: ParseResult) -> float:
    """Sum of positive E displacements in mm of filament."""
    deltas = np.array([cmd.e_delta for cmd in parse_result.motion_commands()], dtype=float)
    if deltas.size == 0:
        return 0.0
    return float(deltas[deltas > 0].sum())
