"""Slicer metadata extraction from G-code comments.

Slicers write summary values (layer count, estimated time, filament use)
into comment lines, each in its own format. ``scan_metadata`` looks for a
fixed set of known markers; the first matching occurrence of each value
wins and anything not found stays None.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Pattern, Tuple, Union

logger = logging.getLogger(__name__)

_FLOAT = r"([0-9]*\.?[0-9]+)"


@dataclass(frozen=True)
class GCodeMetadata:
    """Summary values declared by the slicer (None when not declared).

    Attributes:
        layer_count: Declared number of layers
        total_time_seconds: Estimated print time in seconds
        filament_used_m: Filament length in meters
        layer_height: Layer height in mm
        first_layer_height: First layer height in mm
        slicer: Slicer name, e.g. "PrusaSlicer"
        slicer_version: Slicer version string
        filament_type: Filament type of the first extruder, e.g. "PLA"
    """

    layer_count: Optional[int] = None
    total_time_seconds: Optional[float] = None
    filament_used_m: Optional[float] = None
    layer_height: Optional[float] = None
    first_layer_height: Optional[float] = None
    slicer: Optional[str] = None
    slicer_version: Optional[str] = None
    filament_type: Optional[str] = None


def parse_duration(text: str) -> Optional[float]:
    """Parse a slicer duration into seconds.

    Accepts plain seconds (``"3600"``), clock format (``"01:02:03"``) and unit
    format (``"1d 2h 3m 4s"``).

    Args:
        text: Duration text

    Returns:
        Duration in seconds, or None if the text is not a duration
    """
    text = text.strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        pass

    if re.fullmatch(r"\d+(?::\d+){1,2}", text):
        total = 0.0
        for part in text.split(":"):
            total = total * 60 + int(part)
        return total

    units = {"d": 86400, "h": 3600, "m": 60, "s": 1}
    parts = re.findall(r"(\d+(?:\.\d+)?)\s*([dhms])\b", text.lower())
    if not parts:
        return None
    return sum(float(value) * units[unit] for value, unit in parts)


def _to_int(match: "re.Match[str]") -> Optional[int]:
    return int(match.group(1))


def _to_float(match: "re.Match[str]") -> Optional[float]:
    return float(match.group(1))


def _mm_to_m(match: "re.Match[str]") -> Optional[float]:
    return float(match.group(1)) / 1000.0


def _to_duration(match: "re.Match[str]") -> Optional[float]:
    return parse_duration(match.group(1))


def _first_item(match: "re.Match[str]") -> Optional[str]:
    value = match.group(1).split(";")[0].strip().strip('"')
    return value or None


# (field, pattern, converter) in priority order
_MARKERS: Tuple[Tuple[str, Pattern[str], Callable[["re.Match[str]"], object]], ...] = (
    ("layer_count", re.compile(r"^;\s*LAYER_COUNT:\s*(\d+)", re.I), _to_int),
    ("layer_count", re.compile(r"^;\s*total layer number:\s*(\d+)", re.I), _to_int),
    ("layer_count", re.compile(r"^;\s*total layers count\s*=\s*(\d+)", re.I), _to_int),
    ("total_time_seconds", re.compile(r"^;\s*TIME:\s*" + _FLOAT, re.I), _to_float),
    (
        "total_time_seconds",
        re.compile(r"^;\s*estimated printing time[^=]*=\s*(.+)$", re.I),
        _to_duration,
    ),
    ("total_time_seconds", re.compile(r"^;\s*model printing time:\s*([^;]+)", re.I), _to_duration),
    ("total_time_seconds", re.compile(r"^;\s*Print time:\s*(.+)$", re.I), _to_duration),
    ("filament_used_m", re.compile(r"^;\s*Filament used:\s*" + _FLOAT + r"\s*m\b", re.I), _to_float),
    ("filament_used_m", re.compile(r"^;\s*filament used \[mm\]\s*=\s*" + _FLOAT, re.I), _mm_to_m),
    (
        "filament_used_m",
        re.compile(r"^;\s*total filament length \[mm\]\s*:\s*" + _FLOAT, re.I),
        _mm_to_m,
    ),
    ("layer_height", re.compile(r"^;\s*Layer height:\s*" + _FLOAT, re.I), _to_float),
    ("layer_height", re.compile(r"^;\s*layer_height\s*=\s*" + _FLOAT, re.I), _to_float),
    ("first_layer_height", re.compile(r"^;\s*first_layer_height\s*=\s*" + _FLOAT, re.I), _to_float),
    (
        "first_layer_height",
        re.compile(r"^;\s*initial_layer_print_height\s*=\s*" + _FLOAT, re.I),
        _to_float,
    ),
    ("filament_type", re.compile(r"^;\s*filament_type\s*=\s*(.+)$", re.I), _first_item),
)

_SLICERS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("Cura", re.compile(r"Generated with Cura_SteamEngine\s*([\w.\-]+)?", re.I)),
    ("PrusaSlicer", re.compile(r"generated by PrusaSlicer\s*([\w.\-+]+)?", re.I)),
    ("OrcaSlicer", re.compile(r"generated by OrcaSlicer\s*([\w.\-+]+)?", re.I)),
    ("BambuStudio", re.compile(r"^;\s*BambuStudio\s*([\d.]+)?", re.I)),
    ("Simplify3D", re.compile(r"Simplify3D\(R\)\s*(?:Version\s*([\w.]+))?", re.I)),
)


def _iter_lines(source: Union[str, Iterable[str]]) -> Iterable[str]:
    if isinstance(source, str):
        return source.splitlines()
    return source


def scan_metadata(source: Union[str, Iterable[str]]) -> GCodeMetadata:
    """Extract declared slicer metadata.

    Args:
        source: G-code text, or an iterable of its lines

    Returns:
        GCodeMetadata with the first matching value for each field

    Example:
        >>> meta = scan_metadata(";LAYER_COUNT:3\\n;TIME:600\\nG1 X1\\n")
        >>> meta.layer_count, meta.total_time_seconds
        (3, 600.0)
    """
    found = {}
    slicer: Optional[Tuple[str, Optional[str]]] = None

    for raw in _iter_lines(source):
        line = raw.strip()
        if not line.startswith(";"):
            continue
        for field_name, pattern, convert in _MARKERS:
            if field_name in found:
                continue
            match = pattern.search(line)
            if match:
                value = convert(match)
                if value is not None:
                    found[field_name] = value
        if slicer is None:
            for name, pattern in _SLICERS:
                match = pattern.search(line)
                if match:
                    slicer = (name, match.group(1))
                    break

    if slicer is not None:
        found["slicer"], found["slicer_version"] = slicer
        logger.debug("Detected slicer %s %s", *slicer)

    return GCodeMetadata(**found)
