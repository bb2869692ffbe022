"""G-code parsing, layer reconstruction and analysis reporting."""

from .errors import (
    AnalysisCancelledError,
    AnalysisFailedError,
    AnalysisTimeoutError,
    GCodeReportError,
    NetworkError,
    PersistenceError,
    ValidationError,
)
from .models import Issue, Layer, MotionCommand, Patch, Report, Segment, SegmentKind, Severity
from .parser import MotionParser, parse_gcode
from .pipeline import GCodeAnalyzer
from .segmenter import LayerSegmenter

__version__ = "0.1.0"
__all__ = [
    "AnalysisCancelledError",
    "AnalysisFailedError",
    "AnalysisTimeoutError",
    "GCodeAnalyzer",
    "GCodeReportError",
    "Issue",
    "Layer",
    "LayerSegmenter",
    "MotionCommand",
    "MotionParser",
    "NetworkError",
    "Patch",
    "PersistenceError",
    "Report",
    "Segment",
    "SegmentKind",
    "Severity",
    "ValidationError",
    "parse_gcode",
]
