"""Core data models for G-code analysis.

This package contains all model classes.
"""

from gcode_report.models.issue import Issue, Patch, PatchAction, Severity
from gcode_report.models.job import AnalysisJob, JobStatus
from gcode_report.models.layer import (
    Layer,
    Point3D,
    Segment,
    SegmentationAmbiguity,
    SegmentationResult,
    SegmentKind,
    SpeedSummary,
    TemperatureSample,
)
from gcode_report.models.motion import (
    CommandKind,
    CommentLine,
    MotionCommand,
    ParseResult,
    ParseWarning,
)
from gcode_report.models.report import Report, ReportMetrics, SolutionGuide

__all__ = [
    "AnalysisJob",
    "CommandKind",
    "CommentLine",
    "Issue",
    "JobStatus",
    "Layer",
    "MotionCommand",
    "ParseResult",
    "ParseWarning",
    "Patch",
    "PatchAction",
    "Point3D",
    "Report",
    "ReportMetrics",
    "Segment",
    "SegmentKind",
    "SegmentationAmbiguity",
    "SegmentationResult",
    "Severity",
    "SolutionGuide",
    "SpeedSummary",
    "TemperatureSample",
]
