"""Report aggregate produced by the assembler."""

from dataclasses import asdict, dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from gcode_report.models.issue import Issue, Patch, Severity
from gcode_report.models.layer import SpeedSummary, TemperatureSample


@dataclass(frozen=True)
class ReportMetrics:
    """Headline print metrics (None when unknown).

    Attributes:
        print_time_seconds: Estimated print time in seconds
        print_time_formatted: Human readable print time, e.g. "1h 02m"
        filament_used_m: Filament length in meters
        filament_weight_g: Filament weight in grams
        layer_count: Number of layers
        layer_height: Layer height in mm
        retraction_count: Number of retractions
    """

    print_time_seconds: Optional[float] = None
    print_time_formatted: Optional[str] = None
    filament_used_m: Optional[float] = None
    filament_weight_g: Optional[float] = None
    layer_count: int = 0
    layer_height: Optional[float] = None
    retraction_count: int = 0


@dataclass(frozen=True)
class SolutionGuide:
    """Ordered steps addressing the report's findings."""

    title: str
    description: str
    steps: Tuple[str, ...] = ()


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


@dataclass(frozen=True)
class Report:
    """Complete analysis report for one file.

    Immutable once assembled. The only later change is recording a
    persistence acknowledgement through ``mark_saved``.
    """

    file_name: str
    analyzed_at: datetime
    metrics: ReportMetrics
    score: float
    grade: str
    severity: Severity
    issues: Tuple[Issue, ...] = ()
    patches: Tuple[Patch, ...] = ()
    solution_guides: Tuple[SolutionGuide, ...] = ()
    summary: Optional[str] = None
    recommendation: Optional[str] = None
    temperatures: Tuple[TemperatureSample, ...] = ()
    speeds: SpeedSummary = SpeedSummary()
    analysis_id: Optional[str] = None
    saved: bool = False
    report_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate score range."""
        if not 0 <= self.score <= 100:
            raise ValueError(f"score must be between 0 and 100, got {self.score}")

    def mark_saved(self, report_id: str) -> "Report":
        """Copy of this report carrying the durable id from the persistence layer."""
        return replace(self, saved=True, report_id=report_id)

    def issue_counts(self) -> Dict[Severity, int]:
        """Number of issues per severity."""
        counts = {severity: 0 for severity in Severity}
        for issue in self.issues:
            counts[issue.severity] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation."""
        return _jsonable(asdict(self))
