"""Report assembly from service results and local analysis.

The assembler combines the service's ``comprehensive_summary``,
``final_summary``, ``issues_found``, ``patch_plan`` and ``printing_info``
with locally computed metadata and telemetry into a single Report.
Each report section is built independently: a section that fails is
logged and left empty, and the rest of the report is still produced.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple, TypeVar

from gcode_report.fields import to_float, to_int, to_label
from gcode_report.issues import IssueNormalizer
from gcode_report.metadata import GCodeMetadata
from gcode_report.models.issue import Issue, Patch, Severity
from gcode_report.models.layer import SegmentationResult, SpeedSummary, TemperatureSample
from gcode_report.models.report import Report, ReportMetrics, SolutionGuide
from gcode_report.patches import PatchPlanMapper

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Version of the score -> grade contract implemented by grade_from_score
GRADE_SCALE_VERSION = "v1"


def grade_from_score(score: float) -> str:
    """
    Letter grade for a 0-100 quality score.

    Thresholds: A >= 90, B >= 75, C >= 60, D >= 40, otherwise F.

    Examples:
        >>> grade_from_score(90), grade_from_score(89.9), grade_from_score(39)
        ('A', 'B', 'F')
    """
    if score >= 90:
        return "A"
    elif score >= 75:
        return "B"
    elif score >= 60:
        return "C"
    elif score >= 40:
        return "D"
    else:
        return "F"


def severity_from_score(score: float) -> Severity:
    """
    Overall severity for a 0-100 quality score.

    Thresholds: below 30 critical, below 50 high, below 70 medium, otherwise low.
    """
    if score < 30:
        return Severity.CRITICAL
    elif score < 50:
        return Severity.HIGH
    elif score < 70:
        return Severity.MEDIUM
    else:
        return Severity.LOW


def format_duration(seconds: float) -> str:
    """Human readable duration, e.g. ``"1h 02m"`` or ``"4m 05s"``."""
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes}m {secs:02d}s"


def _dig(payload: Any, *keys: str) -> Any:
    """Nested lookup returning None as soon as a level is missing."""
    for key in keys:
        if not isinstance(payload, Mapping):
            return None
        payload = payload.get(key)
    return payload


def _first(*values: Optional[T]) -> Optional[T]:
    for value in values:
        if value is not None:
            return value
    return None


class ReportAssembler:
    """Build Reports.

    Args:
        grade_fn: Score to letter grade mapping, called once per report
            (default: grade_from_score)
        now: Clock for the ``analyzed_at`` stamp (default: current UTC time)
        normalizer: Issue normalizer (default: IssueNormalizer())
        mapper: Patch plan mapper (default: PatchPlanMapper())
    """

    def __init__(
        self,
        grade_fn: Callable[[float], str] = grade_from_score,
        now: Optional[Callable[[], datetime]] = None,
        normalizer: Optional[IssueNormalizer] = None,
        mapper: Optional[PatchPlanMapper] = None,
    ):
        self.grade_fn = grade_fn
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.normalizer = normalizer or IssueNormalizer()
        self.mapper = mapper or PatchPlanMapper()

    def assemble(
        self,
        file_name: str,
        result: Optional[Mapping[str, Any]] = None,
        metadata: Optional[GCodeMetadata] = None,
        segmentation: Optional[SegmentationResult] = None,
        temperatures: Sequence[TemperatureSample] = (),
        speeds: Optional[SpeedSummary] = None,
        retraction_count: Optional[int] = None,
        filament_mm: Optional[float] = None,
        analysis_id: Optional[str] = None,
    ) -> Report:
        """Assemble a report.

        Args:
            file_name: Name of the analyzed file
            result: Service result payload (None for a local-only report)
            metadata: Slicer metadata scanned from the file
            segmentation: Local layer segmentation
            temperatures: Per-layer temperature samples
            speeds: Local feed rate summary
            retraction_count: Locally counted retractions
            filament_mm: Locally summed extrusion in mm
            analysis_id: Id of the service analysis

        Returns:
            Report stamped with ``now()``
        """
        result = result or {}
        metadata = metadata or GCodeMetadata()

        score = self._section("score", lambda: self._score(result), 0.0)
        grade = self._section("grade", lambda: self.grade_fn(score), "N/A")
        metrics = self._section(
            "metrics",
            lambda: self._metrics(
                result, metadata, segmentation, retraction_count, filament_mm
            ),
            ReportMetrics(),
        )
        issues: Tuple[Issue, ...] = self._section(
            "issues", lambda: self.normalizer.normalize(result.get("issues_found")), ()
        )
        patches: Tuple[Patch, ...] = self._section(
            "patches", lambda: self.mapper.map(result.get("patch_plan"), issues), ()
        )
        guides = self._section("solution guides", lambda: self._guides(result), ())

        return Report(
            file_name=file_name,
            analyzed_at=self.now(),
            metrics=metrics,
            score=score,
            grade=grade,
            severity=severity_from_score(score),
            issues=issues,
            patches=patches,
            solution_guides=guides,
            summary=to_label(_dig(result, "final_summary", "summary")),
            recommendation=to_label(_dig(result, "final_summary", "recommendation")),
            temperatures=tuple(temperatures),
            speeds=speeds or SpeedSummary(),
            analysis_id=analysis_id,
        )

    def _section(self, name: str, build: Callable[[], T], default: T) -> T:
        try:
            return build()
        except Exception:
            logger.exception("Failed to assemble report %s; leaving it empty", name)
            return default

    def _score(self, result: Mapping[str, Any]) -> float:
        score = to_float(_dig(result, "final_summary", "overall_quality_score"))
        if score is None:
            return 0.0
        return max(0.0, min(100.0, score))

    def _metrics(
        self,
        result: Mapping[str, Any],
        metadata: GCodeMetadata,
        segmentation: Optional[SegmentationResult],
        retraction_count: Optional[int],
        filament_mm: Optional[float],
    ) -> ReportMetrics:
        summary = result.get("comprehensive_summary") or {}
        seconds = _first(
            to_float(_dig(summary, "print_time", "total_seconds")), metadata.total_time_seconds
        )
        formatted = _first(
            to_label(_dig(summary, "print_time", "formatted_time")),
            format_duration(seconds) if seconds is not None else None,
        )
        local_filament_m = filament_mm / 1000.0 if filament_mm else None
        local_layers = len(segmentation.layers) if segmentation is not None else None
        return ReportMetrics(
            print_time_seconds=seconds,
            print_time_formatted=formatted,
            filament_used_m=_first(
                to_float(_dig(summary, "extrusion", "total_filament_used")),
                metadata.filament_used_m,
                local_filament_m,
            ),
            filament_weight_g=to_float(_dig(summary, "extrusion", "filament_weight_g")),
            layer_count=_first(
                to_int(_dig(summary, "layer", "total_layers")),
                metadata.layer_count,
                local_layers,
            )
            or 0,
            layer_height=_first(
                to_float(_dig(summary, "layer", "layer_height")), metadata.layer_height
            ),
            retraction_count=_first(
                to_int(_dig(summary, "extrusion", "retraction_count")), retraction_count
            )
            or 0,
        )

    def _guides(self, result: Mapping[str, Any]) -> Tuple[SolutionGuide, ...]:
        recommendations = _dig(result, "printing_info", "recommendations") or []
        guides = []
        for item in recommendations:
            if isinstance(item, str) and item.strip():
                guides.append(SolutionGuide(title=item.strip(), description=item.strip()))
            elif isinstance(item, Mapping):
                title = to_label(item.get("title"))
                if title is None:
                    continue
                steps = item.get("steps") or ()
                guides.append(
                    SolutionGuide(
                        title=title,
                        description=to_label(item.get("description")) or title,
                        steps=tuple(str(step) for step in steps),
                    )
                )
        return tuple(guides)
