"""End-to-end G-code analysis pipeline.

This module provides the GCodeAnalyzer class that integrates all components:
- File name validation
- Parsing, metadata scanning and layer segmentation
- Local telemetry (temperatures, speeds, retractions, filament)
- Remote analysis (submit + poll)
- Report assembly and optional persistence

Example:
    >>> from gcode_report.pipeline import GCodeAnalyzer
    >>>
    >>> analyzer = GCodeAnalyzer()
    >>> text = open("benchy.gcode").read()
    >>> prepared = analyzer.prepare(text)
    >>> report = asyncio.run(analyzer.analyze("benchy.gcode", text))
    >>> print(f"{report.grade} ({report.score:.0f}), {len(report.issues)} issues")
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from gcode_report.assembler import ReportAssembler
from gcode_report.client import AnalysisJobClient, Subscriber
from gcode_report.errors import PersistenceError, ValidationError
from gcode_report.metadata import GCodeMetadata, scan_metadata
from gcode_report.models.layer import SegmentationResult, SpeedSummary, TemperatureSample
from gcode_report.models.motion import ParseResult
from gcode_report.models.report import Report
from gcode_report.parser import MotionParser
from gcode_report.profiles import create_classifier, create_segmenter_config, profile_for_slicer
from gcode_report.segmenter import LayerSegmenter
from gcode_report.store import FileStore, ReportStore, StoredFile
from gcode_report.telemetry import (
    count_retractions,
    extract_temperatures,
    summarize_speeds,
    total_extrusion,
)
from gcode_report.transport import ApiConfig, HttpAnalysisTransport

logger = logging.getLogger(__name__)

ACCEPTED_EXTENSIONS = (".gcode", ".gc", ".g", ".nc", ".ngc")


@dataclass(frozen=True)
class PreparedFile:
    """Everything computed locally for one file."""

    parse_result: ParseResult
    metadata: GCodeMetadata
    segmentation: SegmentationResult
    temperatures: Tuple[TemperatureSample, ...]
    speeds: SpeedSummary
    retraction_count: int
    filament_mm: float


@dataclass(frozen=True)
class SaveOutcome:
    """Result of a save attempt.

    On failure ``report`` is the untouched in-memory report and ``error``
    explains what went wrong.
    """

    report: Report
    error: Optional[PersistenceError] = None
    stored_file: Optional[StoredFile] = None

    @property
    def saved(self) -> bool:
        return self.error is None


class GCodeAnalyzer:
    """End-to-end analysis of G-code files.

    Args:
        client: Analysis job client (default: HTTP client configured from the environment)
        segmenter: Layer segmenter (default: chosen per file from the detected slicer)
        assembler: Report assembler (default: ReportAssembler())
    """

    def __init__(
        self,
        client: Optional[AnalysisJobClient] = None,
        segmenter: Optional[LayerSegmenter] = None,
        assembler: Optional[ReportAssembler] = None,
    ):
        self._client = client
        self.segmenter = segmenter
        self.assembler = assembler or ReportAssembler()

    def __repr__(self) -> str:
        return f"GCodeAnalyzer(segmenter={self.segmenter!r})"

    @property
    def client(self) -> AnalysisJobClient:
        if self._client is None:
            self._client = AnalysisJobClient(HttpAnalysisTransport(ApiConfig.from_env()))
        return self._client

    @staticmethod
    def validate_file_name(file_name: str) -> str:
        """Check that ``file_name`` has a G-code extension.

        Returns:
            The lower-case extension

        Raises:
            ValidationError: If the extension is not accepted
        """
        extension = os.path.splitext(file_name)[1].lower()
        if extension not in ACCEPTED_EXTENSIONS:
            raise ValidationError(
                f"Unsupported file type {extension or '(none)'!r} for {file_name!r}; "
                f"expected one of {', '.join(ACCEPTED_EXTENSIONS)}"
            )
        return extension

    def _segmenter_for(self, metadata: GCodeMetadata) -> LayerSegmenter:
        if self.segmenter is not None:
            return self.segmenter
        profile = profile_for_slicer(metadata.slicer)
        logger.debug("Using %s segmentation profile", profile.value)
        return LayerSegmenter(create_segmenter_config(profile), create_classifier(profile))

    def prepare(self, text: str) -> PreparedFile:
        """Run every local analysis step on G-code text.

        Args:
            text: G-code file contents

        Returns:
            PreparedFile with parse, metadata, layers and telemetry
        """
        parse_result = MotionParser().parse(text)
        metadata = scan_metadata(text)
        segmentation = self._segmenter_for(metadata).segment(parse_result)
        prepared = PreparedFile(
            parse_result=parse_result,
            metadata=metadata,
            segmentation=segmentation,
            temperatures=extract_temperatures(parse_result, segmentation),
            speeds=summarize_speeds(parse_result),
            retraction_count=count_retractions(parse_result),
            filament_mm=total_extrusion(parse_result),
        )
        logger.info(
            "Prepared %d lines: %d layers, %d warnings, %d ambiguous moves",
            parse_result.line_count,
            len(segmentation.layers),
            len(parse_result.warnings),
            len(segmentation.ambiguities),
        )
        return prepared

    def _assemble(
        self,
        file_name: str,
        prepared: PreparedFile,
        result: Optional[Dict[str, Any]] = None,
        analysis_id: Optional[str] = None,
    ) -> Report:
        return self.assembler.assemble(
            file_name,
            result=result,
            metadata=prepared.metadata,
            segmentation=prepared.segmentation,
            temperatures=prepared.temperatures,
            speeds=prepared.speeds,
            retraction_count=prepared.retraction_count,
            filament_mm=prepared.filament_mm,
            analysis_id=analysis_id,
        )

    def report_local(self, file_name: str, content: str) -> Report:
        """Report built from local analysis only, without the remote service."""
        self.validate_file_name(file_name)
        return self._assemble(file_name, self.prepare(content))

    async def analyze(
        self, file_name: str, content: str, on_update: Optional[Subscriber] = None
    ) -> Report:
        """Validate, prepare, analyze remotely and assemble a report.

        Issues and patches are normalized only once the job has finished.

        Args:
            file_name: Name of the file (its extension is validated first)
            content: G-code file contents
            on_update: Optional callback receiving job snapshots

        Returns:
            Assembled Report

        Raises:
            ValidationError: Unsupported file extension
            AnalysisFailedError: The service reported an error
            NetworkError: The transport failed
            AnalysisTimeoutError: Polling exceeded the timeout
            AnalysisCancelledError: The job was cancelled
        """
        self.validate_file_name(file_name)
        prepared = self.prepare(content)
        outcome = await self.client.analyze(content, on_update)
        return self._assemble(file_name, prepared, outcome.result, outcome.job.id)

    async def save(
        self,
        report: Report,
        user_id: str,
        store: ReportStore,
        file_store: Optional[FileStore] = None,
        content: Optional[str] = None,
        raw_result: Optional[Dict[str, Any]] = None,
    ) -> SaveOutcome:
        """Upload the raw file (when given) and save the report.

        Failures never raise: they are returned in the SaveOutcome together
        with the unchanged report.
        """
        stored: Optional[StoredFile] = None
        try:
            if file_store is not None and content is not None:
                stored = await file_store.upload_raw_file(user_id, report.file_name, content)
            report_id = await store.save_report(
                user_id,
                report.file_name,
                report,
                file_ref=stored.file_id if stored else None,
                storage_path=stored.storage_path if stored else None,
                raw_result=raw_result,
            )
        except Exception as exc:
            error = PersistenceError(f"saving report for {report.file_name!r} failed: {exc}")
            error.__cause__ = exc
            logger.warning("%s", error)
            return SaveOutcome(report=report, error=error, stored_file=stored)

        logger.info("Saved report %s for %s", report_id, report.file_name)
        return SaveOutcome(report=report.mark_saved(report_id), stored_file=stored)
