"""Tests for the end-to-end pipeline."""

import asyncio

import pytest
from conftest import FakeTransport

from gcode_report.client import AnalysisJobClient, PollConfig, PollResponse, Submission
from gcode_report.errors import AnalysisFailedError, PersistenceError, ValidationError
from gcode_report.models.layer import SegmentKind
from gcode_report.pipeline import GCodeAnalyzer
from gcode_report.segmenter import FeedRateClassifier, LayerSegmenter
from gcode_report.store import StoredFile

RESULT = {
    "final_summary": {"overall_quality_score": 91, "summary": "Clean file."},
    "issues_found": [{"has_issue": True, "type": "temp_change", "line": 23, "severity": "low"}],
}


class MemoryReportStore:
    """Report store keeping saved reports in a dict."""

    def __init__(self, fail=False):
        self.fail = fail
        self.saved = {}

    async def save_report(
        self, user_id, file_name, report, file_ref=None, storage_path=None, raw_result=None
    ):
        if self.fail:
            raise RuntimeError("database unavailable")
        report_id = f"r-{len(self.saved) + 1}"
        self.saved[report_id] = (user_id, file_name, report, file_ref, storage_path, raw_result)
        return report_id


class MemoryFileStore:
    """File store recording uploads."""

    def __init__(self):
        self.uploads = []

    async def upload_raw_file(self, user_id, file_name, content):
        self.uploads.append((user_id, file_name, content))
        return StoredFile(file_id="f-1", storage_path=f"{user_id}/{file_name}")


def _analyzer(transport, clock, fake_sleep):
    client = AnalysisJobClient(transport, PollConfig(), clock=clock, sleep=fake_sleep)
    return GCodeAnalyzer(client=client)


class TestValidation:
    """Test file name validation."""

    @pytest.mark.parametrize("name", ["part.gcode", "PART.GCODE", "a.gc", "b.g", "c.nc", "d.ngc"])
    def test_accepted(self, name):
        """Test accepted extensions."""
        assert GCodeAnalyzer.validate_file_name(name).startswith(".")

    @pytest.mark.parametrize("name", ["part.stl", "part", "gcode.txt"])
    def test_rejected(self, name):
        """Test that other extensions are rejected before parsing."""
        with pytest.raises(ValidationError, match="Unsupported file type"):
            GCodeAnalyzer.validate_file_name(name)

    def test_validation_error_is_value_error(self):
        """Test that ValidationError is also a ValueError."""
        with pytest.raises(ValueError):
            GCodeAnalyzer().report_local("part.3mf", "G1 X1\n")


class TestPrepare:
    """Test local analysis."""

    def test_cura_file(self, cura_gcode):
        """Test parse, metadata, layers and telemetry for the sample file."""
        prepared = GCodeAnalyzer().prepare(cura_gcode)

        assert prepared.metadata.slicer == "Cura"
        assert len(prepared.segmentation.layers) == 3
        assert prepared.segmentation.ambiguities == ()
        assert [s.nozzle_temp for s in prepared.temperatures] == [200.0, 210.0, 210.0]
        assert prepared.retraction_count == 1
        assert prepared.filament_mm == pytest.approx(7.5)

    def test_generic_file_uses_feed_rate(self):
        """Test that files without a known slicer classify by feed rate."""
        prepared = GCodeAnalyzer().prepare("G1 X10 Y0 Z0.2 E1 F1200\nG1 X20 Y0 E2 F4000\n")
        kinds = [seg.kind for seg in prepared.segmentation.layers[0].segments]

        assert kinds == [SegmentKind.PERIMETER, SegmentKind.INFILL]

    def test_explicit_segmenter(self):
        """Test that a configured segmenter is always used."""
        analyzer = GCodeAnalyzer(segmenter=LayerSegmenter(classifier=FeedRateClassifier(100.0)))
        prepared = analyzer.prepare(";LAYER:0\nG1 X10 Y0 Z0.2 E1 F1200\n")

        assert prepared.segmentation.layers[0].segments[0].kind is SegmentKind.INFILL


class TestReportLocal:
    """Test reports without the remote service."""

    def test_local_report(self, cura_gcode):
        """Test metrics from metadata and local telemetry."""
        report = GCodeAnalyzer().report_local("part.gcode", cura_gcode)

        assert report.metrics.layer_count == 3
        assert report.metrics.print_time_seconds == 1234.0
        assert report.metrics.filament_used_m == pytest.approx(0.5)
        assert report.metrics.retraction_count == 1
        assert len(report.temperatures) == 3
        assert report.speeds.print_max == 2400.0
        assert report.issues == ()


class TestAnalyze:
    """Test remote analysis through a fake transport."""

    def test_analyze(self, cura_gcode, clock, fake_sleep):
        """Test a full run from submission to report."""
        transport = FakeTransport(
            Submission(status="segments_ready", analysis_id="an-7", background_started=True),
            [PollResponse("analyzing", progress=30.0), PollResponse("completed", result=RESULT)],
        )
        analyzer = _analyzer(transport, clock, fake_sleep)
        updates = []

        report = asyncio.run(
            analyzer.analyze("part.gcode", cura_gcode, on_update=updates.append)
        )

        assert report.analysis_id == "an-7"
        assert report.score == 91
        assert report.grade == "A"
        assert report.summary == "Clean file."
        assert [issue.line_index for issue in report.issues] == [23]
        assert report.metrics.layer_count == 3
        assert updates[-1].progress == 100.0
        assert transport.submit_calls == [cura_gcode]

    def test_invalid_name_never_submits(self, cura_gcode, clock, fake_sleep):
        """Test that validation happens before any request."""
        transport = FakeTransport(Submission(status="completed", result=RESULT))
        analyzer = _analyzer(transport, clock, fake_sleep)

        with pytest.raises(ValidationError):
            asyncio.run(analyzer.analyze("part.stl", cura_gcode))

        assert transport.submit_calls == []

    def test_failed_analysis_propagates(self, cura_gcode, clock, fake_sleep):
        """Test that a failed job raises instead of producing a report."""
        transport = FakeTransport(
            Submission(status="segments_ready", analysis_id="an-8", background_started=True),
            [PollResponse("failed", error="parser crashed")],
        )
        analyzer = _analyzer(transport, clock, fake_sleep)

        with pytest.raises(AnalysisFailedError, match="parser crashed"):
            asyncio.run(analyzer.analyze("part.gcode", cura_gcode))


class TestSave:
    """Test report persistence."""

    @pytest.fixture
    def report(self, cura_gcode):
        """Local report of the sample file."""
        return GCodeAnalyzer().report_local("part.gcode", cura_gcode)

    def test_save_with_upload(self, report, cura_gcode):
        """Test that a saved report carries its id and file reference."""
        store = MemoryReportStore()
        files = MemoryFileStore()

        outcome = asyncio.run(
            GCodeAnalyzer().save(
                report, "user-1", store, file_store=files, content=cura_gcode, raw_result=RESULT
            )
        )

        assert outcome.saved
        assert outcome.report.saved
        assert outcome.report.report_id == "r-1"
        assert outcome.stored_file.file_id == "f-1"
        _, _, _, file_ref, storage_path, raw_result = store.saved["r-1"]
        assert file_ref == "f-1"
        assert storage_path == "user-1/part.gcode"
        assert raw_result == RESULT
        assert files.uploads[0][:2] == ("user-1", "part.gcode")

    def test_save_without_upload(self, report):
        """Test saving when no file store is given."""
        store = MemoryReportStore()

        outcome = asyncio.run(GCodeAnalyzer().save(report, "user-1", store))

        assert outcome.saved
        assert outcome.stored_file is None
        assert store.saved["r-1"][3] is None

    def test_save_failure_keeps_report(self, report):
        """Test that a failed save returns the unsaved report and an error."""
        outcome = asyncio.run(GCodeAnalyzer().save(report, "user-1", MemoryReportStore(fail=True)))

        assert not outcome.saved
        assert outcome.report is report
        assert not outcome.report.saved
        assert isinstance(outcome.error, PersistenceError)
        assert "database unavailable" in str(outcome.error)
