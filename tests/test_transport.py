"""Tests for the HTTP transport."""

import asyncio
import io
import json
import urllib.error
import urllib.request

import pytest

from gcode_report.errors import NetworkError
from gcode_report.transport import (
    ApiConfig,
    HttpAnalysisTransport,
    poll_response_from_payload,
    submission_from_payload,
)


class FakeUrlopen:
    """Stand-in for urllib.request.urlopen returning canned bodies."""

    def __init__(self, body=b"{}", error=None):
        self.body = body
        self.error = error
        self.requests = []

    def __call__(self, request, timeout=None):
        self.requests.append((request, timeout))
        if self.error is not None:
            raise self.error
        return io.BytesIO(self.body)


class TestApiConfig:
    """Test ApiConfig validation and environment loading."""

    def test_defaults(self):
        """Test default connection settings."""
        config = ApiConfig()

        assert config.base_url == "http://localhost:7000"
        assert config.language == "en"
        assert config.binary_format

    def test_invalid_url(self):
        """Test that non-HTTP URLs are rejected."""
        with pytest.raises(ValueError, match="base_url must be an http"):
            ApiConfig(base_url="ftp://example.com")

    def test_invalid_timeout(self):
        """Test that the HTTP timeout must be positive."""
        with pytest.raises(ValueError, match="http_timeout must be positive"):
            ApiConfig(http_timeout=0)

    def test_from_env(self):
        """Test reading settings from environment variables."""
        config = ApiConfig.from_env(
            {
                "GCODE_ANALYSIS_API_URL": "https://api.example.com/",
                "GCODE_ANALYSIS_LANGUAGE": "ko",
                "GCODE_ANALYSIS_HTTP_TIMEOUT": "12.5",
            }
        )

        assert config.base_url == "https://api.example.com"
        assert config.language == "ko"
        assert config.http_timeout == 12.5

    def test_from_empty_env(self):
        """Test that missing variables keep defaults."""
        assert ApiConfig.from_env({}) == ApiConfig()


class TestPayloads:
    """Test conversion of service JSON bodies."""

    def test_submission_with_background(self):
        """Test a submission that started background analysis."""
        submission = submission_from_payload(
            {
                "status": "segments_ready",
                "segments": {"layers": []},
                "analysis_id": "an-9",
                "llm_analysis_started": True,
            }
        )

        assert submission.analysis_id == "an-9"
        assert submission.background_started
        assert submission.segments == {"layers": []}

    def test_submission_defaults(self):
        """Test a bare submission body."""
        submission = submission_from_payload({})

        assert submission.status == "segments_ready"
        assert submission.analysis_id is None
        assert not submission.background_started
        assert submission.segments == {}

    def test_poll_progress_scaled(self):
        """Test that fractional progress is scaled to percent."""
        response = poll_response_from_payload(
            {"status": "running", "progress": 0.45, "progress_message": "checking layers"}
        )

        assert response.progress == pytest.approx(45.0)
        assert response.message == "checking layers"

    def test_poll_progress_clamped(self):
        """Test that out-of-range progress is clamped."""
        assert poll_response_from_payload({"progress": 1.7}).progress == 100.0
        assert poll_response_from_payload({"progress": -0.2}).progress == 0.0

    def test_poll_bad_progress(self):
        """Test that non-numeric progress is treated as zero."""
        assert poll_response_from_payload({"progress": "soon"}).progress == 0.0

    def test_poll_result_and_error(self):
        """Test that result and error pass through."""
        response = poll_response_from_payload(
            {"status": "failed", "error": "bad file", "result": None}
        )

        assert response.status == "failed"
        assert response.error == "bad file"
        assert response.result is None


class TestHttpAnalysisTransport:
    """Test HTTP requests through a patched urlopen."""

    @pytest.fixture
    def transport(self):
        """Transport pointed at a test host."""
        return HttpAnalysisTransport(ApiConfig(base_url="http://analysis.test", http_timeout=5))

    def test_submit_request(self, transport, monkeypatch):
        """Test the submit route, method and body."""
        body = {"analysis_id": "an-1", "llm_analysis_started": True}
        urlopen = FakeUrlopen(json.dumps(body).encode())
        monkeypatch.setattr(urllib.request, "urlopen", urlopen)

        submission = asyncio.run(transport.submit("G1 X1\n"))

        request, timeout = urlopen.requests[0]
        assert request.full_url == "http://analysis.test/api/v1/gcode/analyze-with-segments"
        assert request.get_method() == "POST"
        assert json.loads(request.data) == {
            "gcode_content": "G1 X1\n",
            "binary_format": True,
            "language": "en",
        }
        assert timeout == 5
        assert submission.analysis_id == "an-1"

    def test_poll_request(self, transport, monkeypatch):
        """Test the status route."""
        urlopen = FakeUrlopen(b'{"status": "running", "progress": 0.5}')
        monkeypatch.setattr(urllib.request, "urlopen", urlopen)

        response = asyncio.run(transport.poll("an 1"))

        request, _ = urlopen.requests[0]
        assert request.full_url == "http://analysis.test/api/v1/gcode/analysis/an%201"
        assert request.get_method() == "GET"
        assert response.progress == 50.0

    def test_http_error(self, transport, monkeypatch):
        """Test that HTTP errors carry status code and body."""
        error = urllib.error.HTTPError(
            "http://analysis.test", 502, "Bad Gateway", hdrs=None, fp=io.BytesIO(b"upstream down")
        )
        monkeypatch.setattr(urllib.request, "urlopen", FakeUrlopen(error=error))

        with pytest.raises(NetworkError, match="HTTP 502") as info:
            asyncio.run(transport.poll("an-1"))

        assert info.value.status_code == 502
        assert info.value.details == "upstream down"

    def test_connection_error(self, transport, monkeypatch):
        """Test that connection failures become NetworkError."""
        error = urllib.error.URLError("connection refused")
        monkeypatch.setattr(urllib.request, "urlopen", FakeUrlopen(error=error))

        with pytest.raises(NetworkError, match="connection refused") as info:
            asyncio.run(transport.submit("G1 X1\n"))

        assert info.value.status_code is None

    def test_invalid_json(self, transport, monkeypatch):
        """Test that a non-JSON body becomes NetworkError."""
        monkeypatch.setattr(urllib.request, "urlopen", FakeUrlopen(b"<html>"))

        with pytest.raises(NetworkError, match="invalid JSON"):
            asyncio.run(transport.poll("an-1"))

    def test_non_object_json(self, transport, monkeypatch):
        """Test that a JSON array body is rejected."""
        monkeypatch.setattr(urllib.request, "urlopen", FakeUrlopen(b"[1, 2]"))

        with pytest.raises(NetworkError, match="not an object"):
            asyncio.run(transport.poll("an-1"))
