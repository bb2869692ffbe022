"""HTTP transport for the remote analysis service.

Routes:
- ``POST {base_url}/api/v1/gcode/analyze-with-segments`` submits G-code and
  answers with render segments and, optionally, a background analysis id
- ``GET {base_url}/api/v1/gcode/analysis/{analysis_id}`` reports status

Requests use ``urllib.request`` in a worker thread so the event loop never
blocks.
"""

import asyncio
import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from gcode_report.client import AnalysisTransport, PollResponse, Submission
from gcode_report.errors import NetworkError
from gcode_report.models.job import clamp_progress

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/api/v1/gcode/analyze-with-segments"
STATUS_PATH = "/api/v1/gcode/analysis/{analysis_id}"


@dataclass(frozen=True)
class ApiConfig:
    """Connection settings for the analysis service.

    Attributes:
        base_url: Service root URL
        language: Language of generated text ("en" or "ko")
        binary_format: Request base64 float32 segment buffers
        http_timeout: Socket timeout per request in seconds
    """

    base_url: str = "http://localhost:7000"
    language: str = "en"
    binary_format: bool = True
    http_timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate settings."""
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        if self.http_timeout <= 0:
            raise ValueError(f"http_timeout must be positive, got {self.http_timeout}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ApiConfig":
        """Build a config from environment variables.

        Reads ``GCODE_ANALYSIS_API_URL``, ``GCODE_ANALYSIS_LANGUAGE`` and
        ``GCODE_ANALYSIS_HTTP_TIMEOUT``; unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        timeout = env.get("GCODE_ANALYSIS_HTTP_TIMEOUT")
        return cls(
            base_url=env.get("GCODE_ANALYSIS_API_URL", defaults.base_url).rstrip("/"),
            language=env.get("GCODE_ANALYSIS_LANGUAGE", defaults.language),
            http_timeout=float(timeout) if timeout else defaults.http_timeout,
        )


def submission_from_payload(payload: Dict[str, Any]) -> Submission:
    """Build a Submission from the submit route's JSON body."""
    started = payload.get("llm_analysis_started", payload.get("background_started", False))
    return Submission(
        status=str(payload.get("status") or "segments_ready"),
        segments=payload.get("segments") or {},
        analysis_id=payload.get("analysis_id") or None,
        background_started=bool(started),
        result=payload.get("result"),
    )


def poll_response_from_payload(payload: Dict[str, Any]) -> PollResponse:
    """Build a PollResponse from the status route's JSON body.

    The service reports progress as a fraction; it is scaled to 0..100.
    """
    progress = payload.get("progress")
    try:
        scaled = clamp_progress(float(progress) * 100) if progress is not None else 0.0
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric progress %r", progress)
        scaled = 0.0
    return PollResponse(
        status=str(payload.get("status") or "running"),
        progress=scaled,
        message=str(payload.get("progress_message") or payload.get("message") or ""),
        result=payload.get("result"),
        error=payload.get("error"),
    )


class HttpAnalysisTransport(AnalysisTransport):
    """AnalysisTransport speaking JSON over HTTP.

    Args:
        config: Connection settings (default: ApiConfig.from_env())
    """

    def __init__(self, config: Optional[ApiConfig] = None):
        self.config = config or ApiConfig.from_env()

    def __repr__(self) -> str:
        return f"HttpAnalysisTransport(base_url={self.config.base_url!r})"

    async def submit(self, content: str) -> Submission:
        body = {
            "gcode_content": content,
            "binary_format": self.config.binary_format,
            "language": self.config.language,
        }
        payload = await asyncio.to_thread(self._request, "POST", SUBMIT_PATH, body)
        return submission_from_payload(payload)

    async def poll(self, analysis_id: str) -> PollResponse:
        path = STATUS_PATH.format(analysis_id=urllib.parse.quote(analysis_id, safe=""))
        payload = await asyncio.to_thread(self._request, "GET", path)
        return poll_response_from_payload(payload)

    def _request(
        self, method: str, path: str, body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        url = f"{self.config.base_url}{path}"
        data = json.dumps(body).encode("utf-8") if body is not None else None
        request = urllib.request.Request(
            url,
            data=data,
            method=method,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(request, timeout=self.config.http_timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as exc:
            details = exc.read().decode("utf-8", errors="replace")
            raise NetworkError(
                f"{method} {path} failed with HTTP {exc.code}",
                status_code=exc.code,
                details=details,
            ) from exc
        except (urllib.error.URLError, OSError) as exc:
            reason = getattr(exc, "reason", exc)
            raise NetworkError(f"{method} {path} failed: {reason}", details=str(reason)) from exc

        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise NetworkError(
                f"{method} {path} returned invalid JSON",
                details=raw[:200].decode("utf-8", errors="replace"),
            ) from exc
        if not isinstance(payload, dict):
            raise NetworkError(f"{method} {path} returned {type(payload).__name__}, not an object")
        return payload
