"""Asynchronous analysis job coordination.

A job moves through ``pending -> running -> done | error | timedOut |
cancelled``. Submission returns immediately with render segments; when the
service starts background analysis, the job is polled until a terminal
status or the polling ceiling is reached.

Example:
    >>> from gcode_report.transport import ApiConfig, HttpAnalysisTransport
    >>> client = AnalysisJobClient(HttpAnalysisTransport(ApiConfig.from_env()))
    >>> outcome = asyncio.run(client.analyze(gcode_text))
    >>> outcome.job.status
    <JobStatus.DONE: 'done'>
"""

import asyncio
import hashlib
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from gcode_report.errors import (
    AnalysisCancelledError,
    AnalysisFailedError,
    AnalysisTimeoutError,
    GCodeReportError,
    NetworkError,
)
from gcode_report.models.job import AnalysisJob, JobStatus

logger = logging.getLogger(__name__)

DONE_STATUSES = {"done", "completed", "summary_completed", "finished"}
ERROR_STATUSES = {"error", "failed"}

Subscriber = Callable[[AnalysisJob], None]


def normalize_status(status: Optional[str]) -> str:
    """Map backend status names onto pending/running/done/error."""
    name = (status or "").strip().lower()
    if name in DONE_STATUSES:
        return "done"
    if name in ERROR_STATUSES:
        return "error"
    if name in ("pending", "queued"):
        return "pending"
    return "running"


def fingerprint(content: str) -> str:
    """SHA-256 hex digest identifying a file's content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Submission:
    """Immediate answer to a submission.

    Attributes:
        status: Service status, e.g. "segments_ready"
        segments: Render segment payload
        analysis_id: Id of the background analysis, if one was started
        background_started: Whether background analysis is running
        result: Final result when the service answered synchronously
    """

    status: str
    segments: Dict[str, Any] = field(default_factory=dict)
    analysis_id: Optional[str] = None
    background_started: bool = False
    result: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class PollResponse:
    """One status poll answer (progress in 0..100)."""

    status: str
    progress: float = 0.0
    message: str = ""
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class AnalysisTransport(ABC):
    """Connection to the remote analysis service."""

    @abstractmethod
    async def submit(self, content: str) -> Submission:
        """Upload G-code for analysis."""

    @abstractmethod
    async def poll(self, analysis_id: str) -> PollResponse:
        """Fetch the current status of a background analysis."""


@dataclass(frozen=True)
class PollConfig:
    """Polling cadence and ceiling.

    Attributes:
        interval: Seconds between polls (default: 2)
        timeout: Seconds of polling before the job times out (default: 600)
    """

    interval: float = 2.0
    timeout: float = 600.0

    def __post_init__(self) -> None:
        """Validate cadence values."""
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")


@dataclass(frozen=True)
class AnalysisOutcome:
    """Successful end of a job."""

    job: AnalysisJob
    segments: Dict[str, Any]
    result: Optional[Dict[str, Any]]


class JobController:
    """Owner of a single analysis job.

    The controller holds the only mutable reference to the job and publishes
    immutable snapshots to subscribers. Each run of the poll loop is tagged
    with an epoch; ``cancel`` bumps the epoch so that any response still in
    flight is discarded.
    """

    def __init__(
        self,
        job_fingerprint: str,
        transport: AnalysisTransport,
        config: PollConfig,
        clock: Callable[[], float],
        sleep: Callable[[float], Awaitable[Any]],
    ):
        now = clock()
        self._job = AnalysisJob(
            id=None, fingerprint=job_fingerprint, created_at=now, updated_at=now
        )
        self._transport = transport
        self._config = config
        self._clock = clock
        self._sleep = sleep
        self._epoch = 0
        self._subscribers: List[Subscriber] = []
        self._task: Optional["asyncio.Task[None]"] = None
        self._finished = asyncio.Event()
        self._segments: Dict[str, Any] = {}
        self._result: Optional[Dict[str, Any]] = None
        self._error: Optional[GCodeReportError] = None

    def __repr__(self) -> str:
        return (
            f"JobController(fingerprint={self._job.fingerprint[:12]!r}, "
            f"status={self._job.status.value!r}, epoch={self._epoch})"
        )

    @property
    def job(self) -> AnalysisJob:
        """Current job snapshot."""
        return self._job

    @property
    def epoch(self) -> int:
        return self._epoch

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for every new snapshot.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def start(self, content: str) -> None:
        """Begin submission and polling on the running event loop."""
        if self._task is not None:
            raise RuntimeError("job already started")
        self._task = asyncio.get_running_loop().create_task(self._run(content, self._epoch))

    def cancel(self) -> bool:
        """Stop polling and mark the job cancelled.

        Returns:
            False if the job had already reached a terminal status
        """
        if self._job.status.is_terminal:
            return False
        epoch = self._epoch
        self._epoch += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._finish(
            JobStatus.CANCELLED,
            epoch=self._epoch,
            message="cancelled",
            error=AnalysisCancelledError(f"analysis cancelled (epoch {epoch})"),
        )
        return True

    async def result(self) -> AnalysisOutcome:
        """Wait for the job to finish.

        Raises:
            AnalysisFailedError: The service reported an error
            NetworkError: The transport failed
            AnalysisTimeoutError: Polling exceeded the timeout
            AnalysisCancelledError: The job was cancelled
        """
        await self._finished.wait()
        if self._error is not None:
            raise self._error
        return AnalysisOutcome(job=self._job, segments=self._segments, result=self._result)

    def _publish(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self._job)
            except Exception:
                logger.exception("Job subscriber %r failed", callback)

    def _transition(self, status: JobStatus, epoch: int, **changes: Any) -> bool:
        """Advance the job if ``epoch`` is current and the job is still open."""
        if epoch != self._epoch or self._job.status.is_terminal:
            logger.debug("Discarding %s update for stale epoch %d", status.value, epoch)
            return False
        previous = self._job.status
        self._job = self._job.advance(status, at=self._clock(), **changes)
        if previous is not status:
            logger.info(
                "Job %s: %s -> %s",
                self._job.id or self._job.fingerprint[:12],
                previous.value,
                status.value,
            )
        self._publish()
        return True

    def _finish(
        self,
        status: JobStatus,
        epoch: int,
        error: Optional[GCodeReportError] = None,
        **changes: Any,
    ) -> None:
        if self._transition(status, epoch, **changes):
            self._error = error
            self._finished.set()

    async def _run(self, content: str, epoch: int) -> None:
        try:
            submission = await self._transport.submit(content)
        except NetworkError as exc:
            self._finish(JobStatus.ERROR, epoch, error=exc, message=str(exc))
            return
        except Exception as exc:
            error = NetworkError(f"submission failed: {exc}")
            error.__cause__ = exc
            self._finish(JobStatus.ERROR, epoch, error=error, message=str(error))
            return

        if epoch != self._epoch:
            return
        self._segments = submission.segments

        if not submission.analysis_id or not submission.background_started:
            self._result = submission.result
            self._finish(
                JobStatus.DONE,
                epoch,
                progress=100.0,
                message=submission.status,
                job_id=submission.analysis_id,
            )
            return

        self._transition(
            JobStatus.RUNNING, epoch, job_id=submission.analysis_id, message=submission.status
        )
        await self._poll_loop(submission.analysis_id, epoch)

    def _time_out(self, epoch: int) -> None:
        timeout = self._config.timeout
        self._finish(
            JobStatus.TIMED_OUT,
            epoch,
            error=AnalysisTimeoutError(f"analysis did not finish within {timeout:g}s"),
            message="timed out",
        )

    async def _poll_loop(self, analysis_id: str, epoch: int) -> None:
        started = self._clock()
        retried_missing_result = False

        while True:
            remaining = self._config.timeout - (self._clock() - started)
            if remaining <= 0:
                self._time_out(epoch)
                return

            try:
                response = await asyncio.wait_for(
                    self._transport.poll(analysis_id), timeout=remaining
                )
            except asyncio.TimeoutError:
                self._time_out(epoch)
                return
            except NetworkError as exc:
                self._finish(JobStatus.ERROR, epoch, error=exc, message=str(exc))
                return
            except Exception as exc:
                error = NetworkError(f"status request failed: {exc}")
                error.__cause__ = exc
                self._finish(JobStatus.ERROR, epoch, error=error, message=str(error))
                return

            if epoch != self._epoch:
                return
            if self._clock() - started >= self._config.timeout:
                self._time_out(epoch)
                return

            status = normalize_status(response.status)
            if status == "done":
                if response.result is None and not retried_missing_result:
                    retried_missing_result = True
                    logger.debug("Job %s done without result, polling once more", analysis_id)
                    continue
                if response.result is None:
                    self._finish(
                        JobStatus.ERROR,
                        epoch,
                        error=AnalysisFailedError("analysis finished without a result"),
                        message="missing result",
                    )
                    return
                self._result = response.result
                self._finish(JobStatus.DONE, epoch, progress=100.0, message=response.message)
                return

            if status == "error":
                reason = response.error or response.message or "analysis failed"
                self._finish(
                    JobStatus.ERROR,
                    epoch,
                    error=AnalysisFailedError(reason),
                    message=reason,
                )
                return

            self._transition(
                JobStatus.RUNNING, epoch, progress=response.progress, message=response.message
            )
            remaining = self._config.timeout - (self._clock() - started)
            await self._sleep(min(self._config.interval, max(remaining, 0.0)))


class AnalysisJobClient:
    """Submit files for analysis and track the resulting jobs.

    At most one job runs per content fingerprint: submitting the same content
    again while its job is still open returns the existing controller.

    Args:
        transport: Connection to the analysis service
        config: Polling cadence (default: PollConfig())
        clock: Monotonic clock in seconds (default: time.monotonic)
        sleep: Coroutine used between polls (default: asyncio.sleep)
    """

    def __init__(
        self,
        transport: AnalysisTransport,
        config: Optional[PollConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.transport = transport
        self.config = config or PollConfig()
        self._clock = clock
        self._sleep = sleep
        self._active: Dict[str, JobController] = {}

    def submit(self, content: str, on_update: Optional[Subscriber] = None) -> JobController:
        """Start (or join) the job for ``content``.

        Must be called from a running event loop.

        Args:
            content: G-code text
            on_update: Optional callback receiving every job snapshot

        Returns:
            Controller of the job for this content
        """
        key = fingerprint(content)
        controller = self._active.get(key)
        if controller is not None and not controller.job.status.is_terminal:
            logger.info("Joining in-flight job for %s", key[:12])
            if on_update is not None:
                controller.subscribe(on_update)
            return controller

        controller = JobController(key, self.transport, self.config, self._clock, self._sleep)
        if on_update is not None:
            controller.subscribe(on_update)
        controller.subscribe(lambda job: self._release(key, controller, job))
        self._active[key] = controller
        controller.start(content)
        return controller

    async def analyze(
        self, content: str, on_update: Optional[Subscriber] = None
    ) -> AnalysisOutcome:
        """Submit ``content`` and wait for the terminal outcome."""
        return await self.submit(content, on_update).result()

    def active_jobs(self) -> List[AnalysisJob]:
        """Snapshots of the jobs that are still open."""
        return [controller.job for controller in self._active.values()]

    def cancel_all(self) -> int:
        """Cancel every open job; returns how many were cancelled."""
        return sum(1 for controller in list(self._active.values()) if controller.cancel())

    def _release(self, key: str, controller: JobController, job: AnalysisJob) -> None:
        if job.status.is_terminal and self._active.get(key) is controller:
            del self._active[key]
