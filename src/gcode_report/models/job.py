"""Analysis job model and its status ordering."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from gcode_report.errors import InvalidTransitionError


class JobStatus(Enum):
    """Lifecycle status of a remote analysis job."""

    PENDING = "pending"  # Submitted, not yet polling
    RUNNING = "running"  # Polling
    DONE = "done"
    ERROR = "error"
    TIMED_OUT = "timedOut"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """True once the job can no longer change."""
        return self not in (JobStatus.PENDING, JobStatus.RUNNING)


# Rank used to keep transitions one-directional
_STATUS_RANK = {
    JobStatus.PENDING: 0,
    JobStatus.RUNNING: 1,
    JobStatus.DONE: 2,
    JobStatus.ERROR: 2,
    JobStatus.TIMED_OUT: 2,
    JobStatus.CANCELLED: 2,
}


def clamp_progress(progress: float) -> float:
    """Clamp progress into [0, 100]."""
    return max(0.0, min(100.0, float(progress)))


@dataclass(frozen=True)
class AnalysisJob:
    """Immutable snapshot of an analysis job.

    Attributes:
        id: Remote analysis id (None when the service answered synchronously)
        fingerprint: Content fingerprint of the submitted file
        status: Current status
        progress: Progress from 0 to 100
        message: Last progress or error message
        created_at: Clock reading at creation (seconds)
        updated_at: Clock reading at the last change (seconds)
    """

    id: Optional[str]
    fingerprint: str
    status: JobStatus = JobStatus.PENDING
    progress: float = 0.0
    message: str = ""
    created_at: float = 0.0
    updated_at: float = 0.0

    def __post_init__(self) -> None:
        """Validate progress range."""
        if not 0.0 <= self.progress <= 100.0:
            raise ValueError(f"progress must be between 0 and 100, got {self.progress}")

    def advance(
        self,
        status: JobStatus,
        at: float,
        progress: Optional[float] = None,
        message: Optional[str] = None,
        job_id: Optional[str] = None,
    ) -> "AnalysisJob":
        """Return a new snapshot with the given status.

        Raises:
            InvalidTransitionError: If the job is terminal, or the status would
                move backwards (e.g. running -> pending)
        """
        if self.status.is_terminal:
            raise InvalidTransitionError(
                f"job {self.id or self.fingerprint[:12]} is already {self.status.value}"
            )
        if _STATUS_RANK[status] < _STATUS_RANK[self.status]:
            raise InvalidTransitionError(
                f"cannot move job from {self.status.value} back to {status.value}"
            )
        return replace(
            self,
            id=job_id if job_id is not None else self.id,
            status=status,
            progress=clamp_progress(progress) if progress is not None else self.progress,
            message=message if message is not None else self.message,
            updated_at=at,
        )
