"""
Job data models for Slab Visualizer.

Classes:
    JobKind: Kind of external job (detection, texture application, refinement)
    JobStatus: Lifecycle status of a job
    PollResult: One status report from the external service
    Job: Record of one external asynchronous unit of work
    JobService: Protocol the external service collaborator implements
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Protocol


class JobKind(str, Enum):
    DETECTION = "detection"
    TEXTURE_APPLICATION = "texture-application"
    LIGHTING_REFINEMENT = "lighting-refinement"


class JobStatus(str, Enum):
    SUBMITTED = "submitted"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed-out"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.TIMED_OUT})


@dataclass
class PollResult:
    """One status report from the external service.

    Attributes:
        status: RUNNING, SUCCEEDED or FAILED
        result_url: Result reference when the service reports one
        error: Error message when the service reports a failure
        raw: Service payload, kept for diagnostics
    """
    status: JobStatus
    result_url: Optional[str] = None
    error: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Job:
    """Record of one external asynchronous unit of work.

    Created by JobClient.submit() and mutated only by the polling loop.

    Attributes:
        job_id: Opaque identifier issued by the service
        kind: JobKind of the work
        status: Current JobStatus
        result_url: Result reference once succeeded
        error: Failure or timeout message
        attempts: Number of polls issued so far
        submitted_at: Submission time
        completed_at: Time a terminal state was reached
        raw: Last service payload
    """
    job_id: str
    kind: JobKind
    status: JobStatus = JobStatus.SUBMITTED
    result_url: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0
    submitted_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def succeeded(self) -> bool:
        return self.status is JobStatus.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "job_id": self.job_id,
            "kind": self.kind.value,
            "status": self.status.value,
            "result_url": self.result_url,
            "error": self.error,
            "attempts": self.attempts,
            "submitted_at": self.submitted_at.isoformat(timespec="seconds"),
            "completed_at": (
                self.completed_at.isoformat(timespec="seconds") if self.completed_at else None
            ),
        }


class JobService(Protocol):
    """External asynchronous processing service.

    submit_job raises SubmissionError when the service rejects the job;
    poll_job raises TransientPollError when a single status request fails.
    """

    def submit_job(self, kind: JobKind, parameters: Dict[str, Any]) -> str:
        ...

    def poll_job(self, job_id: str) -> PollResult:
        ...
