"""
Error taxonomy for Slab Visualizer.

Local synchronous errors (InvalidState, DimensionMismatch, EncodingError)
abort the current operation and are never retried. Job errors
(SubmissionError, JobFailed, JobTimedOut) end the current pipeline stage
and are wrapped by the orchestrator in a PipelineStageError that names
the stage. TransientPollError is absorbed by the job client up to its
attempt budget.

Classes:
    SlabVisualizerError: Base class for every error raised by SV_Libs
    InvalidState: Operation invoked out of sequence
    DimensionMismatch: Mask and image sizes differ
    EncodingError: Local image encode failure
    SubmissionError: External job creation rejected
    TransientPollError: A single status poll failed
    JobFailed: Service reported an explicit failure
    JobTimedOut: Poll budget exhausted without a terminal state
    JobCancelled: Caller aborted an in-flight wait
    UploadError: Storage collaborator could not store an image
    FetchError: An image could not be fetched or decoded
    PipelineStageError: A pipeline stage failed, wraps the cause
"""

from typing import Any, Optional


class SlabVisualizerError(Exception):
    """Base class for every error raised by SV_Libs."""


class InvalidState(SlabVisualizerError):
    """Operation invoked out of sequence (e.g. a stroke before an image is loaded)."""


class DimensionMismatch(SlabVisualizerError, ValueError):
    """Mask and image dimensions differ."""

    def __init__(self, expected: Any, actual: Any, what: str = "mask"):
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        super().__init__(
            f"{what} size {self.actual[0]}x{self.actual[1]} does not match "
            f"image size {self.expected[0]}x{self.expected[1]}"
        )


class EncodingError(SlabVisualizerError):
    """Encoding an image to a byte stream failed."""


class SubmissionError(SlabVisualizerError):
    """The external service rejected a job creation request."""

    def __init__(self, message: str, status_code: Optional[int] = None, kind: Optional[str] = None):
        self.status_code = status_code
        self.kind = kind
        super().__init__(message)


class TransientPollError(SlabVisualizerError):
    """A single status poll failed. Counted against the attempt budget."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class JobFailed(SlabVisualizerError):
    """The external service reported an explicit failure for a job."""

    def __init__(self, job: Any):
        self.job = job
        super().__init__(f"Job {job.job_id} ({job.kind.value}) failed: {job.error}")


class JobTimedOut(SlabVisualizerError):
    """The attempt budget elapsed before the job reached a terminal state."""

    def __init__(self, job: Any):
        self.job = job
        super().__init__(
            f"Job {job.job_id} ({job.kind.value}) timed out after {job.attempts} polls"
        )


class JobCancelled(SlabVisualizerError):
    """The caller aborted an in-flight wait. The remote job is not rolled back."""

    def __init__(self, job: Any = None):
        self.job = job
        if job is None:
            super().__init__("Generation was cancelled")
        else:
            super().__init__(f"Wait for job {job.job_id} ({job.kind.value}) was cancelled")


class UploadError(SlabVisualizerError):
    """The storage collaborator could not store an image."""


class FetchError(SlabVisualizerError):
    """An image could not be fetched or decoded."""


class PipelineStageError(SlabVisualizerError):
    """
    A generation pipeline stage failed.

    Attributes:
        stage: The PipelineStage that failed
        cause: The underlying SlabVisualizerError
        kind: Class name of the cause (e.g. "JobFailed", "JobTimedOut")
    """

    def __init__(self, stage: Any, cause: BaseException):
        self.stage = stage
        self.cause = cause
        self.kind = type(cause).__name__
        stage_name = getattr(stage, "value", stage)
        super().__init__(f"Stage '{stage_name}' failed ({self.kind}): {cause}")
