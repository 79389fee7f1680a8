"""
Job client for external asynchronous processing services.

JobClient submits a unit of work and waits for it with bounded polling.

State machine:
    submitted -> running -> succeeded | failed
    running -> timed-out   (max_attempts polls without a terminal state)

A poll that fails in transport counts against the attempt budget but
never fails the job by itself: a job whose polls keep failing ends
timed-out, while failed is reserved for an explicit rejection reported by
the service. Submission is never retried.

Example:
    >>> client = JobClient(service, poll_interval=1.0)
    >>> job = client.submit(JobKind.DETECTION, {"image": url})
    >>> job = client.await_result(job, max_attempts=60)
    >>> raise_for_status(job).result_url
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional
import logging
import threading
import time

from SV_Libs.constants import DEFAULT_POLL_INTERVAL, DETECTION_MAX_ATTEMPTS, POLL_LOG_EVERY
from SV_Libs.errors import (
    JobCancelled,
    JobFailed,
    JobTimedOut,
    SubmissionError,
    TransientPollError,
)
from SV_Libs.JobsLib.job_models import Job, JobKind, JobService, JobStatus

logger = logging.getLogger(__name__)

NO_RESULT_ERROR = "Job succeeded without producing a result"


def raise_for_status(job: Job) -> Job:
    """
    Return a succeeded job, raise for any other terminal state.

    Raises:
        JobFailed: If the service reported a failure
        JobTimedOut: If the poll budget ran out
        ValueError: If the job is not terminal yet
    """
    if job.status is JobStatus.SUCCEEDED:
        return job
    if job.status is JobStatus.FAILED:
        raise JobFailed(job)
    if job.status is JobStatus.TIMED_OUT:
        raise JobTimedOut(job)
    raise ValueError(f"Job {job.job_id} is not terminal (status: {job.status.value})")


class JobClient:
    """
    Submits jobs to a JobService and polls them to a terminal state.

    The client keeps no state between calls beyond the Job records it
    hands back, so one instance can serve concurrent pipelines.
    """

    def __init__(
        self,
        service: JobService,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DETECTION_MAX_ATTEMPTS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            service: External service collaborator
            poll_interval: Default seconds between polls
            max_attempts: Default poll budget
            sleep: Wait function used when no cancel event is given
        """
        if poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {poll_interval}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")

        self.service = service
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    def submit(self, kind: Any, payload: Dict[str, Any]) -> Job:
        """
        Create a job on the external service.

        Args:
            kind: JobKind (or its string value)
            payload: Service-specific input parameters

        Returns:
            Job in the submitted state

        Raises:
            SubmissionError: If the service rejects the request
        """
        kind = JobKind(kind)
        logger.info(f"Submitting {kind.value} job")

        try:
            job_id = self.service.submit_job(kind, payload)
        except SubmissionError as e:
            if e.kind is None:
                e.kind = kind.value
            logger.error(f"{kind.value} submission rejected: {e}")
            raise

        if not job_id:
            raise SubmissionError(f"{kind.value} submission returned no job id", kind=kind.value)

        job = Job(job_id=str(job_id), kind=kind)
        logger.info(f"{kind.value} job started: {job.job_id}")
        return job

    def await_result(
        self,
        job: Job,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Job:
        """
        Poll a job until it reaches a terminal state or the budget runs out.

        Each attempt waits `poll_interval` seconds and then issues one
        status request.

        Args:
            job: Job returned by submit()
            poll_interval: Seconds between polls (default: client setting)
            max_attempts: Poll budget (default: client setting)
            cancel_event: Set it to abort the wait; no further polls are issued

        Returns:
            The same Job, now succeeded, failed or timed-out

        Raises:
            JobCancelled: If cancel_event was set while waiting
        """
        if job.is_terminal:
            return job

        interval = self.poll_interval if poll_interval is None else poll_interval
        budget = self.max_attempts if max_attempts is None else max_attempts
        if interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {interval}")
        if budget < 1:
            raise ValueError(f"max_attempts must be positive, got {budget}")

        job.status = JobStatus.RUNNING
        last_status = None

        while job.attempts < budget:
            self._wait(job, interval, cancel_event)
            job.attempts += 1

            try:
                result = self.service.poll_job(job.job_id)
            except TransientPollError as e:
                logger.warning(
                    f"Poll {job.attempts}/{budget} for {job.kind.value} job {job.job_id} failed: {e}"
                )
                continue

            job.raw = dict(result.raw)

            if result.status != last_status:
                logger.info(f"{job.kind.value} job {job.job_id} status: {result.status.value}")
                last_status = result.status
            elif job.attempts % POLL_LOG_EVERY == 0:
                logger.info(f"Attempt {job.attempts}: {result.status.value}")

            if result.status is JobStatus.SUCCEEDED:
                if result.result_url:
                    job.result_url = result.result_url
                    return self._finish(job, JobStatus.SUCCEEDED)
                return self._finish(job, JobStatus.FAILED, NO_RESULT_ERROR)

            if result.status is JobStatus.FAILED:
                return self._finish(job, JobStatus.FAILED, result.error or "Unknown error")

        return self._finish(
            job, JobStatus.TIMED_OUT, f"No terminal state after {job.attempts} polls"
        )

    def run(
        self,
        kind: Any,
        payload: Dict[str, Any],
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Job:
        """Submit a job and wait for its terminal state."""
        job = self.submit(kind, payload)
        return self.await_result(
            job,
            poll_interval=poll_interval,
            max_attempts=max_attempts,
            cancel_event=cancel_event,
        )

    def _wait(self, job: Job, interval: float, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is None:
            if interval > 0:
                self._sleep(interval)
            return

        if cancel_event.wait(interval):
            logger.info(f"Stopped polling {job.kind.value} job {job.job_id}: cancelled")
            raise JobCancelled(job)

    def _finish(self, job: Job, status: JobStatus, error: Optional[str] = None) -> Job:
        job.status = status
        job.error = error
        job.completed_at = datetime.now()

        if status is JobStatus.SUCCEEDED:
            logger.info(f"{job.kind.value} job {job.job_id} complete: {job.result_url}")
        else:
            logger.warning(
                f"{job.kind.value} job {job.job_id} ended {status.value} "
                f"after {job.attempts} polls: {error}"
            )
        return job
