"""
Replicate-style HTTP job service.

Implements the JobService contract against a predictions API:

    POST {base_url}/predictions        {"version": ..., "input": {...}} -> {"id": ...}
    GET  {base_url}/predictions/{id}   -> {"status": ..., "output": ..., "error": ...}

Service statuses "starting" and "processing" map to running, "succeeded"
to succeeded, and "failed"/"canceled" to failed. The output may be a URL
or a list of URLs; the first one is the result reference.

Submission is never retried. A failed poll raises TransientPollError and
is left to the JobClient's attempt budget.
"""

from typing import Any, Dict, Optional
import logging

import requests

from SV_Libs.constants import (
    DEFAULT_MODEL_VERSIONS,
    DEFAULT_REQUEST_TIMEOUT,
    REPLICATE_API_URL,
    REPLICATE_FAILED_STATUSES,
    REPLICATE_STATUS_SUCCEEDED,
)
from SV_Libs.errors import SubmissionError, TransientPollError
from SV_Libs.JobsLib.job_models import JobKind, JobStatus, PollResult

logger = logging.getLogger(__name__)


def _is_success(status_code: int) -> bool:
    return 200 <= int(status_code) < 300


def parse_prediction(data: Dict[str, Any]) -> PollResult:
    """
    Translate a prediction payload into a PollResult.

    Args:
        data: Decoded JSON body of a prediction

    Returns:
        PollResult with status RUNNING, SUCCEEDED or FAILED
    """
    status = str(data.get("status", "")).lower()

    if status == REPLICATE_STATUS_SUCCEEDED:
        output = data.get("output")
        if isinstance(output, (list, tuple)):
            output = output[0] if output else None
        return PollResult(
            status=JobStatus.SUCCEEDED,
            result_url=str(output) if output else None,
            raw=data,
        )

    if status in REPLICATE_FAILED_STATUSES:
        error = data.get("error") or f"Prediction {status}"
        return PollResult(status=JobStatus.FAILED, error=str(error), raw=data)

    return PollResult(status=JobStatus.RUNNING, raw=data)


class ReplicateJobService:
    """HTTP collaborator for a Replicate-compatible predictions API."""

    def __init__(
        self,
        api_token: str,
        base_url: str = REPLICATE_API_URL,
        model_versions: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Args:
            api_token: API token sent as "Authorization: Token <token>"
            base_url: API root (no trailing slash needed)
            model_versions: Job kind value -> model version
            session: requests.Session to reuse (a new one by default)
            timeout: Per-request timeout in seconds

        Raises:
            ValueError: If api_token is empty
        """
        if not api_token:
            raise ValueError("Replicate API key not configured")

        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.model_versions = dict(DEFAULT_MODEL_VERSIONS)
        if model_versions:
            self.model_versions.update(model_versions)
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Token {self.api_token}",
            "Content-Type": "application/json",
        }

    def submit_job(self, kind: Any, parameters: Dict[str, Any]) -> str:
        """
        Create a prediction.

        Returns:
            The prediction id

        Raises:
            SubmissionError: On transport failure, non-2xx status, or a body without an id
        """
        kind = JobKind(kind)
        version = self.model_versions.get(kind.value)
        if not version:
            raise SubmissionError(f"No model version configured for {kind.value}", kind=kind.value)

        try:
            response = self.session.post(
                f"{self.base_url}/predictions",
                headers=self._headers(),
                json={"version": version, "input": parameters},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SubmissionError(f"{kind.value} submission failed: {e}", kind=kind.value) from e

        if not _is_success(response.status_code):
            logger.error(f"{kind.value} submission error: {response.text[:500]}")
            raise SubmissionError(
                f"{kind.value} submission failed: {response.status_code}",
                status_code=response.status_code,
                kind=kind.value,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SubmissionError(
                f"{kind.value} submission returned invalid JSON", kind=kind.value
            ) from e

        job_id = data.get("id") if isinstance(data, dict) else None
        if not job_id:
            raise SubmissionError(f"{kind.value} submission returned no job id", kind=kind.value)

        return str(job_id)

    def poll_job(self, job_id: str) -> PollResult:
        """
        Fetch the current state of a prediction.

        Raises:
            TransientPollError: On transport failure, non-2xx status, or invalid JSON
        """
        try:
            response = self.session.get(
                f"{self.base_url}/predictions/{job_id}",
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransientPollError(f"Poll failed: {e}") from e

        if not _is_success(response.status_code):
            raise TransientPollError(
                f"Poll failed: {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TransientPollError("Poll returned invalid JSON") from e

        if not isinstance(data, dict):
            raise TransientPollError(f"Poll returned unexpected payload: {type(data).__name__}")

        return parse_prediction(data)
