"""
JobsLib - External asynchronous jobs

This module provides job models, the polling JobClient, the job kind
registry, and the HTTP collaborator for a Replicate-style service.
"""

from SV_Libs.JobsLib.job_models import (
    TERMINAL_STATUSES,
    Job,
    JobKind,
    JobService,
    JobStatus,
    PollResult,
)
from SV_Libs.JobsLib.job_client import JobClient, raise_for_status
from SV_Libs.JobsLib.job_kinds import (
    JobKindRegistry,
    create_default_registry,
    register_default_kinds,
)
from SV_Libs.JobsLib.replicate_service import ReplicateJobService, parse_prediction

__all__ = [
    "TERMINAL_STATUSES",
    "Job",
    "JobKind",
    "JobService",
    "JobStatus",
    "PollResult",
    "JobClient",
    "raise_for_status",
    "JobKindRegistry",
    "create_default_registry",
    "register_default_kinds",
    "ReplicateJobService",
    "parse_prediction",
]
