"""Pydantic models for job status and results."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    PENDING = "pending"
    # Reserved: the current history endpoint never distinguishes running from pending
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    NETWORK = "network"
    PROTOCOL = "protocol"
    ARTIFACT = "artifact"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    JOB_FAILED = "job_failed"


class JobResult(BaseModel):
    """Outcome of one probe or one submit-and-wait call.

    ``artifact_ref`` holds the output filename reported by the history
    endpoint; ``error`` is only ever an error detail.
    """

    job_id: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    artifact: Optional[bytes] = None
    artifact_ref: Optional[str] = None
    # subfolder/type of the output image, forwarded to /view
    artifact_meta: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def failure(
        cls, kind: ErrorKind, detail: Optional[str], job_id: Optional[str] = None
    ) -> "JobResult":
        return cls(job_id=job_id, status=JobStatus.ERROR, error=detail, error_kind=kind)

    @property
    def artifact_size(self) -> int:
        return len(self.artifact) if self.artifact is not None else 0

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.ERROR)

    @property
    def ok(self) -> bool:
        return self.status == JobStatus.COMPLETED

    def raise_for_status(self) -> "JobResult":
        """Raise the matching ComfyAPIError for an Error result, else return self."""
        if self.status != JobStatus.ERROR:
            return self
        from .exceptions import ERRORS_BY_KIND, ComfyAPIError

        exc_cls = ERRORS_BY_KIND.get(self.error_kind, ComfyAPIError)
        raise exc_cls(self.error or "job failed")
