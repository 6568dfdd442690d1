"""Custom exceptions for the ComfyUI card-art client."""

from typing import Optional

from .models import ErrorKind


class ComfyAPIError(Exception):
    """Base exception for ComfyUI client errors."""

    kind: ErrorKind = ErrorKind.PROTOCOL

    def __init__(self, message: str, status_code: Optional[int] = None, response_text: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(self.message)


class InvalidInputError(ComfyAPIError):
    """A required argument is missing or a config value is out of range."""

    kind = ErrorKind.INVALID_INPUT


class NetworkError(ComfyAPIError):
    """The exchange could not complete or returned a non-success status code."""

    kind = ErrorKind.NETWORK


class ProtocolError(ComfyAPIError):
    """The response body is unparsable or lacks an expected field."""

    kind = ErrorKind.PROTOCOL


class ArtifactError(ComfyAPIError):
    kind = ErrorKind.ARTIFACT


class PollTimeoutError(ComfyAPIError):
    kind = ErrorKind.TIMEOUT


class JobCancelledError(ComfyAPIError):
    kind = ErrorKind.CANCELLED


class JobFailedError(ComfyAPIError):
    """The service recorded the job as failed."""

    kind = ErrorKind.JOB_FAILED


ERRORS_BY_KIND = {
    cls.kind: cls
    for cls in (
        InvalidInputError,
        NetworkError,
        ProtocolError,
        ArtifactError,
        PollTimeoutError,
        JobCancelledError,
        JobFailedError,
    )
}
