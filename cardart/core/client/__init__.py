"""
ComfyUI client package for generating card art: submit a workflow, poll its
history until it finishes, and download the resulting image.
"""

from .config import ComfyConfig
from .exceptions import (
    ComfyAPIError,
    InvalidInputError,
    NetworkError,
    ProtocolError,
    ArtifactError,
    PollTimeoutError,
    JobCancelledError,
    JobFailedError,
)
from .models import ErrorKind, JobResult, JobStatus
from .transport import Transport, open_transport
from .client import ComfyClient, build_view_url

__all__ = [
    'ComfyAPIError', 'InvalidInputError', 'NetworkError', 'ProtocolError', 'ArtifactError',
    'PollTimeoutError', 'JobCancelledError', 'JobFailedError', 'ComfyConfig', 'ComfyClient',
    'ErrorKind', 'JobResult', 'JobStatus', 'Transport', 'open_transport', 'build_view_url',
]
