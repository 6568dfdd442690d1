"""
cardart - card art generation for a deck-building card game

Submits image workflows to a ComfyUI server and retrieves the generated art.

Usage:
    from cardart import ComfyClient, ComfyConfig

    with ComfyClient(ComfyConfig(host="localhost", port=8188)) as client:
        result = client.wait_for_completion(workflow_json)
        if result.ok and result.artifact is not None:
            Path("card.png").write_bytes(result.artifact)
"""

from .core.client import (
    ComfyAPIError,
    ComfyClient,
    ComfyConfig,
    ErrorKind,
    JobResult,
    JobStatus,
    Transport,
    open_transport,
)

__version__ = "0.1.0"

__all__ = [
    "ComfyAPIError",
    "ComfyClient",
    "ComfyConfig",
    "ErrorKind",
    "JobResult",
    "JobStatus",
    "Transport",
    "open_transport",
]
