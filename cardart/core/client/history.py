"""Helpers for classifying a /history payload and extracting output images."""

from collections.abc import Mapping
from typing import Any, Optional

from .models import ErrorKind, JobResult, JobStatus


def _get_record(history: Mapping[str, Any], job_id: str) -> Optional[Mapping[str, Any]]:
    record = history.get(job_id)
    return record if isinstance(record, Mapping) else None


def extract_error_message(status: Mapping[str, Any]) -> str:
    """Return the second element of the first status message, or ''."""
    messages = status.get("messages")
    if not isinstance(messages, list) or not messages:
        return ""
    first = messages[0]
    if not isinstance(first, (list, tuple)) or len(first) < 2:
        return ""
    payload = first[1]
    if isinstance(payload, str):
        return payload
    # Newer servers send {"exception_message": ...} instead of a plain string
    if isinstance(payload, Mapping):
        text = payload.get("exception_message")
        if isinstance(text, str):
            return text
    return ""


def find_output_image(record: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    """Return the first image entry of the first output node that has one."""
    outputs = record.get("outputs")
    if not isinstance(outputs, Mapping):
        return None
    for node in outputs.values():
        if not isinstance(node, Mapping):
            continue
        images = node.get("images")
        if not isinstance(images, list) or not images:
            continue
        first = images[0]
        if isinstance(first, Mapping) and isinstance(first.get("filename"), str):
            return first
    return None


def _status_from_record(record: Mapping[str, Any]) -> tuple[JobStatus, Optional[str]]:
    if "status" not in record:
        # Legacy servers omit "status"; presence in history is taken as success.
        # An even older server still running the job looks identical.
        return JobStatus.COMPLETED, None
    status = record["status"]
    if not isinstance(status, Mapping):
        return JobStatus.PENDING, None
    status_str = status.get("status_str")
    if status_str == "success":
        return JobStatus.COMPLETED, None
    if status_str == "error":
        return JobStatus.ERROR, extract_error_message(status)
    return JobStatus.PENDING, None


def classify_history(history: Mapping[str, Any], job_id: str) -> JobResult:
    """Classify the history payload for ``job_id`` into a JobResult."""
    record = _get_record(history, job_id)
    if record is None:
        return JobResult(job_id=job_id, status=JobStatus.PENDING)

    status, detail = _status_from_record(record)
    if status == JobStatus.ERROR:
        return JobResult.failure(ErrorKind.JOB_FAILED, detail, job_id=job_id)

    result = JobResult(job_id=job_id, status=status)
    if status == JobStatus.COMPLETED:
        image = find_output_image(record)
        if image is not None:
            result.artifact_ref = image["filename"]
            result.artifact_meta = {
                key: str(image[key])
                for key in ("subfolder", "type")
                if isinstance(image.get(key), str) and image[key]
            }
    return result
