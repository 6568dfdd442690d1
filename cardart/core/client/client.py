"""Client for generating card art on a ComfyUI server.

# Sections
1) Imports
2) Helpers (URL building, JSON parsing)
3) Formatting utilities (terminal logger)
4) Client class (public API):
   - submit_workflow (POST /prompt)
   - get_status (GET /history/{id})
   - get_image (GET /view)
   - wait_for_completion (submit + bounded poll + fetch)
   - wait_for_many (one worker per job)
"""

import json
import logging
import os
import sys
import threading
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Hashable, Optional
from urllib.parse import quote

from cardart.core.client.config import ComfyConfig
from cardart.core.client.exceptions import (
    ComfyAPIError,
    InvalidInputError,
    NetworkError,
    ProtocolError,
)
from cardart.core.client.history import classify_history
from cardart.core.client.models import ErrorKind, JobResult, JobStatus
from cardart.core.client.transport import Exchange, Transport
from cardart.vis.terminal import TerminalPrinter

# --- Helpers ---------------------------------------------------------------


def build_view_url(
    endpoint: str,
    filename: str,
    subfolder: Optional[str] = None,
    folder_type: Optional[str] = None,
) -> str:
    """Return the /view URL with every query value percent-encoded."""
    query = f"filename={quote(filename, safe='')}"
    if subfolder:
        query += f"&subfolder={quote(subfolder, safe='')}"
    if folder_type:
        query += f"&type={quote(folder_type, safe='')}"
    return f"{endpoint}/view?{query}"


def _reject_constant(name: str) -> float:
    # json.loads accepts NaN and Infinity, which cannot be sent back out as JSON
    raise InvalidInputError(f"workflow_json is not valid JSON: non-finite number {name}")


def _parse_json_object(exchange: Exchange, what: str) -> Mapping[str, Any]:
    try:
        data = json.loads(exchange.text)
    except json.JSONDecodeError as e:
        raise ProtocolError(
            f"Failed to parse {what} JSON: {e.msg}",
            status_code=exchange.status_code,
            response_text=exchange.text[:300],
        ) from e
    except RecursionError as e:
        raise ProtocolError(
            f"Failed to parse {what} JSON: nested too deeply",
            status_code=exchange.status_code,
            response_text=exchange.text[:300],
        ) from e
    if not isinstance(data, Mapping):
        raise ProtocolError(
            f"Unexpected {what} response: expected a JSON object",
            status_code=exchange.status_code,
            response_text=exchange.text[:300],
        )
    return data


def _require_success(exchange: Exchange, what: str) -> None:
    if exchange.ok:
        return
    body_preview = exchange.text[:300]
    raise NetworkError(
        message=f"{what} failed: {exchange.status_code} - {body_preview}",
        status_code=exchange.status_code,
        response_text=exchange.text,
    )


def _isatty(stream) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


# --- Formatting utilities --------------------------------------------------


class _BlueDotFormatter(logging.Formatter):
    """Minimal formatter that prints a small icon instead of [LEVEL].

    INFO  -> cyan •  message
    WARN  -> yellow ! message
    ERROR -> red ✗   message
    DEBUG -> dim   · message
    """

    def __init__(self, enable_color: Optional[bool] = None) -> None:
        super().__init__()
        if enable_color is None:
            enable_color = _isatty(sys.stderr) and os.getenv("NO_COLOR") is None
        self.enable_color = enable_color

    def _ansi(self, code: str, text: str) -> str:
        return f"\x1b[{code}m{text}\x1b[0m" if self.enable_color else text

    def _icon_for(self, levelno: int) -> str:
        if levelno >= logging.ERROR:
            return self._ansi("31", "✗")  # red
        if levelno >= logging.WARNING:
            return self._ansi("33", "!")  # yellow
        if levelno <= logging.DEBUG:
            return self._ansi("90", "·")  # gray dot
        return self._ansi("36", "•")  # cyan dot

    def format(self, record: logging.LogRecord) -> str:
        icon = self._icon_for(record.levelno)
        msg = record.getMessage()
        return f"{icon} {msg}"


# --- Client ----------------------------------------------------------------


class ComfyClient:
    """Client for submitting image workflows to a ComfyUI server.

    Holds a read-only config and a transport. The transport may be shared
    between clients; a client that created its own transport closes it.
    """

    def __init__(
        self,
        config: Optional[ComfyConfig] = None,
        transport: Optional[Transport] = None,
        printer: Optional[TerminalPrinter] = None,
    ):
        self.config = config or ComfyConfig()
        self.logger = logging.getLogger(__name__)
        if not self.logger.handlers:
            handler = logging.StreamHandler(stream=sys.stderr)
            handler.setFormatter(_BlueDotFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

        self.config.validate()

        self._owns_transport = transport is None
        self.transport = transport or Transport()
        self.printer = printer

    def _status_line(self, stage: str, message: str = "", level: str = "info") -> None:
        if self.printer is None:
            return
        try:
            self.printer.print_status(stage, message, level=level)
        except (AttributeError, RuntimeError):
            pass

    # --- Submitter ----------------------------------------------------------

    def submit_workflow(self, workflow_json: Optional[str]) -> str:
        """Submit a serialized workflow and return the server-assigned job id.

        The workflow is embedded under the "prompt" field; its contents are
        not otherwise inspected. No retry.

        Raises:
          InvalidInputError: If the workflow is missing or not valid JSON.
          NetworkError: If the exchange fails or the status is not 200.
          ProtocolError: If the response lacks a "prompt_id" string.
        """
        if not isinstance(workflow_json, str) or not workflow_json.strip():
            raise InvalidInputError("workflow_json is required")
        try:
            workflow = json.loads(workflow_json, parse_constant=_reject_constant)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"workflow_json is not valid JSON: {e.msg}") from e
        except RecursionError as e:
            raise InvalidInputError("workflow_json is not valid JSON: nested too deeply") from e

        url = f"{self.config.endpoint}/prompt"
        self.logger.info("POST %s (timeout=%ss)", url, self.config.timeout)
        exchange = self.transport.post_json(url, {"prompt": workflow}, timeout=self.config.timeout)
        _require_success(exchange, "Workflow submission")

        data = _parse_json_object(exchange, "submission")
        job_id = data.get("prompt_id")
        if not isinstance(job_id, str) or not job_id:
            raise ProtocolError(
                "Submission response has no prompt_id",
                status_code=exchange.status_code,
                response_text=exchange.text[:300],
            )
        return job_id

    # --- Status Prober ------------------------------------------------------

    def get_status(self, job_id: Optional[str]) -> JobResult:
        """Probe /history once and classify the job.

        Never raises for expected failures: network and parse problems come
        back as an Error result carrying the failure kind.
        """
        if not isinstance(job_id, str) or not job_id:
            return JobResult.failure(ErrorKind.INVALID_INPUT, "invalid arguments")

        url = f"{self.config.endpoint}/history/{quote(job_id, safe='')}"
        try:
            exchange = self.transport.get(url, timeout=self.config.timeout)
            _require_success(exchange, "History request")
            history = _parse_json_object(exchange, "history")
        except ComfyAPIError as e:
            self.logger.warning("Status probe for %s failed: %s", job_id, e.message)
            return JobResult.failure(e.kind, e.message, job_id=job_id)

        return classify_history(history, job_id)

    # --- Artifact Fetcher ---------------------------------------------------

    def get_image(
        self,
        filename: Optional[str],
        subfolder: Optional[str] = None,
        folder_type: Optional[str] = None,
    ) -> bytes:
        """Download the raw bytes of a generated image.

        Raises:
          InvalidInputError: If filename is missing.
          NetworkError: If the download fails or the status is not 200.
        """
        if not isinstance(filename, str) or not filename:
            raise InvalidInputError("filename is required")
        url = build_view_url(self.config.endpoint, filename, subfolder, folder_type)
        self.logger.debug("GET %s", url)
        exchange = self.transport.get_binary(url, timeout=self.config.timeout)
        _require_success(exchange, "Image download")
        return exchange.body

    # --- Orchestrator -------------------------------------------------------

    def _fetch_artifact(self, status: JobResult) -> JobResult:
        job_id = status.job_id
        try:
            data = self.get_image(
                status.artifact_ref,
                subfolder=status.artifact_meta.get("subfolder"),
                folder_type=status.artifact_meta.get("type"),
            )
        except ComfyAPIError as e:
            self.logger.error("Failed to retrieve artifact %s: %s", status.artifact_ref, e.message)
            self._status_line("fetch:err", status.artifact_ref or "", level="error")
            result = JobResult.failure(
                ErrorKind.ARTIFACT, f"failed to retrieve artifact: {e.message}", job_id=job_id
            )
            result.artifact_ref = status.artifact_ref
            return result
        self._status_line("fetch:ok", f"{status.artifact_ref} ({len(data)} bytes)")
        return JobResult(
            job_id=job_id,
            status=JobStatus.COMPLETED,
            artifact=data,
            artifact_ref=status.artifact_ref,
            artifact_meta=dict(status.artifact_meta),
        )

    def _poll(self, job_id: str, cancel_event: threading.Event) -> JobResult:
        attempts = self.config.max_poll_attempts
        for attempt in range(1, attempts + 1):
            if cancel_event.is_set():
                self.logger.warning("Job %s cancelled while polling", job_id)
                return JobResult.failure(ErrorKind.CANCELLED, "cancelled", job_id=job_id)

            status = self.get_status(job_id)
            self.logger.debug("Probe %d/%d for %s: %s", attempt, attempts, job_id, status.status.value)
            if self.printer is not None:
                self.printer.print_poll(attempt, attempts, status.status.value)

            if status.status == JobStatus.COMPLETED:
                if status.artifact_ref is None:
                    self.logger.info("Job %s completed without an image output", job_id)
                    return JobResult(job_id=job_id, status=JobStatus.COMPLETED)
                return self._fetch_artifact(status)

            if status.status == JobStatus.ERROR:
                self.logger.error("Job %s failed: %s", job_id, status.error or "(no message)")
                self._status_line("job:err", status.error or "", level="error")
                return JobResult.failure(
                    status.error_kind or ErrorKind.JOB_FAILED, status.error, job_id=job_id
                )

            # Interruptible: a set cancel_event ends the wait early
            if attempt < attempts:
                cancel_event.wait(self.config.poll_interval)

        self.logger.error("Timeout waiting for job %s after %d probes", job_id, attempts)
        self._status_line("poll:err", "timeout", level="error")
        return JobResult.failure(ErrorKind.TIMEOUT, "timeout waiting for completion", job_id=job_id)

    def wait_for_completion(
        self,
        workflow_json: Optional[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> JobResult:
        """Submit a workflow, poll until it finishes, and fetch its image.

        Returns a terminal JobResult; expected failures are reported in the
        result (status ERROR plus ``error_kind``) instead of raised.
        """
        if not isinstance(workflow_json, str) or not workflow_json.strip():
            return JobResult.failure(ErrorKind.INVALID_INPUT, "invalid arguments")
        cancel_event = cancel_event or threading.Event()

        try:
            job_id = self.submit_workflow(workflow_json)
        except ComfyAPIError as e:
            self.logger.error("Submission failed: %s", e.message)
            self._status_line("submit:err", e.message, level="error")
            return JobResult.failure(e.kind, f"submission failed: {e.message}")

        self.logger.info("Submitted job %s", job_id)
        self._status_line("submit:ok", job_id)
        result = self._poll(job_id, cancel_event)
        if result.ok:
            self.logger.info("Job %s completed (%d bytes)", job_id, result.artifact_size)
        return result

    def wait_for_many(
        self,
        workflows: Mapping[Hashable, str],
        max_workers: int = 4,
        cancel_event: Optional[threading.Event] = None,
    ) -> dict[Hashable, JobResult]:
        """Run one submit-and-wait per workflow on a thread pool.

        Jobs share only this client's config and transport. Setting
        ``cancel_event`` stops every job at its next poll wait.
        """
        if not workflows:
            return {}
        cancel_event = cancel_event or threading.Event()
        workers = max(1, min(max_workers, len(workflows)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cardart-job") as pool:
            futures = {
                key: pool.submit(self.wait_for_completion, workflow, cancel_event)
                for key, workflow in workflows.items()
            }
            return {key: future.result() for key, future in futures.items()}

    # --- Lifecycle ----------------------------------------------------------

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> "ComfyClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
