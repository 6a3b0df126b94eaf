"""Lead submission pipeline: payload assembly, webhook POST, outcome state.

State machine:
- `idle` -> `submitting` on submit (only with at least one accepted file)
- `submitting` -> `succeeded` on a 2xx response
- `submitting` -> `failed(reason)` on transport failure, timeout or non-2xx
- `failed` -> `idle` on the next submit trigger

`succeeded` is terminal for the form session.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping, Sequence

import httpx
from asgiref.sync import async_to_sync
from django.utils import timezone

from .destination import validate_destination
from .errors import ConfigurationError, LeadFormError, NetworkError, ServerError
from .file_intake import AcceptedFile

logger = logging.getLogger(__name__)

SUBMIT_TIMEOUT_SECONDS = 30.0
REQUEST_TYPE_HEADER = "X-Request-Type"
REQUEST_TYPE_VALUE = "form-submission"

STATUS_IDLE = "idle"
STATUS_SUBMITTING = "submitting"
STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"

REASON_MISSING_FILES = "missing required files"
REASON_CONFIGURATION = "configuration"
REASON_NETWORK = "network"
REASON_TIMEOUT = "timeout"
REASON_PAYLOAD_TOO_LARGE = "payload too large"
REASON_RATE_LIMITED = "rate limited"
REASON_SERVER_ERROR = "server error"

FAILURE_MESSAGES = {
    REASON_MISSING_FILES: "Please upload the required files.",
    REASON_CONFIGURATION: "The form cannot be sent right now. Please try again later or contact us directly.",
    REASON_NETWORK: "Could not reach the server. Check your connection and try again.",
    REASON_TIMEOUT: "Sending took too long. Please try again.",
    REASON_PAYLOAD_TOO_LARGE: "The file is too large. Please send a smaller file.",
    REASON_RATE_LIMITED: "Too many attempts. Please wait a moment and try again.",
}


@dataclass(frozen=True)
class SubmissionState:
    status: str = STATUS_IDLE
    reason: str = ""
    detail: str = ""
    response_body: Any = None

    @property
    def message(self) -> str:
        if self.status == STATUS_SUCCEEDED:
            return "Form sent successfully!"
        if self.status != STATUS_FAILED:
            return ""
        if self.reason == REASON_SERVER_ERROR:
            return f"Error sending form: {self.detail}".rstrip(": ")
        return FAILURE_MESSAGES.get(self.reason, "Error sending form. Please try again.")


def failed(reason: str, detail: str = "") -> SubmissionState:
    return SubmissionState(status=STATUS_FAILED, reason=reason, detail=detail)


@dataclass(frozen=True)
class SubmissionPayload:
    data: dict[str, str] = field(default_factory=dict)
    files: list[tuple[str, tuple[str, bytes, str]]] = field(default_factory=list)


def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds")


def build_payload(
    *,
    fields: Mapping[str, Any],
    files: Sequence[AcceptedFile],
    origin: str,
    submission_id: str,
    clock: Callable[[], datetime] = timezone.now,
    part_names: Mapping[str, str] | None = None,
) -> SubmissionPayload:
    """Assemble the multipart parts for one submission attempt.

    Empty fields are omitted entirely. Files are named `file_<index>` in
    accepted-set order. `part_names` renames field and metadata parts to match
    the receiver's wire names; file parts keep their positional names.
    """
    data: dict[str, str] = {}
    for name, value in fields.items():
        text = "" if value is None else str(value)
        if text.strip():
            data[name] = text
    data["origin"] = origin
    data["registered_at"] = _iso(clock())
    parts = [
        (f"file_{index}", (item.name, item.content, item.content_type))
        for index, item in enumerate(files)
    ]
    data["submission_id"] = submission_id
    data["timestamp"] = _iso(clock())
    if part_names:
        data = {part_names.get(name, name): value for name, value in data.items()}
    return SubmissionPayload(data=data, files=parts)


def classify_response(response: httpx.Response) -> Any:
    """Return the response body for 2xx, otherwise raise `ServerError`."""
    if not response.is_success:
        raise ServerError(response.status_code, response.reason_phrase or "")
    content_type = (response.headers.get("content-type") or "").lower()
    if "application/json" in content_type:
        try:
            return response.json()
        except ValueError:
            # A 2xx status stays a success even when the body does not parse.
            logger.warning("lead_webhook_body_not_json status=%s", response.status_code)
            return response.text
    return response.text


class SubmissionController:
    """Drives one submission attempt at a time to a terminal state."""

    def __init__(
        self,
        *,
        submission_id: str,
        timeout_seconds: float = SUBMIT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = timezone.now,
        part_names: Mapping[str, str] | None = None,
    ):
        self.submission_id = submission_id
        self.timeout_seconds = timeout_seconds
        self.transport = transport
        self.clock = clock
        self.part_names = dict(part_names or {})
        self.state = SubmissionState()
        self._in_flight = threading.Lock()

    @property
    def is_submitting(self) -> bool:
        return self.state.status == STATUS_SUBMITTING

    def submit(
        self,
        *,
        fields: Mapping[str, Any],
        files: Sequence[AcceptedFile] | None,
        origin: str,
        destination: str | None,
    ) -> SubmissionState:
        if not self._in_flight.acquire(blocking=False):
            logger.info("lead_submission_ignored reason=in_flight submission_id=%s", self.submission_id)
            return self.state
        try:
            return self._submit(fields=fields, files=files, origin=origin, destination=destination)
        finally:
            self._in_flight.release()

    def _submit(self, *, fields, files, origin, destination) -> SubmissionState:
        if self.state.status == STATUS_SUCCEEDED:
            logger.info("lead_submission_ignored reason=already_sent submission_id=%s", self.submission_id)
            return self.state
        self.state = SubmissionState()

        snapshot = tuple(files or ())
        if not snapshot:
            self.state = failed(REASON_MISSING_FILES)
            return self.state

        try:
            url = validate_destination(destination)
        except ConfigurationError as exc:
            logger.error("lead_submission_misconfigured submission_id=%s error=%s", self.submission_id, exc)
            self.state = failed(REASON_CONFIGURATION)
            return self.state

        payload = build_payload(
            fields=fields,
            files=snapshot,
            origin=origin,
            submission_id=self.submission_id,
            clock=self.clock,
            part_names=self.part_names,
        )
        self.state = SubmissionState(status=STATUS_SUBMITTING)
        logger.info(
            "lead_submission_started submission_id=%s files=%s origin=%s",
            self.submission_id,
            len(snapshot),
            origin,
        )
        try:
            body = async_to_sync(self._send)(url, payload)
        except ServerError as exc:
            logger.warning(
                "lead_submission_failed reason=%s status=%s submission_id=%s",
                exc.reason,
                exc.status_code,
                self.submission_id,
            )
            detail = exc.status_text if exc.reason == REASON_SERVER_ERROR else str(exc.status_code)
            self.state = failed(exc.reason, detail)
        except LeadFormError as exc:
            logger.warning(
                "lead_submission_failed reason=%s submission_id=%s error=%s",
                exc.reason,
                self.submission_id,
                exc,
            )
            self.state = failed(exc.reason)
        else:
            logger.info("lead_submission_succeeded submission_id=%s", self.submission_id)
            self.state = SubmissionState(status=STATUS_SUCCEEDED, response_body=body)
        return self.state

    async def _send(self, url: str, payload: SubmissionPayload) -> Any:
        try:
            return await asyncio.wait_for(self._post(url, payload), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise NetworkError(timed_out=True) from exc

    async def _post(self, url: str, payload: SubmissionPayload) -> Any:
        async with httpx.AsyncClient(transport=self.transport, timeout=None) as client:
            try:
                response = await client.post(
                    url,
                    data=payload.data,
                    files=payload.files,
                    headers={REQUEST_TYPE_HEADER: REQUEST_TYPE_VALUE},
                )
            except httpx.TransportError as exc:
                raise NetworkError(exc.__class__.__name__) from exc
            return classify_response(response)
