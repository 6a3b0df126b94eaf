"""Per-visitor lead form state kept in process memory.

A `LeadFormSession` is the parent form controller: it owns the field values,
the origin tag, the file intake manager, the submission controller and the
submission id. Nothing here is persisted; a browser session only carries the
opaque key used to find its form session in `LeadSessionRegistry`.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from django.conf import settings

from .channels import default_origin
from .file_intake import FileIntakeManager
from .submission import STATUS_SUCCEEDED, SubmissionController, SubmissionState

logger = logging.getLogger(__name__)

SESSION_KEY = "lead_form_key"
DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_MAX_SESSIONS = 500


def new_submission_id() -> str:
    return str(uuid.uuid4())


@dataclass
class LeadFormSession:
    origin: str
    submission_id: str = field(default_factory=new_submission_id)
    fields: dict[str, Any] = field(default_factory=dict)
    intake: FileIntakeManager = field(default_factory=FileIntakeManager)
    picker_resets: int = 0
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def __post_init__(self):
        self.controller = SubmissionController(
            submission_id=self.submission_id,
            part_names=getattr(settings, "LEADFORM_PART_NAMES", None) or {},
        )
        self.intake.subscribe(self._on_files_changed)

    def _on_files_changed(self, files) -> None:
        # The native picker input is cleared whenever the set goes back to empty.
        if files is None:
            self.picker_resets += 1

    @property
    def succeeded(self) -> bool:
        return self.controller.state.status == STATUS_SUCCEEDED

    def update_fields(self, values: dict[str, Any]) -> None:
        self.fields = dict(values)

    def submit(self, *, destination: str | None) -> SubmissionState:
        # Payload reads a snapshot; later intake changes do not affect this attempt.
        state = self.controller.submit(
            fields=dict(self.fields),
            files=self.intake.snapshot(),
            origin=self.origin,
            destination=destination,
        )
        if state.status == STATUS_SUCCEEDED:
            self.fields = {}
            self.intake.reset()
        return state


class LeadSessionRegistry:
    """Maps browser sessions to in-memory form sessions."""

    def __init__(
        self,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max(int(max_sessions), 1)
        self.clock = clock
        self._sessions: dict[str, tuple[LeadFormSession, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def _prune(self, now: float) -> None:
        expired = [key for key, (_s, seen) in self._sessions.items() if now - seen > self.ttl_seconds]
        for key in expired:
            del self._sessions[key]
        if expired:
            logger.info("lead_sessions_expired count=%s", len(expired))

    def _store(self, key: str, form_session: LeadFormSession, now: float) -> None:
        self._sessions.pop(key, None)
        self._sessions[key] = (form_session, now)
        # Dict order is least recently seen first.
        overflow = len(self._sessions) - self.max_sessions
        if overflow > 0:
            for evicted in list(self._sessions)[:overflow]:
                del self._sessions[evicted]
            logger.warning("lead_sessions_evicted count=%s max_sessions=%s", overflow, self.max_sessions)

    def get_or_start(self, key: str, *, origin: str | None = None) -> LeadFormSession:
        """Return the visitor's form session, starting one when needed.

        A given `origin` replaces the stored one: the tag follows the form page
        the visitor is on, not the first page of the session.
        """
        now = self.clock()
        with self._lock:
            self._prune(now)
            entry = self._sessions.get(key)
            if entry is None:
                form_session = LeadFormSession(origin=origin or default_origin())
            else:
                form_session = entry[0]
                if origin is not None:
                    form_session.origin = origin
            self._store(key, form_session, now)
            return form_session

    def restart(self, key: str, *, origin: str) -> LeadFormSession:
        now = self.clock()
        with self._lock:
            self._prune(now)
            form_session = LeadFormSession(origin=origin)
            self._store(key, form_session, now)
            return form_session

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


def session_key_for(request) -> str:
    key = request.session.get(SESSION_KEY)
    if not key:
        key = uuid.uuid4().hex
        request.session[SESSION_KEY] = key
    return key


registry = LeadSessionRegistry(
    ttl_seconds=int(getattr(settings, "LEADFORM_SESSION_TTL_SECONDS", DEFAULT_TTL_SECONDS)),
    max_sessions=int(getattr(settings, "LEADFORM_MAX_SESSIONS", DEFAULT_MAX_SESSIONS)),
)
