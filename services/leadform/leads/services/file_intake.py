"""File intake for the lead form: validation, bounded accumulation, removal.

Two intake paths exist (file picker and drag/drop). Both go through
`FileIntakeManager.add`, so the type/size rules live in one place.

The observable value is `None` while nothing is accepted, never an empty
tuple. Dependent reset logic (e.g. clearing the native picker input) keys off
that sentinel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import IO, Callable, Iterable

logger = logging.getLogger(__name__)

MAX_FILES = 3
MAX_FILE_BYTES = 5 * 1024 * 1024
ALLOWED_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "application/pdf",
    }
)
PICKER_ACCEPT = ".jpg,.jpeg,.png,.pdf"

REASON_INVALID_TYPE = "invalid file type"
REASON_TOO_LARGE = "file too large"

REJECTION_MESSAGES = {
    REASON_INVALID_TYPE: "Invalid file format. Please upload a JPG, PNG or PDF file.",
    REASON_TOO_LARGE: "File too large. Please upload a file smaller than 5MB.",
}


@dataclass(frozen=True)
class CandidateFile:
    """A raw file presented for validation, before acceptance."""

    name: str
    size: int
    content_type: str
    source: IO[bytes] | None = None

    @classmethod
    def from_upload(cls, upload) -> "CandidateFile":
        return cls(
            name=(getattr(upload, "name", "") or "upload").strip(),
            size=int(getattr(upload, "size", 0) or 0),
            content_type=(getattr(upload, "content_type", "") or "").strip().lower(),
            source=getattr(upload, "file", upload),
        )

    def read_bytes(self) -> bytes:
        if self.source is None:
            return b""
        fh = self.source
        if hasattr(fh, "seek"):
            fh.seek(0)
        return fh.read() or b""


@dataclass(frozen=True)
class AcceptedFile:
    name: str
    size: int
    content_type: str
    content: bytes


def validate(candidate: CandidateFile) -> str:
    """Return "" when the candidate is acceptable, otherwise the rejection reason."""
    if candidate.content_type not in ALLOWED_CONTENT_TYPES:
        return REASON_INVALID_TYPE
    if candidate.size > MAX_FILE_BYTES:
        return REASON_TOO_LARGE
    return ""


FilesObserver = Callable[["tuple[AcceptedFile, ...] | None"], None]


class FileIntakeManager:
    """Owns the accepted file set (0..3 entries) for one form session."""

    def __init__(self, *, max_files: int = MAX_FILES):
        self.max_files = max_files
        self.validation_error: str | None = None
        self.is_dragging = False
        self._files: tuple[AcceptedFile, ...] | None = None
        self._observers: list[FilesObserver] = []

    @property
    def files(self) -> tuple[AcceptedFile, ...] | None:
        return self._files

    def snapshot(self) -> tuple[AcceptedFile, ...]:
        return self._files or ()

    def __len__(self) -> int:
        return len(self._files or ())

    @property
    def can_add_more(self) -> bool:
        return len(self) < self.max_files

    def subscribe(self, callback: FilesObserver) -> None:
        self._observers.append(callback)

    def _set_files(self, files: tuple[AcceptedFile, ...] | None) -> None:
        self._files = files or None
        for callback in list(self._observers):
            callback(self._files)

    def _check(self, candidate: CandidateFile) -> bool:
        reason = validate(candidate)
        if reason:
            self.validation_error = REJECTION_MESSAGES[reason]
            logger.info(
                "lead_file_rejected reason=%s content_type=%s size=%s",
                reason,
                candidate.content_type or "-",
                candidate.size,
            )
            return False
        self.validation_error = None
        return True

    def add(self, candidates: Iterable[CandidateFile]) -> None:
        passing = [candidate for candidate in candidates if self._check(candidate)]
        if not passing:
            return
        accepted = [
            AcceptedFile(
                name=candidate.name,
                size=candidate.size,
                content_type=candidate.content_type,
                content=candidate.read_bytes(),
            )
            # Only the slots that survive truncation are read into memory.
            for candidate in passing[: max(self.max_files - len(self), 0)]
        ]
        if accepted:
            self._set_files((self.snapshot() + tuple(accepted))[: self.max_files])

    def select(self, candidates: Iterable[CandidateFile]) -> None:
        """Picker intake."""
        self.add(candidates)

    def drag_enter(self) -> None:
        self.is_dragging = True

    def drag_leave(self) -> None:
        self.is_dragging = False

    def drop(self, candidates: Iterable[CandidateFile]) -> None:
        """Drag/drop intake; same rules as the picker."""
        self.is_dragging = False
        self.add(candidates)

    def remove(self, index: int) -> bool:
        current = self.snapshot()
        if index < 0 or index >= len(current):
            return False
        self._set_files(current[:index] + current[index + 1 :])
        self.validation_error = None
        return True

    def reset(self) -> None:
        self.validation_error = None
        self.is_dragging = False
        if self._files is not None:
            self._set_files(None)
