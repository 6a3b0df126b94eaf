"""Helpers shared by the lead form views."""

from __future__ import annotations

from ..services.channels import resolve_origin
from ..services.file_intake import CandidateFile, FileIntakeManager
from ..services.lead_session import LeadFormSession, registry, session_key_for

UPLOAD_FIELD = "files"


def resolve_form_session(request) -> LeadFormSession:
    return registry.get_or_start(session_key_for(request))


def resolve_form_page_session(request, *, channel: str | None = None) -> LeadFormSession:
    """Form session for a form page; the origin tag follows the page's channel."""
    return registry.get_or_start(session_key_for(request), origin=resolve_origin(channel))


def restart_form_session(request, *, channel: str | None = None) -> LeadFormSession:
    key = session_key_for(request)
    return registry.restart(key, origin=resolve_origin(channel))


def candidates_from_request(request) -> list[CandidateFile]:
    return [CandidateFile.from_upload(upload) for upload in request.FILES.getlist(UPLOAD_FIELD)]


def intake_state(intake: FileIntakeManager) -> dict:
    files = intake.files
    return {
        "files": None
        if files is None
        else [
            {"index": index, "name": item.name, "size": item.size, "size_kb": round(item.size / 1024)}
            for index, item in enumerate(files)
        ],
        "error": intake.validation_error or "",
        "can_add_more": intake.can_add_more,
        "max_files": intake.max_files,
        "is_dragging": intake.is_dragging,
    }
