"""File intake endpoints used by the drop zone script and the picker."""

import logging

from django.http import JsonResponse
from django.views.decorators.http import require_POST

from ..http.headers import apply_no_store
from .shared import candidates_from_request, intake_state, resolve_form_session

logger = logging.getLogger(__name__)

_INTAKE_SOURCES = {"picker", "drop"}

__all__ = ["intake_add_files", "intake_remove_file"]


@require_POST
def intake_add_files(request):
    """Accept picker or drop uploads into the visitor's accepted file set."""
    source = (request.POST.get("source") or "picker").strip().lower()
    if source not in _INTAKE_SOURCES:
        return apply_no_store(JsonResponse({"error": "unknown intake source"}, status=400))

    form_session = resolve_form_session(request)
    candidates = candidates_from_request(request)
    with form_session.lock:
        if source == "drop":
            form_session.intake.drop(candidates)
        else:
            form_session.intake.select(candidates)
        payload = intake_state(form_session.intake)
    return apply_no_store(JsonResponse(payload))


@require_POST
def intake_remove_file(request, index: int):
    form_session = resolve_form_session(request)
    with form_session.lock:
        form_session.intake.remove(index)
        payload = intake_state(form_session.intake)
    return apply_no_store(JsonResponse(payload))
