"""Lead form page, submission and success endpoints."""

import logging

from django.contrib import messages
from django.http import HttpResponse
from django.middleware.csrf import get_token
from django.shortcuts import redirect, render

from ..forms import LeadContactForm
from ..http.headers import apply_no_store
from ..services.destination import configured_webhook_url
from ..services.file_intake import PICKER_ACCEPT
from ..services.submission import (
    REASON_CONFIGURATION,
    REASON_MISSING_FILES,
    REASON_TIMEOUT,
    STATUS_FAILED,
    STATUS_SUBMITTING,
    STATUS_SUCCEEDED,
)
from .shared import (
    candidates_from_request,
    intake_state,
    resolve_form_page_session,
    resolve_form_session,
    restart_form_session,
)

logger = logging.getLogger(__name__)

__all__ = ["healthz", "lead_form", "lead_success"]

_FAILURE_STATUS = {
    REASON_MISSING_FILES: 400,
    REASON_CONFIGURATION: 503,
    REASON_TIMEOUT: 504,
}


def healthz(request):
    return HttpResponse("ok", content_type="text/plain")


def _render_form(request, form_session, *, form, intake_error: str = "", status: int = 200):
    get_token(request)
    intake = intake_state(form_session.intake)
    response = render(
        request,
        "leads/lead_form.html",
        {
            "form": form,
            "intake": intake,
            "intake_error": intake_error or intake["error"],
            "accept": PICKER_ACCEPT,
            "origin": form_session.origin,
            "submitting": form_session.controller.is_submitting,
            "picker_resets": form_session.picker_resets,
        },
        status=status,
    )
    return apply_no_store(response)


def lead_form(request, channel: str | None = None):
    """Render the lead form and handle its non-script actions.

    POST `action` values:
    - `add`: take picker files from a plain form post
    - `remove`: drop the file at `index`
    - `reset`: clear fields and files
    - `submit` (default): validate fields and send the lead
    """
    form_session = resolve_form_page_session(request, channel=channel)
    if form_session.succeeded:
        # Coming back after a sent lead starts a new form session.
        form_session = restart_form_session(request, channel=channel)

    if request.method != "POST":
        return _render_form(request, form_session, form=LeadContactForm(initial=form_session.fields))

    action = (request.POST.get("action") or "submit").strip().lower()
    if action == "add":
        with form_session.lock:
            form_session.intake.select(candidates_from_request(request))
        return _render_form(request, form_session, form=LeadContactForm(initial=request.POST.dict()))
    if action == "remove":
        try:
            index = int(request.POST.get("index", ""))
        except ValueError:
            index = -1
        with form_session.lock:
            form_session.intake.remove(index)
        return _render_form(request, form_session, form=LeadContactForm(initial=request.POST.dict()))
    if action == "reset":
        with form_session.lock:
            form_session.update_fields({})
            form_session.intake.reset()
        return _render_form(request, form_session, form=LeadContactForm())

    return _submit_lead(request, form_session)


def _submit_lead(request, form_session):
    form = LeadContactForm(request.POST)
    candidates = candidates_from_request(request)
    if candidates:
        with form_session.lock:
            form_session.intake.select(candidates)
    if not form.is_valid():
        return _render_form(request, form_session, form=form, status=400)

    with form_session.lock:
        form_session.update_fields(form.cleaned_data)
    state = form_session.submit(destination=configured_webhook_url())

    if state.status == STATUS_SUCCEEDED:
        messages.success(request, state.message)
        return redirect("/success")
    if state.status == STATUS_SUBMITTING:
        messages.info(request, "Your form is already being sent. Please wait.")
        return _render_form(request, form_session, form=form, status=409)
    if state.status == STATUS_FAILED and state.reason == REASON_MISSING_FILES:
        return _render_form(request, form_session, form=form, intake_error=state.message, status=400)

    messages.error(request, state.message)
    return _render_form(request, form_session, form=form, status=_FAILURE_STATUS.get(state.reason, 502))


def lead_success(request):
    form_session = resolve_form_session(request)
    if not form_session.succeeded:
        return redirect("/")
    response = render(
        request,
        "leads/lead_success.html",
        {"origin": form_session.origin},
    )
    return apply_no_store(response)
