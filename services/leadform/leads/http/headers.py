"""Response hardening helpers for form pages and intake endpoints."""

from __future__ import annotations

from django.http import HttpResponse


def apply_no_store(response: HttpResponse, *, private: bool = True, pragma: bool = True) -> HttpResponse:
    """Mark a response as non-cacheable; form pages carry per-visitor state."""
    response["Cache-Control"] = "private, no-store" if private else "no-store"
    if pragma:
        response["Pragma"] = "no-cache"
    return response
