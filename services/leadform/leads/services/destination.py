"""Webhook destination resolution and validation."""

from __future__ import annotations

from urllib.parse import urlsplit

from django.conf import settings

from .errors import ConfigurationError


def configured_webhook_url() -> str:
    return (getattr(settings, "LEADFORM_WEBHOOK_URL", "") or "").strip()


def validate_destination(url: str | None) -> str:
    """Return the normalized URL or raise `ConfigurationError`."""
    value = (url or "").strip()
    if not value:
        raise ConfigurationError("webhook URL is not configured")
    parts = urlsplit(value)
    if parts.scheme.lower() not in {"http", "https"} or not parts.netloc:
        raise ConfigurationError(f"webhook URL is malformed: {value!r}")
    try:
        parts.port
    except ValueError as exc:
        raise ConfigurationError(f"webhook URL has an invalid port: {value!r}") from exc
    return value
