"""Lead origin tagging from the channel path segment."""

from __future__ import annotations

from django.conf import settings

DEFAULT_ORIGIN = "direct"
DEFAULT_CHANNELS = (
    "mariadocarmoalves",
    "casagradedasubaias",
    "itaoca",
    "instagram",
)


def recognized_channels() -> tuple[str, ...]:
    raw = getattr(settings, "LEADFORM_CHANNELS", None)
    if raw is None:
        return DEFAULT_CHANNELS
    return tuple(str(item).strip().lower() for item in raw if str(item).strip())


def default_origin() -> str:
    """Tag sent when the form was not reached through a recognized channel."""
    return (getattr(settings, "LEADFORM_DEFAULT_ORIGIN", "") or "").strip() or DEFAULT_ORIGIN


def resolve_origin(channel: str | None, *, allowed: tuple[str, ...] | None = None) -> str:
    """Return the channel id when it is on the allow-list, else the default tag."""
    value = (channel or "").strip().lower()
    choices = recognized_channels() if allowed is None else allowed
    if value and value in choices:
        return value
    return default_origin()
