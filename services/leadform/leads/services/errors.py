"""Failure types raised inside the submission pipeline.

`SubmissionController` catches all of these at its boundary and turns them
into a `Failed(reason)` state; none of them reach the views.
"""

from __future__ import annotations


class LeadFormError(Exception):
    reason = "error"


class ConfigurationError(LeadFormError):
    """Destination webhook is missing or malformed."""

    reason = "configuration"


class NetworkError(LeadFormError):
    """No response was received (connection failure, DNS, or abort)."""

    reason = "network"

    def __init__(self, message: str = "", *, timed_out: bool = False):
        super().__init__(message or ("timeout" if timed_out else "network"))
        self.timed_out = timed_out
        if timed_out:
            self.reason = "timeout"


class ServerError(LeadFormError):
    """The receiver answered with a non-2xx status."""

    def __init__(self, status_code: int, status_text: str = ""):
        super().__init__(f"{status_code} {status_text}".strip())
        self.status_code = status_code
        self.status_text = status_text
        if status_code == 413:
            self.reason = "payload too large"
        elif status_code == 429:
            self.reason = "rate limited"
        else:
            self.reason = "server error"
