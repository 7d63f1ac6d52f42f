"""Errors raised by the push dispatch layer."""
from typing import Optional


class PushDispatchError(Exception):
    """Base class for push dispatch failures."""


class InvalidGCMConfiguration(PushDispatchError, ValueError):
    """Raised synchronously when the dispatcher is built with bad arguments."""


class GCMTransportError(PushDispatchError):
    """The gateway could not answer a whole batch (network, auth, outage)."""

    def __init__(self, code: str, message: str = "", status_code: Optional[int] = None):
        super().__init__(message or code)
        self.code = code
        self.status_code = status_code
