"""Domain errors raised by the presence engine.

Every error here is a caller-recoverable business outcome. A toggle-off is a
normal success, never one of these. Storage failures are not wrapped and
propagate unchanged.
"""
from __future__ import annotations


class PresenceError(Exception):
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(PresenceError):
    status_code = 400


class NotFound(PresenceError):
    """Missing record, or a record owned by another station.

    Both cases are reported identically.
    """
    status_code = 404


class PreconditionFailed(PresenceError):
    status_code = 400


class Forbidden(PresenceError):
    status_code = 403
