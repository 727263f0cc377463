from __future__ import annotations

from typing import Optional


class MotoAlertError(Exception):
    """Base class for errors raised by the alert engine."""


class StoreError(MotoAlertError):
    """
    A read or write against the realtime database failed.

    Parameters
    ----------
    operation
        Short operation name (e.g., "list_tokens", "append_notification").
    path
        Database path the operation targeted.
    cause
        Optional underlying exception.
    """

    def __init__(self, operation: str, path: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.path = path
        self.cause = cause
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"{operation} failed for {path}{detail}")


class PushTransportError(MotoAlertError):
    """The push transport could not attempt the batch at all (auth, config)."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)
