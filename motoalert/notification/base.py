from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence

# Per-token error codes that mean the registration is permanently dead.
INVALID_REGISTRATION_TOKEN = "invalid-registration-token"
REGISTRATION_TOKEN_NOT_REGISTERED = "registration-token-not-registered"

PERMANENT_TOKEN_ERRORS = frozenset({INVALID_REGISTRATION_TOKEN, REGISTRATION_TOKEN_NOT_REGISTERED})


@dataclass(frozen=True)
class PushMessage:
    """
    Push payload contract used by the notification layer.

    A `PushMessage` represents *what should be shown* on the device, not
    *how* it is delivered.

    Parameters
    ----------
    title
        Notification title.
    body
        Notification body.
    data
        String-to-string data payload (motorcycle id, code, severity, click target).
    icon
        Optional web-push icon path.
    link
        Optional click-through link for web push.
    """

    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)
    icon: Optional[str] = None
    link: Optional[str] = None


@dataclass(frozen=True)
class SendError:
    code: str
    message: str = ""

    @property
    def is_permanent(self) -> bool:
        return self.code in PERMANENT_TOKEN_ERRORS


@dataclass(frozen=True)
class SendResult:
    """Outcome for one token; exactly one of ``message_id``/``error`` is set."""

    token: str
    message_id: Optional[str] = None
    error: Optional[SendError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BatchResponse:
    """
    Result of one batched send, with results in the same order as the tokens.
    """

    results: List[SendResult]

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failure_count(self) -> int:
        return len(self.results) - self.success_count


class PushTransport(Protocol):
    """
    Protocol interface for push delivery.

    Any transport implementation can be used if it provides ``send``. Per-token
    failures are reported in the response; only a failure of the whole batch
    raises (`PushTransportError`).
    """

    def send(self, tokens: Sequence[str], message: PushMessage) -> BatchResponse:
        ...
