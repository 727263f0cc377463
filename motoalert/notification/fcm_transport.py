from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from motoalert.core.credentials import FCM_SCOPES, authorized_session
from motoalert.core.errors import PushTransportError
from motoalert.notification.base import (
    INVALID_REGISTRATION_TOKEN,
    REGISTRATION_TOKEN_NOT_REGISTERED,
    BatchResponse,
    PushMessage,
    SendError,
    SendResult,
)

AUTHENTICATION_ERROR = "authentication-error"

FCM_ENDPOINT = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"

_STATUS_TO_CODE = {
    "UNREGISTERED": REGISTRATION_TOKEN_NOT_REGISTERED,
    "NOT_FOUND": REGISTRATION_TOKEN_NOT_REGISTERED,
    "QUOTA_EXCEEDED": "message-rate-exceeded",
    "RESOURCE_EXHAUSTED": "message-rate-exceeded",
    "UNAVAILABLE": "server-unavailable",
    "INTERNAL": "internal-error",
    "SENDER_ID_MISMATCH": "mismatched-credential",
    "THIRD_PARTY_AUTH_ERROR": "third-party-auth-error",
    "UNAUTHENTICATED": AUTHENTICATION_ERROR,
}


@dataclass(frozen=True)
class FcmConfig:
    """
    Configuration for FCM HTTP v1 delivery.

    Parameters
    ----------
    project_id
        Firebase project id.
    access_token
        Static OAuth2 access token for the messaging scope (sent as Bearer).
        Short-lived; meant for local runs.
    credentials_file
        Service-account key file. When set, tokens are minted and refreshed
        from it and ``access_token`` is ignored.
    timeout_s
        HTTP request timeout in seconds.
    endpoint
        Send URL template; ``{project_id}`` is substituted.
    """

    project_id: str
    access_token: Optional[str] = None
    credentials_file: Optional[str] = None
    timeout_s: float = 5.0
    endpoint: str = FCM_ENDPOINT


def _error_status(body: Any) -> Tuple[str, str]:
    """
    Extract (status, message) from an FCM v1 error body.

    The FCM-specific ``errorCode`` detail takes precedence over the generic
    RPC status.
    """
    if not isinstance(body, dict):
        return "", ""
    err = body.get("error")
    if not isinstance(err, dict):
        return "", ""
    status = str(err.get("status") or "")
    message = str(err.get("message") or "")
    for detail in err.get("details") or []:
        if isinstance(detail, dict) and detail.get("errorCode"):
            status = str(detail["errorCode"])
            break
    return status, message


def map_fcm_error(status: str, message: str) -> str:
    """Map an FCM v1 status to the admin-SDK style per-token error code."""
    if status == "INVALID_ARGUMENT":
        if "registration token" in message.lower():
            return INVALID_REGISTRATION_TOKEN
        return "invalid-argument"
    return _STATUS_TO_CODE.get(status, "unknown-error")


class FcmPushTransport:
    """
    Push transport that delivers messages through the FCM HTTP v1 API.

    FCM v1 accepts one target per request, so a batch is fanned out as one
    POST per token. A failure for one token never stops the others.

    Notes
    -----
    - This class performs side effects (network I/O).
    - HTTP 401 on the first token aborts the whole batch. A 401 after some
      tokens were already attempted is recorded per token, so results
      collected so far (delivered pushes, dead registrations) are kept.
    """

    def __init__(self, cfg: FcmConfig, session: Optional[requests.Session] = None):
        self._cfg = cfg
        if session is None:
            session = (
                authorized_session(cfg.credentials_file, FCM_SCOPES)
                if cfg.credentials_file
                else requests.Session()
            )
        self._session = session
        self._url = cfg.endpoint.format(project_id=cfg.project_id)
        self._log = logging.getLogger("motoalert.fcm")

    def _build_body(self, token: str, message: PushMessage) -> Dict[str, Any]:
        msg: Dict[str, Any] = {
            "token": token,
            "notification": {"title": message.title, "body": message.body},
            "data": dict(message.data),
        }
        webpush: Dict[str, Any] = {}
        if message.icon:
            webpush["notification"] = {"icon": message.icon}
        if message.link:
            webpush["fcm_options"] = {"link": message.link}
        if webpush:
            msg["webpush"] = webpush
        return {"message": msg}

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if not self._cfg.credentials_file and self._cfg.access_token:
            headers["Authorization"] = f"Bearer {self._cfg.access_token}"
        return headers

    def _send_one(self, token: str, message: PushMessage, headers: Dict[str, str], first: bool) -> SendResult:
        try:
            r = self._session.post(
                self._url,
                json=self._build_body(token, message),
                headers=headers,
                timeout=self._cfg.timeout_s,
            )
        except requests.RequestException as e:
            return SendResult(token=token, error=SendError(code="network-error", message=repr(e)))

        if r.status_code == 401:
            if first:
                raise PushTransportError("FCM rejected credentials", status_code=401, body=r.text)
            return SendResult(token=token, error=SendError(code=AUTHENTICATION_ERROR, message=r.text[:200]))

        try:
            body = r.json()
        except ValueError:
            body = None

        if 200 <= r.status_code < 300:
            name = body.get("name") if isinstance(body, dict) else None
            return SendResult(token=token, message_id=str(name or ""))

        status, msg = _error_status(body)
        code = map_fcm_error(status, msg) if status else f"http-{r.status_code}"
        return SendResult(token=token, error=SendError(code=code, message=msg or r.text[:200]))

    def send(self, tokens: Sequence[str], message: PushMessage) -> BatchResponse:
        """
        Send ``message`` to every token.

        Raises
        ------
        PushTransportError
            If no credential is configured, or the first request is rejected
            with HTTP 401 (nothing has been delivered yet).
        """
        if not (self._cfg.access_token or self._cfg.credentials_file):
            raise PushTransportError("FCM credentials are not configured")

        headers = self._headers()
        results: List[SendResult] = []
        for i, token in enumerate(tokens):
            results.append(self._send_one(token, message, headers, first=i == 0))

        response = BatchResponse(results=results)
        self._log.debug(
            "fcm batch: %d ok, %d failed", response.success_count, response.failure_count
        )
        return response
