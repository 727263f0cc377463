"""
Unit tests for motoalert.notification.fcm_transport.

These tests validate FCM delivery using a fake HTTP session:
- request URL, headers and message body passed to session.post
- per-token error mapping to admin-SDK style codes
- per-token isolation of network errors
- whole-batch failure on missing credentials or a rejected first request
- partial results kept when credentials are rejected mid-batch
- service-account credentials used instead of a static token

No real network requests are made.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List
from unittest.mock import MagicMock

import pytest
import requests

from motoalert.core.credentials import FCM_SCOPES
from motoalert.core.errors import PushTransportError
from motoalert.notification.base import (
    INVALID_REGISTRATION_TOKEN,
    REGISTRATION_TOKEN_NOT_REGISTERED,
    PushMessage,
)
from motoalert.notification.fcm_transport import (
    AUTHENTICATION_ERROR,
    FcmConfig,
    FcmPushTransport,
    map_fcm_error,
)


class FakeSession:
    """Records posts and answers through ``reply(token)``."""

    def __init__(self, reply: Callable[[str], Any]) -> None:
        self.reply = reply
        self.calls: List[Dict[str, Any]] = []

    def post(self, url: str, json: Dict[str, Any], headers: Dict[str, str], timeout: float):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        answer = self.reply(json["message"]["token"])
        if isinstance(answer, Exception):
            raise answer
        return answer


def _mk_message() -> PushMessage:
    return PushMessage(
        title="Critical DTC Alert - Bike",
        body="DTC: P0217 - Overheat",
        data={"motorcycleId": "m1", "code": "P0217"},
        icon="/icons/icon-192x192.png",
        link="/dashboard/m1",
    )


def _response(status: int, body: Any) -> MagicMock:
    r = MagicMock()
    r.status_code = status
    r.json.return_value = body
    r.text = str(body)
    return r


def _fcm_error(status: str, message: str = "", error_code: str = "") -> Dict[str, Any]:
    details = [{"@type": "type.googleapis.com/google.firebase.fcm.v1.FcmError", "errorCode": error_code}] if error_code else []
    return {"error": {"code": 400, "message": message, "status": status, "details": details}}


def _transport(session: FakeSession, **cfg: Any) -> FcmPushTransport:
    cfg.setdefault("access_token", "x")
    return FcmPushTransport(FcmConfig(project_id="p", **cfg), session=session)  # type: ignore[arg-type]


def test_send_posts_one_message_per_token() -> None:
    session = FakeSession(lambda t: _response(200, {"name": f"projects/p/messages/{t}"}))

    resp = _transport(session, access_token="TOKEN", timeout_s=3.0).send(["t1", "t2"], _mk_message())

    assert resp.success_count == 2
    assert resp.failure_count == 0
    assert [r.message_id for r in resp.results] == ["projects/p/messages/t1", "projects/p/messages/t2"]

    first = session.calls[0]
    assert first["url"] == "https://fcm.googleapis.com/v1/projects/p/messages:send"
    assert first["headers"]["Authorization"] == "Bearer TOKEN"
    assert first["timeout"] == 3.0
    msg = first["json"]["message"]
    assert msg["token"] == "t1"
    assert msg["notification"] == {"title": "Critical DTC Alert - Bike", "body": "DTC: P0217 - Overheat"}
    assert msg["data"] == {"motorcycleId": "m1", "code": "P0217"}
    assert msg["webpush"]["notification"]["icon"] == "/icons/icon-192x192.png"
    assert msg["webpush"]["fcm_options"]["link"] == "/dashboard/m1"


def test_per_token_errors_are_mapped() -> None:
    bodies = {
        "gone": _response(404, _fcm_error("NOT_FOUND", "Requested entity was not found.", "UNREGISTERED")),
        "bad": _response(400, _fcm_error("INVALID_ARGUMENT", "The registration token is not a valid FCM registration token")),
        "busy": _response(503, _fcm_error("UNAVAILABLE", "try later")),
        "ok": _response(200, {"name": "projects/p/messages/9"}),
    }

    resp = _transport(FakeSession(bodies.__getitem__)).send(["gone", "bad", "busy", "ok"], _mk_message())

    codes = [r.error.code if r.error else None for r in resp.results]
    assert codes == [REGISTRATION_TOKEN_NOT_REGISTERED, INVALID_REGISTRATION_TOKEN, "server-unavailable", None]
    assert resp.failure_count == 3
    assert resp.results[0].error is not None and resp.results[0].error.is_permanent
    assert resp.results[2].error is not None and not resp.results[2].error.is_permanent


def test_network_error_affects_only_that_token() -> None:
    def reply(token: str) -> Any:
        if token == "t1":
            return requests.ConnectionError("reset")
        return _response(200, {"name": "m"})

    resp = _transport(FakeSession(reply)).send(["t1", "t2"], _mk_message())

    assert resp.results[0].error is not None
    assert resp.results[0].error.code == "network-error"
    assert resp.results[1].ok


def test_rejected_credentials_on_first_request_fail_the_batch() -> None:
    session = FakeSession(lambda t: _response(401, {"error": {"status": "UNAUTHENTICATED"}}))

    with pytest.raises(PushTransportError):
        _transport(session).send(["t1", "t2"], _mk_message())
    assert len(session.calls) == 1


def test_rejected_credentials_mid_batch_keep_earlier_results() -> None:
    bodies = {
        "dead": _response(404, _fcm_error("NOT_FOUND", "gone", "UNREGISTERED")),
        "alive": _response(200, {"name": "projects/p/messages/1"}),
        "third": _response(401, {"error": {"status": "UNAUTHENTICATED"}}),
    }

    resp = _transport(FakeSession(bodies.__getitem__)).send(["dead", "alive", "third"], _mk_message())

    assert resp.success_count == 1
    assert resp.failure_count == 2
    assert resp.results[0].error is not None and resp.results[0].error.is_permanent
    assert resp.results[2].error is not None
    assert resp.results[2].error.code == AUTHENTICATION_ERROR
    assert not resp.results[2].error.is_permanent


def test_missing_credentials_fail_the_batch() -> None:
    session = FakeSession(lambda t: _response(200, {"name": "m"}))

    with pytest.raises(PushTransportError):
        FcmPushTransport(FcmConfig(project_id="p"), session=session).send(["t1"], _mk_message())  # type: ignore[arg-type]
    assert session.calls == []


def test_service_account_session_replaces_static_token(monkeypatch) -> None:
    session = FakeSession(lambda t: _response(200, {"name": "m"}))
    built: List[Any] = []

    def fake_authorized_session(path: str, scopes: Any) -> FakeSession:
        built.append((path, tuple(scopes)))
        return session

    monkeypatch.setattr("motoalert.notification.fcm_transport.authorized_session", fake_authorized_session)

    transport = FcmPushTransport(FcmConfig(project_id="p", access_token="stale", credentials_file="/keys/sa.json"))
    resp = transport.send(["t1"], _mk_message())

    assert resp.success_count == 1
    assert built == [("/keys/sa.json", FCM_SCOPES)]
    assert "Authorization" not in session.calls[0]["headers"]


def test_map_fcm_error_defaults() -> None:
    assert map_fcm_error("INVALID_ARGUMENT", "bad payload field") == "invalid-argument"
    assert map_fcm_error("QUOTA_EXCEEDED", "") == "message-rate-exceeded"
    assert map_fcm_error("UNAUTHENTICATED", "") == AUTHENTICATION_ERROR
    assert map_fcm_error("SOMETHING_NEW", "") == "unknown-error"
