"""
Shared test doubles for the store and transport protocols.

`FakeDatabase` implements every store protocol in memory and can be told to
fail individual operations. `FakeTransport` records sends and returns
preconfigured per-token errors.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import pytest

from motoalert.core.errors import PushTransportError, StoreError
from motoalert.domain.models import MotorcycleProfile
from motoalert.notification.base import BatchResponse, PushMessage, SendError, SendResult


class FakeDatabase:
    def __init__(self) -> None:
        self.preferences: Dict[str, Optional[bool]] = {}
        self.tokens: Dict[str, Dict[str, Any]] = {}
        self.profiles: Dict[Tuple[str, str], MotorcycleProfile] = {}
        self.notifications: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail: Set[str] = set()
        self.fail_delete_for: Set[str] = set()
        self.deleted: List[str] = []
        self._lock = threading.Lock()
        self._seq = 0

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail:
            raise StoreError(op, "users/...", RuntimeError("boom"))

    def push_enabled(self, user_id: str) -> Optional[bool]:
        self._maybe_fail("read_preference")
        return self.preferences.get(user_id)

    def list_tokens(self, user_id: str) -> List[str]:
        self._maybe_fail("list_tokens")
        return [t for t, marker in self.tokens.get(user_id, {}).items() if marker]

    def delete_token(self, user_id: str, token: str) -> None:
        self._maybe_fail("delete_token")
        if token in self.fail_delete_for:
            raise StoreError("delete_token", f"users/{user_id}/fcmTokens/{token}")
        with self._lock:
            self.tokens.get(user_id, {}).pop(token, None)
            self.deleted.append(token)

    def get_profile(self, user_id: str, motorcycle_id: str) -> Optional[MotorcycleProfile]:
        self._maybe_fail("read_profile")
        return self.profiles.get((user_id, motorcycle_id))

    def append_notification(self, user_id: str, record: Dict[str, Any]) -> Tuple[str, Optional[int]]:
        self._maybe_fail("append_notification")
        with self._lock:
            self._seq += 1
            key = f"-N{self._seq}"
            ts = 1_700_000_000_000 + self._seq
            self.notifications.setdefault(user_id, {})[key] = dict(record, timestamp=ts)
        return key, ts


class FakeTransport:
    def __init__(self, errors: Optional[Dict[str, SendError]] = None, raise_all: bool = False) -> None:
        self.errors = errors or {}
        self.raise_all = raise_all
        self.calls: List[Tuple[List[str], PushMessage]] = []

    def send(self, tokens: Sequence[str], message: PushMessage) -> BatchResponse:
        self.calls.append((list(tokens), message))
        if self.raise_all:
            raise PushTransportError("transport down")
        results = []
        for i, t in enumerate(tokens):
            err = self.errors.get(t)
            if err is not None:
                results.append(SendResult(token=t, error=err))
            else:
                results.append(SendResult(token=t, message_id=f"msg-{i}"))
        return BatchResponse(results=results)


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
