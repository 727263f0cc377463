"""
Push dispatch for a classified alert.

`PushDispatcher` fans one alert out to every push endpoint registered by the
user and keeps the registration set clean.

Steps
-----
1. Preference check: the user's push flag; unset or unreadable counts as enabled.
2. Token resolution: no tokens means nothing to send (not an error).
3. Display-name resolution: best effort from the profile store.
4. Payload construction.
5. One batched send.
6. Deletion of tokens the transport reports as permanently invalid.

Every step is individually recovered. ``dispatch`` never raises: an exception
reaching the trigger would make the platform replay the whole event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from motoalert.core.result import run_step
from motoalert.domain.models import AlertCandidate
from motoalert.notification.base import BatchResponse, PushTransport
from motoalert.notification.payload import (
    DEFAULT_ICON,
    build_push_message,
    display_name,
    fallback_display_name,
)
from motoalert.storage.base import PreferenceStore, ProfileStore, TokenStore


class DispatchStatus(str, Enum):
    """
    Overall outcome of one dispatch.

    Members
    -------
    SENT : str
        The batch was handed to the transport (individual tokens may still fail).
    DISABLED : str
        The user turned push notifications off; nothing was sent.
    NO_RECIPIENTS : str
        No registered tokens (or they could not be read).
    TRANSPORT_FAILED : str
        The batched send failed as a whole.
    """

    SENT = "SENT"
    DISABLED = "DISABLED"
    NO_RECIPIENTS = "NO_RECIPIENTS"
    TRANSPORT_FAILED = "TRANSPORT_FAILED"


@dataclass(frozen=True)
class DispatchResult:
    status: DispatchStatus
    success_count: int = 0
    failure_count: int = 0
    removed_tokens: List[str] = field(default_factory=list)
    retained_failed_tokens: List[str] = field(default_factory=list)
    display_name: Optional[str] = None


class PushDispatcher:
    """
    Sends push notifications for alerts and prunes dead registrations.

    Parameters
    ----------
    preferences
        Store holding the user's push opt-in flag.
    tokens
        Store of registered push tokens (read-all and delete-one).
    profiles
        Store used to resolve the motorcycle display name.
    transport
        Push transport.
    icon
        Web-push icon path included in the payload.
    link_prefix
        Dashboard path prefix used for click targets.
    """

    def __init__(
        self,
        preferences: PreferenceStore,
        tokens: TokenStore,
        profiles: ProfileStore,
        transport: PushTransport,
        icon: Optional[str] = DEFAULT_ICON,
        link_prefix: str = "/dashboard",
    ):
        self._preferences = preferences
        self._tokens = tokens
        self._profiles = profiles
        self._transport = transport
        self._icon = icon
        self._link_prefix = link_prefix
        self._log = logging.getLogger("motoalert.dispatch")

    def dispatch(
        self,
        user_id: str,
        motorcycle_id: str,
        candidate: AlertCandidate,
        motorcycle_display_name: Optional[str] = None,
    ) -> DispatchResult:
        """
        Dispatch ``candidate`` to the user's devices.

        Parameters
        ----------
        user_id, motorcycle_id
            Routing identifiers.
        candidate
            The classified alert.
        motorcycle_display_name
            Name used when the profile store has no usable profile; defaults
            to ``"Motorcycle (<id>)"``.

        Returns
        -------
        DispatchResult
            Never raises.
        """
        ctx = f"user={user_id} motorcycle={motorcycle_id}"

        # 1) preference, fail open
        pref = run_step(
            "read_preference",
            lambda: self._preferences.push_enabled(user_id),
            self._log,
            ctx,
            level=logging.WARNING,
        )
        if pref.ok and pref.value is False:
            self._log.info("push disabled by user preference (%s)", ctx)
            return DispatchResult(status=DispatchStatus.DISABLED)

        # 2) tokens
        listed = run_step("list_tokens", lambda: self._tokens.list_tokens(user_id), self._log, ctx)
        tokens = list(listed.value or []) if listed.ok else []
        if not tokens:
            self._log.warning("no push tokens registered, nothing to send (%s)", ctx)
            return DispatchResult(status=DispatchStatus.NO_RECIPIENTS)

        # 3) display name, degrade to fallback
        name = motorcycle_display_name or fallback_display_name(motorcycle_id)
        profile = run_step(
            "read_profile",
            lambda: self._profiles.get_profile(user_id, motorcycle_id),
            self._log,
            ctx,
            level=logging.WARNING,
        )
        if profile.ok and profile.value is not None:
            name = display_name(profile.value, motorcycle_id)

        # 4) payload
        message = build_push_message(
            candidate,
            motorcycle_id,
            name,
            icon=self._icon,
            link_prefix=self._link_prefix,
        )

        # 5) send
        self._log.info("sending %s alert %s to %d token(s) (%s)",
                       candidate.severity.value, candidate.source_code, len(tokens), ctx)
        sent = run_step("send", lambda: self._transport.send(tokens, message), self._log, ctx)
        if not sent.ok or sent.value is None:
            return DispatchResult(
                status=DispatchStatus.TRANSPORT_FAILED,
                failure_count=len(tokens),
                display_name=name,
            )

        response: BatchResponse = sent.value
        self._log.info("push result: %d ok, %d failed (%s)",
                       response.success_count, response.failure_count, ctx)

        # 6) cleanup
        removed, retained = self._cleanup(user_id, response, ctx)
        return DispatchResult(
            status=DispatchStatus.SENT,
            success_count=response.success_count,
            failure_count=response.failure_count,
            removed_tokens=removed,
            retained_failed_tokens=retained,
            display_name=name,
        )

    def _cleanup(self, user_id: str, response: BatchResponse, ctx: str) -> Tuple[List[str], List[str]]:
        removed: List[str] = []
        retained: List[str] = []
        for result in response.results:
            if result.error is None:
                continue
            token = result.token
            self._log.warning("send to token %s failed: %s %s (%s)",
                              token, result.error.code, result.error.message, ctx)
            if not result.error.is_permanent:
                retained.append(token)
                continue

            deleted = run_step(
                "delete_token",
                lambda t=token: self._tokens.delete_token(user_id, t),
                self._log,
                f"{ctx} token={token}",
            )
            if deleted.ok:
                self._log.info("removed invalid token %s (%s)", token, ctx)
                removed.append(token)
        return removed, retained
