"""
Alert pipeline for one trigger invocation.

The pipeline is what the trigger adapter runs for every write to a
motorcycle's "latest" record:

    (before, after, user_id, motorcycle_id)
        -> classify
        -> { persist in-app notification, dispatch push }

The two side effects have no ordering dependency. They run as two
independent tasks joined at the end; a failure in one never cancels or
hides the other. The pipeline holds no mutable state, so one instance can
serve concurrent invocations for different users and motorcycles.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Optional

from motoalert.core.alert.classifier import CollectionOrder, classify
from motoalert.core.result import StepResult, run_step
from motoalert.domain.models import AlertCandidate, AppNotification, snapshot_from_dict
from motoalert.notification.dispatcher import DispatchResult, PushDispatcher
from motoalert.notification.payload import display_name
from motoalert.notification.persister import NotificationPersister


@dataclass(frozen=True)
class TriggerInvocation:
    """
    Input of one trigger: raw before/after records plus routing ids.

    ``before`` is None on creation, ``after`` is None on deletion.
    """

    user_id: str
    motorcycle_id: str
    before: Optional[Any] = None
    after: Optional[Any] = None


@dataclass(frozen=True)
class PipelineOutcome:
    """
    What one invocation did.

    Parameters
    ----------
    candidate
        Classified alert, or None when nothing was raised.
    notification
        Result of the in-app notification write (None when skipped).
    dispatch
        Push dispatch result (None when skipped or crashed).
    """

    candidate: Optional[AlertCandidate] = None
    notification: Optional[StepResult[AppNotification]] = None
    dispatch: Optional[DispatchResult] = None

    @property
    def alerted(self) -> bool:
        return self.candidate is not None


class AlertPipeline:
    """
    Classify a snapshot transition and fan out its side effects.

    Parameters
    ----------
    persister
        Writes the in-app notification.
    dispatcher
        Sends the push notification.
    order
        Tie-breaking order used by the classifier.
    """

    def __init__(
        self,
        persister: NotificationPersister,
        dispatcher: PushDispatcher,
        order: CollectionOrder = CollectionOrder.STORED,
    ):
        self._persister = persister
        self._dispatcher = dispatcher
        self._order = order
        self._log = logging.getLogger("motoalert.pipeline")

    def handle(self, inv: TriggerInvocation) -> PipelineOutcome:
        """
        Run the pipeline for one invocation. Never raises.
        """
        ctx = f"user={inv.user_id} motorcycle={inv.motorcycle_id}"

        after = snapshot_from_dict(inv.after)
        if after is None:
            self._log.info("latest record deleted, nothing to evaluate (%s)", ctx)
            return PipelineOutcome()

        before = snapshot_from_dict(inv.before)
        candidate = classify(before, after, self._order)
        if candidate is None:
            self._log.debug("no alert for transition (%s)", ctx)
            return PipelineOutcome()

        self._log.info(
            "alert %s/%s for %s (%s)",
            candidate.kind.value,
            candidate.severity.value,
            candidate.source_code,
            ctx,
        )

        name = display_name(after.profile, inv.motorcycle_id)

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="alert-side-effect") as pool:
            persist_f = pool.submit(
                run_step,
                "persist_notification",
                lambda: self._persister.persist(inv.user_id, inv.motorcycle_id, name, candidate),
                self._log,
                ctx,
            )
            dispatch_f = pool.submit(
                run_step,
                "dispatch_push",
                lambda: self._dispatcher.dispatch(inv.user_id, inv.motorcycle_id, candidate, name),
                self._log,
                ctx,
            )
            persisted: StepResult[AppNotification] = persist_f.result()
            dispatched: StepResult[DispatchResult] = dispatch_f.result()

        dispatch = dispatched.value if dispatched.ok else None
        self._log.info(
            "alert handled: notification=%s push=%s (%s)",
            "ok" if persisted.ok else "failed",
            dispatch.status.value if dispatch is not None else "crashed",
            ctx,
        )
        return PipelineOutcome(candidate=candidate, notification=persisted, dispatch=dispatch)
