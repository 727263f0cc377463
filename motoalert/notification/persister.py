from __future__ import annotations

import logging
from dataclasses import replace

from motoalert.domain.models import AlertCandidate, AlertSeverity, AppNotification
from motoalert.notification.payload import dashboard_link
from motoalert.storage.base import NotificationStore


def notification_type(severity: AlertSeverity) -> AlertSeverity:
    """critical -> critical, warning -> warning, anything else -> info."""
    if severity in (AlertSeverity.CRITICAL, AlertSeverity.WARNING):
        return severity
    return AlertSeverity.INFO


class NotificationPersister:
    """
    Writes the in-app notification for a classified alert.

    The store generates the id and the server assigns the timestamp. Store
    failures propagate as `StoreError`; the pipeline decides how to degrade.
    """

    def __init__(self, store: NotificationStore, link_prefix: str = "/dashboard"):
        self._store = store
        self._link_prefix = link_prefix
        self._log = logging.getLogger("motoalert.persist")

    def persist(
        self,
        user_id: str,
        motorcycle_id: str,
        motorcycle_name: str,
        candidate: AlertCandidate,
    ) -> AppNotification:
        draft = AppNotification(
            id="",
            motorcycle_id=motorcycle_id,
            motorcycle_name=motorcycle_name,
            title=candidate.title,
            body=candidate.body,
            type=notification_type(candidate.severity),
            code=candidate.source_code,
            severity=candidate.severity,
            link=dashboard_link(motorcycle_id, self._link_prefix),
            read=False,
        )
        notification_id, ts = self._store.append_notification(user_id, draft.to_record())
        self._log.info(
            "persisted notification %s for user=%s motorcycle=%s code=%s",
            notification_id,
            user_id,
            motorcycle_id,
            candidate.source_code,
        )
        return replace(draft, id=notification_id, timestamp=ts)
