from __future__ import annotations

from typing import Dict, Optional

from motoalert.domain.models import AlertCandidate, AlertKind, MotorcycleProfile
from motoalert.notification.base import PushMessage

DEFAULT_ICON = "/icons/icon-192x192.png"

# Bodies starting with these already say what they are about.
_SELF_DESCRIBING_PREFIXES = ("DTC:", "Parameter")


def dashboard_link(motorcycle_id: str, prefix: str = "/dashboard") -> str:
    return f"{prefix.rstrip('/')}/{motorcycle_id}"


def fallback_display_name(motorcycle_id: str, vin: Optional[str] = None) -> str:
    return f"Motorcycle ({vin or motorcycle_id})"


def display_name(profile: Optional[MotorcycleProfile], motorcycle_id: str) -> str:
    """
    Build a human name for a motorcycle.

    Priority
    --------
    1) ``profile.name``
    2) ``"<make> <model>"`` (either part may be missing)
    3) ``"Motorcycle (<vin>)"``, VIN falling back to the motorcycle id
    """
    if profile is None:
        return fallback_display_name(motorcycle_id)
    if profile.name:
        return profile.name
    make_model = " ".join(p for p in (profile.make, profile.model) if p)
    if make_model:
        return make_model
    return fallback_display_name(motorcycle_id, profile.vin)


def render_push_body(body: str, name: str) -> str:
    if body.startswith(_SELF_DESCRIBING_PREFIXES):
        return body
    return f"Your {name} reports: {body}"


def build_push_message(
    candidate: AlertCandidate,
    motorcycle_id: str,
    name: str,
    icon: Optional[str] = DEFAULT_ICON,
    link_prefix: str = "/dashboard",
) -> PushMessage:
    """
    Build the push payload for an alert candidate.

    Parameters
    ----------
    candidate
        Alert that triggered the push.
    motorcycle_id
        Routing id of the motorcycle.
    name
        Resolved display name of the motorcycle.
    icon
        Web-push icon path, or None for no icon.
    link_prefix
        Dashboard path prefix used for the click target.

    Returns
    -------
    PushMessage
        Title with the display name appended, body and a string-only data payload.
    """
    link = dashboard_link(motorcycle_id, link_prefix)
    data: Dict[str, str] = {
        "motorcycleId": motorcycle_id,
        "severity": candidate.severity.value,
        "kind": candidate.kind.value,
        "click_action": link,
    }
    if candidate.kind is AlertKind.PARAMETER:
        data["paramName"] = candidate.source_code
    else:
        data["code"] = candidate.source_code

    return PushMessage(
        title=f"{candidate.title} - {name}",
        body=render_push_body(candidate.body, name),
        data=data,
        icon=icon,
        link=link,
    )
