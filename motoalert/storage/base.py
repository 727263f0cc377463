"""
Store contracts used by the persister and the push dispatcher.

Implementations raise `StoreError` on any I/O failure. Callers decide how a
failure degrades; the protocols never swallow errors themselves.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Tuple

from motoalert.domain.models import MotorcycleProfile


class PreferenceStore(Protocol):
    def push_enabled(self, user_id: str) -> Optional[bool]:
        """Return the user's push opt-in flag, or None when unset."""
        ...


class TokenStore(Protocol):
    def list_tokens(self, user_id: str) -> List[str]:
        """Return registered push tokens (truthy markers only)."""
        ...

    def delete_token(self, user_id: str, token: str) -> None:
        ...


class ProfileStore(Protocol):
    def get_profile(self, user_id: str, motorcycle_id: str) -> Optional[MotorcycleProfile]:
        ...


class NotificationStore(Protocol):
    def append_notification(self, user_id: str, record: Dict[str, Any]) -> Tuple[str, Optional[int]]:
        """
        Append a notification record.

        Returns
        -------
        tuple
            ``(generated_id, server_timestamp)``; the timestamp may be None
            when it could not be read back.
        """
        ...
