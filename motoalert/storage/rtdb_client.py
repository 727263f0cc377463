from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from motoalert.core.credentials import RTDB_SCOPES, authorized_session
from motoalert.core.errors import StoreError
from motoalert.domain.models import MotorcycleProfile, profile_from_dict

# Realtime Database server-value placeholder for "now" on the server.
SERVER_TIMESTAMP = {".sv": "timestamp"}


@dataclass(frozen=True)
class RealtimeDatabaseConfig:
    """
    Configuration for the Realtime Database REST client.

    Parameters
    ----------
    url
        Database root URL (e.g., ``https://<project>-default-rtdb.firebaseio.com``).
    auth_token
        Optional database secret or ID token sent as the ``auth`` query
        parameter. ID tokens expire; prefer ``credentials_file`` for servers.
    credentials_file
        Service-account key file. When set, requests carry a refreshed OAuth2
        access token and ``auth_token`` is ignored.
    timeout_s
        HTTP request timeout in seconds.
    """

    url: str
    auth_token: Optional[str] = None
    credentials_file: Optional[str] = None
    timeout_s: float = 5.0


def user_path(user_id: str, *parts: str) -> str:
    segments = ["users", user_id, *parts]
    return "/".join(quote(str(s), safe="") for s in segments)


class RealtimeDatabaseClient:
    """
    Firebase Realtime Database access through its REST API.

    Implements `PreferenceStore`, `TokenStore`, `ProfileStore` and
    `NotificationStore`. Every request failure is raised as `StoreError`
    carrying the operation name and the path.

    Layout
    ------
    - ``users/<uid>/settings/pushNotificationsEnabled``: bool
    - ``users/<uid>/fcmTokens/<token>``: truthy marker
    - ``users/<uid>/motorcycles/<mid>/profile``: profile mapping
    - ``users/<uid>/appNotifications/<id>``: notification record
    """

    def __init__(self, cfg: RealtimeDatabaseConfig, session: Optional[requests.Session] = None):
        self._cfg = cfg
        if session is None:
            session = (
                authorized_session(cfg.credentials_file, RTDB_SCOPES)
                if cfg.credentials_file
                else requests.Session()
            )
        self._session = session
        self._log = logging.getLogger("motoalert.rtdb")

    # ---- low level -------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._cfg.url.rstrip('/')}/{path}.json"

    def _params(self) -> Dict[str, str]:
        if self._cfg.credentials_file or not self._cfg.auth_token:
            return {}
        return {"auth": self._cfg.auth_token}

    def _request(self, operation: str, method: str, path: str, body: Any = None) -> Any:
        try:
            r = self._session.request(
                method,
                self._url(path),
                params=self._params(),
                json=body,
                timeout=self._cfg.timeout_s,
            )
            r.raise_for_status()
            return r.json() if r.content else None
        except (requests.RequestException, ValueError) as e:
            raise StoreError(operation, path, e) from e

    def get(self, path: str, operation: str = "get") -> Any:
        return self._request(operation, "GET", path)

    def delete(self, path: str, operation: str = "delete") -> None:
        self._request(operation, "DELETE", path)

    def push(self, path: str, value: Dict[str, Any], operation: str = "push") -> str:
        """POST under ``path``; the database generates and returns the child key."""
        resp = self._request(operation, "POST", path, value)
        if not isinstance(resp, dict) or not resp.get("name"):
            raise StoreError(operation, path, ValueError(f"unexpected push response: {resp!r}"))
        return str(resp["name"])

    # ---- stores ----------------------------------------------------------

    def push_enabled(self, user_id: str) -> Optional[bool]:
        val = self.get(user_path(user_id, "settings", "pushNotificationsEnabled"), "read_preference")
        return val if isinstance(val, bool) else None

    def list_tokens(self, user_id: str) -> List[str]:
        val = self.get(user_path(user_id, "fcmTokens"), "list_tokens")
        if not isinstance(val, dict):
            return []
        return [token for token, marker in val.items() if marker]

    def delete_token(self, user_id: str, token: str) -> None:
        self.delete(user_path(user_id, "fcmTokens", token), "delete_token")

    def get_profile(self, user_id: str, motorcycle_id: str) -> Optional[MotorcycleProfile]:
        val = self.get(user_path(user_id, "motorcycles", motorcycle_id, "profile"), "read_profile")
        return profile_from_dict(val)

    def append_notification(self, user_id: str, record: Dict[str, Any]) -> Tuple[str, Optional[int]]:
        path = user_path(user_id, "appNotifications")
        body = dict(record)
        body["timestamp"] = SERVER_TIMESTAMP
        key = self.push(path, body, "append_notification")

        # The write itself succeeded; a failed read-back only loses the value.
        ts_path = f"{path}/{quote(key, safe='')}/timestamp"
        try:
            ts = self.get(ts_path, "read_notification_timestamp")
        except StoreError as e:
            self._log.warning("notification %s written but timestamp read-back failed: %s", key, e)
            return key, None
        return key, int(ts) if isinstance(ts, (int, float)) else None
