from __future__ import annotations

from typing import Sequence

import requests
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

FCM_SCOPES = ("https://www.googleapis.com/auth/firebase.messaging",)
RTDB_SCOPES = (
    "https://www.googleapis.com/auth/firebase.database",
    "https://www.googleapis.com/auth/userinfo.email",
)


def authorized_session(credentials_file: str, scopes: Sequence[str]) -> requests.Session:
    """
    Build a session authenticated with a service-account key file.

    The returned session attaches an OAuth2 access token to every request and
    mints a new one when it expires, so long-running processes never hold a
    stale bearer token.

    Parameters
    ----------
    credentials_file
        Path to the service-account JSON key.
    scopes
        OAuth2 scopes requested for the token.
    """
    creds = service_account.Credentials.from_service_account_file(
        credentials_file, scopes=list(scopes)
    )
    return AuthorizedSession(creds)
