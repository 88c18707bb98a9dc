"""Authorization providers: the collaborators that issue and refresh tokens.

The Google implementation drives google-auth-oauthlib's installed-app flow
(browser consent, loopback redirect, code exchange) and google-auth's token
refresh. Google credential objects never leave this module; they are
converted into `Credential` values at the boundary.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Protocol

import structlog

from gmail_code_fetcher.auth.credentials import ClientConfig, Credential
from gmail_code_fetcher.exceptions import AuthFailedError

logger = structlog.get_logger()


class AuthorizationProvider(Protocol):
    """Issues credentials through interactive consent and refreshes them."""

    def run_consent(self, client: ClientConfig, scopes: Sequence[str]) -> Credential:
        """Run the interactive consent flow and return the issued credential."""
        ...

    def refresh(self, credential: Credential) -> Credential:
        """Fetch a new access token for the credential.

        Also used as the single forced fetch after a tokenless consent
        result. Implementations that need a refresh token raise
        AuthFailedError when it is missing.
        """
        ...


class GoogleAuthorizationProvider:
    """AuthorizationProvider backed by Google's OAuth libraries."""

    def __init__(self, port: int = 0, open_browser: bool = True) -> None:
        self.port = port
        self.open_browser = open_browser

    def run_consent(self, client: ClientConfig, scopes: Sequence[str]) -> Credential:
        # Imported lazily to keep import-time cost low and tests fast.
        from google.auth.exceptions import GoogleAuthError
        from google_auth_oauthlib.flow import InstalledAppFlow
        from oauthlib.oauth2.rfc6749.errors import OAuth2Error

        flow = InstalledAppFlow.from_client_config(client.to_client_secrets(), scopes=list(scopes))
        logger.info("oauth_consent_started", scopes=list(scopes), port=self.port)

        try:
            google_creds = flow.run_local_server(port=self.port, open_browser=self.open_browser)
        except (GoogleAuthError, OAuth2Error, OSError) as exc:
            raise AuthFailedError(f"Interactive authorization failed: {exc}") from exc

        logger.info("oauth_consent_completed")
        return Credential.from_record(json.loads(google_creds.to_json()), client)

    def refresh(self, credential: Credential) -> Credential:
        from google.auth.exceptions import GoogleAuthError
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials

        if not credential.refresh_token:
            raise AuthFailedError("Credential has no refresh token")

        google_creds = Credentials(
            token=credential.access_token,
            refresh_token=credential.refresh_token,
            token_uri=credential.client.token_uri,
            client_id=credential.client.client_id,
            client_secret=credential.client.client_secret,
            scopes=list(credential.scopes) or None,
        )
        try:
            google_creds.refresh(Request())
        except GoogleAuthError as exc:
            raise AuthFailedError(f"Token refresh failed: {exc}") from exc

        logger.info("oauth_token_refreshed")
        record = json.loads(google_creds.to_json())
        # The token endpoint may omit the refresh token on refresh.
        if not record.get("refresh_token"):
            record["refresh_token"] = credential.refresh_token
        return Credential.from_record(record, credential.client)
