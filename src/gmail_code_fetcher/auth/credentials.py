"""OAuth client configuration and credential values.

`Credential` is immutable: obtaining a new token produces a new value, and
requests are authorized with the pure `attach` function instead of handing
a self-refreshing SDK object to the transport.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gmail_code_fetcher.exceptions import AuthFailedError, ConfigMissingError

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_REDIRECT_URI = "http://localhost"


class ClientConfig(BaseModel):
    """Installed-app OAuth client, as read from the client secrets file."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1)
    redirect_uri: str = DEFAULT_REDIRECT_URI
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI

    def to_client_secrets(self) -> dict[str, Any]:
        """Return the config in the client secrets shape google-auth-oauthlib expects."""
        return {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uris": [self.redirect_uri],
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
            }
        }


def load_client_config(path: Path) -> ClientConfig:
    """Load the OAuth client from a Google client secrets file.

    Args:
        path: Path to the JSON file downloaded from Google Cloud Console.

    Returns:
        ClientConfig: The parsed client.

    Raises:
        ConfigMissingError: If the file is absent or does not describe a client.
    """
    if not path.exists():
        raise ConfigMissingError(
            f"Missing OAuth client secrets file at {path}. Create a Desktop OAuth client in "
            "Google Cloud Console (APIs & Services -> Credentials), download the JSON and "
            "save it at this path."
        )

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigMissingError(f"Client secrets file {path} is not valid JSON: {exc}") from exc

    block = None
    if isinstance(data, dict):
        block = data.get("installed") or data.get("web")
    if not isinstance(block, dict):
        raise ConfigMissingError(
            f"Client secrets file {path} has no 'installed' (or 'web') client section"
        )

    redirect_uris = block.get("redirect_uris") or [DEFAULT_REDIRECT_URI]
    try:
        return ClientConfig(
            client_id=block.get("client_id") or "",
            client_secret=block.get("client_secret") or "",
            redirect_uri=redirect_uris[0],
            auth_uri=block.get("auth_uri") or GOOGLE_AUTH_URI,
            token_uri=block.get("token_uri") or GOOGLE_TOKEN_URI,
        )
    except ValidationError as exc:
        raise ConfigMissingError(
            f"Client secrets file {path} is missing client_id or client_secret"
        ) from exc


def _parse_expiry(record: Mapping[str, Any]) -> datetime | None:
    raw = record.get("expiry")
    if isinstance(raw, str) and raw:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    # Node clients store expiry_date as epoch milliseconds.
    raw_ms = record.get("expiry_date")
    if isinstance(raw_ms, (int, float)) and not isinstance(raw_ms, bool):
        return datetime.fromtimestamp(raw_ms / 1000, tz=timezone.utc)
    return None


def _parse_scopes(record: Mapping[str, Any]) -> tuple[str, ...]:
    raw = record.get("scopes", record.get("scope"))
    if isinstance(raw, str):
        return tuple(s for s in raw.split() if s)
    if isinstance(raw, list):
        return tuple(str(s) for s in raw if s)
    return ()


class Credential(BaseModel):
    """Access rights to the Gmail API for one account."""

    model_config = ConfigDict(frozen=True)

    access_token: str | None = None
    refresh_token: str | None = None
    expiry: datetime | None = None
    scopes: tuple[str, ...] = ()
    client: ClientConfig

    @property
    def has_token(self) -> bool:
        """Whether the credential carries an access or a refresh token."""
        return bool(self.access_token or self.refresh_token)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Whether the access token is past its expiry. Unknown expiry counts as valid."""
        if self.expiry is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expiry

    @classmethod
    def from_record(cls, record: Mapping[str, Any], client: ClientConfig) -> Credential:
        """Build a credential from a token record plus the client it was issued to.

        Accepts Google's authorized-user shape (``token``, ``expiry``) and the
        Node client shape (``access_token``, ``expiry_date``).
        """
        access_token = record.get("token") or record.get("access_token")
        refresh_token = record.get("refresh_token")
        return cls(
            access_token=access_token if isinstance(access_token, str) and access_token else None,
            refresh_token=refresh_token if isinstance(refresh_token, str) and refresh_token else None,
            expiry=_parse_expiry(record),
            scopes=_parse_scopes(record),
            client=client,
        )

    def to_record(self) -> dict[str, Any]:
        """Serialize to Google's authorized-user JSON shape."""
        record: dict[str, Any] = {
            "token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_uri": self.client.token_uri,
            "client_id": self.client.client_id,
            "client_secret": self.client.client_secret,
            "scopes": list(self.scopes),
        }
        if self.expiry is not None:
            naive_utc = self.expiry.astimezone(timezone.utc).replace(tzinfo=None)
            record["expiry"] = naive_utc.isoformat() + "Z"
        return record


def attach(credential: Credential, headers: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a copy of ``headers`` authorized with the credential's bearer token.

    Raises:
        AuthFailedError: If the credential has no access token.
    """
    if not credential.access_token:
        raise AuthFailedError("Credential has no access token; re-run authorization")
    authorized = dict(headers or {})
    authorized["authorization"] = f"Bearer {credential.access_token}"
    return authorized
