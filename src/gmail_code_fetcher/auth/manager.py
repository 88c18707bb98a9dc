"""Credential resolution: cached token, refresh, or interactive consent."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import structlog

from gmail_code_fetcher.auth.credentials import ClientConfig, Credential, load_client_config
from gmail_code_fetcher.auth.provider import AuthorizationProvider, GoogleAuthorizationProvider
from gmail_code_fetcher.auth.store import TokenStore
from gmail_code_fetcher.config import Settings
from gmail_code_fetcher.exceptions import AuthFailedError, ConfigMissingError

logger = structlog.get_logger()


class CredentialManager:
    """Resolves a usable Gmail credential.

    Resolution order:
        1. The client secrets file must exist (ConfigMissingError otherwise),
           even when the client is passed in explicitly.
        2. If the token cache file exists, it must parse as JSON
           (AuthFailedError otherwise). Whatever it holds, the credential is
           built from it and the interactive flow is never started; an
           expired credential with a refresh token is refreshed instead.
        3. Only when there is no cache file does the provider run the
           interactive consent flow. If consent returns no token, one forced
           fetch goes through the provider's refresh. Google's provider can
           only do this with a refresh token, so for it a tokenless consent
           result fails; providers that can fetch without one get a second
           chance. The result is written to the token cache.
    """

    def __init__(
        self,
        credentials_path: Path,
        token_path: Path,
        scopes: Sequence[str],
        provider: AuthorizationProvider | None = None,
        *,
        refresh_expired: bool = True,
    ) -> None:
        """Initialize the manager.

        Args:
            credentials_path: Path to the OAuth client secrets file.
            token_path: Path of the token cache file.
            scopes: OAuth scopes requested during consent.
            provider: Token issuer. Defaults to GoogleAuthorizationProvider.
            refresh_expired: Refresh an expired cached token before returning it.
        """
        self.credentials_path = Path(credentials_path)
        self.store = TokenStore(token_path)
        self.scopes = list(scopes)
        self.provider = provider or GoogleAuthorizationProvider()
        self.refresh_expired = refresh_expired

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: AuthorizationProvider | None = None,
    ) -> CredentialManager:
        return cls(
            credentials_path=settings.credentials_path,
            token_path=settings.token_path,
            scopes=[settings.gmail_scope],
            provider=provider
            or GoogleAuthorizationProvider(
                port=settings.oauth_port,
                open_browser=settings.open_browser,
            ),
            refresh_expired=settings.refresh_expired_tokens,
        )

    @property
    def token_path(self) -> Path:
        return self.store.path

    def obtain_credential(self, config: ClientConfig | None = None) -> Credential:
        """Return a credential that carries at least one usable token.

        Args:
            config: OAuth client. Loaded from credentials_path when omitted;
                the secrets file must exist either way.

        Raises:
            ConfigMissingError: If the client secrets file is absent or malformed.
            AuthFailedError: If the token cache is not valid JSON, or no access
                or refresh token could be obtained.
        """
        if config is None:
            config = load_client_config(self.credentials_path)
        elif not self.credentials_path.exists():
            raise ConfigMissingError(f"Missing OAuth client secrets file at {self.credentials_path}")

        record = self.store.load()
        if record is not None:
            logger.info("credential_loaded_from_cache", token_path=str(self.token_path))
            if not isinstance(record, dict):
                record = {}
            return self._from_cache(Credential.from_record(record, config))

        return self._run_consent(config)

    def _from_cache(self, credential: Credential) -> Credential:
        if not credential.has_token:
            raise AuthFailedError(
                f"Cached token at {self.token_path} has no access or refresh token. "
                "Delete it and re-run authorization."
            )

        stale = credential.access_token is None or credential.is_expired()
        if not (stale and self.refresh_expired and credential.refresh_token):
            return credential

        logger.info(
            "cached_credential_refreshing",
            token_path=str(self.token_path),
            expiry=credential.expiry.isoformat() if credential.expiry else None,
        )
        refreshed = self.provider.refresh(credential)
        if not refreshed.access_token:
            raise AuthFailedError("Token refresh returned no access token")

        self.store.save(refreshed.to_record())
        return refreshed

    def _run_consent(self, config: ClientConfig) -> Credential:
        logger.info("interactive_authorization_required", token_path=str(self.token_path))
        credential = self.provider.run_consent(config, self.scopes)

        if not credential.has_token:
            # Force one token fetch before giving up.
            try:
                credential = self.provider.refresh(credential)
            except AuthFailedError as exc:
                logger.warning("forced_token_fetch_failed", error=str(exc))

        if not credential.has_token:
            raise AuthFailedError("Failed to obtain OAuth tokens after interactive authorization")

        self.store.save(credential.to_record())
        logger.info("credential_persisted", token_path=str(self.token_path))
        return credential
