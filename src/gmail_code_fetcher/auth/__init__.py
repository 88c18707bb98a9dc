"""OAuth credential handling.

This package resolves the credential used to call the Gmail API: it loads
the client secrets, reuses or refreshes the cached token, and falls back to
the interactive consent flow on first run.
"""

from .credentials import ClientConfig, Credential, attach, load_client_config
from .manager import CredentialManager
from .provider import AuthorizationProvider, GoogleAuthorizationProvider
from .store import TokenStore

__all__ = [
    "AuthorizationProvider",
    "ClientConfig",
    "Credential",
    "CredentialManager",
    "GoogleAuthorizationProvider",
    "TokenStore",
    "attach",
    "load_client_config",
]
