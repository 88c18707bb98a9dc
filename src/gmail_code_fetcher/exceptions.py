"""Custom exceptions for Gmail Code Fetcher."""

from __future__ import annotations


class GmailCodeFetcherError(Exception):
    """Base exception for all Gmail Code Fetcher errors."""


class ConfigurationError(GmailCodeFetcherError):
    """Exception raised for configuration related errors."""


class ConfigMissingError(ConfigurationError):
    """Exception raised when the OAuth client secrets file is absent or unusable."""


class AuthenticationError(GmailCodeFetcherError):
    """Exception raised for authentication failures."""


class AuthFailedError(AuthenticationError):
    """Exception raised when no usable access or refresh token could be obtained."""


class GmailAPIError(GmailCodeFetcherError):
    """Exception raised for Gmail API related errors."""


class TransportError(GmailAPIError):
    """A Gmail listing or fetch call failed.

    The optional fields are populated by the client boundary when the
    underlying failure carries them.

    Attributes:
        status: HTTP status code of the failed response.
        body: Response body, decoded as text.
        url: Request URL.
        cause: The underlying exception.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        body: str | None = None,
        url: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body
        self.url = url
        self.cause = cause

    def diagnostics(self) -> dict[str, str]:
        """Return the populated diagnostic fields in display order."""
        fields: dict[str, str] = {"message": self.message}
        if self.status is not None:
            fields["status"] = str(self.status)
        if self.body:
            fields["body"] = self.body
        if self.url:
            fields["url"] = self.url
        if self.cause is not None:
            fields["cause"] = str(self.cause) or type(self.cause).__name__
        return fields


class DecodeError(GmailCodeFetcherError):
    """Exception raised when a message body is not valid URL-safe base64."""
