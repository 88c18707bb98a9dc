"""Pytest configuration and shared fixtures."""

import base64
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import structlog

from gmail_code_fetcher.auth.credentials import ClientConfig, Credential
from gmail_code_fetcher.config import get_settings
from gmail_code_fetcher.exceptions import AuthFailedError
from gmail_code_fetcher.gmail.parsing import message_to_detail
from gmail_code_fetcher.models import MessageDetail, MessageQuery, MessageSummary


def encode_urlsafe(text: str) -> str:
    """Encode text the way Gmail encodes body data (URL-safe, unpadded)."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


class FakeAuthorizationProvider:
    """AuthorizationProvider stand-in that records calls."""

    def __init__(self, consent_result=None, refresh_result=None, refresh_error=None):
        self.consent_result = consent_result
        self.refresh_result = refresh_result
        self.refresh_error = refresh_error
        self.consent_calls = []
        self.refresh_calls = []

    def run_consent(self, client, scopes):
        self.consent_calls.append((client, list(scopes)))
        if self.consent_result is None:
            raise AssertionError("interactive consent was not expected")
        return self.consent_result

    def refresh(self, credential):
        self.refresh_calls.append(credential)
        if self.refresh_error is not None:
            raise self.refresh_error
        if self.refresh_result is None:
            raise AuthFailedError("no refresh configured")
        return self.refresh_result


class StubMessageSource:
    """MessageSource stand-in serving raw Gmail API dicts."""

    def __init__(self, listing, messages, fail_on=None):
        self.listing = listing
        self.messages = messages
        self.fail_on = fail_on
        self.list_calls = []
        self.get_calls = []

    def list_messages(self, query: MessageQuery) -> list[MessageSummary]:
        self.list_calls.append(query)
        return [MessageSummary(id=m) for m in self.listing]

    def get_message(self, message_id: str) -> MessageDetail:
        self.get_calls.append(message_id)
        if self.fail_on == message_id:
            raise self.messages[message_id]
        return message_to_detail(self.messages[message_id])


@pytest.fixture(autouse=True)
def _reset_global_state():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    # The CLI binds structlog to the stream that was current when it ran.
    structlog.reset_defaults()


@pytest.fixture
def client_config() -> ClientConfig:
    """Provide an installed-app OAuth client."""
    return ClientConfig(
        client_id="test-client.apps.googleusercontent.com",
        client_secret="test-secret",
        redirect_uri="http://localhost",
    )


@pytest.fixture
def client_secrets_file(tmp_path: Path) -> Path:
    """Write a client secrets file in Google's installed-app shape."""
    path = tmp_path / "google_client_secret.json"
    path.write_text(
        json.dumps(
            {
                "installed": {
                    "client_id": "test-client.apps.googleusercontent.com",
                    "client_secret": "test-secret",
                    "redirect_uris": ["http://localhost", "urn:ietf:wg:oauth:2.0:oob"],
                }
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def token_path(tmp_path: Path) -> Path:
    return tmp_path / ".credentials" / "gmail-token.json"


@pytest.fixture
def credential(client_config: ClientConfig) -> Credential:
    """Provide a valid, unexpired credential."""
    return Credential(
        access_token="ya29.access",
        refresh_token="1//refresh",
        expiry=datetime.now(timezone.utc) + timedelta(hours=1),
        scopes=("https://www.googleapis.com/auth/gmail.readonly",),
        client=client_config,
    )


@pytest.fixture
def verify_message() -> dict:
    """Provide a format=full message carrying a code in its text/plain part."""
    return {
        "id": "msg-verify",
        "threadId": "thread-verify",
        "snippet": "Code: 87654321",
        "payload": {
            "mimeType": "multipart/alternative",
            "headers": [{"name": "Subject", "value": "Verify"}],
            "parts": [
                {"mimeType": "text/plain", "body": {"data": encode_urlsafe("Code: 87654321")}},
            ],
        },
    }


@pytest.fixture
def sample_email_data() -> dict:
    """Provide a multipart message with every displayed header."""
    return {
        "id": "msg123456",
        "threadId": "thread789",
        "labelIds": ["INBOX", "UNREAD"],
        "snippet": "Your sign-in code",
        "payload": {
            "mimeType": "multipart/alternative",
            "headers": [
                {"name": "Subject", "value": "Your sign-in code"},
                {"name": "From", "value": "Example <no-reply@example.com>"},
                {"name": "To", "value": "user@example.com"},
                {"name": "Date", "value": "Mon, 19 Oct 2026 09:00:00 +0000"},
            ],
            "parts": [
                {"mimeType": "text/html", "body": {"data": encode_urlsafe("<p>Code 11112222</p>")}},
                {
                    "mimeType": "text/plain",
                    "body": {"data": encode_urlsafe("Your code is 12345678 today")},
                },
            ],
        },
    }


@pytest.fixture
def encode():
    """Provide the Gmail body encoder."""
    return encode_urlsafe


@pytest.fixture
def fake_provider():
    """Provide a factory for recording authorization providers."""
    return FakeAuthorizationProvider


@pytest.fixture
def stub_source():
    """Provide a factory for stub message sources."""
    return StubMessageSource
