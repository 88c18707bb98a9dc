"""Unit tests for OAuth client configuration and credential values."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from gmail_code_fetcher.auth.credentials import (
    GOOGLE_TOKEN_URI,
    Credential,
    attach,
    load_client_config,
)
from gmail_code_fetcher.exceptions import AuthFailedError, ConfigMissingError


class TestLoadClientConfig:
    """Test suite for load_client_config."""

    def test_installed_client(self, client_secrets_file) -> None:
        config = load_client_config(client_secrets_file)

        assert config.client_id == "test-client.apps.googleusercontent.com"
        assert config.client_secret == "test-secret"
        assert config.redirect_uri == "http://localhost"
        assert config.token_uri == GOOGLE_TOKEN_URI

    def test_web_client(self, tmp_path) -> None:
        path = tmp_path / "secrets.json"
        path.write_text(
            json.dumps({"web": {"client_id": "id", "client_secret": "s", "redirect_uris": ["http://x"]}})
        )

        assert load_client_config(path).redirect_uri == "http://x"

    def test_missing_file_raises(self, tmp_path) -> None:
        with pytest.raises(ConfigMissingError, match="Missing OAuth client secrets file"):
            load_client_config(tmp_path / "absent.json")

    def test_invalid_json_raises(self, tmp_path) -> None:
        path = tmp_path / "secrets.json"
        path.write_text("{not json")

        with pytest.raises(ConfigMissingError, match="not valid JSON"):
            load_client_config(path)

    def test_missing_client_block_raises(self, tmp_path) -> None:
        path = tmp_path / "secrets.json"
        path.write_text(json.dumps({"other": {}}))

        with pytest.raises(ConfigMissingError, match="'installed'"):
            load_client_config(path)

    def test_missing_secret_raises(self, tmp_path) -> None:
        path = tmp_path / "secrets.json"
        path.write_text(json.dumps({"installed": {"client_id": "id"}}))

        with pytest.raises(ConfigMissingError, match="client_secret"):
            load_client_config(path)

    def test_client_secrets_shape(self, client_config) -> None:
        secrets = client_config.to_client_secrets()

        assert secrets["installed"]["client_id"] == client_config.client_id
        assert secrets["installed"]["redirect_uris"] == ["http://localhost"]


class TestCredential:
    """Test suite for the Credential value."""

    def test_from_google_authorized_user_record(self, client_config) -> None:
        record = {
            "token": "ya29.a",
            "refresh_token": "1//r",
            "token_uri": GOOGLE_TOKEN_URI,
            "client_id": "ignored",
            "client_secret": "ignored",
            "scopes": ["https://www.googleapis.com/auth/gmail.readonly"],
            "expiry": "2026-10-19T10:00:00.123456Z",
        }

        credential = Credential.from_record(record, client_config)

        assert credential.access_token == "ya29.a"
        assert credential.refresh_token == "1//r"
        assert credential.expiry == datetime(2026, 10, 19, 10, 0, 0, 123456, tzinfo=timezone.utc)
        assert credential.scopes == ("https://www.googleapis.com/auth/gmail.readonly",)
        assert credential.client == client_config

    def test_from_node_client_record(self, client_config) -> None:
        record = {
            "access_token": "ya29.node",
            "scope": "https://www.googleapis.com/auth/gmail.readonly openid",
            "token_type": "Bearer",
            "expiry_date": 1_700_000_000_000,
        }

        credential = Credential.from_record(record, client_config)

        assert credential.access_token == "ya29.node"
        assert credential.refresh_token is None
        assert credential.expiry == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
        assert credential.scopes == ("https://www.googleapis.com/auth/gmail.readonly", "openid")

    def test_empty_record_has_no_token(self, client_config) -> None:
        credential = Credential.from_record({}, client_config)

        assert credential.has_token is False
        assert credential.expiry is None

    def test_record_round_trip(self, credential) -> None:
        restored = Credential.from_record(credential.to_record(), credential.client)

        assert restored == credential

    def test_record_uses_client_fields(self, credential) -> None:
        record = credential.to_record()

        assert record["token"] == "ya29.access"
        assert record["client_id"] == credential.client.client_id
        assert record["expiry"].endswith("Z")

    def test_is_expired(self, credential) -> None:
        later = credential.expiry + timedelta(seconds=1)

        assert credential.is_expired() is False
        assert credential.is_expired(now=later) is True

    def test_unknown_expiry_is_not_expired(self, client_config) -> None:
        assert Credential(access_token="t", client=client_config).is_expired() is False

    def test_credential_is_immutable(self, credential) -> None:
        with pytest.raises(ValidationError):
            credential.access_token = "other"


class TestAttach:
    """Test suite for attach."""

    def test_adds_bearer_header(self, credential) -> None:
        headers = {"accept": "application/json"}

        authorized = attach(credential, headers)

        assert authorized == {"accept": "application/json", "authorization": "Bearer ya29.access"}
        assert headers == {"accept": "application/json"}

    def test_without_headers(self, credential) -> None:
        assert attach(credential) == {"authorization": "Bearer ya29.access"}

    def test_requires_access_token(self, client_config) -> None:
        refresh_only = Credential(refresh_token="1//r", client=client_config)

        with pytest.raises(AuthFailedError):
            attach(refresh_only, {})
