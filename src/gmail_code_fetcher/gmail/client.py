"""Gmail API client implementation.

This module provides a synchronous client for the two Gmail calls the
fetcher needs: users.messages.list and users.messages.get.

Notes:
    Each request is authorized with `attach` just before it is executed, so
    the service itself is built without credentials.
"""

from __future__ import annotations

from typing import Any

import httplib2
import structlog
from googleapiclient import errors as google_errors
from googleapiclient.discovery import build
from googleapiclient.http import HttpRequest, build_http

from gmail_code_fetcher.auth.credentials import Credential, attach
from gmail_code_fetcher.exceptions import TransportError
from gmail_code_fetcher.gmail.parsing import message_to_detail, message_to_summary
from gmail_code_fetcher.models import MessageDetail, MessageQuery, MessageSummary

logger = structlog.get_logger()


def build_gmail_service(http: Any | None = None) -> Any:
    """Build the Gmail v1 discovery service from the bundled discovery document."""
    return build(
        "gmail",
        "v1",
        http=http if http is not None else build_http(),
        static_discovery=True,
        cache_discovery=False,
    )


def _transport_error(action: str, exc: Exception) -> TransportError:
    if isinstance(exc, google_errors.HttpError):
        content = exc.content
        if isinstance(content, bytes):
            body = content.decode("utf-8", errors="replace")
        else:
            body = str(content) if content else None
        status = getattr(exc.resp, "status", None)
        return TransportError(
            f"Gmail {action} failed: {exc.reason or exc}",
            status=int(status) if status is not None else None,
            body=body or None,
            url=exc.uri,
            cause=exc,
        )
    return TransportError(f"Gmail {action} failed: {exc}", cause=exc)


class GmailClient:
    """Gmail API client for listing and reading messages.

    This client attaches the credential to every request and converts every
    transport failure into a TransportError.
    """

    def __init__(
        self,
        credential: Credential,
        *,
        user_id: str = "me",
        service: Any | None = None,
    ) -> None:
        """Initialize Gmail client.

        Args:
            credential: Credential used to authorize each request.
            user_id: Mailbox to read; "me" is the authenticated account.
            service: Pre-built Gmail API service (for testing).
        """
        self.credential = credential
        self.user_id = user_id
        self._service = service
        logger.info("gmail_client_initialized", user_id=user_id)

    def _get_service(self) -> Any:
        if self._service is None:
            self._service = build_gmail_service()
        return self._service

    def _execute(self, request: HttpRequest, action: str, **context: Any) -> dict[str, Any]:
        request.headers = attach(self.credential, request.headers)
        try:
            return request.execute()
        except (google_errors.Error, httplib2.HttpLib2Error, OSError) as exc:
            logger.exception(f"gmail_{action}_failed", error=str(exc), **context)
            raise _transport_error(action.replace("_", " "), exc) from exc

    def list_messages(self, query: MessageQuery) -> list[MessageSummary]:
        """List messages matching the query.

        Args:
            query: Search expression and maximum number of results.

        Returns:
            Message summaries in listing order. Entries without an id are dropped.

        Raises:
            TransportError: If the API request fails.
        """
        logger.info(
            "listing_messages",
            query=query.search_expression,
            max_results=query.max_results,
        )

        request = (
            self._get_service()
            .users()
            .messages()
            .list(
                userId=self.user_id,
                q=query.search_expression,
                maxResults=query.max_results,
            )
        )
        response = self._execute(request, "list_messages")

        summaries: list[MessageSummary] = []
        for entry in response.get("messages", []) or []:
            summary = message_to_summary(entry)
            if summary is None:
                logger.debug("message_without_id_skipped", entry=entry)
                continue
            summaries.append(summary)
        return summaries

    def get_message(self, message_id: str) -> MessageDetail:
        """Get a specific message by ID with format=full.

        Args:
            message_id: The Gmail message ID.

        Returns:
            Parsed message detail.

        Raises:
            TransportError: If the API request fails.
        """
        logger.debug("getting_message", message_id=message_id)

        request = (
            self._get_service()
            .users()
            .messages()
            .get(userId=self.user_id, id=message_id, format="full")
        )
        return message_to_detail(self._execute(request, "get_message", message_id=message_id))
