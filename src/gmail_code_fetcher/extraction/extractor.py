"""Verification code extraction over a Gmail listing.

The extractor is strictly sequential: it lists once, then fetches and
processes each message in listing order. A transport failure at any point
aborts the whole run.
"""

from __future__ import annotations

import re
from typing import Protocol

import structlog

from gmail_code_fetcher.auth.credentials import Credential
from gmail_code_fetcher.exceptions import DecodeError
from gmail_code_fetcher.gmail.client import GmailClient
from gmail_code_fetcher.gmail.parsing import decode_base64url, get_header, select_text_part
from gmail_code_fetcher.models import ExtractionResult, MessageDetail, MessageQuery, MessageSummary

logger = structlog.get_logger()

PREVIEW_CHARS = 200


class MessageSource(Protocol):
    """Anything that can list and fetch Gmail messages."""

    def list_messages(self, query: MessageQuery) -> list[MessageSummary]: ...

    def get_message(self, message_id: str) -> MessageDetail: ...


def compile_code_pattern(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    """Compile a code pattern case-insensitively."""
    if isinstance(pattern, re.Pattern):
        return re.compile(pattern.pattern, pattern.flags | re.IGNORECASE)
    return re.compile(pattern, re.IGNORECASE)


def extract_code(text: str, pattern: re.Pattern[str]) -> str | None:
    """Return the first capture of the first match, or the whole match if there are no groups."""
    match = pattern.search(text)
    if match is None:
        return None
    code = match.group(1) if pattern.groups else match.group(0)
    return code or None


def body_text(detail: MessageDetail) -> str:
    """Decoded text of the first text/plain part, falling back to the snippet."""
    part = select_text_part(detail.parts)
    if part is None or part.body_data is None:
        return detail.snippet

    try:
        return decode_base64url(part.body_data)
    except DecodeError as exc:
        logger.warning("message_body_decode_failed", message_id=detail.id, error=str(exc))
        return detail.snippet


class MessageExtractor:
    """Lists messages and extracts a verification code from each body."""

    def __init__(self, source: MessageSource) -> None:
        self.source = source

    def extract(self, detail: MessageDetail, pattern: re.Pattern[str]) -> ExtractionResult:
        """Build the extraction result for one fetched message."""
        text = body_text(detail)
        return ExtractionResult(
            message_id=detail.id,
            subject=get_header(detail.headers, "Subject"),
            sender=get_header(detail.headers, "From"),
            recipient=get_header(detail.headers, "To"),
            date=get_header(detail.headers, "Date"),
            decoded_text=text,
            preview=text[:PREVIEW_CHARS],
            matched_code=extract_code(text, pattern),
        )

    def list_and_extract(
        self,
        query: MessageQuery,
        code_pattern: str | re.Pattern[str],
    ) -> list[ExtractionResult]:
        """List messages for the query and extract a code from each.

        Args:
            query: Search expression and maximum number of results.
            code_pattern: Regular expression; its first group is the code.

        Returns:
            One result per listed message, in listing order. Empty when the
            listing is empty.

        Raises:
            TransportError: If listing or any fetch fails.
        """
        pattern = compile_code_pattern(code_pattern)
        summaries = self.source.list_messages(query)
        logger.info("messages_listed", message_count=len(summaries))

        results: list[ExtractionResult] = []
        for summary in summaries:
            if not summary.id:
                logger.debug("message_without_id_skipped")
                continue
            detail = self.source.get_message(summary.id)
            result = self.extract(detail, pattern)
            logger.info(
                "message_processed",
                message_id=summary.id,
                code_found=result.matched_code is not None,
            )
            results.append(result)
        return results


def list_and_extract(
    credential: Credential,
    query: MessageQuery,
    code_pattern: str | re.Pattern[str],
    *,
    user_id: str = "me",
) -> list[ExtractionResult]:
    """List and extract against the live Gmail API with the given credential."""
    client = GmailClient(credential, user_id=user_id)
    return MessageExtractor(client).list_and_extract(query, code_pattern)
