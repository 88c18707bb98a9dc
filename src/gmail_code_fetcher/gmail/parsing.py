"""Helpers for parsing Gmail API messages into internal models."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterable
from typing import Any

from gmail_code_fetcher.exceptions import DecodeError
from gmail_code_fetcher.models import MessageDetail, MessagePart, MessageSummary


def get_header(headers: Iterable[tuple[str, str]], name: str) -> str:
    """Case-insensitive header lookup; the first match wins, missing is ""."""
    wanted = name.lower()
    for header_name, value in headers:
        if header_name.lower() == wanted:
            return value
    return ""


def decode_base64url(data: str) -> str:
    """Decode Gmail's URL-safe base64 body data as UTF-8 text.

    Raises:
        DecodeError: If ``data`` is not valid base64.
    """
    standard = data.replace("-", "+").replace("_", "/")
    # Gmail strips the padding.
    standard += "=" * (-len(standard) % 4)
    try:
        raw = base64.b64decode(standard, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Invalid base64url body data: {exc}") from exc
    return raw.decode("utf-8", errors="replace")


def select_text_part(parts: Iterable[MessagePart]) -> MessagePart | None:
    """Return the first text/plain part that carries body data."""
    for part in parts:
        if part.mime_type == "text/plain" and part.body_data:
            return part
    return None


def _flatten_parts(part: dict[str, Any]) -> list[MessagePart]:
    children = part.get("parts") or []
    if children:
        flat: list[MessagePart] = []
        for child in children:
            if isinstance(child, dict):
                flat.extend(_flatten_parts(child))
        return flat

    body = part.get("body") or {}
    data = body.get("data")
    return [
        MessagePart(
            mime_type=str(part.get("mimeType") or ""),
            body_data=data if isinstance(data, str) and data else None,
        )
    ]


def message_to_summary(entry: dict[str, Any]) -> MessageSummary | None:
    """Convert a users.messages.list entry; entries without an id yield None."""
    message_id = entry.get("id")
    if not isinstance(message_id, str) or not message_id:
        return None
    thread_id = entry.get("threadId")
    return MessageSummary(id=message_id, thread_id=thread_id if isinstance(thread_id, str) else None)


def message_to_detail(message: dict[str, Any]) -> MessageDetail:
    """Convert a Gmail API message (format=full) to MessageDetail.

    Nested multipart parts are flattened depth-first, and a single-part
    message contributes its payload as the only part.

    Args:
        message: Gmail API message dict.

    Returns:
        MessageDetail: Parsed message.
    """
    payload = message.get("payload") or {}

    headers: list[tuple[str, str]] = []
    for h in payload.get("headers") or []:
        name = h.get("name")
        value = h.get("value")
        if isinstance(name, str):
            headers.append((name, value if isinstance(value, str) else ""))

    parts: list[MessagePart] = []
    if payload.get("parts") or (payload.get("body") or {}).get("data"):
        parts = _flatten_parts(payload)

    return MessageDetail(
        id=str(message.get("id") or ""),
        headers=tuple(headers),
        snippet=str(message.get("snippet") or ""),
        parts=tuple(parts),
    )
