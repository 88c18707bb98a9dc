"""Data models for Gmail Code Fetcher.

This module contains immutable Pydantic models describing the query, the
Gmail messages as read from the API and the extraction results.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MessageQuery(BaseModel):
    """Caller-supplied listing query."""

    model_config = ConfigDict(frozen=True)

    search_expression: str = Field(default="", description="Gmail search expression")
    max_results: int = Field(default=10, ge=1, description="Maximum number of messages to list")


class MessageSummary(BaseModel):
    """One entry of a users.messages.list response."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Gmail message ID")
    thread_id: str | None = Field(default=None, description="Gmail thread ID")


class MessagePart(BaseModel):
    """A leaf MIME part of a message."""

    model_config = ConfigDict(frozen=True)

    mime_type: str = Field(default="", description="MIME type of the part")
    body_data: str | None = Field(default=None, description="URL-safe base64 body payload")


class MessageDetail(BaseModel):
    """A message fetched with format=full."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Gmail message ID")
    headers: tuple[tuple[str, str], ...] = Field(
        default=(), description="Header (name, value) pairs in message order"
    )
    snippet: str = Field(default="", description="Provider-generated preview text")
    parts: tuple[MessagePart, ...] = Field(
        default=(), description="Leaf parts in document order"
    )


class ExtractionResult(BaseModel):
    """Headers, decoded text and extracted code for one message."""

    model_config = ConfigDict(frozen=True)

    message_id: str = Field(description="Gmail message ID")
    subject: str = Field(default="", description="Subject header")
    sender: str = Field(default="", description="From header")
    recipient: str = Field(default="", description="To header")
    date: str = Field(default="", description="Date header, unparsed")
    decoded_text: str = Field(
        default="", description="Decoded text/plain body, or the snippet when there is none"
    )
    preview: str = Field(default="", description="Display prefix of decoded_text")
    matched_code: str | None = Field(default=None, description="First capture of the code pattern")
