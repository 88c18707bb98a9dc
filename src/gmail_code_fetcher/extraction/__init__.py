"""Verification code extraction.

This package turns a Gmail listing into extraction results: header fields,
decoded body text and the code matched by a configurable pattern.
"""

from .extractor import MessageExtractor, extract_code, list_and_extract

__all__ = ["MessageExtractor", "extract_code", "list_and_extract"]
