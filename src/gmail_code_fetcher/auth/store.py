"""On-disk cache holding the single authorized token record."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog

from gmail_code_fetcher.exceptions import AuthFailedError

logger = structlog.get_logger()


class TokenStore:
    """Reads and replaces the token record at a fixed path.

    The record is always rewritten whole: a new token is written to a
    temporary file beside the cache and moved over it.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Any | None:
        """Return the parsed cache contents, or None if there is no cache file.

        Any JSON value is returned as-is; interpreting it is the caller's job.

        Raises:
            AuthFailedError: If the cache file exists but is not valid JSON.
        """
        if not self.path.exists():
            return None

        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error("token_cache_unreadable", token_path=str(self.path), error=str(exc))
            raise AuthFailedError(
                f"Token cache {self.path} is not valid JSON ({exc}). "
                "Delete it and re-run authorization."
            ) from exc

    def save(self, record: dict[str, Any]) -> None:
        """Replace the cached record, creating the cache directory if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=".token-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("token_cache_written", token_path=str(self.path))
