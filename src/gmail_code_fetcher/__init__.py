"""Gmail Code Fetcher - pull verification codes out of Gmail messages.

This package authorizes against the Gmail API with an installed-app OAuth
client, lists messages matching a search query and extracts a verification
code from each message body.
"""

__version__ = "0.1.0"

from gmail_code_fetcher.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__"]
