"""Gmail source: client, metadata parsing and adapter."""

from .adapter import GmailAdapter
from .client import GmailClient

__all__ = ["GmailAdapter", "GmailClient"]
