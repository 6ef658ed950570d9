"""Source adapters.

Each remote service (Gmail, Outlook, Azure DevOps) is wrapped by an adapter
implementing ``SourceAdapter``: fetch and normalize actionable items, and
perform the source's native archive/complete mutation.
"""

from .base import SourceAdapter

__all__ = ["SourceAdapter"]
