"""Outlook source backed by Microsoft Graph."""

from .adapter import OutlookAdapter

__all__ = ["OutlookAdapter"]
