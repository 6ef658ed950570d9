"""Worklist Agent - one prioritized worklist across mail and work items.

This package aggregates starred or important Gmail messages, flagged or
high-importance Outlook mail, and open Azure DevOps work items into a single
sorted worklist, and lets users archive, complete or snooze them.
"""

__version__ = "0.1.0"
__author__ = "Trickl"

from worklist_agent.config import Settings, get_settings

__all__ = ["Settings", "get_settings", "__version__", "__author__"]
