"""Azure DevOps work item source."""

from .adapter import DevOpsAdapter

__all__ = ["DevOpsAdapter"]
