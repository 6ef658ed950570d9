"""Worklist aggregation and action dispatch."""

from .aggregator import AggregationEngine, filter_worklist, sort_worklist
from .dispatcher import ActionDispatcher, ActionParams

__all__ = [
    "ActionDispatcher",
    "ActionParams",
    "AggregationEngine",
    "filter_worklist",
    "sort_worklist",
]
