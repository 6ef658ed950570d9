"""Top-level agent wiring."""

from worklist_agent.agent.worklist_agent import WorklistAgent, build_adapters

__all__ = ["WorklistAgent", "build_adapters"]
