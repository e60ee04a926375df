"""
Agent Registry module - agent definitions and the registry that holds them.
"""

from .agent import Agent, Instructions
from .registry import AgentRegistry

__all__ = ["Agent", "Instructions", "AgentRegistry"]
