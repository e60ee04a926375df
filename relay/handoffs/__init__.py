"""
Handoff Controller module.
"""

from . import filters as handoff_filters
from .controller import HandoffController, HandoffOutcome
from .handoff import Handoff, HandoffInputData, HandoffInputFilter, handoff

__all__ = [
    "Handoff",
    "HandoffInputData",
    "HandoffInputFilter",
    "handoff",
    "handoff_filters",
    "HandoffController",
    "HandoffOutcome",
]
