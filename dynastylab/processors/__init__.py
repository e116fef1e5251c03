"""
Commit-time processing: routing approved data into the stores and deciding
which content it triggers.
"""
from dynastylab.processors.router import DataRouter, RoutingError, RoutingSummary
from dynastylab.processors.triggers import TriggerEvaluator

__all__ = [
    "DataRouter",
    "RoutingError",
    "RoutingSummary",
    "TriggerEvaluator",
]
