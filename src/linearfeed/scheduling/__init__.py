"""
MRSS auto-scheduling core.

Normalization, placement, horizon maintenance, reconciliation and the
orchestrator that drives them per channel.
"""

from .clock import Clock, SteppedClock, SystemClock
from .config import SchedulerConfig
from .horizon import HorizonMaintainer, HorizonPlan
from .normalizer import NormalizedFeed, normalize_items
from .orchestrator import PassOutcome, SchedulerOrchestrator, TickReport
from .placement import check_contiguity, place
from .reconciler import Reconciler
from .state import ChannelSchedulerState, SchedulerStateRegistry

__all__ = [
    "Clock",
    "SteppedClock",
    "SystemClock",
    "SchedulerConfig",
    "HorizonMaintainer",
    "HorizonPlan",
    "NormalizedFeed",
    "normalize_items",
    "PassOutcome",
    "SchedulerOrchestrator",
    "TickReport",
    "check_contiguity",
    "place",
    "Reconciler",
    "ChannelSchedulerState",
    "SchedulerStateRegistry",
]
