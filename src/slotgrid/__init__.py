"""Scheduling dashboard core: resolved week grid, remote feed and workflows.

Resolves per-slot availability/booking counts from the remote summary feed
(with a local fallback schedule), converts UTC-anchored slots to a display
timezone, and drives the booking, cancellation and leave workflows.
"""

from src.slotgrid.client import FeedQuery, SchedulingApiClient
from src.slotgrid.config import EngineConfig, get_config
from src.slotgrid.dashboard import SchedulingDashboard, ViewMode
from src.slotgrid.models import CancelReason, CellClass, SlotCounts, SlotSource

__all__ = [
    "SchedulingDashboard",
    "SchedulingApiClient",
    "FeedQuery",
    "EngineConfig",
    "get_config",
    "ViewMode",
    "SlotCounts",
    "SlotSource",
    "CellClass",
    "CancelReason",
]
