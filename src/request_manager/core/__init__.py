"""
Core request manager components.

This module contains the batch state, the event surface and the dispatch
coordinator that drives a run.
"""

from request_manager.core.request import ItemResult, WorkItem
from request_manager.core.state import BatchState, RunState, RunStatus
from request_manager.core.events import EventSurface, EventType
from request_manager.core.manager import RequestManager

__all__ = [
    "ItemResult",
    "WorkItem",
    "BatchState",
    "RunState",
    "RunStatus",
    "EventSurface",
    "EventType",
    "RequestManager",
]
