"""
Batch Request Manager

Dispatches a list of network requests in fixed-size concurrent windows,
optionally pausing between windows, and reports every result as it completes.
"""

__version__ = "0.1.0"

from request_manager.config import ManagerConfig, RequestOptions
from request_manager.core.manager import RequestManager
from request_manager.core.events import EventType
from request_manager.core.request import ItemResult, WorkItem
from request_manager.core.state import RunStatus
from request_manager.exceptions import (
    ConfigurationError,
    RequestManagerError,
    TransportError,
    WaitTimeError,
)

__all__ = [
    "RequestManager",
    "ManagerConfig",
    "RequestOptions",
    "EventType",
    "ItemResult",
    "WorkItem",
    "RunStatus",
    "RequestManagerError",
    "ConfigurationError",
    "WaitTimeError",
    "TransportError",
]
