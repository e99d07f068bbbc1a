"""
Transport layer.

Performs the individual requests dispatched by the Request Manager.
"""

from request_manager.transport.interface import TransportAdapter, TransportResponse
from request_manager.transport.http import HttpxTransport

__all__ = [
    "TransportAdapter",
    "TransportResponse",
    "HttpxTransport",
]
