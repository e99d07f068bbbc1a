"""
Abstract interface for request transports.

Defines the contract the Request Manager uses to perform a single request.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class TransportResponse:
    """Response metadata and body returned by a transport."""
    status_code: int
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    elapsed_ms: Optional[float] = None

    @property
    def is_success(self) -> bool:
        """True for 2xx status codes."""
        return 200 <= self.status_code < 300


class TransportAdapter(ABC):
    """
    Abstract interface for performing requests.

    The manager treats a transport as a black box: it hands over the
    merged options of one work item and awaits either a response or an
    exception. Adapters must not retry on the manager's behalf.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Prepare the transport for use (open clients, pools, ...)."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release any resources held by the transport."""
        pass

    @abstractmethod
    async def send(self, options: Dict[str, Any]) -> TransportResponse:
        """
        Perform one request.

        Args:
            options: Request options with the target under the "url" key

        Returns:
            Response metadata and body

        Raises:
            TransportError: If the request could not be completed
        """
        pass
