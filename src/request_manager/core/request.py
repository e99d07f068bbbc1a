"""
Work item and result models.

A work item is one entry of the work list; an item result is what the
caller receives once that entry's request has finished.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from request_manager.transport.interface import TransportResponse


@dataclass(frozen=True)
class WorkItem:
    """
    A single entry of the work list.

    Attributes:
        index: Position of the target in the work list
        target: The target value (typically a URL)
    """

    index: int
    target: str


@dataclass
class ItemResult:
    """
    Outcome of one dispatched work item.

    Attributes:
        link: Target that was requested
        index: Position of the target in the work list
        response: Transport response, None when the request failed
        error: Failure raised by the transport, None on success
        completed_at: When the transport call returned
    """

    link: str
    index: int
    response: Optional[TransportResponse] = None
    error: Optional[Exception] = None
    completed_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def success(cls, item: WorkItem, response: TransportResponse) -> "ItemResult":
        return cls(link=item.target, index=item.index, response=response)

    @classmethod
    def failure(cls, item: WorkItem, error: Exception) -> "ItemResult":
        return cls(link=item.target, index=item.index, error=error)

    @property
    def ok(self) -> bool:
        """True if the transport returned a response."""
        return self.error is None

    @property
    def data(self) -> Optional[Any]:
        """Response body, if any."""
        return self.response.body if self.response is not None else None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "index": self.index,
            "link": self.link,
            "ok": self.ok,
            "status_code": self.response.status_code if self.response else None,
            "elapsed_ms": self.response.elapsed_ms if self.response else None,
            "error": str(self.error) if self.error is not None else None,
            "completed_at": self.completed_at.isoformat(),
        }

    def __repr__(self) -> str:
        outcome = "ok" if self.ok else f"error={self.error!r}"
        return f"ItemResult(index={self.index}, link={self.link!r}, {outcome})"
