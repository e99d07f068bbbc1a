"""
Batch state.

Owns the configuration of a manager and the run context of its current
run, and answers the pure questions the coordinator asks between windows.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from request_manager.config import ManagerConfig, RequestOptions
from request_manager.core.request import WorkItem


class RunStatus(str, Enum):
    """Lifecycle of a manager run."""
    IDLE = "idle"                 # Never started
    RUNNING = "running"           # Windows being dispatched or awaited
    COMPLETED = "completed"       # Work list exhausted without cancellation
    CANCELLED = "cancelled"       # Cancellation observed at a window drain


@dataclass
class RunState:
    """
    Mutable context of one run.

    A fresh instance is created by every start(). Completion handlers hold
    a reference to the run they belong to, so a superseded run can never
    touch the counters of its successor.

    Attributes:
        run_id: Sequence number of the run within its manager
        outstanding: Requests issued in the current window and not yet done
        finished: Requests done over the whole run
        cancelled: Cooperative cancellation flag
        windows: Number of windows dispatched so far
        status: Current lifecycle state
    """

    run_id: int
    outstanding: int = 0
    finished: int = 0
    cancelled: bool = False
    windows: int = 0
    status: RunStatus = RunStatus.RUNNING

    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    # Pending delayed dispatch of the next window, if any
    timer: Optional[asyncio.TimerHandle] = None
    done: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def is_terminal(self) -> bool:
        return self.status in (RunStatus.COMPLETED, RunStatus.CANCELLED)

    @property
    def is_waiting(self) -> bool:
        """True while the run sits out the pause between two windows."""
        return self.timer is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "outstanding": self.outstanding,
            "finished": self.finished,
            "cancelled": self.cancelled,
            "windows": self.windows,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


class BatchState:
    """
    Configuration and counters of a Request Manager.

    The work list and request template are fixed at construction; only the
    wait time can change afterwards.
    """

    def __init__(self, config: ManagerConfig):
        """
        Initialize batch state.

        Args:
            config: Manager configuration
        """
        self.links: Tuple[str, ...] = tuple(config.link_array)
        self.number_concurrent: int = config.number_concurrent
        self.wait_time: float = config.wait_time
        self.request_options: RequestOptions = config.request_options

        self.run: Optional[RunState] = None
        self._run_counter = 0

    @property
    def link_count(self) -> int:
        return len(self.links)

    def validate(self) -> Tuple[bool, str]:
        """
        Check that a run can safely start.

        Returns:
            (True, "") if valid, otherwise (False, reason)
        """
        if self.link_count < 1:
            return False, "The link array must have at least one link"

        if self.wait_time < 0:
            return False, "The wait time must not be negative"

        if self.number_concurrent < 1:
            return False, "The number of concurrent requests must be greater than 0"

        return True, ""

    def next_window(self, finished_so_far: int) -> Tuple[int, int]:
        """
        Compute the index range of the next window.

        Args:
            finished_so_far: Requests finished over the run

        Returns:
            Half-open (start, end) range into the work list
        """
        start = finished_so_far
        end = min(finished_so_far + self.number_concurrent, self.link_count)
        return start, end

    def reset(self) -> RunState:
        """Install a fresh run context and return it."""
        self._run_counter += 1
        self.run = RunState(run_id=self._run_counter)
        return self.run

    def set_wait_time(self, wait_time: float) -> None:
        self.wait_time = wait_time

    def work_item(self, index: int) -> WorkItem:
        return WorkItem(index=index, target=self.links[index])

    def request_options_for(self, item: WorkItem) -> Dict[str, Any]:
        """Merge the request template with the item's target."""
        return self.request_options.for_target(item.target)
