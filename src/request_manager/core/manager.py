"""
Request Manager.

Dispatches a fixed work list in windows of bounded concurrency, optionally
pausing between windows, and reports every result as it completes.
"""

import asyncio
import math
from datetime import datetime
from typing import Any, Callable, Optional, Set

import structlog

from request_manager.config import ManagerConfig, get_config
from request_manager.core.events import EventSurface, EventType
from request_manager.core.request import ItemResult, WorkItem
from request_manager.core.state import BatchState, RunState, RunStatus
from request_manager.exceptions import ConfigurationError, WaitTimeError
from request_manager.transport.http import HttpxTransport
from request_manager.transport.interface import TransportAdapter

logger = structlog.get_logger(__name__)


def _is_wait_time(value: Any) -> bool:
    """Check for a finite, non-negative int or float (bool excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


class RequestManager:
    """
    Batch dispatch coordinator.

    A run walks the work list window by window. A window of up to
    ``number_concurrent`` requests is issued at once; the next window is
    only dispatched once every request of the current one has finished,
    either immediately or after ``wait_time`` milliseconds.

    All operations must be called from the event loop the run lives on.

    Usage:
        ```python
        manager = RequestManager(ManagerConfig(link_array=urls, number_concurrent=3))
        manager.on_result(lambda error, result: print(result.index, error))
        manager.on_end(lambda: print("done"))
        manager.start()
        await manager.wait()
        ```
    """

    def __init__(
        self,
        config: Optional[ManagerConfig] = None,
        transport: Optional[TransportAdapter] = None,
    ):
        """
        Initialize the manager.

        Args:
            config: Manager configuration
            transport: Transport used for every request (HttpxTransport if not provided)
        """
        self.config = config or get_config()
        self.transport = transport or HttpxTransport()

        self._state = BatchState(self.config)
        self._events = EventSurface()

        # Strong references to in-flight request tasks
        self._tasks: Set[asyncio.Task] = set()

    # Lifecycle

    async def initialize(self) -> None:
        """Connect the transport."""
        await self.transport.connect()
        logger.info("request_manager_initialized", links=self._state.link_count)

    async def shutdown(self) -> None:
        """Stop the current run, let in-flight requests finish, and close the transport."""
        self.stop()

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

        await self.transport.disconnect()
        logger.info("request_manager_shutdown")

    async def __aenter__(self) -> "RequestManager":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    # Public operations

    def start(self) -> bool:
        """
        Begin a new run.

        A run still in progress is cancelled and replaced.

        Returns:
            True if the run started, False if the configuration is invalid
            (an error event follows on the next loop iteration)
        """
        ready, reason = self._state.validate()
        if not ready:
            logger.warning("run_rejected", reason=reason)
            self._events.emit_soon(EventType.ERROR, ConfigurationError(reason))
            return False

        previous = self._state.run
        if previous is not None and not previous.is_terminal:
            logger.info("run_superseded", run_id=previous.run_id)
            self._cancel(previous)

        run = self._state.reset()
        logger.info(
            "run_started",
            run_id=run.run_id,
            links=self._state.link_count,
            number_concurrent=self._state.number_concurrent,
            wait_time_ms=self._state.wait_time,
        )
        self._dispatch_window(run)
        return True

    def stop(self) -> None:
        """
        Request cancellation of the current run.

        Requests already issued are not aborted. No further window is
        dispatched and the run ends as cancelled once its current window
        has drained.
        """
        run = self._state.run
        if run is None or run.is_terminal:
            return

        logger.info("run_stopping", run_id=run.run_id, outstanding=run.outstanding)
        self._cancel(run)

    def update_wait_time(self, wait_time: float) -> bool:
        """
        Change the pause used before subsequent windows.

        Args:
            wait_time: New pause in milliseconds

        Returns:
            True if applied, False if rejected (an error event follows)
        """
        if not _is_wait_time(wait_time):
            logger.warning("wait_time_rejected", wait_time_ms=repr(wait_time))
            self._events.emit_soon(
                EventType.ERROR,
                WaitTimeError("The wait time must be a non-negative number of milliseconds"),
            )
            return False

        self._state.set_wait_time(wait_time)
        logger.debug("wait_time_updated", wait_time_ms=wait_time)
        return True

    async def wait(self) -> RunStatus:
        """
        Wait for the current run to reach a terminal state.

        Returns:
            Final status of the run, IDLE if nothing was started
        """
        run = self._state.run
        if run is None:
            return RunStatus.IDLE

        await run.done.wait()
        return run.status

    async def run(self) -> RunStatus:
        """Start a run and wait for it to finish."""
        if not self.start():
            return RunStatus.IDLE
        return await self.wait()

    # Dispatch

    def _dispatch_window(self, run: RunState) -> None:
        """Issue every request of the next window of a run."""
        run.timer = None

        if run.cancelled:
            self._finish(run, RunStatus.CANCELLED)
            return

        start, end = self._state.next_window(run.finished)
        run.windows += 1
        logger.debug(
            "window_dispatched",
            run_id=run.run_id,
            window=run.windows,
            start=start,
            end=end,
        )

        for index in range(start, end):
            if run.cancelled:
                logger.info(
                    "window_interrupted",
                    run_id=run.run_id,
                    issued=index - start,
                    size=end - start,
                )
                break

            item = self._state.work_item(index)
            run.outstanding += 1
            task = asyncio.create_task(self._request_item(run, item))
            self._tasks.add(task)
            task.add_done_callback(self._on_task_done)

        # Nothing issued: the window is already drained
        if run.outstanding == 0:
            self._on_window_drained(run)

    async def _request_item(self, run: RunState, item: WorkItem) -> None:
        """Perform one request and feed its outcome back into the run."""
        options = self._state.request_options_for(item)

        try:
            response = await self.transport.send(options)
            result = ItemResult.success(item, response)
        except Exception as e:
            logger.debug(
                "request_failed",
                run_id=run.run_id,
                index=item.index,
                link=item.target,
                error=str(e),
            )
            result = ItemResult.failure(item, e)

        self._on_request_done(run, result)

    def _on_task_done(self, task: asyncio.Task) -> None:
        """Release a finished request task and log anything it raised."""
        self._tasks.discard(task)

        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            logger.error(
                "request_task_failed",
                error=str(error),
                error_type=type(error).__name__,
            )

    def _on_request_done(self, run: RunState, result: ItemResult) -> None:
        """Count a finished request, report it, and advance if the window drained."""
        run.outstanding -= 1
        run.finished += 1

        if self._should_emit(run):
            self._events.emit(EventType.RESULT, result.error, result)

        if run.outstanding == 0:
            self._on_window_drained(run)

    def _should_emit(self, run: RunState) -> bool:
        if not run.cancelled:
            return True
        # Superseded runs never report into their successor's stream
        return self.config.deliver_after_stop and run is self._state.run

    def _on_window_drained(self, run: RunState) -> None:
        """Decide what follows a fully drained window."""
        if run.cancelled:
            self._finish(run, RunStatus.CANCELLED)

        elif run.finished == self._state.link_count:
            self._finish(run, RunStatus.COMPLETED)

        elif self._state.wait_time == 0:
            self._dispatch_window(run)

        else:
            delay = self._state.wait_time / 1000
            loop = asyncio.get_running_loop()
            run.timer = loop.call_later(delay, self._dispatch_window, run)
            logger.debug(
                "wait_scheduled",
                run_id=run.run_id,
                wait_time_ms=self._state.wait_time,
                finished=run.finished,
            )

    def _cancel(self, run: RunState) -> None:
        run.cancelled = True

        # Between windows there is nothing left to drain
        if run.timer is not None:
            run.timer.cancel()
            run.timer = None
            self._finish(run, RunStatus.CANCELLED)

    def _finish(self, run: RunState, status: RunStatus) -> None:
        run.status = status
        run.finished_at = datetime.utcnow()

        if status == RunStatus.COMPLETED:
            logger.info(
                "run_completed",
                run_id=run.run_id,
                finished=run.finished,
                windows=run.windows,
            )
            self._events.emit(EventType.END)
        else:
            logger.info(
                "run_cancelled",
                run_id=run.run_id,
                finished=run.finished,
                windows=run.windows,
            )

        run.done.set()

    # State queries

    @property
    def status(self) -> RunStatus:
        """Status of the current run, IDLE before the first start()."""
        run = self._state.run
        return run.status if run is not None else RunStatus.IDLE

    @property
    def is_running(self) -> bool:
        return self.status == RunStatus.RUNNING

    @property
    def wait_time(self) -> float:
        """Currently configured pause between windows, in milliseconds."""
        return self._state.wait_time

    @property
    def state(self) -> BatchState:
        return self._state

    def get_stats(self) -> dict:
        """Get manager statistics."""
        run = self._state.run
        return {
            "status": self.status.value,
            "links": self._state.link_count,
            "number_concurrent": self._state.number_concurrent,
            "wait_time_ms": self._state.wait_time,
            "in_flight_tasks": len(self._tasks),
            "run": run.to_dict() if run is not None else None,
        }

    # Event registration

    def on(self, event: EventType, callback: Callable[..., Any]) -> None:
        """Register a listener for any event type."""
        self._events.on(event, callback)

    def off(self, event: EventType, callback: Callable[..., Any]) -> bool:
        """Remove a listener."""
        return self._events.off(event, callback)

    def on_result(self, callback: Callable[[Optional[Exception], ItemResult], None]) -> None:
        """Register callback for per-item results."""
        self._events.on(EventType.RESULT, callback)

    def on_end(self, callback: Callable[[], None]) -> None:
        """Register callback for run completion."""
        self._events.on(EventType.END, callback)

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        """Register callback for configuration and update errors."""
        self._events.on(EventType.ERROR, callback)
