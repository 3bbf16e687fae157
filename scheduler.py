"""
RefreshScheduler - Re-runs the fetch cycle on selection changes and on a timer.
"""
import asyncio
import logging
from typing import Callable, Sequence

from models import Project
from orchestrator import ProjectFetchOrchestrator

log = logging.getLogger(__name__)

REFRESH_INTERVAL = 30.0  # seconds

RefreshCallback = Callable[[bool], None]


class RefreshScheduler:
    """Triggers orchestration cycles for the current project selection."""

    def __init__(
        self,
        orchestrator: ProjectFetchOrchestrator,
        interval: float = REFRESH_INTERVAL,
        on_refresh: RefreshCallback | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            orchestrator: Orchestrator whose collections are refreshed
            interval: Seconds between timed refreshes
            on_refresh: Called with the applied flag after every timed refresh;
                the timer only runs while a callback is registered
        """
        self.orchestrator = orchestrator
        self.interval = interval
        self.on_refresh = on_refresh
        self.projects: list[Project] = []
        self._timer: asyncio.Task | None = None
        self._cycles: set[asyncio.Task] = set()
        self._started = False

    async def __aenter__(self) -> "RefreshScheduler":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def start(self) -> None:
        """Run the initial cycle and start the timer if a callback is registered."""
        self._started = True
        self.trigger()
        if self.on_refresh:
            self._start_timer()

    async def set_selected_projects(self, projects: Sequence[Project]) -> None:
        """Replace the selection and refresh for it."""
        self.projects = list(projects)
        if not self._started:
            return
        self.trigger()
        if self.timer_running:
            # Next tick is a full interval after the change
            await self._stop_timer()
            self._start_timer()

    async def set_refresh_callback(self, callback: RefreshCallback | None) -> None:
        """Register (starts the timer) or remove (cancels the timer) the refresh callback."""
        self.on_refresh = callback
        await self._stop_timer()
        if callback and self._started:
            self._start_timer()

    def trigger(self) -> asyncio.Task:
        """Start a cycle for the current selection without waiting for it."""
        task = asyncio.create_task(self.orchestrator.load_data(list(self.projects)))
        self._cycles.add(task)
        task.add_done_callback(self._cycles.discard)
        return task

    async def refresh_now(self) -> bool:
        """Run a cycle for the current selection and wait for it."""
        return await self.trigger()

    async def close(self) -> None:
        """Cancel the timer and any in-flight cycles."""
        self._started = False
        await self._stop_timer()
        pending = list(self._cycles)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        log.debug("Refresh scheduler closed")

    def _start_timer(self) -> None:
        self._timer = asyncio.create_task(self._run_timer())

    async def _stop_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None or timer.done():
            return
        timer.cancel()
        try:
            await timer
        except asyncio.CancelledError:
            pass

    async def _run_timer(self) -> None:
        """Refresh every `interval` seconds until cancelled."""
        while True:
            await asyncio.sleep(self.interval)
            log.debug("Timed refresh triggered...")
            # Stopping the timer must not cancel a cycle already running
            applied = await asyncio.shield(self.trigger())
            callback = self.on_refresh
            if callback is None:
                continue
            try:
                callback(applied)
            except Exception as e:
                log.error(f"Refresh callback error: {e}")
