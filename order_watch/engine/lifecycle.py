"""
Lifecycle Controller

Decides when diff cycles run for one provider.

States:
    stopped   --start()-->              running    (cycle now, timers armed)
    running   --background/inactive-->  suspended  (timers cancelled)
    suspended --active-->               running    (heartbeat + cycle now)
    any       --stop()-->               stopped    (timers cancelled)

Leaving `running` bumps the epoch. A cycle whose fetch resolves after
its epoch ended is told it is no longer current and must discard its
result, so nothing is resurrected after backgrounding or logout.

At most one cycle is in flight: ticks and requests that arrive while a
cycle is unresolved are skipped.

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from order_watch.schemas import AppStateEnum

logger = logging.getLogger(__name__)

CycleFn = Callable[[Callable[[], bool]], Awaitable[Any]]
HeartbeatFn = Callable[[], Awaitable[Any]]


class LifecycleState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    SUSPENDED = "suspended"


class LifecycleEventSource:
    """Queue of host app-state changes consumed by a controller."""

    def __init__(self):
        self._queue: asyncio.Queue[Optional[AppStateEnum]] = asyncio.Queue()

    def emit(self, state: AppStateEnum) -> None:
        self._queue.put_nowait(AppStateEnum(state))

    def close(self) -> None:
        self._queue.put_nowait(None)

    def task_done(self) -> None:
        self._queue.task_done()

    async def drain(self) -> None:
        """Wait until every emitted state has been handled."""
        await self._queue.join()

    def __aiter__(self):
        return self

    async def __anext__(self) -> AppStateEnum:
        state = await self._queue.get()
        if state is None:
            self._queue.task_done()
            raise StopAsyncIteration
        return state


class LifecycleController:
    """
    Timer and app-state driven scheduler for diff cycles.

    Args:
        cycle: Coroutine function running one cycle; receives an
            ``is_current()`` predicate to check before applying results
        poll_interval: Seconds between cycles (None: no timer, cycles only
            run on start, on resume and on request)
        heartbeat: Optional fire-and-forget heartbeat coroutine function
        heartbeat_interval: Seconds between heartbeats
        name: Label used in log lines
    """

    def __init__(
        self,
        cycle: CycleFn,
        poll_interval: Optional[float] = None,
        heartbeat: Optional[HeartbeatFn] = None,
        heartbeat_interval: Optional[float] = None,
        name: str = "watch",
    ):
        self._cycle = cycle
        self.poll_interval = poll_interval
        self._heartbeat = heartbeat
        self.heartbeat_interval = heartbeat_interval
        self.name = name

        self._state = LifecycleState.STOPPED
        self._epoch = 0
        self._in_flight = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._poll_task: Optional[asyncio.Task] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._events_task: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def has_timer(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start(self) -> None:
        """Begin watching. No-op if already running."""
        if self._state is LifecycleState.RUNNING:
            return
        logger.info(f"[{self.name}] started")
        self._state = LifecycleState.RUNNING
        self._spawn(self._send_heartbeat())
        self._arm()

    def stop(self) -> None:
        """Stop watching; an in-flight result will be discarded. Idempotent."""
        if self._state is LifecycleState.STOPPED:
            return
        logger.info(f"[{self.name}] stopped")
        self._state = LifecycleState.STOPPED
        self._epoch += 1
        self._disarm()

    def suspend(self) -> None:
        if self._state is not LifecycleState.RUNNING:
            return
        logger.info(f"[{self.name}] suspended")
        self._state = LifecycleState.SUSPENDED
        self._epoch += 1
        self._disarm()

    def resume(self) -> None:
        if self._state is not LifecycleState.SUSPENDED:
            return
        logger.info(f"[{self.name}] resumed")
        self._state = LifecycleState.RUNNING
        self._spawn(self._send_heartbeat())
        self._arm()

    def handle_app_state(self, app_state: AppStateEnum) -> None:
        if AppStateEnum(app_state) is AppStateEnum.ACTIVE:
            self.resume()
        else:
            self.suspend()

    # =========================================================================
    # EVENT SOURCE
    # =========================================================================

    def bind(self, source: LifecycleEventSource) -> None:
        """Consume app-state changes from an event source."""
        if self._events_task is not None and not self._events_task.done():
            self._events_task.cancel()
        self._events_task = asyncio.create_task(self._consume(source))

    async def _consume(self, source: LifecycleEventSource) -> None:
        async for app_state in source:
            logger.debug(f"[{self.name}] app state -> {app_state.value}")
            try:
                self.handle_app_state(app_state)
            finally:
                source.task_done()

    def unbind(self) -> None:
        if self._events_task is not None:
            self._events_task.cancel()
            self._events_task = None

    # =========================================================================
    # CYCLES
    # =========================================================================

    async def run_once(self) -> Any:
        """
        Run one cycle now unless stopped, suspended or already in flight.

        Returns:
            Whatever the cycle returned, or None if it was skipped
        """
        if self._state is not LifecycleState.RUNNING:
            return None
        if self._in_flight:
            logger.debug(f"[{self.name}] cycle already in flight, skipping")
            return None

        epoch = self._epoch
        self._in_flight = True
        self._idle.clear()
        try:
            return await self._cycle(
                lambda: self._epoch == epoch and self._state is LifecycleState.RUNNING
            )
        finally:
            self._in_flight = False
            self._idle.set()

    async def wait_idle(self) -> None:
        """Wait until no cycle is in flight."""
        await self._idle.wait()

    def _arm(self) -> None:
        self._spawn(self.run_once())
        if self.poll_interval is not None and not self.has_timer:
            self._poll_task = asyncio.create_task(self._poll_loop())
        if (
            self._heartbeat is not None
            and self.heartbeat_interval is not None
            and (self._heartbeat_task is None or self._heartbeat_task.done())
        ):
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    def _disarm(self) -> None:
        for task in (self._poll_task, self._heartbeat_task):
            if task is not None:
                task.cancel()
        self._poll_task = None
        self._heartbeat_task = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            self._spawn(self.run_once())

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            self._spawn(self._send_heartbeat())

    async def _send_heartbeat(self) -> None:
        if self._heartbeat is None:
            return
        try:
            await self._heartbeat()
        except Exception as e:
            logger.debug(f"[{self.name}] heartbeat failed: {e}")

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._reap)

    def _reap(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"[{self.name}] background cycle failed", exc_info=task.exception())
