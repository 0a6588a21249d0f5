"""
Tracker Scheduler

Runs the three periodic actions of a tracked station on the asyncio loop:

- redisplay: recompute the position from the current propagation state
- element_refresh: re-enter the acquisition pipeline (network only on expiry)
- label_refresh: recompute the "last updated" label

Each timer is an independent task, so a slow network refresh never delays the
redisplay tick.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from config import REDISPLAY_INTERVAL_SECONDS, config

logger = logging.getLogger(__name__)

Action = Callable[[Any], Union[None, Awaitable[None]]]

REDISPLAY = "redisplay"
ELEMENT_REFRESH = "element_refresh"
LABEL_REFRESH = "label_refresh"


@dataclass
class SchedulerActions:
    """Callables invoked with the TrackedObject on each tick."""

    redisplay: Action
    element_refresh: Action
    label_refresh: Action


class PeriodicTimer:
    """Calls a (sync or async) callback every period seconds until stopped."""

    def __init__(self, name: str, period: float, callback: Callable[[], Any]):
        self.name = name
        self.period = period
        self.callback = callback
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.ensure_future(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.period)
            self.ticks += 1
            try:
                result = self.callback()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"Timer {self.name} callback failed")


class TrackerScheduler:
    """
    Owns the periodic timers of every tracked station.

    Starting an already running station is a no-op; stopping cancels its
    timers without aborting any acquisition they were awaiting.
    """

    def __init__(self, redisplay_interval: float = REDISPLAY_INTERVAL_SECONDS,
                 refresh_interval: float = config.ELEMENT_REFRESH_INTERVAL,
                 label_interval: float = config.LABEL_REFRESH_INTERVAL):
        self.intervals = {
            REDISPLAY: redisplay_interval,
            ELEMENT_REFRESH: refresh_interval,
            LABEL_REFRESH: label_interval,
        }
        self._timers: Dict[Any, Dict[str, PeriodicTimer]] = {}

    def start(self, tracked, actions: SchedulerActions) -> bool:
        """
        Start the three timers for tracked.

        Returns:
            False if the timers were already running
        """
        if self.is_running(tracked):
            return False

        key = getattr(tracked, "key", tracked)
        timers = {
            REDISPLAY: PeriodicTimer(f"{key}:{REDISPLAY}", self.intervals[REDISPLAY],
                                     lambda: actions.redisplay(tracked)),
            ELEMENT_REFRESH: PeriodicTimer(f"{key}:{ELEMENT_REFRESH}", self.intervals[ELEMENT_REFRESH],
                                           lambda: actions.element_refresh(tracked)),
            LABEL_REFRESH: PeriodicTimer(f"{key}:{LABEL_REFRESH}", self.intervals[LABEL_REFRESH],
                                         lambda: actions.label_refresh(tracked)),
        }
        for timer in timers.values():
            timer.start()
        self._timers[tracked] = timers
        logger.info(f"Started background updates for {key}")
        return True

    def stop(self, tracked) -> None:
        timers = self._timers.pop(tracked, None)
        if not timers:
            return
        for timer in timers.values():
            timer.stop()
        logger.info(f"Stopped background updates for {getattr(tracked, 'key', tracked)}")

    def stop_all(self) -> None:
        for timers in self._timers.values():
            for timer in timers.values():
                timer.stop()
        self._timers.clear()

    def is_running(self, tracked) -> bool:
        return tracked in self._timers

    def active_timers(self, tracked) -> Dict[str, PeriodicTimer]:
        timers = self._timers.get(tracked, {})
        return {name: timer for name, timer in timers.items() if timer.running}
