"""
Polling Module

This module provides the periodic re-fetch used in place of push updates:
unread badge, open chat thread, conversation list, boosted carousel and the
Top Up countdown. Each task belongs to the view that started it and is
stopped when that view goes away.
"""

import threading
from typing import Callable, Optional

from utils.logger import get_logger

logger = get_logger(__name__)


class PollingTask:
    """Run a callback every `interval` seconds on a daemon thread until stopped.

    Usage:
        with PollingTask("unread", 10, refresh_badge):
            ...  # the badge refreshes while the block runs
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], None],
                 run_immediately: bool = True):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.callback = callback
        self.run_immediately = run_immediately
        self.runs = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "PollingTask":
        if self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=f"poll-{self.name}", daemon=True)
        self._thread.start()
        logger.debug(f"Polling '{self.name}' every {self.interval}s")
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the task and wait for the current tick to finish."""
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None
        logger.debug(f"Polling '{self.name}' stopped after {self.runs} runs")

    def _tick(self) -> None:
        try:
            self.callback()
        except Exception as e:
            # Keep polling: the next tick re-fetches anyway.
            logger.error(f"Polling '{self.name}' failed: {e}")
        finally:
            self.runs += 1

    def _loop(self) -> None:
        if self.run_immediately:
            self._tick()
        while not self._stop.wait(self.interval):
            self._tick()

    def __enter__(self) -> "PollingTask":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
