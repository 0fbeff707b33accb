"""Periodic cleanup scheduling.

Runs ExpireFS.clean() on a single background thread every
``config.interval`` seconds. Cycles never overlap: the next wait only
starts once the previous cycle has returned.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from expirefs.filesystem.models import DeletedEntry

if TYPE_CHECKING:
    from expirefs.core.expirer import ExpireFS

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Invokes cleanup cycles on a timer.

    A failing cycle is logged and reported through on_error; the worker
    keeps running and tries again on the next tick.

    Args:
        expirer: Engine whose clean() is called each tick.
        interval: Seconds between cycles. Defaults to ``expirer.config.interval``.
        on_clean: Called with the deleted entries of each completed cycle.
        on_error: Called with the exception of each failed cycle.
    """

    def __init__(
        self,
        expirer: ExpireFS,
        *,
        interval: float | None = None,
        on_clean: Callable[[list[DeletedEntry]], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._expirer = expirer
        self._interval = interval if interval is not None else expirer.config.interval
        self._on_clean = on_clean
        self._on_error = on_error
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._cycle_lock = threading.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop_event.is_set()
        )

    def start(self) -> bool:
        """Start the background worker.

        Returns:
            False if the worker is already running.
        """
        if self.is_running:
            return False

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._stop_event,),
            name=f"expirefs-{self._expirer.folder}",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Scheduled cleanup of %s every %gs", self._expirer.folder, self._interval)
        return True

    def stop(self) -> bool:
        """Prevent further cycles. A cycle in progress runs to completion.

        Returns:
            False if the worker was not running.
        """
        if not self.is_running:
            return False

        self._stop_event.set()
        return True

    def join(self, timeout: float | None = None) -> None:
        """Wait for the worker thread to exit after stop()."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def run_once(self) -> list[DeletedEntry] | None:
        """Run a single cycle, routing its outcome to the callbacks.

        Exceptions raised by a callback are logged and never propagate, so
        the worker survives them.

        Returns:
            Deleted entries, or None if the cycle failed.
        """
        try:
            with self._cycle_lock:
                deleted = self._expirer.clean()
        except Exception as e:
            logger.exception("Cleanup cycle failed for %s", self._expirer.folder)
            self._notify(self._on_error, e)
            return None

        self._notify(self._on_clean, deleted)
        return deleted

    def _notify(self, callback: Callable[[Any], None] | None, arg: Any) -> None:
        if callback is None:
            return
        try:
            callback(arg)
        except Exception:
            logger.exception("Cleanup callback failed for %s", self._expirer.folder)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            self.run_once()
