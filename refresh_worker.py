"""
Refresh worker — runs ingestion cycles in the background, one at a time.

A single daemon thread consumes a queue with one slot. Submitting while a
refresh is already waiting is a no-op; submitting while one is running
queues exactly one follow-up. Callers never wait for a cycle to finish.
"""

import logging
import queue
import threading
from datetime import datetime, timezone
from typing import Callable, Dict

logger = logging.getLogger(__name__)

_STOP = object()


class RefreshWorker:
    """Single-slot job queue in front of the ingestion cycle."""

    def __init__(self, run_cycle: Callable[[], Dict]):
        self._run_cycle = run_cycle
        self._queue = queue.Queue(maxsize=1)
        self._thread = None
        self._start_lock = threading.Lock()
        self.last_result = None

    def start(self):
        """Start the worker thread if it is not running yet."""
        with self._start_lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(
                target=self._loop, name="trend-refresh", daemon=True
            )
            self._thread.start()

    def submit(self) -> bool:
        """
        Request a refresh without waiting for it.

        Returns True if the request was queued, False if one is already pending.
        """
        self.start()
        requested_at = datetime.now(timezone.utc).isoformat()
        try:
            self._queue.put_nowait(requested_at)
        except queue.Full:
            logger.info("Refresh already pending, request ignored")
            return False

        logger.info(f"Refresh queued at {requested_at}")
        return True

    def wait_idle(self):
        """Block until every queued refresh has been processed."""
        self._queue.join()

    def stop(self, timeout: float = None):
        """Let the current cycle finish, then stop the thread."""
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)

    def _loop(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                logger.info(f"Starting background refresh requested at {item}")
                self.last_result = self._run_cycle()
                if self.last_result and self.last_result.get("error"):
                    logger.error(f"Background refresh failed: {self.last_result['error']}")
                else:
                    logger.info("Background refresh completed")
            except Exception as e:
                logger.error(f"Error in background refresh: {e}")
                self.last_result = {"error": str(e)}
            finally:
                self._queue.task_done()
