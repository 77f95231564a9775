"""
Background refit worker.

Runs regression fits on one daemon thread so the per-frame path never waits
on a least-squares solve. Only the most recent request is kept: submitting
while a job is still pending replaces that job, and at most one job runs at
a time.
"""

import threading
import logging
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class RefitWorker:
    """
    Single-slot background job runner

    Usage:
        worker = RefitWorker()
        worker.submit(job)
        worker.wait_until_idle(timeout=1.0)
        worker.close()
    """

    def __init__(self, name: str = "eyegaze-refit"):
        self.name = name
        self._cond = threading.Condition()
        self._pending: Optional[Callable[[], None]] = None
        self._running = False
        self._closed = False
        self._thread: Optional[threading.Thread] = None

        # Counters
        self.submitted = 0
        self.superseded = 0
        self.completed = 0
        self.failed = 0

    @property
    def is_busy(self) -> bool:
        with self._cond:
            return self._pending is not None or self._running

    def _ensure_started(self):
        if self._thread is None or not self._thread.is_alive():
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()

    def submit(self, job: Callable[[], None]):
        """Queue a job, replacing any job that has not started yet."""
        with self._cond:
            if self._closed:
                raise RuntimeError("RefitWorker is closed")
            if self._pending is not None:
                self.superseded += 1
                logger.debug("Pending refit superseded by a newer request")
            self._pending = job
            self.submitted += 1
            self._ensure_started()
            self._cond.notify_all()

    def _run(self):
        while True:
            with self._cond:
                while self._pending is None and not self._closed:
                    self._cond.wait()
                if self._pending is None:
                    return
                job = self._pending
                self._pending = None
                self._running = True

            try:
                job()
                with self._cond:
                    self.completed += 1
            except Exception:
                logger.exception("Background refit failed")
                with self._cond:
                    self.failed += 1
            finally:
                with self._cond:
                    self._running = False
                    self._cond.notify_all()

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no job is pending or running

        Returns:
            True if idle, False on timeout
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: self._pending is None and not self._running,
                timeout=timeout
            )

    def cancel_pending(self) -> bool:
        """Drop the pending job, if any. A running job is left to finish."""
        with self._cond:
            dropped = self._pending is not None
            self._pending = None
            self._cond.notify_all()
            return dropped

    def close(self, timeout: Optional[float] = None):
        """Stop the worker; a pending job is dropped, a running one finishes."""
        with self._cond:
            self._closed = True
            self._pending = None
            self._cond.notify_all()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
