"""
Client-side job status polling

Polls a status function at a fixed interval until the job reaches a
terminal state. Reaching the attempt ceiling raises JobTimeoutError on
the client only; the job itself keeps running on the server.
"""

import logging
from threading import Event
from typing import Any, Callable, Dict, Optional

from ..core.data_types import JobStatus
from ..core.exceptions import JobTimeoutError
from ..core.config import POLL_INTERVAL_SEC, POLL_MAX_ATTEMPTS

StatusFn = Callable[[str], Dict[str, Any]]


class JobStatusPoller:
    """Poll a job until completed or failed"""

    def __init__(self, status_fn: StatusFn, interval: float = POLL_INTERVAL_SEC,
                 max_attempts: int = POLL_MAX_ATTEMPTS,
                 on_status: Optional[Callable[[Dict[str, Any]], None]] = None):
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.status_fn = status_fn
        self.interval = interval
        self.max_attempts = max_attempts
        self.on_status = on_status
        self._stop_event = Event()

    def stop(self):
        """Abandon an in-progress or upcoming poll; poll() then returns None"""
        self._stop_event.set()

    def reset(self):
        """Clear a previous stop() so the poller can be reused"""
        self._stop_event.clear()

    def poll(self, job_id: str) -> Optional[Dict[str, Any]]:
        """
        Poll until the job is terminal

        Failed status calls count as attempts and are retried, as do
        responses without a recognizable status. A stop() issued before
        poll() starts is honored; call reset() to poll again.

        Returns:
            dict: The terminal status, or None if stopped

        Raises:
            JobTimeoutError: After max_attempts polls without a terminal status
        """
        last_status = None

        for attempt in range(1, self.max_attempts + 1):
            if self._stop_event.is_set():
                logging.info(f"Polling for job {job_id} stopped")
                return None

            try:
                status = self.status_fn(job_id)
            except Exception as e:
                logging.warning(f"Status check {attempt} for job {job_id} failed: {e}")
            else:
                try:
                    state = JobStatus(status["status"])
                except (KeyError, TypeError, ValueError) as e:
                    logging.warning(f"Status check {attempt} for job {job_id} "
                                    f"returned a malformed status: {e!r}")
                else:
                    last_status = status
                    if self.on_status is not None:
                        self.on_status(status)
                    if state.is_terminal:
                        return status

            if attempt < self.max_attempts and self._stop_event.wait(self.interval):
                logging.info(f"Polling for job {job_id} stopped")
                return None

        raise JobTimeoutError(job_id, self.max_attempts, last_status)
