"""Blocking wait protocol for remote long-running jobs.

A job reports zero or more progress values and exactly one terminal message on
separate channels. Only the terminal message ends a wait: a progress value of
100 is informational because a job can still fail while finalizing.
"""

from __future__ import annotations

import logging
import queue
import time
from typing import Any, Callable, Final

from certdeploy.adapters import RemoteCallPort
from certdeploy.domain import RemoteJob, job_channel_is_closed
from certdeploy.domain.models import JobProgressCallback

from .job_errors import JobFailedError, JobTimeoutError

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[float], None]


def job_log_progress(progress: float, state: str, description: str) -> None:
    """Log one producer-side progress update at debug level.

    Args:
        progress: Progress percentage.
        state: Server state string.
        description: Progress description text.

    Returns:
        None: Logs as side effect.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    logger.debug("job progress: %.2f%%, state: %s, description: %s", progress, state, description)


class JobTracker:
    """Turn a started remote job into a blocking wait for its terminal state."""

    _SELECT_INTERVAL_SECONDS: Final[float] = 0.05

    def __init__(
        self,
        remote: RemoteCallPort,
        default_timeout_seconds: float = 300.0,
        monotonic: Callable[[], float] | None = None,
    ):
        """Initialize tracker dependencies.

        Args:
            remote: Remote call port used to start jobs.
            default_timeout_seconds: Idle timeout used when a call supplies none.
            monotonic: Optional monotonic clock override.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if remote is None:
            raise ValueError("remote must not be None")
        if default_timeout_seconds <= 0:
            raise ValueError("default_timeout_seconds must be > 0")

        self._remote = remote
        self._default_timeout_seconds = default_timeout_seconds
        self._monotonic = monotonic or time.monotonic

    def tracker_run_job(
        self,
        method: str,
        params: list[Any],
        timeout_seconds: float | None = None,
        progress_observer: ProgressObserver | None = None,
        progress_callback: JobProgressCallback | None = job_log_progress,
    ) -> RemoteJob:
        """Start one remote job and wait for its terminal state.

        A failure of the starting call propagates unchanged; no wait is attempted.

        Args:
            method: Remote method name.
            params: Positional method parameters.
            timeout_seconds: Idle timeout for this wait, defaulting to the tracker default.
            progress_observer: Optional observer for progress values read from the channel.
            progress_callback: Producer-side progress callback handed to the transport.

        Returns:
            RemoteJob: The finished job.

        Raises:
            JobFailedError: Raised when the job reports a terminal failure.
            JobTimeoutError: Raised when no channel activity occurs within the timeout.
            ConnectionError: Raised when the starting call fails.
        """

        job = self._remote.remote_call_with_job(method, params, progress_callback)
        if job.job_id > 0:
            logger.info("started the %s job with ID: %d", method, job.job_id)
        self.tracker_wait_for_job(job=job, timeout_seconds=timeout_seconds, progress_observer=progress_observer)
        return job

    def tracker_wait_for_job(
        self,
        job: RemoteJob,
        timeout_seconds: float | None = None,
        progress_observer: ProgressObserver | None = None,
    ) -> Any:
        """Wait on the job channels until a terminal message or an idle timeout.

        Args:
            job: Job handle returned by the transport.
            timeout_seconds: Idle timeout, reset on every channel activity.
            progress_observer: Optional observer for progress values.

        Returns:
            Any: Opaque job result.

        Raises:
            JobFailedError: Raised when the terminal message is non-empty, or the
                channels close without a terminal message.
            JobTimeoutError: Raised when no channel activity occurs within the timeout.
            ValueError: Raised when the timeout is not positive.
        """

        effective_timeout = self._default_timeout_seconds if timeout_seconds is None else timeout_seconds
        if effective_timeout <= 0:
            raise ValueError("timeout_seconds must be > 0")

        last_activity_at = self._monotonic()
        progress_open = True
        success_received = False

        while True:
            if progress_open:
                progress_open, progress_seen = self._tracker_drain_progress(job, progress_observer)
                if progress_seen:
                    last_activity_at = self._monotonic()

            remaining_seconds = effective_timeout - (self._monotonic() - last_activity_at)
            if remaining_seconds <= 0:
                raise JobTimeoutError(
                    f"{job.method} job {job.job_id} reported no activity for {effective_timeout:g}s",
                    method=job.method,
                    job_id=job.job_id,
                )

            wait_seconds = min(remaining_seconds, self._SELECT_INTERVAL_SECONDS) if progress_open else remaining_seconds
            try:
                message = job.done_channel.get(timeout=wait_seconds)
            except queue.Empty:
                continue
            last_activity_at = self._monotonic()

            if job_channel_is_closed(message):
                if success_received:
                    # producer closed without setting the flag; closure is terminal
                    job.finished = True
                    logger.info("%s job %d completed successfully", job.method, job.job_id)
                    return job.result
                raise JobFailedError(
                    "job channels closed without a terminal message",
                    method=job.method,
                    job_id=job.job_id,
                )

            if progress_open:
                progress_open, _ = self._tracker_drain_progress(job, progress_observer)

            if message:
                raise JobFailedError(str(message), method=job.method, job_id=job.job_id)

            success_received = True
            if job.finished:
                logger.info("%s job %d completed successfully", job.method, job.job_id)
                return job.result

    def _tracker_drain_progress(
        self,
        job: RemoteJob,
        progress_observer: ProgressObserver | None,
    ) -> tuple[bool, bool]:
        """Forward every queued progress value without blocking.

        Args:
            job: Job handle.
            progress_observer: Optional observer for progress values.

        Returns:
            tuple[bool, bool]: Whether the channel is still open, and whether any value was read.

        Raises:
            RuntimeError: Observer exceptions propagate unchanged.
        """

        progress_seen = False
        while True:
            try:
                value = job.progress_channel.get_nowait()
            except queue.Empty:
                return True, progress_seen
            progress_seen = True
            if job_channel_is_closed(value):
                return False, progress_seen
            logger.debug("job %d progress: %.2f%%", job.job_id, value)
            if progress_observer is not None:
                progress_observer(float(value))
