"""Typed domain models shared across runtime layers.

This module defines the handle for one server-side long-running operation.
A `RemoteJob` is written to by exactly one producer (the transport's job
notification activity) and read by exactly one consumer (the job tracker).
Both notification channels are closed by the producer once the job reaches a
terminal state; closure is the only teardown signal.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Final


class JobState(str, Enum):
    """Server-reported job states consumed by routing logic."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    ABORTED = "ABORTED"


JOB_TERMINAL_STATES: Final[frozenset[str]] = frozenset(
    {
        JobState.SUCCESS.value,
        JobState.FAILED.value,
        JobState.ABORTED.value,
    }
)

JobProgressCallback = Callable[[float, str, str], None]

_CHANNEL_CLOSED: Final[object] = object()


def job_channel_is_closed(value: object) -> bool:
    """Return whether a value read from a job channel is the closure marker.

    Args:
        value: Value received from a progress or completion channel.

    Returns:
        bool: True when the producer closed the channel.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return value is _CHANNEL_CLOSED


@dataclass
class RemoteJob:
    """Handle for one in-flight server-side long-running operation.

    Attributes:
        method: Remote method name that started the job.
        job_id: Server-assigned identifier, 0 until the server responds.
        state: Last server-reported state string.
        progress: Last reported progress percentage in [0, 100].
        result: Opaque method-specific result populated at completion.
        finished: Authoritative terminal flag, independent of `state`.
        progress_callback: Optional observer invoked by the producer per update.
        progress_channel: Progress updates, closed at terminal state.
        done_channel: Exactly one terminal message (empty on success), then closed.
    """

    method: str
    job_id: int = 0
    state: str = JobState.PENDING.value
    progress: float = 0.0
    result: Any = None
    finished: bool = False
    progress_callback: JobProgressCallback | None = None
    progress_channel: queue.Queue = field(default_factory=queue.Queue, repr=False)
    done_channel: queue.Queue = field(default_factory=queue.Queue, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def job_is_closed(self) -> bool:
        """Return whether the producer already closed both channels.

        Returns:
            bool: True after the terminal message was published.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        with self._lock:
            return self._closed

    def job_publish_progress(self, percent: float, state: str = "", description: str = "") -> bool:
        """Publish one progress update from the producer side.

        Args:
            percent: Reported progress percentage, clamped to [0, 100].
            state: Optional server state string accompanying the update.
            description: Optional human-readable progress description.

        Returns:
            bool: False when the job is already closed and the update was dropped.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        with self._lock:
            if self._closed:
                return False
            self.progress = min(100.0, max(0.0, float(percent)))
            if state:
                self.state = state
            self.progress_channel.put(self.progress)

        if self.progress_callback is not None:
            self.progress_callback(self.progress, self.state, description)
        return True

    def job_publish_terminal(self, state: str, error_message: str = "", result: Any = None) -> bool:
        """Publish the terminal message and close both channels.

        The `finished` flag is set before the terminal message is queued so a
        consumer that reads the message always observes the finished job.

        Args:
            state: Final server state string.
            error_message: Failure reason, empty for success.
            result: Opaque method-specific job result.

        Returns:
            bool: False when the job was already closed.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        with self._lock:
            if self._closed:
                return False
            self.state = state
            self.result = result
            self.finished = True
            self._closed = True
            self.done_channel.put(error_message)
            self.done_channel.put(_CHANNEL_CLOSED)
            self.progress_channel.put(_CHANNEL_CLOSED)
        return True

    def job_close_channels(self) -> None:
        """Close both channels without a terminal message.

        Used when the producer is torn down before the job finished; a waiting
        consumer observes the closure and fails the wait.

        Returns:
            None: Channels are closed as side effect.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        with self._lock:
            if self._closed:
                return
            self._closed = True
            self.done_channel.put(_CHANNEL_CLOSED)
            self.progress_channel.put(_CHANNEL_CLOSED)
