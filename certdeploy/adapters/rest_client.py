"""Appliance REST API transport implementing the remote call port.

Synchronous methods map onto one HTTP request each. Job-backed methods return
a server job id; a background producer thread per job polls the job status
endpoint and feeds the job's progress and completion channels.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Final

import httpx

from certdeploy.domain import JOB_TERMINAL_STATES, JobState, RemoteJob
from certdeploy.domain.models import JobProgressCallback

from .interfaces import RemoteCallPort
from .remote_errors import (
    RemoteAuthenticationError,
    RemoteCallError,
    RemoteCallTimeoutError,
    RemoteConnectionError,
    RemoteProtocolError,
)
from .remote_methods import RemoteMethod, remote_build_rest_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _JobPollStrategy:
    """Immutable job status polling cadence.

    Attributes:
        interval_seconds: Delay between polls while the job reports changes.
        max_interval_seconds: Delay cap reached while the job reports no change.
        max_consecutive_failures: Poll failures tolerated before the job is failed.
    """

    interval_seconds: float
    max_interval_seconds: float
    max_consecutive_failures: int

    def strategy_calculate_poll_wait_seconds(self, unchanged_poll_count: int) -> float:
        """Calculate the wait before the next poll with exponential backoff and cap.

        Args:
            unchanged_poll_count: Consecutive polls that observed no progress change.

        Returns:
            float: Seconds to wait before the next poll.

        Raises:
            ValueError: Raised when the count is negative.
        """

        if unchanged_poll_count < 0:
            raise ValueError("unchanged_poll_count must be >= 0")

        backoff_seconds = self.interval_seconds * (2 ** min(unchanged_poll_count, 16))
        return min(float(backoff_seconds), float(self.max_interval_seconds))


class RestRemoteClient(RemoteCallPort):
    """Remote call port over the appliance `/api/v2.0` REST API."""

    _USER_AGENT: Final[str] = "nas-cert-deploy/1.0 (Python/httpx)"
    _THREAD_JOIN_MARGIN_SECONDS: Final[float] = 1.0

    def __init__(
        self,
        base_url: str,
        verify_tls: bool = True,
        request_timeout_seconds: float = 10.0,
        job_poll_interval_seconds: float = 1.0,
        job_poll_max_interval_seconds: float = 5.0,
        job_poll_max_failures: int = 5,
        http_transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the REST transport.

        Args:
            base_url: API root URL, for example `https://nas:443/api/v2.0`.
            verify_tls: Whether the appliance TLS certificate is verified.
            request_timeout_seconds: Default HTTP timeout in seconds.
            job_poll_interval_seconds: Base delay between job status polls.
            job_poll_max_interval_seconds: Delay cap between job status polls.
            job_poll_max_failures: Consecutive poll failures before a job is failed.
            http_transport: Optional httpx transport override.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when config values are invalid.
        """

        normalized_base_url = base_url.strip()
        if not normalized_base_url:
            raise ValueError("base_url must not be blank")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")
        if job_poll_interval_seconds <= 0:
            raise ValueError("job_poll_interval_seconds must be > 0")
        if job_poll_max_interval_seconds < job_poll_interval_seconds:
            raise ValueError("job_poll_max_interval_seconds must be >= job_poll_interval_seconds")
        if job_poll_max_failures < 1:
            raise ValueError("job_poll_max_failures must be >= 1")

        self._base_url = normalized_base_url.rstrip("/")
        self._request_timeout_seconds = request_timeout_seconds
        self._poll_strategy = _JobPollStrategy(
            interval_seconds=job_poll_interval_seconds,
            max_interval_seconds=job_poll_max_interval_seconds,
            max_consecutive_failures=job_poll_max_failures,
        )
        self._http_client = httpx.Client(
            base_url=self._base_url,
            verify=verify_tls,
            timeout=request_timeout_seconds,
            headers={"User-Agent": self._USER_AGENT, "Content-Type": "application/json"},
            transport=http_transport,
        )
        self._subscribed = False
        self._closed = False
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._watchers: list[tuple[RemoteJob, threading.Thread]] = []
        # a watcher can be blocked in one status request plus one poll wait
        self._watcher_join_timeout_seconds = (
            request_timeout_seconds + job_poll_max_interval_seconds + self._THREAD_JOIN_MARGIN_SECONDS
        )

    def remote_source_name(self) -> str:
        """Return stable transport label.

        Returns:
            str: Transport identifier.

        Raises:
            RuntimeError: This implementation does not raise runtime errors.
        """

        return "appliance_rest_v2"

    def remote_login(self, username: str, password: str, api_key: str) -> None:
        """Install credentials and verify them with a ping request.

        Args:
            username: Admin user name.
            password: Admin password.
            api_key: Appliance API key, preferred when present.

        Returns:
            None: Credentials are stored on the pooled client.

        Raises:
            ValueError: Raised when no credential form is supplied.
            RemoteAuthenticationError: Raised when the appliance rejects the credentials.
            RemoteConnectionError: Raised for transport failures.
        """

        normalized_api_key = api_key.strip()
        if normalized_api_key:
            self._http_client.auth = None
            self._http_client.headers["Authorization"] = f"Bearer {normalized_api_key}"
        elif username.strip() and password:
            self._http_client.headers.pop("Authorization", None)
            self._http_client.auth = httpx.BasicAuth(username.strip(), password)
        else:
            raise ValueError("no username and password or api key provided")

        self.remote_call(RemoteMethod.CORE_PING.value, self._request_timeout_seconds, [])

    def remote_call(self, method: str, timeout_seconds: float, params: list[Any]) -> Any:
        """Issue one routed REST request and return the decoded JSON body.

        Args:
            method: Appliance method name.
            timeout_seconds: Per-call timeout.
            params: Positional method parameters.

        Returns:
            Any: Decoded JSON body, or None for an empty body.

        Raises:
            RemoteCallTimeoutError: Raised when the request timed out.
            RemoteAuthenticationError: Raised on HTTP 401/403.
            RemoteConnectionError: Raised for transport failures and other HTTP errors.
            RemoteProtocolError: Raised for unknown methods and non-JSON bodies.
        """

        if self._closed:
            raise RemoteConnectionError("client connection is closed", method=method)

        rest_request = remote_build_rest_request(method=method, params=list(params))
        try:
            response = self._http_client.request(
                rest_request.http_method,
                rest_request.path,
                params=rest_request.query_parameters or None,
                json=rest_request.json_body,
                timeout=timeout_seconds,
            )
        except httpx.TimeoutException as error:
            raise RemoteCallTimeoutError(f"{method} request timed out", method=method) from error
        except httpx.HTTPError as error:
            raise RemoteConnectionError(f"{method} transport request failed: {error}", method=method) from error

        if response.status_code in (401, 403):
            raise RemoteAuthenticationError(
                f"{method} rejected credentials: HTTP {response.status_code}",
                method=method,
            )
        if response.status_code >= 400:
            raise RemoteConnectionError(
                f"{method} returned HTTP {response.status_code}: {response.text.strip()[:200]}",
                method=method,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as error:
            raise RemoteProtocolError(f"{method} returned a non-JSON body", method=method) from error

    def remote_call_with_job(
        self,
        method: str,
        params: list[Any],
        progress_callback: JobProgressCallback | None = None,
    ) -> RemoteJob:
        """Start a job-backed method and attach a status polling producer.

        Args:
            method: Appliance method name.
            params: Positional method parameters.
            progress_callback: Optional observer for progress updates.

        Returns:
            RemoteJob: Job handle fed by the polling producer thread.

        Raises:
            RemoteProtocolError: Raised when not subscribed or the response is not a job id.
            RemoteConnectionError: Raised when the starting request fails.
        """

        if not self._subscribed:
            raise RemoteProtocolError(
                "job notifications are not subscribed, call remote_subscribe_to_jobs first",
                method=method,
            )

        payload = self.remote_call(method, self._request_timeout_seconds, params)
        if isinstance(payload, bool) or not isinstance(payload, int):
            raise RemoteProtocolError(f"{method} did not return a job id: {payload!r}", method=method)

        job = RemoteJob(method=method, job_id=payload, progress_callback=progress_callback)
        watcher = threading.Thread(
            target=self._rest_watch_job,
            args=(job,),
            name=f"job-watch-{payload}",
            daemon=True,
        )
        with self._state_lock:
            self._watchers.append((job, watcher))
        watcher.start()
        return job

    def remote_subscribe_to_jobs(self) -> None:
        """Enable job status polling for subsequent job-backed calls.

        Returns:
            None: Subscription flag is set as side effect.

        Raises:
            RemoteConnectionError: Raised when the client is already closed.
        """

        if self._closed:
            raise RemoteConnectionError("client connection is closed", method=None)
        self._subscribed = True
        logger.debug("job notifications enabled for %s", self._base_url)

    def remote_close(self) -> None:
        """Stop job producers and close the pooled HTTP client.

        Returns:
            None: Resources are released as side effect.

        Raises:
            RuntimeError: This implementation does not raise runtime errors.
        """

        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            watchers = list(self._watchers)
            self._watchers.clear()

        self._stop_event.set()
        for job, watcher in watchers:
            watcher.join(timeout=self._watcher_join_timeout_seconds)
            job.job_close_channels()
        self._http_client.close()
        logger.debug("closed the client connection to %s", self._base_url)

    def _rest_watch_job(self, job: RemoteJob) -> None:
        """Run the status producer for one job and drop its watcher entry when done.

        Args:
            job: Job handle to feed.

        Returns:
            None: Job channels are written as side effect.

        Raises:
            RuntimeError: Raised when the HTTP client fails outside of shutdown.
        """

        try:
            self._rest_poll_job(job)
        finally:
            with self._state_lock:
                self._watchers = [entry for entry in self._watchers if entry[0] is not job]

    def _rest_poll_job(self, job: RemoteJob) -> None:
        """Poll job status until a terminal state and publish it to the job channels.

        Args:
            job: Job handle to feed.

        Returns:
            None: Job channels are written as side effect.

        Raises:
            RuntimeError: Producer failures are published as terminal job messages.
        """

        consecutive_failures = 0
        unchanged_poll_count = 0
        last_percent: float | None = None

        while not self._stop_event.is_set():
            try:
                job_records = self.remote_call(
                    RemoteMethod.CORE_GET_JOBS.value,
                    self._request_timeout_seconds,
                    [job.job_id],
                )
                record = self._rest_select_job_record(job_records=job_records, job_id=job.job_id)
            except RuntimeError:
                # httpx rejects requests on a client closed by remote_close
                if not self._stop_event.is_set():
                    raise
                break
            except RemoteCallError as error:
                consecutive_failures += 1
                logger.debug("job %d status poll failed (%d): %s", job.job_id, consecutive_failures, error)
                if consecutive_failures >= self._poll_strategy.max_consecutive_failures:
                    job.job_publish_terminal(
                        state=JobState.FAILED.value,
                        error_message=f"job status polling failed: {error}",
                    )
                    return
                self._stop_event.wait(self._poll_strategy.interval_seconds)
                continue

            consecutive_failures = 0
            state = str(record.get("state") or "")
            percent, description = self._rest_extract_progress(record)
            if percent is not None and percent != last_percent:
                last_percent = percent
                unchanged_poll_count = 0
                job.job_publish_progress(percent=percent, state=state, description=description)
            else:
                unchanged_poll_count += 1

            if state in JOB_TERMINAL_STATES:
                if state == JobState.SUCCESS.value:
                    job.job_publish_terminal(state=state, error_message="", result=record.get("result"))
                else:
                    error_text = str(record.get("error") or f"job ended in state {state}")
                    job.job_publish_terminal(state=state, error_message=error_text, result=record.get("result"))
                return

            self._stop_event.wait(
                self._poll_strategy.strategy_calculate_poll_wait_seconds(unchanged_poll_count=unchanged_poll_count)
            )

        job.job_close_channels()

    def _rest_select_job_record(self, job_records: Any, job_id: int) -> dict[str, Any]:
        """Select the status record for one job from a `core.get_jobs` response.

        Args:
            job_records: Decoded `core.get_jobs` response.
            job_id: Job identifier.

        Returns:
            dict[str, Any]: Job status record.

        Raises:
            RemoteProtocolError: Raised when the response has no record for the job.
        """

        if isinstance(job_records, list):
            for record in job_records:
                if isinstance(record, dict) and record.get("id") == job_id:
                    return record
        raise RemoteProtocolError(
            f"core.get_jobs returned no record for job id={job_id}",
            method=RemoteMethod.CORE_GET_JOBS.value,
        )

    def _rest_extract_progress(self, record: dict[str, Any]) -> tuple[float | None, str]:
        """Extract progress percentage and description from a job record.

        Args:
            record: Job status record.

        Returns:
            tuple[float | None, str]: Percentage when reported, and description text.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        progress = record.get("progress")
        if not isinstance(progress, dict):
            return None, ""
        percent = progress.get("percent")
        description = str(progress.get("description") or "")
        if isinstance(percent, bool) or not isinstance(percent, (int, float)):
            return None, description
        return float(percent), description
