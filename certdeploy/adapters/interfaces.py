"""Typed interfaces for adapter-layer responsibilities."""

from typing import Any
from typing import Protocol

from certdeploy.domain import RemoteJob
from certdeploy.domain.models import JobProgressCallback


class RemoteCallPort(Protocol):
    """Port definition for an already-connected appliance call interface."""

    def remote_source_name(self) -> str:
        """Return transport identifier for diagnostics and telemetry.

        Returns:
            str: Human-readable transport identifier.

        Raises:
            RuntimeError: Raised when transport metadata is unavailable.
        """

    def remote_login(self, username: str, password: str, api_key: str) -> None:
        """Authenticate the connection with exactly one credential form.

        Args:
            username: Admin user name, blank when an API key is used.
            password: Admin password, blank when an API key is used.
            api_key: Appliance API key, blank when user/password is used.

        Returns:
            None: Authentication state is kept by the transport.

        Raises:
            ValueError: Raised when no credential form is supplied.
            ConnectionError: Raised when the appliance rejects the login.
        """

    def remote_call(self, method: str, timeout_seconds: float, params: list[Any]) -> Any:
        """Issue one synchronous request and return its decoded result.

        Args:
            method: Remote method name.
            timeout_seconds: Per-call timeout.
            params: Positional method parameters.

        Returns:
            Any: Decoded method result payload.

        Raises:
            ConnectionError: Raised for transport failures.
            TimeoutError: Raised when the call exceeds its timeout.
            ValueError: Raised when the response body is malformed.
        """

    def remote_call_with_job(
        self,
        method: str,
        params: list[Any],
        progress_callback: JobProgressCallback | None = None,
    ) -> RemoteJob:
        """Start one long-running server operation and return its job handle.

        Args:
            method: Remote method name.
            params: Positional method parameters.
            progress_callback: Optional observer for progress updates.

        Returns:
            RemoteJob: Handle fed asynchronously by the job notification activity.

        Raises:
            ConnectionError: Raised when the starting call fails.
            ValueError: Raised when job notifications are not subscribed.
        """

    def remote_subscribe_to_jobs(self) -> None:
        """Enable job notifications required by `remote_call_with_job`.

        Returns:
            None: Subscription state is kept by the transport.

        Raises:
            ConnectionError: Raised when the subscription cannot be established.
        """

    def remote_close(self) -> None:
        """Release the connection. Repeated calls are no-ops.

        Returns:
            None: Connection resources are released as side effect.

        Raises:
            ConnectionError: Raised when the transport fails to close cleanly.
        """
