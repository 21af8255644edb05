"""Project-native typed exceptions for job-layer failures."""

from __future__ import annotations


class JobFailedError(RuntimeError):
    """A remote job reached a terminal failure state.

    Attributes:
        detail: Terminal failure message reported for the job.
        method: Remote method that started the job.
        job_id: Server-assigned job identifier.
    """

    def __init__(self, detail: str, method: str = "", job_id: int = 0):
        super().__init__(f"job failed: {detail}")
        self.detail = detail
        self.method = method
        self.job_id = job_id


class JobTimeoutError(TimeoutError):
    """No job channel activity was observed within the caller-supplied timeout."""

    def __init__(self, message: str, method: str = "", job_id: int = 0):
        super().__init__(message)
        self.method = method
        self.job_id = job_id


class CertificatePreflightError(ValueError):
    """Local certificate or private key failed pre-flight verification."""


class DeploymentPhaseError(RuntimeError):
    """Fatal failure of one deployment phase.

    Attributes:
        phase: Name of the failed phase.
    """

    def __init__(self, phase: str, message: str):
        super().__init__(f"{phase} failed: {message}")
        self.phase = phase
