"""Typed interfaces for job-layer orchestration responsibilities."""

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class JobExecutionResult:
    """Result contract for long-running workflow execution.

    Attributes:
        job_name: Job identifier.
        status: Final execution state.
    """

    job_name: str
    status: str


@dataclass(frozen=True)
class DeploymentResult(JobExecutionResult):
    """Result contract for one certificate deployment run.

    Attributes:
        certificate_name: Certificate name deployed by the run.
        activated: Whether the certificate became the active UI certificate.
        error_phase: Phase that produced the reported fatal error, if any.
        error_message: Fatal error description, if any.
        timeline: Structured stage events in execution order.
    """

    certificate_name: str = ""
    activated: bool = False
    error_phase: str | None = None
    error_message: str | None = None
    timeline: list[dict[str, object]] = field(default_factory=list)


class JobOrchestratorPort(Protocol):
    """Port definition for orchestrating deployment workflows."""

    def job_supported_names(self) -> tuple[str, ...]:
        """Return the set of workflow names this orchestrator can execute.

        Returns:
            tuple[str, ...]: Deterministic list of supported job names.

        Raises:
            RuntimeError: Raised when supported job metadata is unavailable.
        """

    def job_execute(self, job_name: str) -> JobExecutionResult:
        """Execute one named workflow in the job layer.

        Args:
            job_name: Workflow name.

        Returns:
            JobExecutionResult: Final execution status payload.

        Raises:
            RuntimeError: Raised when job execution fails.
        """
