"""Job-layer certificate deployment orchestrator with a structured stage timeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, TypeVar

from certdeploy.adapters import CERTIFICATE_CREATE_TYPE_IMPORTED, RemoteCallPort, RemoteMethod
from certdeploy.domain import domain_build_stage_event
from certdeploy.registry import CertificateEntry, CertificateRegistry

from .app_binding import (
    job_app_build_update_params,
    job_app_config_reports_error,
    job_app_extract_network_section,
)
from .certificate_preflight import CertificatePreflightResult, job_verify_certificate_key_pair
from .deployment_context import DeploymentContext
from .interfaces import DeploymentResult, JobOrchestratorPort
from .job_errors import DeploymentPhaseError
from .job_tracker import JobTracker

logger = logging.getLogger(__name__)

PhaseResult = TypeVar("PhaseResult")

_PHASE_ERRORS = (OSError, ValueError, RuntimeError)


@dataclass(frozen=True)
class CertificateDeployConfig:
    """Configuration values for one certificate deployment run.

    Attributes:
        cert_basename: Certificate name prefix, also the registry filter.
        full_chain_path: PEM full chain path, leaf first.
        private_key_path: PEM private key path.
        api_key: API key credential; preferred over username and password.
        username: Username credential.
        password: Password credential.
        add_as_ui_certificate: Bind the certificate to the web UI.
        add_as_ftp_certificate: Bind the certificate to the FTP service.
        add_as_app_certificate: Rebind already certificate-aware applications.
        app_names: Application names considered for rebinding.
        delete_old_certs: Retire superseded certificates after activation.
        timeout_seconds: Timeout for each synchronous call.
        job_timeout_seconds: Idle timeout for each job wait.
    """

    cert_basename: str
    full_chain_path: str
    private_key_path: str
    api_key: str = ""
    username: str = ""
    password: str = ""
    add_as_ui_certificate: bool = False
    add_as_ftp_certificate: bool = False
    add_as_app_certificate: bool = False
    app_names: tuple[str, ...] = ()
    delete_old_certs: bool = False
    timeout_seconds: float = 10.0
    job_timeout_seconds: float = 300.0


def job_select_retirement_candidates(
    entries: Iterable[CertificateEntry],
    name_prefix: str,
    deployed_name: str,
) -> list[CertificateEntry]:
    """Select superseded certificates for retirement.

    Args:
        entries: Registry snapshot.
        name_prefix: Configured certificate name prefix.
        deployed_name: Name deployed by the current run, never selected.

    Returns:
        list[CertificateEntry]: Candidates sorted by name.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return sorted(
        (
            entry
            for entry in entries
            if entry.name.startswith(name_prefix) and entry.name != deployed_name
        ),
        key=lambda entry: entry.name,
    )


def job_appliance_supports_apps(appliance_version: str) -> bool:
    """Return whether application activation applies to an appliance version.

    Only versions naming a non-SCALE appliance (`TrueNAS-` without `SCALE`)
    are excluded; bare and unknown versions are attempted.
    """

    if not appliance_version.startswith("TrueNAS-"):
        return True
    return appliance_version.startswith("TrueNAS-SCALE")


class CertificateDeployOrchestrator(JobOrchestratorPort):
    """Concrete orchestrator for the certificate deployment workflow."""

    _DEPLOY_JOB_NAME = "certificate_deploy"

    def __init__(
        self,
        remote: RemoteCallPort,
        config: CertificateDeployConfig,
        context: DeploymentContext | None = None,
        tracker: JobTracker | None = None,
        registry: CertificateRegistry | None = None,
    ):
        """Initialize deployment orchestrator dependencies.

        Args:
            remote: Remote call port, not yet authenticated.
            config: Deployment configuration.
            context: Optional per-run state; built from the config when omitted.
            tracker: Optional job tracker; built from the remote port when omitted.
            registry: Optional certificate registry; built from the remote port when omitted.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if remote is None:
            raise ValueError("remote must not be None")
        if not config.cert_basename.strip():
            raise ValueError("config.cert_basename must not be blank")
        if not config.full_chain_path.strip():
            raise ValueError("config.full_chain_path must not be blank")
        if not config.private_key_path.strip():
            raise ValueError("config.private_key_path must not be blank")
        if config.timeout_seconds <= 0:
            raise ValueError("config.timeout_seconds must be > 0")
        if config.job_timeout_seconds <= 0:
            raise ValueError("config.job_timeout_seconds must be > 0")

        self._remote = remote
        self._config = config
        self._context = context or DeploymentContext(cert_basename=config.cert_basename.strip())
        self._tracker = tracker or JobTracker(remote=remote, default_timeout_seconds=config.job_timeout_seconds)
        self._registry = registry or CertificateRegistry(
            remote=remote,
            name_prefix=config.cert_basename,
            timeout_seconds=config.timeout_seconds,
        )

    @property
    def context(self) -> DeploymentContext:
        return self._context

    def job_supported_names(self) -> tuple[str, ...]:
        """Return supported job names.

        Returns:
            tuple[str, ...]: Supported job names.

        Raises:
            RuntimeError: This implementation does not raise runtime errors.
        """

        return (self._DEPLOY_JOB_NAME,)

    def job_execute(self, job_name: str) -> DeploymentResult:
        """Execute one deployment run.

        Phases run in a fixed order and stop at the first fatal failure. A UI
        activation failure is reported after the FTP and application phases
        ran; with `activated` false, retirement and UI restart are skipped.

        Args:
            job_name: Name of job to execute.

        Returns:
            DeploymentResult: Final status, activation flag and stage timeline.

        Raises:
            ValueError: Raised when job name is unsupported.
        """

        normalized_job_name = job_name.strip()
        if normalized_job_name != self._DEPLOY_JOB_NAME:
            raise ValueError(f"unsupported job_name={normalized_job_name}")

        timeline: list[dict[str, object]] = []
        certificate_name = self._context.context_certificate_name()
        timeline.append(
            domain_build_stage_event(stage="run", status="started", details={"certificate_name": certificate_name})
        )
        logger.info("installing certificate: %s", certificate_name)

        try:
            self._deploy_execute_phases(certificate_name, timeline)
        except DeploymentPhaseError as error:
            logger.error("%s", error)
            timeline.append(
                domain_build_stage_event(
                    stage="run",
                    status="failed",
                    details={"error_phase": error.phase, "error_message": str(error)},
                )
            )
            return DeploymentResult(
                job_name=normalized_job_name,
                status="failed",
                certificate_name=certificate_name,
                activated=self._context.activated,
                error_phase=error.phase,
                error_message=str(error),
                timeline=timeline,
            )

        timeline.append(domain_build_stage_event(stage="run", status="success"))
        logger.info("certificate %s deployment finished", certificate_name)
        return DeploymentResult(
            job_name=normalized_job_name,
            status="success",
            certificate_name=certificate_name,
            activated=self._context.activated,
            timeline=timeline,
        )

    def _deploy_execute_phases(self, certificate_name: str, timeline: list[dict[str, object]]) -> None:
        """Run every phase in order.

        Args:
            certificate_name: Memoized certificate name for this run.
            timeline: Mutable stage timeline.

        Returns:
            None: Context and timeline are updated as side effect.

        Raises:
            DeploymentPhaseError: Raised by the first fatal phase failure.
        """

        preflight = self._deploy_run_phase(
            "preflight",
            timeline,
            lambda: job_verify_certificate_key_pair(
                full_chain_path=self._config.full_chain_path,
                private_key_path=self._config.private_key_path,
            ),
        )
        self._deploy_run_phase("authenticate", timeline, self._deploy_authenticate)
        self._deploy_run_phase("system_info", timeline, self._deploy_read_system_info)
        self._deploy_run_phase("subscribe", timeline, self._remote.remote_subscribe_to_jobs)
        self._deploy_run_phase("import", timeline, lambda: self._deploy_import_certificate(certificate_name, preflight))
        self._context.certificate_id = self._deploy_run_phase(
            "registry_refresh",
            timeline,
            lambda: self._registry.registry_refresh(expected_name=certificate_name),
        )

        ui_error: DeploymentPhaseError | None = None
        if self._config.add_as_ui_certificate:
            try:
                self._deploy_run_phase("activate_ui", timeline, self._deploy_activate_ui)
                self._context.activated = True
            except DeploymentPhaseError as error:
                logger.error("%s", error)
                ui_error = error
        else:
            timeline.append(domain_build_stage_event(stage="activate_ui", status="skipped"))

        if self._config.add_as_ftp_certificate:
            self._deploy_run_phase("activate_ftp", timeline, self._deploy_activate_ftp)
        else:
            timeline.append(domain_build_stage_event(stage="activate_ftp", status="skipped"))

        self._deploy_activate_apps(timeline)

        if ui_error is not None:
            raise ui_error

        if not self._context.activated:
            logger.info(
                "%s was not activated as the UI certificate therefore no certificates will be deleted",
                certificate_name,
            )
            timeline.append(domain_build_stage_event(stage="retire", status="skipped", details={"reason": "not_activated"}))
            timeline.append(
                domain_build_stage_event(stage="restart_ui", status="skipped", details={"reason": "not_activated"})
            )
            return

        if self._config.delete_old_certs:
            self._deploy_retire_certificates(certificate_name, timeline)
        else:
            timeline.append(domain_build_stage_event(stage="retire", status="skipped"))
        self._deploy_run_phase("restart_ui", timeline, self._deploy_restart_ui)

    def _deploy_run_phase(
        self,
        phase: str,
        timeline: list[dict[str, object]],
        action: Callable[[], PhaseResult],
    ) -> PhaseResult:
        """Run one fatal phase and record its timeline events.

        Args:
            phase: Phase name.
            timeline: Mutable stage timeline.
            action: Phase body.

        Returns:
            PhaseResult: Value returned by the phase body.

        Raises:
            DeploymentPhaseError: Raised when the phase body fails; the cause is chained.
        """

        timeline.append(domain_build_stage_event(stage=phase, status="started"))
        try:
            result = action()
        except _PHASE_ERRORS as error:
            timeline.append(
                domain_build_stage_event(
                    stage=phase,
                    status="failed",
                    details={"error_type": type(error).__name__, "error_message": str(error)},
                )
            )
            raise DeploymentPhaseError(phase, str(error)) from error
        timeline.append(domain_build_stage_event(stage=phase, status="completed"))
        return result

    def _deploy_authenticate(self) -> None:
        if self._config.api_key:
            logger.info("logging in using the API key")
            self._remote.remote_login(username="", password="", api_key=self._config.api_key)
        elif self._config.username and self._config.password:
            logger.info("logging in using the username and password")
            self._remote.remote_login(username=self._config.username, password=self._config.password, api_key="")
        else:
            raise ValueError("no username and password or api key provided, login failed")
        logger.info("client logged in successfully")

    def _deploy_read_system_info(self) -> None:
        payload = self._remote.remote_call(RemoteMethod.SYSTEM_INFO.value, self._config.timeout_seconds, [])
        version = payload.get("version") if isinstance(payload, dict) else None
        self._context.appliance_version = version if isinstance(version, str) else ""
        logger.info("appliance version: %s", self._context.appliance_version or "unknown")

    def _deploy_import_certificate(self, certificate_name: str, preflight: CertificatePreflightResult) -> None:
        """Import the certificate as an asynchronous job and wait for it.

        Args:
            certificate_name: Name to create the certificate under.
            preflight: Verified PEM material.

        Returns:
            None: The job is awaited to its terminal state.

        Raises:
            JobFailedError: Raised when the import job fails.
            JobTimeoutError: Raised when the import job stalls.
            ConnectionError: Raised when the job cannot be started.
        """

        self._tracker.tracker_run_job(
            RemoteMethod.CERTIFICATE_CREATE.value,
            [
                {
                    "name": certificate_name,
                    "certificate": preflight.certificate_pem,
                    "privatekey": preflight.private_key_pem,
                    "create_type": CERTIFICATE_CREATE_TYPE_IMPORTED,
                }
            ],
        )
        logger.info("certificate %s imported", certificate_name)

    def _deploy_activate_ui(self) -> None:
        self._remote.remote_call(
            RemoteMethod.SYSTEM_GENERAL_UPDATE.value,
            self._config.timeout_seconds,
            [{"ui_certificate": self._deploy_certificate_id()}],
        )
        logger.info("the UI certificate updated successfully")

    def _deploy_activate_ftp(self) -> None:
        self._remote.remote_call(
            RemoteMethod.FTP_UPDATE.value,
            self._config.timeout_seconds,
            [{"ssltls_certificate": self._deploy_certificate_id()}],
        )
        logger.info("the FTP service certificate updated successfully")

    def _deploy_restart_ui(self) -> None:
        self._remote.remote_call(RemoteMethod.SYSTEM_GENERAL_UI_RESTART.value, self._config.timeout_seconds, [])
        logger.info("the UI has been restarted")

    def _deploy_certificate_id(self) -> int:
        if self._context.certificate_id is None:
            raise RuntimeError("certificate identifier is not resolved")
        return self._context.certificate_id

    def _deploy_activate_apps(self, timeline: list[dict[str, object]]) -> None:
        """Rebind configured applications one at a time; failures are per application.

        Args:
            timeline: Mutable stage timeline.

        Returns:
            None: Timeline is updated as side effect.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        stage = "activate_apps"
        if not self._config.add_as_app_certificate:
            timeline.append(domain_build_stage_event(stage=stage, status="skipped"))
            return
        if not job_appliance_supports_apps(self._context.appliance_version):
            logger.info("apps are not supported on %s, skipping app certificates", self._context.appliance_version)
            timeline.append(
                domain_build_stage_event(stage=stage, status="skipped", details={"reason": "apps_not_supported"})
            )
            return
        if not self._config.app_names:
            logger.info("no applications configured, skipping app certificates")
            timeline.append(domain_build_stage_event(stage=stage, status="skipped", details={"reason": "empty_app_list"}))
            return

        timeline.append(domain_build_stage_event(stage=stage, status="started"))
        outcomes: dict[str, str] = {}
        for app_name in self._config.app_names:
            try:
                outcomes[app_name] = self._deploy_activate_app(app_name)
            except _PHASE_ERRORS as error:
                outcomes[app_name] = "failed"
                logger.warning("certificate update for app %s failed, %s", app_name, error)
                timeline.append(
                    domain_build_stage_event(
                        stage=stage,
                        status="warning",
                        details={
                            "app_name": app_name,
                            "error_type": type(error).__name__,
                            "error_message": str(error),
                        },
                    )
                )
        timeline.append(domain_build_stage_event(stage=stage, status="completed", details={"apps": outcomes}))

    def _deploy_activate_app(self, app_name: str) -> str:
        """Rebind one application when it already carries a certificate binding.

        Args:
            app_name: Application name.

        Returns:
            str: `updated`, `unbound` or `missing`.

        Raises:
            JobFailedError: Raised when the update job fails.
            JobTimeoutError: Raised when the update job stalls.
            ConnectionError: Raised when the update job cannot be started.
        """

        try:
            payload: Any = self._remote.remote_call(
                RemoteMethod.APP_CONFIG.value,
                self._config.timeout_seconds,
                [app_name],
            )
        except (ConnectionError, TimeoutError) as error:
            logger.warning("app config query for %s failed, skipping, %s", app_name, error)
            return "missing"
        if job_app_config_reports_error(payload):
            logger.warning("app %s was not found, skipping", app_name)
            return "missing"

        network = job_app_extract_network_section(payload)
        if network is None:
            logger.info("app %s has no certificate binding, leaving it unchanged", app_name)
            return "unbound"

        certificate_id = self._deploy_certificate_id()
        self._tracker.tracker_run_job(
            RemoteMethod.APP_UPDATE.value,
            job_app_build_update_params(app_name, network, certificate_id),
        )
        logger.info(
            "updated the certificate for app: %s to use: %s, id: %d",
            app_name,
            self._context.context_certificate_name(),
            certificate_id,
        )
        return "updated"

    def _deploy_retire_certificates(self, certificate_name: str, timeline: list[dict[str, object]]) -> None:
        """Delete superseded certificates; each failure is logged and the rest continue.

        Args:
            certificate_name: Name deployed by this run.
            timeline: Mutable stage timeline.

        Returns:
            None: Timeline is updated as side effect.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        stage = "retire"
        timeline.append(domain_build_stage_event(stage=stage, status="started"))
        candidates = job_select_retirement_candidates(
            self._registry.registry_all(),
            name_prefix=self._registry.name_prefix,
            deployed_name=certificate_name,
        )
        retired: list[str] = []
        failed: list[str] = []
        for candidate in candidates:
            logger.info("deleting old certificate %s, id: %d", candidate.name, candidate.certificate_id)
            try:
                self._tracker.tracker_run_job(RemoteMethod.CERTIFICATE_DELETE.value, [candidate.certificate_id])
            except _PHASE_ERRORS as error:
                failed.append(candidate.name)
                logger.warning("certificate deletion of %s failed, %s", candidate.name, error)
                timeline.append(
                    domain_build_stage_event(
                        stage=stage,
                        status="warning",
                        details={
                            "certificate_name": candidate.name,
                            "error_type": type(error).__name__,
                            "error_message": str(error),
                        },
                    )
                )
                continue
            retired.append(candidate.name)
            logger.info("certificate %s was deleted", candidate.name)
        timeline.append(
            domain_build_stage_event(stage=stage, status="completed", details={"retired": retired, "failed": failed})
        )
