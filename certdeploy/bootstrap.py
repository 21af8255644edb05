"""Dependency wiring for one deployment run."""

from certdeploy.adapters import RemoteCallPort, RestRemoteClient
from certdeploy.config import DeploySettings
from certdeploy.jobs import CertificateDeployConfig, CertificateDeployOrchestrator


def bootstrap_create_remote_client(settings: DeploySettings) -> RemoteCallPort:
    """Build the remote call port selected by `client_api`.

    Args:
        settings: Validated deployment settings.

    Returns:
        RemoteCallPort: Unauthenticated remote call port.

    Raises:
        ValueError: Raised when the configured transport is unsupported.
    """

    if settings.client_api == "rest":
        return RestRemoteClient(
            base_url=settings.deploy_server_url(),
            verify_tls=not settings.tls_skip_verify,
            request_timeout_seconds=settings.timeout_seconds,
            job_poll_interval_seconds=settings.job_poll_interval_seconds,
            job_poll_max_interval_seconds=settings.job_poll_max_interval_seconds,
        )
    raise ValueError(f"unsupported client_api={settings.client_api}")


def bootstrap_create_deploy_orchestrator(
    settings: DeploySettings,
    remote: RemoteCallPort,
) -> CertificateDeployOrchestrator:
    """Build the deployment orchestrator for one settings section.

    Args:
        settings: Validated deployment settings.
        remote: Remote call port for the target appliance.

    Returns:
        CertificateDeployOrchestrator: Fully wired orchestrator owning a fresh registry.

    Raises:
        ValueError: Raised when settings values are invalid for orchestration.
    """

    return CertificateDeployOrchestrator(
        remote=remote,
        config=CertificateDeployConfig(
            cert_basename=settings.cert_basename,
            full_chain_path=settings.full_chain_path,
            private_key_path=settings.private_key_path,
            api_key=settings.api_key,
            username=settings.username,
            password=settings.password,
            add_as_ui_certificate=settings.add_as_ui_certificate,
            add_as_ftp_certificate=settings.add_as_ftp_certificate,
            add_as_app_certificate=settings.add_as_app_certificate,
            app_names=settings.deploy_app_names(),
            delete_old_certs=settings.delete_old_certs,
            timeout_seconds=settings.timeout_seconds,
            job_timeout_seconds=settings.job_timeout_seconds,
        ),
    )
