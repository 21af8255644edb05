"""Job layer package for deployment workflow orchestration boundaries."""

from .app_binding import (
	job_app_build_update_params,
	job_app_config_reports_error,
	job_app_extract_network_section,
)
from .certificate_preflight import CertificatePreflightResult, job_verify_certificate_key_pair
from .deploy_orchestrator import (
	CertificateDeployConfig,
	CertificateDeployOrchestrator,
	job_appliance_supports_apps,
	job_select_retirement_candidates,
)
from .deployment_context import DeploymentContext
from .interfaces import DeploymentResult, JobExecutionResult, JobOrchestratorPort
from .job_errors import CertificatePreflightError, DeploymentPhaseError, JobFailedError, JobTimeoutError
from .job_tracker import JobTracker, job_log_progress

__all__ = [
	"CertificateDeployConfig",
	"CertificateDeployOrchestrator",
	"CertificatePreflightError",
	"CertificatePreflightResult",
	"DeploymentContext",
	"DeploymentPhaseError",
	"DeploymentResult",
	"JobExecutionResult",
	"JobFailedError",
	"JobOrchestratorPort",
	"JobTimeoutError",
	"JobTracker",
	"job_app_build_update_params",
	"job_app_config_reports_error",
	"job_app_extract_network_section",
	"job_appliance_supports_apps",
	"job_log_progress",
	"job_select_retirement_candidates",
	"job_verify_certificate_key_pair",
]
