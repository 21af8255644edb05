"""Domain models used across application layer boundaries."""

from .models import JOB_TERMINAL_STATES, JobState, RemoteJob, job_channel_is_closed
from .timeline import domain_build_stage_event

__all__ = [
	"JOB_TERMINAL_STATES",
	"JobState",
	"RemoteJob",
	"domain_build_stage_event",
	"job_channel_is_closed",
]
