"""Adapter layer package for appliance call boundaries."""

from .interfaces import RemoteCallPort
from .remote_errors import (
	RemoteAuthenticationError,
	RemoteCallError,
	RemoteCallTimeoutError,
	RemoteConnectionError,
	RemoteProtocolError,
)
from .remote_methods import (
	CERTIFICATE_CREATE_TYPE_IMPORTED,
	REMOTE_JOB_METHODS,
	REMOTE_REST_ROUTES,
	RemoteMethod,
	remote_build_rest_request,
)
from .rest_client import RestRemoteClient

__all__ = [
	"CERTIFICATE_CREATE_TYPE_IMPORTED",
	"REMOTE_JOB_METHODS",
	"REMOTE_REST_ROUTES",
	"RemoteAuthenticationError",
	"RemoteCallError",
	"RemoteCallPort",
	"RemoteCallTimeoutError",
	"RemoteConnectionError",
	"RemoteMethod",
	"RemoteProtocolError",
	"RestRemoteClient",
	"remote_build_rest_request",
]
