"""Canonical appliance method names and their REST route mapping."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Final
from urllib.parse import quote

from .remote_errors import RemoteProtocolError


class RemoteMethod(str, Enum):
    """Appliance method names invoked by the deployment workflow."""

    CORE_PING = "core.ping"
    CORE_GET_JOBS = "core.get_jobs"
    SYSTEM_INFO = "system.info"
    CERTIFICATE_QUERY = "certificate.query"
    CERTIFICATE_CREATE = "certificate.create"
    CERTIFICATE_DELETE = "certificate.delete"
    APP_CONFIG = "app.config"
    APP_UPDATE = "app.update"
    FTP_UPDATE = "ftp.update"
    SYSTEM_GENERAL_UPDATE = "system.general.update"
    SYSTEM_GENERAL_UI_RESTART = "system.general.ui_restart"


CERTIFICATE_CREATE_TYPE_IMPORTED: Final[str] = "CERTIFICATE_CREATE_IMPORTED"


@dataclass(frozen=True)
class RestRoute:
    """REST mapping for one appliance method.

    Attributes:
        http_method: HTTP verb.
        path_template: Path relative to the API root with `{}` placeholders.
        path_param_indexes: Positional params substituted into the path, in order.
        body_param_index: Positional param sent as JSON body, if any.
        query_param_name: Query parameter that receives the first positional param, if any.
        fixed_query: Query parameters sent with every request on this route.
    """

    http_method: str
    path_template: str
    path_param_indexes: tuple[int, ...] = ()
    body_param_index: int | None = None
    query_param_name: str | None = None
    fixed_query: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class RestRequest:
    """Resolved HTTP request for one method invocation.

    Attributes:
        http_method: HTTP verb.
        path: Path relative to the API root.
        json_body: JSON body, or None when the request has no body.
        query_parameters: Query string parameters.
    """

    http_method: str
    path: str
    json_body: Any
    query_parameters: dict[str, str]


REMOTE_REST_ROUTES: Final[dict[str, RestRoute]] = {
    RemoteMethod.CORE_PING.value: RestRoute("GET", "/core/ping"),
    RemoteMethod.CORE_GET_JOBS.value: RestRoute("GET", "/core/get_jobs", query_param_name="id"),
    RemoteMethod.SYSTEM_INFO.value: RestRoute("GET", "/system/info"),
    RemoteMethod.CERTIFICATE_QUERY.value: RestRoute("GET", "/certificate", fixed_query=(("limit", "0"),)),
    RemoteMethod.CERTIFICATE_CREATE.value: RestRoute("POST", "/certificate", body_param_index=0),
    RemoteMethod.CERTIFICATE_DELETE.value: RestRoute("DELETE", "/certificate/id/{}", path_param_indexes=(0,)),
    RemoteMethod.APP_CONFIG.value: RestRoute("POST", "/app/config", body_param_index=0),
    RemoteMethod.APP_UPDATE.value: RestRoute("PUT", "/app/id/{}", path_param_indexes=(0,), body_param_index=1),
    RemoteMethod.FTP_UPDATE.value: RestRoute("PUT", "/ftp", body_param_index=0),
    RemoteMethod.SYSTEM_GENERAL_UPDATE.value: RestRoute("PUT", "/system/general", body_param_index=0),
    RemoteMethod.SYSTEM_GENERAL_UI_RESTART.value: RestRoute("GET", "/system/general/ui_restart"),
}

REMOTE_JOB_METHODS: Final[frozenset[str]] = frozenset(
    {
        RemoteMethod.CERTIFICATE_CREATE.value,
        RemoteMethod.CERTIFICATE_DELETE.value,
        RemoteMethod.APP_UPDATE.value,
    }
)


def remote_build_rest_request(method: str, params: list[Any]) -> RestRequest:
    """Resolve one method invocation into a concrete REST request.

    Args:
        method: Appliance method name.
        params: Positional method parameters.

    Returns:
        RestRequest: Resolved verb, path, body and query string.

    Raises:
        RemoteProtocolError: Raised for unknown methods or missing positional params.
    """

    route = REMOTE_REST_ROUTES.get(method)
    if route is None:
        raise RemoteProtocolError(f"no REST route for method={method}", method=method)

    referenced_indexes = list(route.path_param_indexes)
    if route.body_param_index is not None:
        referenced_indexes.append(route.body_param_index)
    if route.query_param_name is not None:
        referenced_indexes.append(0)
    required_count = max(referenced_indexes, default=-1) + 1
    if len(params) < required_count:
        raise RemoteProtocolError(
            f"method={method} expects at least {required_count} params, got {len(params)}",
            method=method,
        )

    path_values = [quote(str(params[index]), safe="") for index in route.path_param_indexes]
    path = route.path_template.format(*path_values)
    json_body = params[route.body_param_index] if route.body_param_index is not None else None
    query_parameters: dict[str, str] = dict(route.fixed_query)
    if route.query_param_name is not None:
        query_parameters[route.query_param_name] = str(params[0])
    return RestRequest(
        http_method=route.http_method,
        path=path,
        json_body=json_body,
        query_parameters=query_parameters,
    )
