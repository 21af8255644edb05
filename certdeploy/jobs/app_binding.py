"""Application certificate binding rule helpers.

An application is only rebound when its current configuration already carries
a certificate binding in its `network` section. Applications without one are
never opted into certificate management.
"""

from __future__ import annotations

from typing import Any, Final

APP_NETWORK_SECTION_KEY: Final[str] = "network"
APP_CERTIFICATE_ID_KEY: Final[str] = "certificate_id"


def job_app_extract_network_section(payload: Any) -> dict[str, Any] | None:
    """Return the bound network section of an application config payload.

    Args:
        payload: Decoded `app.config` response. A `{"result": {...}}` envelope is unwrapped.

    Returns:
        dict[str, Any] | None: Copy of the network section when it holds a non-null
            certificate binding, otherwise None.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if isinstance(payload, dict) and "result" in payload and "error" not in payload:
        payload = payload["result"]
    if not isinstance(payload, dict) or "error" in payload:
        return None

    network = payload.get(APP_NETWORK_SECTION_KEY)
    if not isinstance(network, dict):
        return None
    if network.get(APP_CERTIFICATE_ID_KEY) is None:
        return None
    return dict(network)


def job_app_config_reports_error(payload: Any) -> bool:
    """Return whether an application config payload carries an error object."""

    return isinstance(payload, dict) and payload.get("error") is not None


def job_app_build_update_params(
    app_name: str,
    network: dict[str, Any],
    certificate_id: int,
) -> list[Any]:
    """Build `app.update` params that rebind one application to a certificate.

    Args:
        app_name: Application name.
        network: Current network section; every key except the binding is preserved.
        certificate_id: Identifier of the certificate to bind.

    Returns:
        list[Any]: Positional params `[app_name, {"values": {"network": ...}}]`.

    Raises:
        ValueError: Raised when the application name is blank.
    """

    if not app_name.strip():
        raise ValueError("app_name must not be blank")

    updated_network = dict(network)
    updated_network[APP_CERTIFICATE_ID_KEY] = certificate_id
    return [app_name, {"values": {APP_NETWORK_SECTION_KEY: updated_network}}]
