"""Typed deployment settings loaded from INI sections with dotenv support."""

from __future__ import annotations

import configparser
from pathlib import Path
from typing import Final

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_FILE: Final[str] = "tnas-cert.ini"
DEFAULT_CONFIG_SECTION: Final[str] = "deploy_default"

_PROTOCOL_SCHEMES: Final[dict[str, str]] = {
    "http": "http",
    "https": "https",
    "ws": "http",
    "wss": "https",
}


class SettingsLoadError(RuntimeError):
    """Raised when deployment settings cannot be loaded or validated."""


class DeploySettings(BaseSettings):
    """Settings for one appliance deployment target.

    Values come from one INI section. Environment variables prefixed with
    `CERTDEPLOY_` (and a `.env` file) fill fields the section does not set.
    Example: `api_key` reads from `CERTDEPLOY_API_KEY`.

    Attributes:
        connect_host: Appliance host name or address.
        port: Appliance API port.
        protocol: `https`, `http`, `wss` or `ws`.
        client_api: Transport implementation name.
        api_key: API key credential.
        username: Username credential.
        password: Password credential.
        cert_basename: Certificate name prefix.
        full_chain_path: PEM full chain path.
        private_key_path: PEM private key path.
        tls_skip_verify: Disable TLS verification of the appliance.
        add_as_ui_certificate: Bind the certificate to the web UI.
        add_as_ftp_certificate: Bind the certificate to the FTP service.
        add_as_app_certificate: Rebind certificate-aware applications.
        app_list: Comma-separated application names.
        delete_old_certs: Retire superseded certificates.
        timeout_seconds: Timeout for each synchronous call.
        job_timeout_seconds: Idle timeout for one job wait.
        job_poll_interval_seconds: Initial job status poll interval.
        job_poll_max_interval_seconds: Poll interval cap.
        debug: Enable debug logging.
    """

    model_config = SettingsConfigDict(
        env_prefix="CERTDEPLOY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    connect_host: str = Field(min_length=1)
    port: int = Field(default=443, ge=1, le=65535)
    protocol: str = Field(default="https")
    client_api: str = Field(default="rest")
    api_key: str = Field(default="")
    username: str = Field(default="")
    password: str = Field(default="")
    cert_basename: str = Field(default="tnas-cert-deploy")
    full_chain_path: str = Field(min_length=1)
    private_key_path: str = Field(min_length=1)
    tls_skip_verify: bool = Field(default=False)
    add_as_ui_certificate: bool = Field(default=False)
    add_as_ftp_certificate: bool = Field(default=False)
    add_as_app_certificate: bool = Field(default=False)
    app_list: str = Field(default="")
    delete_old_certs: bool = Field(default=False)
    timeout_seconds: float = Field(default=10.0, gt=0)
    job_timeout_seconds: float = Field(default=300.0, gt=0)
    job_poll_interval_seconds: float = Field(default=1.0, gt=0)
    job_poll_max_interval_seconds: float = Field(default=5.0, gt=0)
    debug: bool = Field(default=False)

    @field_validator("connect_host", "cert_basename", "full_chain_path", "private_key_path")
    @classmethod
    def _validate_non_empty_string(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("value must not be blank")
        return stripped_value

    @field_validator("protocol")
    @classmethod
    def _validate_protocol(cls, value: str) -> str:
        normalized_value = value.strip().lower()
        if normalized_value not in _PROTOCOL_SCHEMES:
            raise ValueError(f"protocol must be one of {sorted(_PROTOCOL_SCHEMES)}")
        return normalized_value

    @field_validator("client_api")
    @classmethod
    def _validate_client_api(cls, value: str) -> str:
        normalized_value = value.strip().lower()
        if normalized_value != "rest":
            raise ValueError("client_api must be 'rest'")
        return normalized_value

    @field_validator("job_poll_max_interval_seconds")
    @classmethod
    def _validate_poll_cap_bounds(cls, value: float, info) -> float:
        poll_interval_seconds = float(info.data.get("job_poll_interval_seconds", 1.0))
        if value < poll_interval_seconds:
            raise ValueError("job_poll_max_interval_seconds must be greater than or equal to job_poll_interval_seconds")
        return value

    def deploy_app_names(self) -> tuple[str, ...]:
        """Return configured application names with blank entries dropped."""

        return tuple(name.strip() for name in self.app_list.split(",") if name.strip())

    def deploy_server_url(self) -> str:
        """Return the appliance REST API root URL.

        Returns:
            str: `{scheme}://{connect_host}:{port}/api/v2.0`.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        scheme = _PROTOCOL_SCHEMES[self.protocol]
        return f"{scheme}://{self.connect_host}:{self.port}/api/v2.0"


def config_load_sections(path: str | Path) -> dict[str, DeploySettings]:
    """Load and validate every section of a deployment INI file.

    Args:
        path: INI file path.

    Returns:
        dict[str, DeploySettings]: Validated settings keyed by section name.

    Raises:
        SettingsLoadError: Raised when the file is unreadable or a section is invalid.
    """

    parser = _config_read_ini(path)
    return {
        section_name: _config_build_settings(path, section_name, dict(parser.items(section_name, raw=True)))
        for section_name in parser.sections()
    }


def config_load_settings(path: str | Path, section: str = DEFAULT_CONFIG_SECTION) -> DeploySettings:
    """Load and validate one deployment INI section.

    Args:
        path: INI file path.
        section: Section name.

    Returns:
        DeploySettings: Validated settings for the section.

    Raises:
        SettingsLoadError: Raised when the file is unreadable, the section is
            missing, or its values are invalid.
    """

    parser = _config_read_ini(path)
    if not parser.has_section(section):
        raise SettingsLoadError(
            f"configuration section [{section}] was not found in {path}, available: {parser.sections()}"
        )
    return _config_build_settings(path, section, dict(parser.items(section, raw=True)))


def _config_read_ini(path: str | Path) -> configparser.ConfigParser:
    """Read one INI file without interpolation.

    Args:
        path: INI file path.

    Returns:
        configparser.ConfigParser: Parsed file.

    Raises:
        SettingsLoadError: Raised when the file cannot be read or parsed.
    """

    parser = configparser.ConfigParser(interpolation=None)
    try:
        with open(path, encoding="utf-8") as config_file:
            parser.read_file(config_file)
    except (OSError, configparser.Error) as error:
        raise SettingsLoadError(f"could not load the configuration file {path}, {error}") from error
    return parser


def _config_build_settings(path: str | Path, section: str, values: dict[str, str]) -> DeploySettings:
    try:
        return DeploySettings(**values)
    except ValidationError as error:
        raise SettingsLoadError(
            f"configuration section [{section}] in {path} failed validation. Details: {error}"
        ) from error
