"""Configuration package for deployment settings and INI section loading."""

from .settings import (
	DEFAULT_CONFIG_FILE,
	DEFAULT_CONFIG_SECTION,
	DeploySettings,
	SettingsLoadError,
	config_load_sections,
	config_load_settings,
)

__all__ = [
	"DEFAULT_CONFIG_FILE",
	"DEFAULT_CONFIG_SECTION",
	"DeploySettings",
	"SettingsLoadError",
	"config_load_sections",
	"config_load_settings",
]
