"""Main module entrypoint for command-line certificate deployment.

This module loads one configuration section and runs one deployment.
"""

import argparse
import logging

from certdeploy.bootstrap import bootstrap_create_deploy_orchestrator, bootstrap_create_remote_client
from certdeploy.config import DEFAULT_CONFIG_FILE, DEFAULT_CONFIG_SECTION, SettingsLoadError, config_load_settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Run one certificate deployment for the selected configuration section.

    Args:
        argv: Optional argument list, defaulting to the process arguments.

    Returns:
        None: This function does not return a runtime value.

    Raises:
        SystemExit: Raised with status 1 when settings fail to load or the deployment fails.
    """

    argument_parser = argparse.ArgumentParser(description="Deploy a TLS certificate to a NAS appliance")
    argument_parser.add_argument(
        "-c",
        "--config",
        dest="config_path",
        default=DEFAULT_CONFIG_FILE,
        type=str,
        help=f"Full path to the INI configuration file (default: {DEFAULT_CONFIG_FILE})",
    )
    argument_parser.add_argument(
        "section",
        nargs="?",
        default=DEFAULT_CONFIG_SECTION,
        type=str,
        help=f"Configuration section to deploy (default: {DEFAULT_CONFIG_SECTION})",
    )
    parsed_arguments = argument_parser.parse_args(argv)

    try:
        settings = config_load_settings(parsed_arguments.config_path, parsed_arguments.section)
    except SettingsLoadError as error:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        logger.error("%s", error)
        raise SystemExit(1) from error

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    remote = bootstrap_create_remote_client(settings)
    try:
        orchestrator = bootstrap_create_deploy_orchestrator(settings, remote)
        execution_result = orchestrator.job_execute(job_name="certificate_deploy")
    finally:
        remote.remote_close()

    if execution_result.status != "success":
        raise SystemExit(1)


if __name__ == "__main__":
    main()
