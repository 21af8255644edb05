"""Regression tests for the command-line entrypoint exit status."""

from __future__ import annotations

from pathlib import Path

import pytest

import certdeploy.main as main_module
from certdeploy.jobs import DeploymentResult


class _OrchestratorStub:
    """Orchestrator stub returning a prepared result."""

    def __init__(self, status: str):
        self._status = status
        self.executed: list[str] = []

    def job_execute(self, job_name: str) -> DeploymentResult:
        self.executed.append(job_name)
        return DeploymentResult(job_name=job_name, status=self._status)


class _RemoteStub:
    """Remote stub tracking close calls."""

    def __init__(self):
        self.closed = 0

    def remote_close(self) -> None:
        self.closed += 1


def _write_ini(tmp_path: Path) -> Path:
    config_path = tmp_path / "deploy.ini"
    config_path.write_text(
        "[nas1]\nconnect_host = nas1\napi_key = 1-key\n"
        "full_chain_path = /a.pem\nprivate_key_path = /b.pem\n",
        encoding="utf-8",
    )
    return config_path


@pytest.mark.parametrize(("status", "exits"), [("success", False), ("failed", True)])
def test_main_runs_selected_section_and_closes_client(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    status: str,
    exits: bool,
) -> None:
    """Run one deployment for the selected section and always close the client.

    Args:
        tmp_path: Pytest temporary directory fixture.
        monkeypatch: Pytest monkeypatch fixture.
        status: Deployment status returned by the stub orchestrator.
        exits: Whether a non-zero exit is expected.

    Returns:
        None: Assertions validate exit status and client teardown.

    Raises:
        AssertionError: Raised when the entrypoint behaves incorrectly.
    """

    monkeypatch.chdir(tmp_path)
    remote = _RemoteStub()
    orchestrator = _OrchestratorStub(status)
    selected_hosts: list[str] = []

    def _create_remote(settings):
        selected_hosts.append(settings.connect_host)
        return remote

    monkeypatch.setattr(main_module, "bootstrap_create_remote_client", _create_remote)
    monkeypatch.setattr(main_module, "bootstrap_create_deploy_orchestrator", lambda settings, remote: orchestrator)

    arguments = ["-c", str(_write_ini(tmp_path)), "nas1"]
    if exits:
        with pytest.raises(SystemExit) as exit_info:
            main_module.main(arguments)
        assert exit_info.value.code == 1
    else:
        main_module.main(arguments)

    assert selected_hosts == ["nas1"]
    assert orchestrator.executed == ["certificate_deploy"]
    assert remote.closed == 1


def test_main_exits_when_settings_fail_to_load(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Exit with status 1 when the configuration section cannot be loaded."""

    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as exit_info:
        main_module.main(["-c", str(tmp_path / "absent.ini")])

    assert exit_info.value.code == 1
