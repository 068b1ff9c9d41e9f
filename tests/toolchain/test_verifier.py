from __future__ import annotations

import asyncio
import os

import pytest

from ditacraft.toolchain.errors import ExecutableNotFoundError, SpawnError
from ditacraft.toolchain.models import InstallationErrorKind, ProcessOutcome
from ditacraft.toolchain.runner import ProcessRunner
from ditacraft.toolchain.settings import ToolchainConfig
from ditacraft.toolchain.verifier import (
    InstallationVerifier,
    classify_version_outcome,
    parse_version,
)

posix_only = pytest.mark.skipif(
    os.name != "posix", reason="fake launcher relies on a shebang"
)


class StubRunner:
    def __init__(self, outcome=None, error=None):
        self.outcome = outcome
        self.error = error
        self.calls = []

    async def run(self, executable, args, **kwargs):
        self.calls.append((str(executable), list(args), kwargs))
        if self.error is not None:
            raise self.error
        return self.outcome


def _verify(runner, config):
    return asyncio.run(InstallationVerifier(runner).verify(config))


def test_unconfigured_path_never_spawns():
    runner = StubRunner()

    status = _verify(runner, ToolchainConfig(binary_path="   "))

    assert status.installed is False
    assert status.kind is InstallationErrorKind.NOT_CONFIGURED
    assert status.error == "not configured"
    assert runner.calls == []


def test_spawn_failure_reports_not_found():
    runner = StubRunner(
        error=ExecutableNotFoundError("Executable not found: /opt/dita")
    )

    status = _verify(runner, ToolchainConfig(binary_path="/opt/dita"))

    assert status.installed is False
    assert status.kind is InstallationErrorKind.NOT_FOUND
    assert status.error.startswith("not found: ")
    assert "/opt/dita" in status.error


def test_unrunnable_launcher_is_execution_failure():
    runner = StubRunner(
        error=SpawnError("Executable is not runnable: /opt/dita/bin/dita")
    )

    status = _verify(runner, ToolchainConfig(binary_path="/opt/dita"))

    assert status.installed is False
    assert status.kind is InstallationErrorKind.EXECUTION_FAILED
    assert status.error.startswith("execution failed: ")


@posix_only
def test_verify_non_executable_launcher(fake_dita):
    root = fake_dita.install()
    (root / "bin" / "dita").chmod(0o644)

    status = _verify(
        ProcessRunner(grace_seconds=1), ToolchainConfig(binary_path=str(root))
    )

    assert status.kind is InstallationErrorKind.EXECUTION_FAILED
    assert "not runnable" in status.error


def test_version_probe_uses_short_timeout():
    runner = StubRunner(
        outcome=ProcessOutcome(0, "DITA-OT version 4.2.3\n", "")
    )

    status = _verify(runner, ToolchainConfig(binary_path="/opt/dita"))

    assert status.installed is True
    assert status.version == "4.2.3"
    executable, args, kwargs = runner.calls[0]
    assert executable == "/opt/dita"
    assert args == ["--version"]
    assert kwargs["timeout_minutes"] == pytest.approx(0.5)


def test_nonzero_exit_is_execution_failure():
    status = classify_version_outcome(
        ProcessOutcome(1, "", "Error: JAVA_HOME is not set\n")
    )

    assert status.installed is False
    assert status.kind is InstallationErrorKind.EXECUTION_FAILED
    assert "exit code 1" in status.error
    assert "JAVA_HOME" in status.error


def test_timed_out_probe_is_execution_failure():
    status = classify_version_outcome(
        ProcessOutcome(None, "", "", timed_out=True, wall_clock_ms=30000)
    )

    assert status.kind is InstallationErrorKind.EXECUTION_FAILED
    assert "timed out" in status.error


def test_old_major_version_is_wrong_version():
    status = classify_version_outcome(
        ProcessOutcome(0, "DITA-OT version 2.5.4\n", "")
    )

    assert status.installed is False
    assert status.kind is InstallationErrorKind.WRONG_VERSION
    assert "2.5.4" in status.error


def test_unparseable_version_still_counts_as_installed():
    status = classify_version_outcome(ProcessOutcome(0, "DITA-OT\n", ""))

    assert status.installed is True
    assert status.version is None


@pytest.mark.parametrize(
    "stdout, expected",
    [
        ("DITA-OT version 4.2.3", "4.2.3"),
        ("Picked up JAVA_TOOL_OPTIONS\nDITA-OT version 3.7", "3.7"),
        ("no digits here", None),
        ("", None),
    ],
)
def test_parse_version(stdout, expected):
    assert parse_version(stdout) == expected


@posix_only
def test_verify_against_fake_installation(fake_dita):
    root = fake_dita.install()

    status = _verify(
        ProcessRunner(grace_seconds=1), ToolchainConfig(binary_path=str(root))
    )

    assert status.installed is True
    assert status.version == "4.2.3"
    assert fake_dita.calls() == [["--version"]]


def test_verify_missing_installation(tmp_path):
    status = _verify(
        ProcessRunner(grace_seconds=1),
        ToolchainConfig(binary_path=str(tmp_path / "nowhere" / "dita")),
    )

    assert status.installed is False
    assert status.kind is InstallationErrorKind.NOT_FOUND
