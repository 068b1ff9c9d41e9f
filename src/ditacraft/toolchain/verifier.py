"""DITA-OT installation probe."""

from __future__ import annotations

import logging
import re
from typing import Optional

from .errors import ExecutableNotFoundError, SpawnError
from .invocation import VERSION_ARGS
from .models import InstallationErrorKind, InstallationStatus, ProcessOutcome
from .runner import ProcessRunner
from .settings import ToolchainConfig, resolve_executable

# Fixed and short: a version probe must never wait as long as a publish.
VERIFY_TIMEOUT_SECONDS = 30
MINIMUM_MAJOR_VERSION = 3

_VERSION_PATTERN = re.compile(r"\d+(?:\.\d+)+")


class InstallationVerifier:
    """Decide whether the configured ``dita`` launcher is usable."""

    def __init__(
        self,
        runner: ProcessRunner,
        *,
        timeout_seconds: float = VERIFY_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._runner = runner
        self._timeout_minutes = timeout_seconds / 60
        self._logger = logger or logging.getLogger(__name__)

    async def verify(self, config: ToolchainConfig) -> InstallationStatus:
        if not config.configured:
            return InstallationStatus(
                installed=False,
                error=InstallationErrorKind.NOT_CONFIGURED.value,
                kind=InstallationErrorKind.NOT_CONFIGURED,
            )

        executable = resolve_executable(config.binary_path)
        try:
            outcome = await self._runner.run(
                executable,
                VERSION_ARGS,
                timeout_minutes=self._timeout_minutes,
            )
        except SpawnError as exc:
            self._logger.warning(
                "DITA-OT launcher could not be started",
                extra={"executable": str(executable), "error": str(exc)},
            )
            kind = (
                InstallationErrorKind.NOT_FOUND
                if isinstance(exc, ExecutableNotFoundError)
                else InstallationErrorKind.EXECUTION_FAILED
            )
            return _failed(kind, str(exc))

        status = classify_version_outcome(outcome)
        self._logger.info(
            "Verified DITA-OT installation",
            extra={
                "executable": str(executable),
                "installed": status.installed,
                "version": status.version,
                "error": status.error,
            },
        )
        return status


def classify_version_outcome(outcome: ProcessOutcome) -> InstallationStatus:
    """Translate a ``dita --version`` run into an installation status."""

    if outcome.timed_out:
        return _failed(
            InstallationErrorKind.EXECUTION_FAILED,
            "version check timed out after {0:.1f}s".format(
                outcome.wall_clock_ms / 1000
            ),
        )
    if outcome.cancelled:
        return _failed(
            InstallationErrorKind.EXECUTION_FAILED, "version check cancelled"
        )
    if outcome.exit_code != 0:
        detail = _last_line(outcome.stderr) or _last_line(outcome.stdout)
        message = f"exit code {outcome.exit_code}"
        if detail:
            message = f"{message}: {detail}"
        return _failed(InstallationErrorKind.EXECUTION_FAILED, message)

    version = parse_version(outcome.stdout)
    if version is not None and _major(version) < MINIMUM_MAJOR_VERSION:
        return _failed(
            InstallationErrorKind.WRONG_VERSION,
            "found DITA-OT {0}, {1}.0 or newer is required".format(
                version, MINIMUM_MAJOR_VERSION
            ),
        )
    return InstallationStatus(installed=True, version=version)


def parse_version(stdout: str) -> Optional[str]:
    """Return the first dotted version on any stdout line, if present."""

    for line in stdout.splitlines():
        match = _VERSION_PATTERN.search(line)
        if match:
            return match.group(0)
    return None


def _failed(kind: InstallationErrorKind, detail: str) -> InstallationStatus:
    return InstallationStatus(
        installed=False, error=f"{kind.value}: {detail}", kind=kind
    )


def _major(version: str) -> int:
    return int(version.split(".", 1)[0])


def _last_line(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else ""
