"""Enumerate the transtypes an installed DITA-OT can produce."""

from __future__ import annotations

import logging
from typing import Optional

from .errors import InstallationError, SpawnError
from .invocation import TRANSTYPES_ARGS
from .runner import ProcessRunner
from .settings import ToolchainConfig, resolve_executable

DISCOVERY_TIMEOUT_SECONDS = 60

# Shipped with every DITA-OT 3.x/4.x distribution.
STANDARD_TRANSTYPES: tuple[str, ...] = (
    "html5",
    "pdf",
    "xhtml",
    "epub",
    "htmlhelp",
    "markdown",
)


class TranstypeDiscovery:
    def __init__(
        self,
        runner: ProcessRunner,
        *,
        timeout_seconds: float = DISCOVERY_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._runner = runner
        self._timeout_minutes = timeout_seconds / 60
        self._logger = logger or logging.getLogger(__name__)

    async def list_formats(self, config: ToolchainConfig) -> tuple[str, ...]:
        """Return transtypes in the order ``dita transtypes`` prints them.

        Raises :class:`InstallationError` when the launcher cannot run or
        exits unsuccessfully; an empty listing is not an error.
        """

        if not config.configured:
            raise InstallationError("DITA-OT path is not configured.")

        executable = resolve_executable(config.binary_path)
        try:
            outcome = await self._runner.run(
                executable,
                TRANSTYPES_ARGS,
                timeout_minutes=self._timeout_minutes,
            )
        except SpawnError as exc:
            raise InstallationError(str(exc)) from exc

        if outcome.timed_out:
            raise InstallationError("Listing transtypes timed out.")
        if outcome.cancelled:
            raise InstallationError("Listing transtypes was cancelled.")
        if outcome.exit_code != 0:
            raise InstallationError(
                "Listing transtypes failed with exit code {0}.".format(
                    outcome.exit_code
                )
            )

        formats = parse_transtypes(outcome.stdout)
        self._logger.debug(
            "Discovered transtypes",
            extra={"count": len(formats), "executable": str(executable)},
        )
        return formats


def parse_transtypes(stdout: str) -> tuple[str, ...]:
    return tuple(line.strip() for line in stdout.splitlines() if line.strip())
