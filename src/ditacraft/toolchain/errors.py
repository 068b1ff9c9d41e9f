"""Error taxonomy for DITA-OT orchestration."""

from __future__ import annotations

__all__ = [
    "ToolchainError",
    "ConfigurationError",
    "ValidationError",
    "InstallationError",
    "SpawnError",
    "ExecutableNotFoundError",
    "PublishTimeoutError",
    "ProcessError",
]


class ToolchainError(RuntimeError):
    """Base class for toolchain failures."""

    kind = "toolchain"


class ConfigurationError(ToolchainError):
    """DITA-OT path unset or invalid; the caller should prompt for one."""

    kind = "configuration"


class ValidationError(ToolchainError):
    """Input file missing or not a DITA document."""

    kind = "validation"


class InstallationError(ToolchainError):
    """DITA-OT missing, not executable, or failing its version probe."""

    kind = "installation"


class SpawnError(ToolchainError):
    """The operating system refused to start the process."""

    kind = "spawn"


class ExecutableNotFoundError(SpawnError):
    """The executable path does not exist."""


class PublishTimeoutError(ToolchainError):
    """The process exceeded its wall-clock budget and was terminated."""

    kind = "timeout"


class ProcessError(ToolchainError):
    """The process ran and exited with a nonzero status."""

    kind = "process"
