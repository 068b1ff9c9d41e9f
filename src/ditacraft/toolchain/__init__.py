"""Orchestration of the external DITA-OT publishing toolchain."""

from __future__ import annotations

from .discovery import STANDARD_TRANSTYPES, TranstypeDiscovery
from .errors import (
    ConfigurationError,
    ExecutableNotFoundError,
    InstallationError,
    ProcessError,
    PublishTimeoutError,
    SpawnError,
    ToolchainError,
    ValidationError,
)
from .models import (
    InstallationErrorKind,
    InstallationStatus,
    ProcessOutcome,
    PublishIntent,
    PublishRequest,
    PublishResult,
    ValidationOutcome,
)
from .orchestrator import (
    PublishDependencies,
    PublishOrchestrator,
    default_dependencies,
    resolve_output_dir,
)
from .preview import find_preview_page
from .runner import ProcessRunner
from .settings import SettingsStore, ToolchainConfig, resolve_executable
from .validation import SUPPORTED_EXTENSIONS, InputValidator, validate_input
from .verifier import InstallationVerifier

__all__ = [
    "STANDARD_TRANSTYPES",
    "TranstypeDiscovery",
    "ConfigurationError",
    "ExecutableNotFoundError",
    "InstallationError",
    "ProcessError",
    "PublishTimeoutError",
    "SpawnError",
    "ToolchainError",
    "ValidationError",
    "InstallationErrorKind",
    "InstallationStatus",
    "ProcessOutcome",
    "PublishIntent",
    "PublishRequest",
    "PublishResult",
    "ValidationOutcome",
    "PublishDependencies",
    "PublishOrchestrator",
    "default_dependencies",
    "resolve_output_dir",
    "find_preview_page",
    "ProcessRunner",
    "SettingsStore",
    "ToolchainConfig",
    "resolve_executable",
    "SUPPORTED_EXTENSIONS",
    "InputValidator",
    "validate_input",
    "InstallationVerifier",
]
