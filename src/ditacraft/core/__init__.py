"""Core shared helpers for ditacraft subcommands."""

from __future__ import annotations

from .logging import JsonLogFormatter, configure_logger
from .settings_file import (
    SettingsFileError,
    load_json,
    merge_defaults,
    write_json,
)
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "configure_logger",
    "JsonLogFormatter",
    "SettingsFileError",
    "load_json",
    "merge_defaults",
    "write_json",
    "ensure_workspace",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
