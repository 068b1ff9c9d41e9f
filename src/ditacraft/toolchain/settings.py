"""Persisted DITA-OT settings and the typed configuration they produce."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Sequence

from ditacraft.core import settings_file
from ditacraft.core import workspace as workspace_mod

from .errors import ConfigurationError

SETTINGS_FILENAME = "settings.json"
ENV_PREFIX = "DITACRAFT_"
WORKSPACE_VARIABLE = "${workspaceFolder}"

DEFAULT_TIMEOUT_MINUTES = 10
DEFAULT_TRANSTYPE = "html5"
DEFAULT_OUTPUT_DIRNAME = "output"

# Keys mirror the editor settings the tool historically read.
KEY_PATH = "ditaOtPath"
KEY_OUTPUT = "outputDirectory"
KEY_TRANSTYPE = "defaultTranstype"
KEY_TIMEOUT = "ditaOtTimeoutMinutes"
KEY_ARGS = "ditaOtArgs"


@dataclass(frozen=True)
class ToolchainConfig:
    """Snapshot of the DITA-OT settings used for one operation."""

    binary_path: str = ""
    timeout_minutes: int = DEFAULT_TIMEOUT_MINUTES
    extra_args: tuple[str, ...] = ()
    output_root: str = ""
    default_transtype: str = DEFAULT_TRANSTYPE

    def __post_init__(self) -> None:
        _require_positive_int(self.timeout_minutes)

    @property
    def configured(self) -> bool:
        return bool(self.binary_path.strip())


class SettingsStore:
    """Typed access to ``settings.json`` with environment overrides.

    Reads never fail: a missing, unreadable, or malformed file yields the
    defaults, and an unknown or mistyped entry falls back on its own while
    valid entries are kept (both logged as warnings). Writes replace the file
    atomically, so concurrent writers resolve as last-write-wins.
    """

    def __init__(
        self,
        path: Path,
        *,
        workspace_root: Path,
        env: Optional[Mapping[str, str]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.path = path
        self.workspace_root = workspace_root
        self._env = os.environ if env is None else env
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_workspace(
        cls,
        layout: workspace_mod.WorkspaceLayout,
        *,
        env: Optional[Mapping[str, str]] = None,
    ) -> "SettingsStore":
        return cls(
            layout.path_for("config") / SETTINGS_FILENAME,
            workspace_root=layout.home,
            env=env,
        )

    def get(self) -> ToolchainConfig:
        stored = self._load()

        binary_path = _pick_first(
            self._env_string("DITA_OT_PATH"), stored[KEY_PATH]
        )
        output_dir = _pick_first(
            self._env_string("OUTPUT_DIR"), stored[KEY_OUTPUT]
        )
        timeout = self._env_timeout()
        if timeout is None:
            timeout = stored[KEY_TIMEOUT]

        return ToolchainConfig(
            binary_path=(binary_path or "").strip(),
            timeout_minutes=timeout,
            extra_args=tuple(str(arg) for arg in stored[KEY_ARGS]),
            output_root=str(self._resolve_output_root(output_dir)),
            default_transtype=stored[KEY_TRANSTYPE].strip()
            or DEFAULT_TRANSTYPE,
        )

    def set(self, path: str) -> None:
        """Persist the DITA-OT location (installation dir or launcher)."""

        candidate = (path or "").strip()
        if not candidate:
            raise ConfigurationError("DITA-OT path must not be empty.")
        self._update(KEY_PATH, candidate)

    def set_output_root(self, path: str) -> None:
        self._update(KEY_OUTPUT, (path or "").strip())

    def set_timeout_minutes(self, minutes: int) -> None:
        _require_positive_int(minutes)
        self._update(KEY_TIMEOUT, minutes)

    def set_extra_args(self, args: Sequence[str]) -> None:
        self._update(KEY_ARGS, [str(arg) for arg in args])

    def set_default_transtype(self, transtype: str) -> None:
        candidate = (transtype or "").strip()
        if not candidate:
            raise ConfigurationError("Default transtype must not be empty.")
        self._update(KEY_TRANSTYPE, candidate)

    def _load(self) -> MutableMapping[str, Any]:
        defaults = _default_table()
        if not self.path.exists():
            return defaults
        try:
            stored = settings_file.load_json(self.path)
        except settings_file.SettingsFileError as exc:
            self._logger.warning(
                "Ignoring unusable settings file",
                extra={"path": str(self.path), "error": str(exc)},
            )
            return defaults
        # One bad entry must not hide the valid ones.
        for key, value in stored.items():
            try:
                settings_file.merge_defaults(defaults, {key: value})
            except settings_file.SettingsFileError as exc:
                self._logger.warning(
                    "Ignoring invalid setting",
                    extra={
                        "path": str(self.path),
                        "key": key,
                        "error": str(exc),
                    },
                )
        try:
            _require_positive_int(defaults[KEY_TIMEOUT])
        except ConfigurationError as exc:
            self._logger.warning(
                "Ignoring invalid timeout setting",
                extra={"path": str(self.path), "error": str(exc)},
            )
            defaults[KEY_TIMEOUT] = DEFAULT_TIMEOUT_MINUTES
        return defaults

    def _update(self, key: str, value: Any) -> None:
        current: MutableMapping[str, Any] = {}
        if self.path.exists():
            try:
                current = dict(settings_file.load_json(self.path))
            except settings_file.SettingsFileError as exc:
                self._logger.warning(
                    "Replacing unreadable settings file",
                    extra={"path": str(self.path), "error": str(exc)},
                )
        current[key] = value
        try:
            settings_file.write_json(self.path, current)
        except OSError as exc:
            raise ConfigurationError(
                f"Unable to save settings to {self.path}: {exc}"
            ) from exc
        self._logger.info(
            "Updated setting", extra={"key": key, "path": str(self.path)}
        )

    def _resolve_output_root(self, raw: Optional[str]) -> Path:
        text = (raw or "").strip()
        if not text:
            return self.workspace_root / DEFAULT_OUTPUT_DIRNAME
        text = text.replace(WORKSPACE_VARIABLE, str(self.workspace_root))
        candidate = Path(text).expanduser()
        if not candidate.is_absolute():
            candidate = self.workspace_root / candidate
        return candidate

    def _env_string(self, key: str) -> Optional[str]:
        raw = self._env.get(f"{ENV_PREFIX}{key}")
        if raw is None:
            return None
        stripped = raw.strip()
        return stripped or None

    def _env_timeout(self) -> Optional[int]:
        raw = self._env_string("TIMEOUT_MINUTES")
        if raw is None:
            return None
        try:
            value = int(raw)
            _require_positive_int(value)
        except (ValueError, ConfigurationError):
            self._logger.warning(
                "Ignoring invalid timeout override",
                extra={"variable": f"{ENV_PREFIX}TIMEOUT_MINUTES", "value": raw},
            )
            return None
        return value


def resolve_executable(binary_path: str) -> Path:
    """Return the ``dita`` launcher for a configured path.

    The setting may name the DITA-OT installation directory or the launcher
    itself; directories resolve to ``bin/dita`` (``bin/dita.bat`` on
    Windows).
    """

    candidate = Path(binary_path.strip()).expanduser()
    if candidate.is_dir():
        launcher = "dita.bat" if os.name == "nt" else "dita"
        return candidate / "bin" / launcher
    return candidate


def _default_table() -> MutableMapping[str, Any]:
    return {
        KEY_PATH: "",
        KEY_OUTPUT: "",
        KEY_TRANSTYPE: DEFAULT_TRANSTYPE,
        KEY_TIMEOUT: DEFAULT_TIMEOUT_MINUTES,
        KEY_ARGS: [],
    }


def _require_positive_int(value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(
            f"Timeout must be a positive number of minutes, got {value!r}."
        )


def _pick_first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None
