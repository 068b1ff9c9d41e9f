"""JSON settings file helpers shared by ditacraft commands."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, MutableMapping

__all__ = [
    "SettingsFileError",
    "load_json",
    "merge_defaults",
    "write_json",
]


class SettingsFileError(RuntimeError):
    """Raised when settings file IO or validation fails."""


def load_json(path: Path) -> Mapping[str, Any]:
    """Load a JSON object from ``path``.

    Errors are surfaced as :class:`SettingsFileError` instances so callers can
    translate them into domain-specific exceptions.
    """

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SettingsFileError(f"Settings file not found: {path}") from exc
    except OSError as exc:
        raise SettingsFileError(f"Unable to read settings {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SettingsFileError(
            f"Failed to parse settings JSON {path}: {exc}"
        ) from exc
    if not isinstance(payload, Mapping):
        raise SettingsFileError(
            f"Settings file {path} must contain a JSON object."
        )
    return payload


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
) -> None:
    """Merge ``override`` into ``base`` rejecting unknown keys and types.

    A ``None`` default accepts any value; otherwise the override must have the
    same JSON type as the default (``int`` and ``float`` are not mixed).
    """

    for key, value in override.items():
        if key not in base:
            raise SettingsFileError(f"Unknown setting '{key}'.")
        default = base[key]
        if default is not None and not _same_type(default, value):
            raise SettingsFileError(
                "Setting '{0}' expects {1}, found {2}.".format(
                    key,
                    type(default).__name__,
                    type(value).__name__,
                )
            )
        base[key] = value


def write_json(
    path: Path, payload: Mapping[str, Any], *, mode: int = 0o600
) -> Path:
    """Atomically replace ``path`` with ``payload`` serialized as JSON."""

    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
        suffix=".tmp",
    )
    try:
        json.dump(payload, handle, indent=2, sort_keys=True)
        handle.write("\n")
        handle.flush()
        os.fsync(handle.fileno())
    finally:
        handle.close()
    os.replace(handle.name, path)
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


def _same_type(default: Any, value: Any) -> bool:
    if isinstance(default, bool) or isinstance(value, bool):
        return isinstance(default, bool) and isinstance(value, bool)
    if isinstance(default, (list, tuple)):
        return isinstance(value, list)
    return type(default) is type(value)
