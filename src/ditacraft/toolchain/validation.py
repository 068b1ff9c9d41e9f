"""Input checks performed before DITA-OT is invoked."""

from __future__ import annotations

from pathlib import Path
from typing import Union

from .models import ValidationOutcome

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    {".dita", ".ditamap", ".bookmap"}
)


class InputValidator:
    """Accept existing files carrying a DITA topic, map, or bookmap suffix."""

    def validate(self, path: Union[str, Path]) -> ValidationOutcome:
        return validate_input(path)


def validate_input(path: Union[str, Path]) -> ValidationOutcome:
    candidate = normalize_input_path(path)
    if not is_dita_file(candidate):
        return ValidationOutcome(
            valid=False,
            error=(
                "Only DITA files (.dita, .ditamap, .bookmap) can be "
                "published: {0}".format(candidate.name or candidate)
            ),
        )
    try:
        exists = candidate.is_file()
    except OSError as exc:
        return ValidationOutcome(
            valid=False,
            error=f"Cannot access input file {candidate}: {exc.strerror or exc}",
        )
    if not exists:
        return ValidationOutcome(
            valid=False, error=f"Input file not found: {candidate}"
        )
    return ValidationOutcome(valid=True)


def normalize_input_path(path: Union[str, Path]) -> Path:
    """Expand a leading ``~`` the way a shell would."""

    return Path(path).expanduser()


def is_dita_file(path: Union[str, Path]) -> bool:
    """Return ``True`` when ``path`` has a recognized DITA suffix."""

    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS
