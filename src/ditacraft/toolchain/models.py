"""Value objects exchanged between the toolchain components."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class InstallationErrorKind(Enum):
    """Why a DITA-OT installation was judged unusable."""

    NOT_CONFIGURED = "not configured"
    NOT_FOUND = "not found"
    WRONG_VERSION = "wrong version"
    EXECUTION_FAILED = "execution failed"


@dataclass(frozen=True)
class ValidationOutcome:
    """Whether a path is an acceptable DITA input."""

    valid: bool
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.valid and self.error is not None:
            raise ValueError("A valid outcome cannot carry an error.")
        if not self.valid and not self.error:
            raise ValueError("An invalid outcome requires an error message.")


@dataclass(frozen=True)
class InstallationStatus:
    """Result of probing the configured DITA-OT installation."""

    installed: bool
    version: Optional[str] = None
    error: Optional[str] = None
    kind: Optional[InstallationErrorKind] = None

    def __post_init__(self) -> None:
        if not self.installed and self.version is not None:
            raise ValueError("An uninstalled toolchain has no version.")
        if not self.installed and not self.error:
            raise ValueError("An uninstalled status requires an error.")


@dataclass(frozen=True)
class PublishIntent:
    """What the calling layer asked to publish."""

    input_path: str
    transtype: str
    extra_ui_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class PublishRequest:
    """Fully resolved publish invocation handed to the process runner."""

    input_path: str
    transtype: str
    output_dir: str
    extra_args: tuple[str, ...]
    timeout_minutes: int


@dataclass(frozen=True)
class ProcessOutcome:
    """Terminal record of one external process invocation."""

    exit_code: Optional[int]
    stdout: str
    stderr: str
    timed_out: bool = False
    cancelled: bool = False
    wall_clock_ms: int = 0

    def __post_init__(self) -> None:
        if self.timed_out and self.cancelled:
            raise ValueError("An outcome cannot be both timed out and cancelled.")
        if (self.timed_out or self.cancelled) and self.exit_code is not None:
            raise ValueError("Terminated processes do not report an exit code.")
        if self.wall_clock_ms < 0:
            raise ValueError("wall_clock_ms must be non-negative.")

    @property
    def succeeded(self) -> bool:
        return (
            self.exit_code == 0 and not self.timed_out and not self.cancelled
        )


@dataclass(frozen=True)
class PublishResult:
    """Final, caller-facing result of a publish."""

    success: bool
    output_path: Optional[str] = None
    error: Optional[str] = None
    duration_ms: int = 0
    error_kind: Optional[str] = None

    def __post_init__(self) -> None:
        if self.success and (self.output_path is None or self.error is not None):
            raise ValueError(
                "A successful publish has an output path and no error."
            )
        if not self.success and not self.error:
            raise ValueError("A failed publish requires an error message.")
        if self.duration_ms < 0:
            raise ValueError("duration_ms must be non-negative.")
