"""Publish pipeline: validate, verify, resolve output, run, classify."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol, Sequence, Union

from .errors import (
    ConfigurationError,
    InstallationError,
    ProcessError,
    PublishTimeoutError,
    SpawnError,
    ValidationError,
)
from .invocation import build_publish_args
from .models import (
    InstallationErrorKind,
    InstallationStatus,
    ProcessOutcome,
    PublishIntent,
    PublishRequest,
    PublishResult,
    ValidationOutcome,
)
from .runner import ProcessRunner
from .settings import ToolchainConfig, resolve_executable
from .validation import normalize_input_path, validate_input
from .verifier import InstallationVerifier

CANCELLED_KIND = "cancelled"
STDERR_TAIL_LINES = 20

ProgressCallback = Callable[[int, str], None]
ConfigurationRequest = Callable[
    [InstallationStatus], tuple[bool, Optional[ToolchainConfig]]
]


class RunProcess(Protocol):
    def __call__(
        self,
        executable: Union[str, Path],
        args: Sequence[str],
        *,
        working_dir: Optional[Union[str, Path]] = ...,
        timeout_minutes: float,
        cancel_signal: Optional[asyncio.Event] = ...,
    ) -> Awaitable[ProcessOutcome]: ...


@dataclass(frozen=True)
class PublishDependencies:
    """Collaborator seams used by :class:`PublishOrchestrator`."""

    validate: Callable[[str], ValidationOutcome]
    verify: Callable[[ToolchainConfig], Awaitable[InstallationStatus]]
    run: RunProcess


def default_dependencies(
    runner: Optional[ProcessRunner] = None,
) -> PublishDependencies:
    """Wire the real validator, verifier, and runner together."""

    runner = runner or ProcessRunner()
    verifier = InstallationVerifier(runner)
    return PublishDependencies(
        validate=validate_input,
        verify=verifier.verify,
        run=runner.run,
    )


class PublishOrchestrator:
    """Run one publish from an intent to a terminal :class:`PublishResult`.

    Steps are strictly sequential and stop at the first failure. Nothing is
    retried automatically; the only second attempt is the installation check
    after ``request_configuration`` reports that the caller reconfigured.
    Every failure is returned as a result, never raised.
    """

    def __init__(
        self,
        dependencies: PublishDependencies,
        *,
        request_configuration: Optional[ConfigurationRequest] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._deps = dependencies
        self._request_configuration = request_configuration
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock

    async def publish(
        self,
        intent: PublishIntent,
        *,
        config: ToolchainConfig,
        progress: Optional[ProgressCallback] = None,
        cancel_signal: Optional[asyncio.Event] = None,
    ) -> PublishResult:
        started = self._clock()
        report = _MonotonicProgress(progress)

        report(0, "Validating")
        validation = self._deps.validate(intent.input_path)
        if not validation.valid:
            return self._fail(
                ValidationError.kind,
                validation.error or "Invalid input file.",
                started,
                report,
            )

        if _is_set(cancel_signal):
            return self._cancelled(started, report)

        report(10, "Verifying DITA-OT")
        config, status = await self._verify(config, cancel_signal)
        # Verification and the configuration prompt may outlast a Ctrl-C.
        if _is_set(cancel_signal):
            return self._cancelled(started, report)
        if not status.installed:
            kind = (
                ConfigurationError.kind
                if status.kind is InstallationErrorKind.NOT_CONFIGURED
                else InstallationError.kind
            )
            return self._fail(
                kind,
                "DITA-OT configuration is required ({0}). Configure the "
                "DITA-OT path and try again.".format(status.error),
                started,
                report,
            )

        output_dir = resolve_output_dir(
            config.output_root, intent.transtype, intent.input_path
        )
        source = normalize_input_path(intent.input_path).resolve()
        request = PublishRequest(
            input_path=str(source),
            transtype=intent.transtype,
            output_dir=str(output_dir),
            extra_args=(*config.extra_args, *intent.extra_ui_args),
            timeout_minutes=config.timeout_minutes,
        )

        report(25, f"Publishing {source.name} to {request.transtype}")
        self._logger.info(
            "Starting publish",
            extra={
                "input": request.input_path,
                "transtype": request.transtype,
                "output_dir": request.output_dir,
                "timeout_minutes": request.timeout_minutes,
            },
        )
        try:
            outcome = await self._deps.run(
                resolve_executable(config.binary_path),
                build_publish_args(
                    request.input_path,
                    request.output_dir,
                    request.transtype,
                    request.extra_args,
                ),
                working_dir=source.parent,
                timeout_minutes=request.timeout_minutes,
                cancel_signal=cancel_signal,
            )
        except SpawnError as exc:
            return self._fail(SpawnError.kind, str(exc), started, report)

        result = classify_outcome(
            outcome, request, duration_ms=self._elapsed_ms(started)
        )
        report(100, "Complete" if result.success else "Failed")
        self._logger.log(
            logging.INFO if result.success else logging.ERROR,
            "Publish finished",
            extra={
                "input": request.input_path,
                "success": result.success,
                "error_kind": result.error_kind,
                "duration_ms": result.duration_ms,
            },
        )
        return result

    async def publish_html5(
        self,
        input_path: str,
        *,
        config: ToolchainConfig,
        progress: Optional[ProgressCallback] = None,
        cancel_signal: Optional[asyncio.Event] = None,
    ) -> PublishResult:
        return await self.publish(
            PublishIntent(input_path=input_path, transtype="html5"),
            config=config,
            progress=progress,
            cancel_signal=cancel_signal,
        )

    async def _verify(
        self,
        config: ToolchainConfig,
        cancel_signal: Optional[asyncio.Event] = None,
    ) -> tuple[ToolchainConfig, InstallationStatus]:
        status = await self._deps.verify(config)
        if status.installed or self._request_configuration is None:
            return config, status

        retry, updated = self._request_configuration(status)
        if not retry or updated is None or _is_set(cancel_signal):
            return config, status
        self._logger.info("Retrying verification after reconfiguration")
        return updated, await self._deps.verify(updated)

    def _fail(
        self,
        kind: str,
        message: str,
        started: float,
        report: "_MonotonicProgress",
    ) -> PublishResult:
        report(100, "Failed")
        self._logger.warning(
            "Publish aborted", extra={"error_kind": kind, "reason": message}
        )
        return PublishResult(
            success=False,
            error=message,
            duration_ms=self._elapsed_ms(started),
            error_kind=kind,
        )

    def _cancelled(
        self, started: float, report: "_MonotonicProgress"
    ) -> PublishResult:
        report(100, "Cancelled")
        self._logger.info(
            "Publish cancelled before DITA-OT started",
            extra={"error_kind": CANCELLED_KIND},
        )
        return PublishResult(
            success=False,
            error="Publishing cancelled before DITA-OT started.",
            duration_ms=self._elapsed_ms(started),
            error_kind=CANCELLED_KIND,
        )

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int((self._clock() - started) * 1000))


def resolve_output_dir(
    output_root: Union[str, Path], transtype: str, input_path: Union[str, Path]
) -> Path:
    """Return ``output_root/transtype/<input stem>``.

    Distinct per (file, format) pair, so publishing one file to several
    formats never overwrites earlier output.
    """

    return Path(output_root) / transtype / Path(input_path).stem


def classify_outcome(
    outcome: ProcessOutcome, request: PublishRequest, *, duration_ms: int
) -> PublishResult:
    if outcome.succeeded:
        return PublishResult(
            success=True,
            output_path=request.output_dir,
            duration_ms=duration_ms,
        )

    elapsed = outcome.wall_clock_ms / 1000
    if outcome.cancelled:
        return PublishResult(
            success=False,
            error=f"Publishing cancelled after {elapsed:.1f}s.",
            duration_ms=duration_ms,
            error_kind=CANCELLED_KIND,
        )
    if outcome.timed_out:
        return PublishResult(
            success=False,
            error=(
                "DITA-OT did not finish within {0} minute(s) and was "
                "stopped after {1:.1f}s.".format(
                    request.timeout_minutes, elapsed
                )
            ),
            duration_ms=duration_ms,
            error_kind=PublishTimeoutError.kind,
        )

    tail = output_tail(outcome.stderr) or output_tail(outcome.stdout)
    message = f"DITA-OT exited with code {outcome.exit_code}."
    if tail:
        message = f"{message}\n{tail}"
    return PublishResult(
        success=False,
        error=message,
        duration_ms=duration_ms,
        error_kind=ProcessError.kind,
    )


def _is_set(event: Optional[asyncio.Event]) -> bool:
    return event is not None and event.is_set()


def output_tail(text: str, lines: int = STDERR_TAIL_LINES) -> str:
    kept = [line.rstrip() for line in text.splitlines() if line.strip()]
    return "\n".join(kept[-lines:])


class _MonotonicProgress:
    def __init__(self, callback: Optional[ProgressCallback]) -> None:
        self._callback = callback
        self._last = 0

    def __call__(self, percentage: int, message: str) -> None:
        self._last = max(self._last, min(100, percentage))
        if self._callback is not None:
            self._callback(self._last, message)
