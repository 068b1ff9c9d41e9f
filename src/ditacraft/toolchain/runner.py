"""Asynchronous external process execution with timeout and cancellation."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from .errors import ExecutableNotFoundError, SpawnError
from .models import ProcessOutcome

DEFAULT_GRACE_SECONDS = 5.0
_READ_CHUNK = 64 * 1024
_POSIX = os.name == "posix"

PathLike = Union[str, Path]


class ProcessRunner:
    """Run one external program per call and report how it ended.

    The process wait, the wall-clock timer, and the optional cancel event are
    raced together; whichever finishes first decides the outcome. A timed out
    or cancelled process receives a termination request, then a kill once
    ``grace_seconds`` pass, and ``run`` returns only after it has been reaped.
    On POSIX the child leads its own process group so launcher scripts take
    their JVM down with them.

    Captured stdout/stderr is held in memory without a size cap. Do not point
    this at a process that may write unbounded output.
    """

    def __init__(
        self,
        *,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if grace_seconds <= 0:
            raise ValueError("grace_seconds must be positive.")
        self._grace = grace_seconds
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock

    async def run(
        self,
        executable: PathLike,
        args: Sequence[str],
        *,
        working_dir: Optional[PathLike] = None,
        timeout_minutes: float,
        cancel_signal: Optional[asyncio.Event] = None,
    ) -> ProcessOutcome:
        if timeout_minutes <= 0:
            raise ValueError("timeout_minutes must be positive.")

        argv = [str(executable), *(str(arg) for arg in args)]
        started = self._clock()
        process = await self._spawn(argv, working_dir)
        self._logger.debug(
            "Spawned process",
            extra={
                "executable": argv[0],
                "arg_count": len(argv) - 1,
                "pid": process.pid,
            },
        )

        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []
        readers = [
            asyncio.ensure_future(_drain(process.stdout, stdout_chunks)),
            asyncio.ensure_future(_drain(process.stderr, stderr_chunks)),
        ]
        waiter = asyncio.ensure_future(process.wait())
        canceller: Optional[asyncio.Future] = None
        if cancel_signal is not None:
            canceller = asyncio.ensure_future(cancel_signal.wait())

        timed_out = False
        cancelled = False
        try:
            watched = {waiter} if canceller is None else {waiter, canceller}
            await asyncio.wait(
                watched,
                timeout=timeout_minutes * 60,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if not waiter.done():
                if cancel_signal is not None and cancel_signal.is_set():
                    cancelled = True
                else:
                    timed_out = True
                await self._terminate(process, waiter)
            await self._collect(readers)
        finally:
            if canceller is not None and not canceller.done():
                canceller.cancel()
            if not waiter.done():
                # The caller's task was cancelled mid-run.
                await asyncio.shield(self._terminate(process, waiter))
            for reader in readers:
                if not reader.done():
                    reader.cancel()

        outcome = ProcessOutcome(
            exit_code=None if (timed_out or cancelled) else process.returncode,
            stdout=_decode(stdout_chunks),
            stderr=_decode(stderr_chunks),
            timed_out=timed_out,
            cancelled=cancelled,
            wall_clock_ms=max(0, int((self._clock() - started) * 1000)),
        )
        self._logger.info(
            "Process finished",
            extra={
                "executable": argv[0],
                "exit_code": outcome.exit_code,
                "timed_out": outcome.timed_out,
                "cancelled": outcome.cancelled,
                "wall_clock_ms": outcome.wall_clock_ms,
            },
        )
        return outcome

    async def _spawn(
        self, argv: Sequence[str], working_dir: Optional[PathLike]
    ) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=None if working_dir is None else str(working_dir),
                start_new_session=_POSIX,
            )
        except FileNotFoundError as exc:
            raise ExecutableNotFoundError(
                f"Executable not found: {argv[0]}"
            ) from exc
        except PermissionError as exc:
            raise SpawnError(f"Executable is not runnable: {argv[0]}") from exc
        except OSError as exc:
            raise SpawnError(f"Unable to start {argv[0]}: {exc}") from exc

    async def _terminate(
        self, process: asyncio.subprocess.Process, waiter: asyncio.Future
    ) -> None:
        _send(process, signal.SIGTERM if _POSIX else None)
        await asyncio.wait({waiter}, timeout=self._grace)
        if waiter.done():
            return
        self._logger.warning(
            "Process ignored termination request; killing",
            extra={"pid": process.pid, "grace_seconds": self._grace},
        )
        _send(process, signal.SIGKILL if _POSIX else None, force=True)
        await waiter

    async def _collect(self, readers: Sequence[asyncio.Future]) -> None:
        # Orphaned grandchildren may keep the pipes open after a kill.
        _, pending = await asyncio.wait(readers, timeout=self._grace)
        for reader in pending:
            reader.cancel()


async def _drain(
    stream: Optional[asyncio.StreamReader], sink: list[bytes]
) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return
        sink.append(chunk)


def _send(
    process: asyncio.subprocess.Process,
    signum: Optional[int],
    *,
    force: bool = False,
) -> None:
    try:
        if signum is not None:
            os.killpg(process.pid, signum)
        elif force:
            process.kill()
        else:
            process.terminate()
    except (ProcessLookupError, PermissionError):
        pass


def _decode(chunks: Sequence[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")
