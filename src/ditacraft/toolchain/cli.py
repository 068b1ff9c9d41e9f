"""Command-line entry points for configuring and running DITA-OT."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterator, Optional, Sequence, TypeVar

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.prompt import Prompt
from rich.table import Table

from ditacraft.core.logging import configure_logger
from ditacraft.core import workspace as workspace_mod
from ditacraft.core.workspace import WorkspaceError

from .discovery import STANDARD_TRANSTYPES, TranstypeDiscovery
from .errors import ConfigurationError, InstallationError
from .models import InstallationStatus, PublishIntent, PublishResult
from .orchestrator import PublishOrchestrator, default_dependencies
from .preview import find_preview_page
from .runner import ProcessRunner
from .settings import SettingsStore, ToolchainConfig, resolve_executable
from .verifier import InstallationVerifier

T = TypeVar("T")


@dataclass(frozen=True)
class _Context:
    store: SettingsStore
    logger: logging.Logger
    log_path: Path
    console: Console
    err_console: Console


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root (defaults to DITACRAFT_HOME).",
    )
    common.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level for the JSON log file (defaults to INFO).",
    )
    common.add_argument(
        "--verbose",
        action="store_true",
        help="Echo log records to stderr.",
    )

    parser = argparse.ArgumentParser(
        prog="ditacraft",
        description="Configure DITA-OT and publish DITA documents.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    configure = subparsers.add_parser(
        "configure",
        parents=[common],
        help="Set the DITA-OT location and publish defaults.",
    )
    configure.add_argument(
        "path",
        nargs="?",
        help="DITA-OT installation directory or the dita launcher.",
    )
    configure.add_argument(
        "--output-dir",
        help="Output root; relative paths and ${workspaceFolder} resolve "
        "against the workspace.",
    )
    configure.add_argument(
        "--timeout",
        type=int,
        help="Publish timeout in minutes.",
    )
    configure.add_argument(
        "--arg",
        dest="extra_args",
        action="append",
        help="Extra DITA-OT argument appended to every publish (repeatable; "
        "write --arg=-Dname=value for dashed values).",
    )
    configure.add_argument(
        "--clear-args",
        action="store_true",
        help="Remove all configured extra arguments.",
    )
    configure.add_argument(
        "--transtype",
        help="Default output format for `ditacraft publish`.",
    )
    configure.add_argument(
        "--show",
        action="store_true",
        help="Print the effective configuration.",
    )

    subparsers.add_parser(
        "doctor",
        parents=[common],
        help="Check that the configured DITA-OT runs.",
    )
    subparsers.add_parser(
        "transtypes",
        parents=[common],
        help="List the output formats DITA-OT provides.",
    )

    publish = subparsers.add_parser(
        "publish",
        parents=[common],
        help="Publish a DITA topic, map, or bookmap.",
    )
    publish.add_argument("input", help="The .dita, .ditamap or .bookmap file.")
    publish.add_argument(
        "--format",
        dest="transtype",
        help="Output format (defaults to the configured transtype).",
    )
    publish.add_argument(
        "--arg",
        dest="extra_args",
        action="append",
        help="Extra DITA-OT argument for this run only (repeatable; write "
        "--arg=-Dname=value for dashed values).",
    )
    publish.add_argument(
        "--no-input",
        action="store_true",
        help="Never prompt for a DITA-OT path.",
    )

    preview = subparsers.add_parser(
        "preview",
        parents=[common],
        help="Publish to HTML5 and print the page to open.",
    )
    preview.add_argument("input", help="The .dita, .ditamap or .bookmap file.")
    preview.add_argument(
        "--no-input",
        action="store_true",
        help="Never prompt for a DITA-OT path.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.command == "configure" and not _has_configure_changes(args):
        parser.error(
            "Provide a DITA-OT path, a setting to change, or --show."
        )

    try:
        context = _bootstrap(args)
    except WorkspaceError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1
    context.logger.debug(
        "ditacraft CLI invoked", extra={"subcommand": args.command}
    )

    handlers = {
        "configure": _handle_configure,
        "doctor": _handle_doctor,
        "transtypes": _handle_transtypes,
        "publish": _handle_publish,
        "preview": _handle_preview,
    }
    handler = handlers.get(args.command)
    if handler is None:  # pragma: no cover - argparse restricts choices
        parser.error("Command not implemented yet.")
    return handler(args, context)


def _bootstrap(args: argparse.Namespace) -> _Context:
    # DITACRAFT_* overrides may live in a project .env file.
    load_dotenv()
    layout = workspace_mod.ensure_workspace(path=args.workspace)
    logger, log_path = configure_logger(
        "ditacraft",
        log_dir=layout.path_for("logs"),
        level=args.log_level,
        verbose=args.verbose,
    )
    return _Context(
        store=SettingsStore.from_workspace(layout),
        logger=logger,
        log_path=log_path,
        console=Console(highlight=False),
        err_console=Console(stderr=True, highlight=False),
    )


def _has_configure_changes(args: argparse.Namespace) -> bool:
    return any(
        (
            args.path,
            args.output_dir is not None,
            args.timeout is not None,
            args.extra_args,
            args.clear_args,
            args.transtype,
            args.show,
        )
    )


def _handle_configure(args: argparse.Namespace, context: _Context) -> int:
    store = context.store
    try:
        if args.path:
            store.set(args.path)
        if args.output_dir is not None:
            store.set_output_root(args.output_dir)
        if args.timeout is not None:
            store.set_timeout_minutes(args.timeout)
        if args.clear_args:
            store.set_extra_args([])
        if args.extra_args:
            store.set_extra_args(args.extra_args)
        if args.transtype:
            store.set_default_transtype(args.transtype)
    except ConfigurationError as exc:
        context.err_console.print(
            f"[red]Configuration failed:[/] {escape(str(exc))}"
        )
        return 1

    config = store.get()
    if args.show:
        context.console.print(_config_table(config, store))

    if not args.path:
        return 0

    status = _run(_verifier().verify(config))
    _print_status(context, status)
    return 0 if status.installed else 1


def _handle_doctor(args: argparse.Namespace, context: _Context) -> int:
    config = context.store.get()
    status = _run(_verifier().verify(config))
    context.console.print(_config_table(config, context.store))
    _print_status(context, status)
    context.console.print(f"Log file: {escape(str(context.log_path))}")
    return 0 if status.installed else 1


def _handle_transtypes(args: argparse.Namespace, context: _Context) -> int:
    config = context.store.get()
    discovery = TranstypeDiscovery(_runner())
    try:
        formats = _run(discovery.list_formats(config))
    except InstallationError as exc:
        context.logger.warning(
            "Transtype discovery failed", extra={"error": str(exc)}
        )
        context.err_console.print(
            "[yellow]Could not query DITA-OT ({0}); showing the standard "
            "transtypes.[/]".format(escape(str(exc)))
        )
        formats = STANDARD_TRANSTYPES
    if not formats:
        context.console.print("No transtypes reported by DITA-OT.")
        return 0
    for name in formats:
        context.console.print(escape(name))
    return 0


def _handle_publish(args: argparse.Namespace, context: _Context) -> int:
    config = context.store.get()
    intent = PublishIntent(
        input_path=args.input,
        transtype=args.transtype or config.default_transtype,
        extra_ui_args=tuple(args.extra_args or ()),
    )
    result = _publish(args, context, intent, config)
    return _report_result(context, result)


def _handle_preview(args: argparse.Namespace, context: _Context) -> int:
    config = context.store.get()
    intent = PublishIntent(input_path=args.input, transtype="html5")
    result = _publish(args, context, intent, config)
    if not result.success or result.output_path is None:
        return _report_result(context, result)

    page = find_preview_page(result.output_path, Path(args.input).stem)
    if page is None:
        context.err_console.print(
            "[red]No HTML output found in[/] {0}".format(
                escape(result.output_path)
            )
        )
        return 1
    context.console.print(escape(str(page)))
    return 0


def _publish(
    args: argparse.Namespace,
    context: _Context,
    intent: PublishIntent,
    config: ToolchainConfig,
) -> PublishResult:
    cancel = asyncio.Event()
    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=context.err_console,
        transient=True,
    )

    request_configuration = None
    if not args.no_input and sys.stdin.isatty():
        request_configuration = _prompt_for_path(context, progress, cancel)

    orchestrator = PublishOrchestrator(
        default_dependencies(_runner()),
        request_configuration=request_configuration,
    )

    with progress:
        task_id = progress.add_task("Starting", total=100)

        def report(percentage: int, message: str) -> None:
            progress.update(
                task_id, completed=percentage, description=escape(message)
            )

        return _run(
            _publish_with_interrupt(
                orchestrator, intent, config, report, cancel
            )
        )


async def _publish_with_interrupt(
    orchestrator: PublishOrchestrator,
    intent: PublishIntent,
    config: ToolchainConfig,
    report: Callable[[int, str], None],
    cancel: asyncio.Event,
) -> PublishResult:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
        installed = True
    except (NotImplementedError, RuntimeError):
        installed = False
    try:
        return await orchestrator.publish(
            intent, config=config, progress=report, cancel_signal=cancel
        )
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


@contextmanager
def _interruptible() -> Iterator[None]:
    """Let Ctrl-C raise ``KeyboardInterrupt`` inside a blocking prompt."""

    try:
        previous = signal.signal(signal.SIGINT, signal.default_int_handler)
    except ValueError:  # not the main thread
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _prompt_for_path(
    context: _Context, progress: Progress, cancel: asyncio.Event
) -> Callable[[InstallationStatus], tuple[bool, Optional[ToolchainConfig]]]:
    def request(
        status: InstallationStatus,
    ) -> tuple[bool, Optional[ToolchainConfig]]:
        progress.stop()
        try:
            context.err_console.print(
                "[yellow]DITA-OT is not usable:[/] {0}".format(
                    escape(status.error or "unknown error")
                )
            )
            with _interruptible():
                answer = Prompt.ask(
                    "DITA-OT installation path (blank to cancel)",
                    default="",
                    show_default=False,
                    console=context.err_console,
                ).strip()
        except KeyboardInterrupt:
            cancel.set()
            return False, None
        finally:
            progress.start()
        if not answer:
            return False, None
        try:
            context.store.set(answer)
        except ConfigurationError as exc:
            context.err_console.print(f"[red]{escape(str(exc))}[/]")
            return False, None
        return True, context.store.get()

    return request


def _report_result(context: _Context, result: PublishResult) -> int:
    seconds = result.duration_ms / 1000
    if result.success:
        context.console.print(
            "Published to {0} in {1:.1f}s".format(
                escape(result.output_path or ""), seconds
            )
        )
        return 0
    context.err_console.print(
        "[red]Publishing failed:[/] {0}".format(escape(result.error or ""))
    )
    return 1


def _print_status(context: _Context, status: InstallationStatus) -> None:
    if status.installed:
        version = status.version or "unknown version"
        context.console.print(f"[green]DITA-OT ready[/] ({escape(version)})")
    else:
        context.err_console.print(
            "[red]DITA-OT not usable:[/] {0}".format(
                escape(status.error or "unknown error")
            )
        )


def _config_table(config: ToolchainConfig, store: SettingsStore) -> Table:
    table = Table(title="ditacraft configuration", show_header=False)
    table.add_column("setting", style="bold")
    table.add_column("value")
    launcher = (
        str(resolve_executable(config.binary_path))
        if config.configured
        else "(not configured)"
    )
    rows = (
        ("settings file", str(store.path)),
        ("DITA-OT path", config.binary_path or "(not configured)"),
        ("launcher", launcher),
        ("output root", config.output_root),
        ("default transtype", config.default_transtype),
        ("timeout (minutes)", str(config.timeout_minutes)),
        ("extra arguments", " ".join(config.extra_args) or "(none)"),
    )
    for name, value in rows:
        table.add_row(name, escape(value))
    return table


def _runner() -> ProcessRunner:
    return ProcessRunner()


def _verifier() -> InstallationVerifier:
    return InstallationVerifier(_runner())


def _run(coro: Awaitable[T]) -> T:
    return asyncio.run(coro)  # type: ignore[arg-type]


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
