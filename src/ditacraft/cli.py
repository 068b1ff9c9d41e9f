"""Unified CLI entry point for ditacraft."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Mapping, Optional, Sequence


CommandHandler = Callable[[Sequence[str]], int]


@dataclass(frozen=True)
class CommandSpec:
    """Represents a ditacraft subcommand."""

    name: str
    summary: str
    module: str
    prefix: tuple[str, ...] = ()

    def run(self, argv: Sequence[str]) -> int:
        return _run_module_command(self.module, [*self.prefix, *argv])


_TOOLCHAIN = "ditacraft.toolchain.cli"

_COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        name="init",
        summary="Bootstrap the ditacraft workspace.",
        module="ditacraft.workspace.cli",
    ),
    CommandSpec(
        name="configure",
        summary="Set the DITA-OT location and publish defaults.",
        module=_TOOLCHAIN,
        prefix=("configure",),
    ),
    CommandSpec(
        name="doctor",
        summary="Check that the configured DITA-OT runs.",
        module=_TOOLCHAIN,
        prefix=("doctor",),
    ),
    CommandSpec(
        name="transtypes",
        summary="List the output formats DITA-OT provides.",
        module=_TOOLCHAIN,
        prefix=("transtypes",),
    ),
    CommandSpec(
        name="publish",
        summary="Publish a DITA topic, map, or bookmap.",
        module=_TOOLCHAIN,
        prefix=("publish",),
    ),
    CommandSpec(
        name="preview",
        summary="Publish to HTML5 and print the page to open.",
        module=_TOOLCHAIN,
        prefix=("preview",),
    ),
)

COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec for spec in _COMMAND_SPECS
}


def format_command_table() -> str:
    """Return a formatted command table for help output."""

    width = max(len(spec.name) for spec in _COMMAND_SPECS)
    lines = ["Available commands:"]
    for spec in _COMMAND_SPECS:
        lines.append(f"  {spec.name.ljust(width)}  {spec.summary}")
    return "\n".join(lines)


def format_usage() -> str:
    parts = [
        "Usage: ditacraft <command> [args...]",
        "Run `ditacraft list` for commands or `ditacraft help <name>` for "
        "details.",
        "",
        format_command_table(),
    ]
    return "\n".join(parts)


def _print(
    text: str, *, stream: Optional[Callable[[str], object]] = None
) -> None:
    target = stream if stream is not None else sys.stdout.write
    if text:
        target(text + "\n")


def _handle_version() -> int:
    try:
        version = metadata.version("ditacraft")
    except metadata.PackageNotFoundError:
        version = "unknown"
    _print(version)
    return 0


def _handle_help(argv: Sequence[str]) -> int:
    if not argv:
        _print(format_usage())
        return 0

    spec = COMMANDS.get(argv[0])
    if spec is None:
        _print(f"Unknown command '{argv[0]}'.", stream=sys.stderr.write)
        _print(format_command_table(), stream=sys.stderr.write)
        return 2

    _print(f"{spec.name}: {spec.summary}")
    _print(f"Run `ditacraft {spec.name} --help` for command options.")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])

    if not args:
        _print(format_usage())
        return 2

    head, *tail = args

    if head in ("-h", "--help"):
        _print(format_usage())
        return 0
    if head in ("-V", "--version", "version"):
        return _handle_version()
    if head == "list":
        _print(format_command_table())
        return 0
    if head == "help":
        return _handle_help(tail)

    spec = COMMANDS.get(head)
    if spec is not None:
        return spec.run(tail)

    _print(f"Unknown command '{head}'.", stream=sys.stderr.write)
    _print(format_command_table(), stream=sys.stderr.write)
    return 2


def _run_module_command(module_name: str, argv: Sequence[str]) -> int:
    target = getattr(import_module(module_name), "main")
    try:
        result = target(list(argv))
    except SystemExit as exc:
        return _normalize_system_exit(exc)
    if isinstance(result, int):
        return result
    return 0


def _normalize_system_exit(exc: SystemExit) -> int:
    code = exc.code
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    _print(str(code), stream=sys.stderr.write)
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
