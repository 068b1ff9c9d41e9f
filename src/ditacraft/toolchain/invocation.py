"""Command-line contract with the ``dita`` launcher.

DITA-OT 3.x and 4.x accept the following forms, all executed without a shell:

``dita --version``
    Prints ``DITA-OT version 4.2.3`` on stdout and exits 0.
``dita transtypes``
    Prints one installed transtype per line.
``dita --input=<file> --output=<dir> --format=<transtype> [extra...]``
    Publishes ``<file>``. Extra arguments come last so user supplied flags
    override the generated ones.
"""

from __future__ import annotations

from typing import Iterable

VERSION_ARGS: tuple[str, ...] = ("--version",)
TRANSTYPES_ARGS: tuple[str, ...] = ("transtypes",)


def build_publish_args(
    input_path: str,
    output_dir: str,
    transtype: str,
    extra_args: Iterable[str] = (),
) -> list[str]:
    return [
        f"--input={input_path}",
        f"--output={output_dir}",
        f"--format={transtype}",
        *extra_args,
    ]
