"""Executable stand-ins for the DITA-OT ``dita`` launcher."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path

_HEADER = """#!{python}
import json
import pathlib
import sys
import time

args = sys.argv[1:]
with open({calls!r}, "a", encoding="utf-8") as handle:
    handle.write(json.dumps(args) + "\\n")
"""

# Mimics DITA-OT 4.x: version banner, transtype listing, and an HTML5 build
# writing <stem>.html into the requested output directory.
DEFAULT_BODY = """
if args == ["--version"]:
    print("DITA-OT version 4.2.3")
    sys.exit(0)
if args == ["transtypes"]:
    for name in ("html5", "pdf", "markdown"):
        print(name)
    sys.exit(0)
options = dict(arg[2:].split("=", 1) for arg in args if arg.startswith("--") and "=" in arg)
source = pathlib.Path(options["input"])
target = pathlib.Path(options["output"])
target.mkdir(parents=True, exist_ok=True)
(target / (source.stem + ".html")).write_text("<html></html>", encoding="utf-8")
print("[pipeline] done")
"""


@dataclass
class FakeDitaFactory:
    """Install fake ``bin/dita`` scripts under ``root``."""

    root: Path

    @property
    def calls_path(self) -> Path:
        return self.root / "calls.jsonl"

    def install(self, body: str = DEFAULT_BODY) -> Path:
        """Write ``bin/dita`` running ``body`` and return the install dir."""

        launcher = self.root / "bin" / "dita"
        launcher.parent.mkdir(parents=True, exist_ok=True)
        header = _HEADER.format(
            python=sys.executable, calls=str(self.calls_path)
        )
        launcher.write_text(header + body, encoding="utf-8")
        launcher.chmod(0o755)
        return self.root

    def calls(self) -> list[list[str]]:
        if not self.calls_path.exists():
            return []
        return [
            json.loads(line)
            for line in self.calls_path.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
