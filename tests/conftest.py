from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Ensure src/ is importable when running from a plain checkout.
ROOT = TESTS_DIR.parent
for extra in (ROOT / "src",):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import FakeDitaFactory, WorkspaceBuilder  # noqa: E402


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def fake_dita(tmp_path: Path) -> FakeDitaFactory:
    """Write executable stand-ins for the ``dita`` launcher."""

    return FakeDitaFactory(tmp_path / "dita-ot")


@pytest.fixture(autouse=True)
def _isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    monkeypatch.setenv("DITACRAFT_HOME", str(tmp_path / "home"))
    for name in (
        "DITACRAFT_DITA_OT_PATH",
        "DITACRAFT_OUTPUT_DIR",
        "DITACRAFT_TIMEOUT_MINUTES",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
