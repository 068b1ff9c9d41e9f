"""Shared testing fixtures for the ditacraft test suite."""

from .dita import FakeDitaFactory  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "FakeDitaFactory",
    "WorkspaceBuilder",
    "build_tree",
]
