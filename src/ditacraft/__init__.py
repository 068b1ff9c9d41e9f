"""Command-line front end for driving DITA Open Toolkit publishes."""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
