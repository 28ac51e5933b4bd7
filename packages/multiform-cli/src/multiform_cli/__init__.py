"""multiform-cli: command line interface for multiform."""

from __future__ import annotations

__version__ = "0.1.0"
