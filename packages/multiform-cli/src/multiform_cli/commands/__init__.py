"""CLI command modules.

This package contains the implementation of all CLI subcommands. They
are loaded lazily by ``multiform_cli.main``.
"""

from __future__ import annotations

__all__: list[str] = []
