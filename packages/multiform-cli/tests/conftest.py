"""Shared test fixtures for multiform-cli tests.

Provides CliRunner fixtures and helpers that lay out a small project
(configuration file plus source tree) in an isolated filesystem.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Generator
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest
import structlog
from click.testing import CliRunner

if TYPE_CHECKING:
    from collections.abc import Callable

CONFIG_FILENAME = "multiform.json"


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Send structlog output to pytest's capture, not the runner's streams."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def logging_calls(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Replace configure_logging so commands never touch the root logger.

    Returns:
        List of keyword arguments of every configure_logging call.
    """
    calls: list[dict[str, Any]] = []

    def _record(**kwargs: Any) -> None:
        calls.append(kwargs)

    monkeypatch.setattr("multiform_core.observability.configure_logging", _record)
    return calls


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click test runner.

    Returns:
        CliRunner instance for testing CLI commands.
    """
    return CliRunner()


@pytest.fixture
def isolated_runner(cli_runner: CliRunner) -> Generator[CliRunner, None, None]:
    """Create a Click test runner with an isolated filesystem.

    Yields:
        CliRunner instance with isolated filesystem.
    """
    with cli_runner.isolated_filesystem():
        yield cli_runner


@pytest.fixture
def create_project(isolated_runner: CliRunner) -> Callable[..., Path]:
    """Factory fixture to create a project in the isolated filesystem.

    Returns:
        Function taking the config mapping and ``{relative_path: content}``
        sources, returning the path of the written config file.
    """

    def _create(
        config: dict[str, Any],
        sources: dict[str, str] | None = None,
        filename: str = CONFIG_FILENAME,
    ) -> Path:
        source_root = Path(config.get("source", "src"))
        source_root.mkdir(parents=True, exist_ok=True)
        for relative, content in (sources or {}).items():
            path = source_root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

        config_path = Path(filename)
        config_path.write_text(json.dumps(config, indent=2))
        return config_path

    return _create
