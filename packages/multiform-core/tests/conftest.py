"""Shared pytest fixtures for multiform-core tests.

Provides a throwaway project layout (source tree + build targets) and
structlog configuration for test capture.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import structlog

from multiform_core.schemas import MultiformConfig, ResolvedConfig


@pytest.fixture(autouse=True)
def configure_structlog_for_tests() -> None:
    """Configure structlog to output to stdout for test capture."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,  # Important for test isolation
    )


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an empty project directory and make it the working directory.

    Returns:
        Path to the project directory (contains an empty ``src``).
    """
    project = tmp_path / "project"
    (project / "src").mkdir(parents=True)
    monkeypatch.chdir(project)
    return project


@pytest.fixture
def write_sources(project_dir: Path) -> Callable[[dict[str, str]], Path]:
    """Factory fixture writing source files below ``src``.

    Returns:
        Function taking ``{relative_path: content}`` and returning the source root.
    """

    def _write(files: dict[str, str]) -> Path:
        source = project_dir / "src"
        for relative, content in files.items():
            path = source / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return source

    return _write


@pytest.fixture
def make_config(project_dir: Path) -> Callable[..., ResolvedConfig]:
    """Factory fixture building a ResolvedConfig for the project directory.

    Returns:
        Function taking ``builds`` (list of build dicts) and extra config keys.
    """

    def _make(builds: list[dict[str, Any]], **extra: Any) -> ResolvedConfig:
        return MultiformConfig.model_validate({"builds": builds, **extra}).resolve(project_dir)

    return _make
