"""Concurrent build-task scheduler.

Components, leaves first:
- DirectoryCreator: memoized "mkdir -p" shared by all tasks
- CleanupBarrier: one-shot wipe of the target roots, awaited before any write
- CompileTask: one (source file, build target) unit of work
- BuildCoordinator: discovery fan-out and run-wide success/failure
- ExitGuard: non-zero exit unless the run reached a finished state
"""

from __future__ import annotations

from multiform_core.scheduler.cleanup import CleanupBarrier, remove_tree
from multiform_core.scheduler.coordinator import BuildCoordinator, BuildResult, run_build
from multiform_core.scheduler.directories import DirectoryCreator
from multiform_core.scheduler.exit_guard import EXIT_FAILURE, FAILURE_MESSAGE, ExitGuard
from multiform_core.scheduler.state import RunState, RunStatus
from multiform_core.scheduler.task import (
    CompiledOutput,
    CompileTask,
    SourceFile,
    build_options,
    render_code,
    strip_map,
)

__all__ = [
    "EXIT_FAILURE",
    "FAILURE_MESSAGE",
    "BuildCoordinator",
    "BuildResult",
    "CleanupBarrier",
    "CompileTask",
    "CompiledOutput",
    "DirectoryCreator",
    "ExitGuard",
    "RunState",
    "RunStatus",
    "SourceFile",
    "build_options",
    "remove_tree",
    "render_code",
    "run_build",
    "strip_map",
]
