"""multiform-core: compile a source tree into several build targets at once.

This package provides:
- MultiformConfig: Pydantic schema for multiform.json
- discover_sources: lazy source discovery
- BuildCoordinator: concurrent (file x target) build scheduler
- ExitGuard: non-zero exit for runs that never finished
"""

from __future__ import annotations

__version__ = "0.1.0"

from multiform_core.discovery import discover_sources
from multiform_core.errors import (
    BuildIOError,
    ConfigurationError,
    DiscoveryError,
    MultiformError,
    TransformError,
)
from multiform_core.scheduler import (
    BuildCoordinator,
    BuildResult,
    CleanupBarrier,
    CompileTask,
    DirectoryCreator,
    ExitGuard,
    RunState,
    RunStatus,
    SourceFile,
    run_build,
)
from multiform_core.schemas import (
    BuildConfig,
    BuildTarget,
    MultiformConfig,
    ResolvedConfig,
)
from multiform_core.transform import (
    TransformResult,
    Transformer,
    identity_transform,
    load_transformer,
)

__all__ = [
    "__version__",
    # Configuration
    "BuildConfig",
    "BuildTarget",
    "MultiformConfig",
    "ResolvedConfig",
    # Discovery and transform
    "discover_sources",
    "TransformResult",
    "Transformer",
    "identity_transform",
    "load_transformer",
    # Scheduler
    "BuildCoordinator",
    "BuildResult",
    "CleanupBarrier",
    "CompileTask",
    "DirectoryCreator",
    "ExitGuard",
    "RunState",
    "RunStatus",
    "SourceFile",
    "run_build",
    # Errors
    "MultiformError",
    "ConfigurationError",
    "DiscoveryError",
    "TransformError",
    "BuildIOError",
]
