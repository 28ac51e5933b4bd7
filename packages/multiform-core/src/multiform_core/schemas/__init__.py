"""Configuration schemas for multiform-core."""

from __future__ import annotations

from multiform_core.schemas.build_target import (
    DEFAULT_EXTENSIONS,
    DEFAULT_TRANSFORMER,
    BuildTarget,
    ResolvedConfig,
)
from multiform_core.schemas.multiform_config import (
    DEFAULT_CONFIG_FILENAME,
    BuildConfig,
    MultiformConfig,
    merge_defaults,
)

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_EXTENSIONS",
    "DEFAULT_TRANSFORMER",
    "BuildConfig",
    "BuildTarget",
    "MultiformConfig",
    "ResolvedConfig",
    "merge_defaults",
]
