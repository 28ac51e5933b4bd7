"""Normalized build target models.

A BuildTarget is one output configuration (root directory + transform
options) that every discovered source file is compiled into. Targets are
produced once by configuration normalization and never mutated afterwards.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Extensions matched by default during discovery
DEFAULT_EXTENSIONS: tuple[str, ...] = (".js", ".jsx", ".es", ".es6", ".es7")

# Built-in passthrough transform
DEFAULT_TRANSFORMER = "multiform_core.transform:identity_transform"


class BuildTarget(BaseModel):
    """One normalized build target.

    Attributes:
        root_dir: Absolute output directory. Wiped at the start of every run.
        options: Transform options, already merged with the top-level defaults.

    Example:
        >>> target = BuildTarget(root_dir=Path("/repo/dist-0"), options={"loose": True})
        >>> target.output_path("lib/a.js")
        PosixPath('/repo/dist-0/lib/a.js')
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root_dir: Path = Field(..., description="Absolute output directory")
    options: dict[str, Any] = Field(default_factory=dict, description="Transform options")

    @field_validator("root_dir")
    @classmethod
    def validate_absolute(cls, v: Path) -> Path:
        """Require an absolute root directory."""
        if not v.is_absolute():
            raise ValueError(f"root_dir must be absolute, got '{v}'")
        return v

    def output_path(self, relative_path: str) -> Path:
        """Return the artifact path for a source file relative to the source root."""
        return self.root_dir / relative_path


class ResolvedConfig(BaseModel):
    """Configuration after normalization, ready for scheduling.

    Attributes:
        source: Absolute source root.
        targets: Build targets in configuration order.
        extensions: File suffixes picked up by discovery.
        transformer: Import path of the transform callable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: Path = Field(..., description="Absolute source root")
    targets: tuple[BuildTarget, ...] = Field(default=(), description="Build targets")
    extensions: tuple[str, ...] = Field(default=DEFAULT_EXTENSIONS, description="Source suffixes")
    transformer: str = Field(default=DEFAULT_TRANSFORMER, description="Transform import path")

    @property
    def target_dirs(self) -> list[Path]:
        """Target root directories, de-duplicated, in configuration order."""
        return list(dict.fromkeys(t.root_dir for t in self.targets))
