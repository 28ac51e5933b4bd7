"""MultiformConfig root model.

This module defines the model for a multiform.json (or multiform.yaml)
file and its normalization into a ResolvedConfig:

- ``source`` is resolved to an absolute path
- every build's ``dir`` defaults to ``dist-<index>`` and is resolved
- every build's ``options`` are deep merged with the top-level ``defaults``

Example multiform.json:

    {
      "source": "src",
      "defaults": {"plugins": ["strict"]},
      "builds": [
        {"dir": "dist", "options": {"modules": "common"}},
        {"dir": "dist-es6", "options": {"blacklist": ["es6.modules"]}}
      ]
    }
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from multiform_core.errors import ConfigurationError
from multiform_core.schemas.build_target import (
    DEFAULT_EXTENSIONS,
    DEFAULT_TRANSFORMER,
    BuildTarget,
    ResolvedConfig,
)

DEFAULT_CONFIG_FILENAME = "multiform.json"
DEFAULT_SOURCE_DIR = "src"

YAML_SUFFIXES = (".yaml", ".yml")


class BuildConfig(BaseModel):
    """A single entry of the ``builds`` list.

    Attributes:
        dir: Output directory, relative to the project directory. Defaults
            to ``dist-<index>`` when omitted.
        options: Transform options for this build.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    dir: str | None = Field(default=None, min_length=1, description="Output directory")
    options: dict[str, Any] = Field(default_factory=dict, description="Transform options")


class MultiformConfig(BaseModel):
    """Root configuration model for multiform.json.

    Attributes:
        source: Source root, relative to the project directory.
        builds: Build targets. Every source file is compiled once per build.
        defaults: Options merged into every build's options.
        extensions: File suffixes picked up by discovery.
        transformer: Import path of the transform callable ("module:attr").

    Example:
        >>> config = MultiformConfig.from_file("multiform.json")
        >>> resolved = config.resolve(Path.cwd())
        >>> [t.root_dir.name for t in resolved.targets]
        ['dist', 'dist-es6']
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str = Field(default=DEFAULT_SOURCE_DIR, min_length=1, description="Source root")
    builds: list[BuildConfig] = Field(..., description="Build targets")
    defaults: dict[str, Any] = Field(default_factory=dict, description="Shared options")
    extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        min_length=1,
        description="Source file suffixes",
    )
    transformer: str = Field(
        default=DEFAULT_TRANSFORMER,
        min_length=1,
        description="Transform import path",
    )

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Accept suffixes with or without the leading dot."""
        normalized: list[str] = []
        for ext in v:
            ext = ext.strip()
            if not ext or ext == ".":
                raise ValueError("extensions must not be empty")
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return normalized

    @classmethod
    def from_file(cls, path: str | Path) -> MultiformConfig:
        """Load and validate configuration from a JSON or YAML file.

        Args:
            path: Path to multiform.json (or a .yaml/.yml file).

        Returns:
            Validated MultiformConfig instance.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If the file cannot be read or parsed.
            pydantic.ValidationError: If schema validation fails.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(
                "Cannot read configuration file",
                file_path=str(path),
                internal_details=str(e),
            ) from e

        try:
            if path.suffix in YAML_SUFFIXES:
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                "Configuration file is not valid",
                file_path=str(path),
                internal_details=str(e),
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration must be a mapping",
                file_path=str(path),
            )

        return cls.model_validate(data)

    def resolve(self, base_dir: str | Path) -> ResolvedConfig:
        """Normalize into absolute paths and merged options.

        Args:
            base_dir: Directory relative paths are resolved against,
                normally the directory the command runs in.

        Returns:
            ResolvedConfig ready for scheduling.
        """
        base = Path(base_dir).resolve()
        targets = tuple(
            BuildTarget(
                root_dir=(base / (build.dir or f"dist-{i}")).resolve(),
                options=merge_defaults(build.options, self.defaults),
            )
            for i, build in enumerate(self.builds)
        )

        return ResolvedConfig(
            source=(base / self.source).resolve(),
            targets=targets,
            extensions=tuple(self.extensions),
            transformer=self.transformer,
        )


def merge_defaults(options: dict[str, Any], defaults: dict[str, Any]) -> dict[str, Any]:
    """Deep merge ``defaults`` into a build's ``options``.

    Lists are concatenated (build values first), nested mappings are merged
    recursively and any other conflicting key takes the ``defaults`` value.
    Neither input is modified.

    Example:
        >>> merge_defaults({"plugins": ["a"], "loose": False}, {"plugins": ["b"], "loose": True})
        {'plugins': ['a', 'b'], 'loose': True}
    """
    merged = copy.deepcopy(options)
    for key, value in defaults.items():
        current = merged.get(key)
        if isinstance(current, list):
            extra = value if isinstance(value, list) else [value]
            merged[key] = current + copy.deepcopy(extra)
        elif isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_defaults(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
