"""Compile one source file for one build target.

A CompileTask transforms the (shared, read-once) source text with the
target's options, then writes the code and its source map into the
target's tree. Writes are gated twice: first on the CleanupBarrier, then on
the DirectoryCreator entry for the output directory.
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

import structlog

from multiform_core.errors import BuildIOError, TransformError
from multiform_core.transform import Transformer, coerce_result

if TYPE_CHECKING:
    from multiform_core.scheduler.cleanup import CleanupBarrier
    from multiform_core.scheduler.directories import DirectoryCreator
    from multiform_core.schemas import BuildTarget

logger = structlog.get_logger(__name__)

SOURCE_MAP_SUFFIX = ".map"

# Map fields dropped before the map is written
STRIPPED_MAP_FIELDS = ("names", "sourcesContent")


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


class SourceFile:
    """A discovered source file, read at most once.

    The first call to ``read()`` loads the file; every other caller, on any
    thread, gets the same text. A failed read is remembered and raised to
    every caller.

    Attributes:
        root: Absolute source root.
        relative_path: POSIX path relative to ``root``.
    """

    def __init__(
        self,
        root: Path,
        relative_path: str,
        *,
        reader: Callable[[Path], str] = _read_text,
    ) -> None:
        self.root = root
        self.relative_path = relative_path
        self._reader = reader
        self._lock = threading.Lock()
        self._text: str | None = None
        self._error: BuildIOError | None = None

    @property
    def path(self) -> Path:
        """Absolute path of the file."""
        return self.root / self.relative_path

    @property
    def basename(self) -> str:
        return PurePosixPath(self.relative_path).name

    def read(self) -> str:
        """Return the file contents.

        Raises:
            BuildIOError: If the file could not be read.
        """
        with self._lock:
            if self._text is None and self._error is None:
                try:
                    self._text = self._reader(self.path)
                except (OSError, UnicodeDecodeError) as e:
                    self._error = BuildIOError(self.path, "read", internal_details=str(e))
                    self._error.__cause__ = e
            if self._error is not None:
                raise self._error
            assert self._text is not None
            return self._text

    def __repr__(self) -> str:
        return f"SourceFile({self.relative_path!r})"


@dataclass(frozen=True)
class CompiledOutput:
    """Artifacts written by one CompileTask."""

    code_path: Path
    map_path: Path


def build_options(
    target_options: dict[str, Any],
    *,
    basename: str,
    relative_path: str,
    source_root: str,
) -> dict[str, Any]:
    """Merge the target's options with the per-file identity fields.

    Target options are passed through, but the identity fields (no AST,
    source maps on, map naming and roots) always take the computed value.
    """
    return {
        **target_options,
        "ast": False,
        "sourceMap": True,
        "sourceMapName": basename,
        "sourceFileName": relative_path,
        "sourceRoot": source_root,
    }


def render_code(code: str, basename: str) -> str:
    """Append the ``sourceMappingURL`` footer to generated code."""
    return f"{code}\n\n//# sourceMappingURL={basename}{SOURCE_MAP_SUFFIX}\n"


def strip_map(source_map: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``source_map`` without ``names`` and ``sourcesContent``."""
    return {k: v for k, v in source_map.items() if k not in STRIPPED_MAP_FIELDS}


@dataclass(frozen=True)
class CompileTask:
    """One (source file, build target) unit of work.

    Attributes:
        source: File to compile, shared with the other targets.
        target: Build target to compile into.
        transformer: Transform callable.
        barrier: Gate opened once target roots are wiped.
        directories: Shared directory creator.
    """

    source: SourceFile
    target: BuildTarget
    transformer: Transformer
    barrier: CleanupBarrier
    directories: DirectoryCreator

    @property
    def output_path(self) -> Path:
        return self.target.output_path(self.source.relative_path)

    @property
    def output_dir(self) -> Path:
        return self.output_path.parent

    @property
    def map_path(self) -> Path:
        return self.output_path.with_name(self.output_path.name + SOURCE_MAP_SUFFIX)

    def options(self) -> dict[str, Any]:
        """Options passed to the transform for this file and target."""
        return build_options(
            self.target.options,
            basename=self.source.basename,
            relative_path=self.source.relative_path,
            source_root=Path(os.path.relpath(self.source.root, self.output_dir)).as_posix(),
        )

    def run(self) -> CompiledOutput:
        """Transform the source and write both artifacts.

        Returns:
            Paths of the written code and map.

        Raises:
            TransformError: If the transform failed.
            BuildIOError: If reading, directory creation, cleanup or writing failed.
        """
        log = logger.bind(file=self.source.relative_path, target=str(self.target.root_dir))
        text = self.source.read()
        options = self.options()

        try:
            result = coerce_result(self.transformer(text, options))
            code = render_code(result.code, self.source.basename)
            source_map = json.dumps(strip_map(result.map), indent=2, ensure_ascii=False)
        except Exception as e:
            log.error(
                "transform_failed",
                source=str(self.source.path),
                output=str(self.output_path),
                options=options,
                error=str(e),
            )
            raise TransformError(
                source_path=self.source.path,
                output_path=self.output_path,
                options=options,
                reason=str(e) or type(e).__name__,
            ) from e

        self.barrier.ready()
        self.directories.ensure(self.output_dir).result()

        self._write(self.output_path, code)
        self._write(self.map_path, source_map)

        log.debug("task_completed", output=str(self.output_path))
        return CompiledOutput(code_path=self.output_path, map_path=self.map_path)

    @staticmethod
    def _write(path: Path, content: str) -> None:
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise BuildIOError(path, "write", internal_details=str(e)) from e
