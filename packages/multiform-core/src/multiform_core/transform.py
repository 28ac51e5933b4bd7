"""Transform capability.

A transform turns source text plus options into output code and a source
map. multiform treats it as an opaque callable::

    transform(text: str, options: dict) -> TransformResult | Mapping

The configured transform is loaded from an import path, the same way the
CLI resolves its lazy subcommands. The built-in ``identity_transform``
copies the source through unchanged with a line-for-line source map.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from multiform_core.errors import ConfigurationError

SOURCE_MAP_VERSION = 3


class TransformResult(BaseModel):
    """Output of a transform.

    Attributes:
        code: Generated code.
        map: Source map (version 3 JSON object).
    """

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Generated code")
    map: dict[str, Any] = Field(default_factory=dict, description="Source map")


Transformer = Callable[[str, dict[str, Any]], TransformResult | Mapping[str, Any]]


def identity_transform(text: str, options: dict[str, Any]) -> TransformResult:
    """Copy the source through unchanged.

    Every generated line maps to column 0 of the same source line. Trailing
    newlines are dropped from the code, since the build appends its own
    ``sourceMappingURL`` footer.

    Args:
        text: Source text.
        options: Transform options. ``sourceMapName``, ``sourceFileName``
            and ``sourceRoot`` are copied into the map.

    Returns:
        TransformResult with the unchanged code and its map.
    """
    code = text.rstrip("\r\n")
    line_count = len(code.splitlines()) if code else 0

    # "AAAA" = col 0, source 0, line 0, col 0; "AACA" advances one source line
    mappings = ";".join(["AAAA"] + ["AACA"] * (line_count - 1)) if line_count else ""

    source_map: dict[str, Any] = {
        "version": SOURCE_MAP_VERSION,
        "sources": [options.get("sourceFileName", "unknown")],
        "names": [],
        "mappings": mappings,
        "file": options.get("sourceMapName", ""),
        "sourcesContent": [text],
    }
    if options.get("sourceRoot") is not None:
        source_map["sourceRoot"] = options["sourceRoot"]

    return TransformResult(code=code, map=source_map)


def coerce_result(result: TransformResult | Mapping[str, Any]) -> TransformResult:
    """Accept either a TransformResult or a plain ``{"code", "map"}`` mapping."""
    if isinstance(result, TransformResult):
        return result
    return TransformResult.model_validate(dict(result))


def load_transformer(import_path: str) -> Transformer:
    """Import a transform callable.

    Args:
        import_path: ``"package.module:attr"`` or ``"package.module.attr"``.

    Returns:
        The transform callable.

    Raises:
        ConfigurationError: If the module or attribute cannot be loaded,
            or the attribute is not callable.

    Example:
        >>> load_transformer("multiform_core.transform:identity_transform")
        <function identity_transform at ...>
    """
    if ":" in import_path:
        module_name, _, attr_name = import_path.partition(":")
    else:
        module_name, _, attr_name = import_path.rpartition(".")

    if not module_name or not attr_name:
        raise ConfigurationError(
            f"Invalid transformer path '{import_path}'",
            field_path="transformer",
        )

    try:
        module = importlib.import_module(module_name)
        transformer = getattr(module, attr_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(
            f"Cannot load transformer '{import_path}'",
            field_path="transformer",
            internal_details=str(e),
        ) from e

    if not callable(transformer):
        raise ConfigurationError(
            f"Transformer '{import_path}' is not callable",
            field_path="transformer",
        )

    return transformer  # type: ignore[no-any-return]
