"""Source file discovery.

Walks the source root lazily and yields paths relative to it, so the
coordinator can start compiling the first files while the walk continues.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from pathlib import Path, PurePath

import structlog

from multiform_core.errors import DiscoveryError

logger = structlog.get_logger(__name__)


def discover_sources(root: Path | str, extensions: Iterable[str]) -> Iterator[str]:
    """Yield source files under ``root`` whose suffix is in ``extensions``.

    Directories are visited in sorted order and hidden entries (leading
    ``.``) are skipped, so the order is stable across runs.

    Args:
        root: Source root directory.
        extensions: Suffixes to match, including the leading dot.

    Yields:
        POSIX-style paths relative to ``root`` (e.g. ``"lib/util.js"``).

    Raises:
        DiscoveryError: If the root is not a directory or the walk fails.

    Example:
        >>> list(discover_sources("src", [".js"]))
        ['a.js', 'lib/util.js']
    """
    root = Path(root)
    suffixes = frozenset(extensions)
    log = logger.bind(root=str(root))

    if not root.is_dir():
        raise DiscoveryError(f"Source directory not found: {root}", root=root)

    def _raise(err: OSError) -> None:
        raise err

    count = 0
    try:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            rel_dir = PurePath(dirpath).relative_to(root)
            for name in sorted(filenames):
                if name.startswith(".") or PurePath(name).suffix not in suffixes:
                    continue
                count += 1
                yield (rel_dir / name).as_posix()
    except OSError as e:
        raise DiscoveryError(
            f"Failed to scan {root}",
            root=root,
            internal_details=str(e),
        ) from e

    log.debug("discovery_completed", files=count)
