"""Memoized, race-free directory creation.

DirectoryCreator is a "mkdir -p" that many build tasks can call at once for
overlapping or nested paths. Each absolute path gets exactly one Future,
created by whichever caller asks first; everybody else waits on that same
Future. A directory's Future never resolves before its parent's.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Callable
from concurrent.futures import Future
from pathlib import Path

import structlog

from multiform_core.errors import BuildIOError

logger = structlog.get_logger(__name__)


class DirectoryCreator:
    """Ensure directories (and all their ancestors) exist, once per path.

    Failures poison the entry: the first error is kept and every current and
    later waiter for that path, or for any path below it, observes it. No
    retry is ever issued.

    Attributes:
        root: Namespace root, pre-seeded as existing.

    Example:
        >>> creator = DirectoryCreator(Path.cwd())
        >>> creator.ensure(Path.cwd() / "dist" / "lib").result()
    """

    def __init__(
        self,
        root: Path | str | None = None,
        *,
        mkdir: Callable[[Path], None] = os.mkdir,
    ) -> None:
        """Initialize the creator.

        Args:
            root: Directory known to exist. Defaults to the current directory.
            mkdir: Single-level directory creation function.
        """
        self.root = Path(os.path.abspath(root if root is not None else os.getcwd()))
        self._mkdir = mkdir
        self._lock = threading.Lock()
        self._entries: dict[Path, Future[None]] = {self.root: _resolved()}
        self._log = logger.bind(component="directory_creator")

    def ensure(self, directory: Path | str) -> Future[None]:
        """Return the Future for ``directory``, creating it on first request.

        The first caller for a path performs the creation on its own thread
        (ensuring the parent first) and gets back a settled Future; concurrent
        callers get the same Future while it is in progress.

        Args:
            directory: Directory to create.

        Returns:
            Future resolving to None once the directory exists, or failing
            with BuildIOError.
        """
        directory = Path(os.path.abspath(directory))

        with self._lock:
            entry = self._entries.get(directory)
            if entry is not None:
                return entry
            entry = Future()
            entry.set_running_or_notify_cancel()
            self._entries[directory] = entry

        self._create(directory, entry)
        return entry

    def _create(self, directory: Path, entry: Future[None]) -> None:
        parent = directory.parent
        try:
            if parent != directory:
                self.ensure(parent).result()
            try:
                self._mkdir(directory)
            except FileExistsError:
                pass
            except OSError as e:
                raise BuildIOError(directory, "create directory", internal_details=str(e)) from e
        except Exception as e:
            self._log.debug("directory_failed", directory=str(directory), error=str(e))
            entry.set_exception(e)
        else:
            self._log.debug("directory_ready", directory=str(directory))
            entry.set_result(None)

    def __contains__(self, directory: object) -> bool:
        if not isinstance(directory, (str, Path)):
            return False
        with self._lock:
            return Path(os.path.abspath(directory)) in self._entries


def _resolved() -> Future[None]:
    future: Future[None] = Future()
    future.set_result(None)
    return future
