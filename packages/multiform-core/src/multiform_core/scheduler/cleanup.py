"""One-shot wipe of the target root directories.

Every run starts by deleting the output directories of all build targets.
No artifact may be written into a target tree until that deletion has
finished, otherwise a late ``rmtree`` could remove freshly written output.
CleanupBarrier runs the deletion once, in the background, and lets every
build task block on its completion.
"""

from __future__ import annotations

import shutil
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from pathlib import Path

import structlog

from multiform_core.errors import BuildIOError

logger = structlog.get_logger(__name__)


def remove_tree(path: Path) -> None:
    """Recursively delete ``path``; a missing directory counts as deleted."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass


class CleanupBarrier:
    """Gate that opens once all target roots are deleted.

    The deletion set is fixed at construction. Deletion is best-effort:
    every directory is attempted and the first failure is the one reported
    to waiters.

    Attributes:
        directories: Directories deleted by this barrier, in order.

    Example:
        >>> barrier = CleanupBarrier([Path("/repo/dist-0"), Path("/repo/dist-1")])
        >>> barrier.start()
        >>> barrier.ready()  # blocks until both are gone
    """

    def __init__(
        self,
        directories: Iterable[Path | str],
        *,
        remove: Callable[[Path], None] = remove_tree,
    ) -> None:
        """Initialize the barrier without starting deletion.

        Args:
            directories: Target root directories to delete.
            remove: Recursive delete function.
        """
        self.directories: tuple[Path, ...] = tuple(dict.fromkeys(Path(d) for d in directories))
        self._remove = remove
        self._future: Future[None] = Future()
        self._lock = threading.Lock()
        self._started = False
        self._log = logger.bind(component="cleanup_barrier")

    def start(self) -> CleanupBarrier:
        """Start deleting on a background thread. Later calls are no-ops."""
        with self._lock:
            if self._started:
                return self
            self._started = True
            self._future.set_running_or_notify_cancel()

        thread = threading.Thread(target=self._run, name="multiform-cleanup", daemon=True)
        thread.start()
        return self

    def _run(self) -> None:
        first_error: BaseException | None = None

        for directory in self.directories:
            try:
                self._remove(directory)
            except Exception as e:
                self._log.warning("cleanup_failed", directory=str(directory), error=str(e))
                if first_error is None:
                    if isinstance(e, BuildIOError):
                        first_error = e
                    else:
                        first_error = BuildIOError(directory, "delete", internal_details=str(e))
                        first_error.__cause__ = e
            else:
                self._log.debug("directory_cleaned", directory=str(directory))

        if first_error is not None:
            self._future.set_exception(first_error)
        else:
            self._log.info("cleanup_completed", directories=len(self.directories))
            self._future.set_result(None)

    def ready(self, timeout: float | None = None) -> None:
        """Block until the deletion has finished.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely.

        Raises:
            BuildIOError: If any directory could not be deleted.
            RuntimeError: If the barrier was never started.
            TimeoutError: If ``timeout`` elapsed first.
        """
        if not self._started:
            raise RuntimeError("CleanupBarrier.ready() called before start()")
        self._future.result(timeout=timeout)

    def done(self) -> bool:
        """Return True once deletion has finished, successfully or not."""
        return self._future.done()

    def exception(self, timeout: float | None = None) -> BaseException | None:
        """Block until finished and return the deletion error, if any."""
        return self._future.exception(timeout=timeout)

    def add_done_callback(self, fn: Callable[[Future[None]], object]) -> None:
        """Call ``fn`` with the underlying Future once deletion has finished."""
        self._future.add_done_callback(fn)
