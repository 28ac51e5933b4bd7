"""Exit guard around a build run.

A build must end in an explicitly finished state. Anything else leaving the
guarded block (an exception escaping glue code, an early ``sys.exit(0)``, a
run that never settled) is treated as a failure, even if no task reported
one. Only the ``with`` block is covered; code running before or after it,
or interpreter shutdown itself, is not watched.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from types import TracebackType
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from multiform_core.scheduler.state import RunState

logger = structlog.get_logger(__name__)

EXIT_FAILURE = 1
FAILURE_MESSAGE = "Build failed."


def _print_stderr(message: str) -> None:
    print(message, file=sys.stderr)


class ExitGuard:
    """Force a non-zero exit unless the run finished by the end of the block.

    The check runs once, when the ``with`` block exits. Callers wrap
    everything between starting the run and reporting its outcome.

    Attributes:
        state: Run state checked on exit.

    Example:
        >>> state = RunState()
        >>> with ExitGuard(state):
        ...     result = coordinator.run()
        ...     if not result.succeeded:
        ...         report(result.error)
        ...         result.acknowledge()
        ...         raise SystemExit(1)
    """

    def __init__(
        self,
        state: RunState,
        *,
        report: Callable[[str], None] = _print_stderr,
    ) -> None:
        """Initialize the guard.

        Args:
            state: Run state whose ``finished`` flag decides the outcome.
            report: Called with the generic failure line.
        """
        self.state = state
        self._report = report

    def __enter__(self) -> ExitGuard:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.state.finished:
            return

        logger.error(
            "build_not_finished",
            exception_type=exc_type.__name__ if exc_type else None,
            pending_tasks=self.state.pending_tasks,
        )
        self._report(FAILURE_MESSAGE)
        raise SystemExit(EXIT_FAILURE) from exc
