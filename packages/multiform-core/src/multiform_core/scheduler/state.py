"""Run-wide state shared by the coordinator and its tasks.

RunState is constructed at the start of a run and passed explicitly to
whoever needs it. All counters and the error cell are guarded by a single
condition variable, which is also the join point the coordinator waits on.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum


class RunStatus(str, Enum):
    """Lifecycle of a build run.

    Attributes:
        DISCOVERING: Discovery stream still producing files.
        DRAINING: Discovery ended, tasks still pending.
        SUCCEEDED: Discovery ended, no pending tasks, no error.
        FAILED: A task, the discovery stream or the cleanup failed.
    """

    DISCOVERING = "discovering"
    DRAINING = "draining"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class RunState:
    """Mutable state of one build run.

    Attributes:
        discovery_done: The discovery stream has ended (normally or not).
        pending_tasks: Spawned tasks that have not settled yet.
        spawned_tasks: Total tasks spawned during the run.
        first_error: First recorded failure; later failures are dropped.
        finished: The run reached an acknowledged final state.
    """

    discovery_done: bool = False
    pending_tasks: int = 0
    spawned_tasks: int = 0
    first_error: BaseException | None = None
    finished: bool = False
    _cond: threading.Condition = field(
        default_factory=threading.Condition, repr=False, compare=False
    )

    @property
    def status(self) -> RunStatus:
        """Current lifecycle status derived from the counters."""
        with self._cond:
            if self.first_error is not None:
                return RunStatus.FAILED
            if not self.discovery_done:
                return RunStatus.DISCOVERING
            if self.pending_tasks > 0:
                return RunStatus.DRAINING
            return RunStatus.SUCCEEDED

    @property
    def settled(self) -> bool:
        """True once discovery has ended and every spawned task has settled."""
        with self._cond:
            return self.discovery_done and self.pending_tasks == 0

    def task_spawned(self, count: int = 1) -> None:
        with self._cond:
            self.pending_tasks += count
            self.spawned_tasks += count

    def task_settled(self, error: BaseException | None = None) -> None:
        with self._cond:
            if error is not None and self.first_error is None:
                self.first_error = error
            self.pending_tasks -= 1
            self._cond.notify_all()

    def record_error(self, error: BaseException) -> bool:
        """Store ``error`` unless an earlier one is already recorded.

        Returns:
            True if ``error`` became the run's first error.
        """
        with self._cond:
            if self.first_error is not None:
                return False
            self.first_error = error
            self._cond.notify_all()
            return True

    def end_discovery(self, error: BaseException | None = None) -> None:
        """Mark the discovery stream as ended, optionally with its failure."""
        with self._cond:
            if error is not None and self.first_error is None:
                self.first_error = error
            self.discovery_done = True
            self._cond.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until discovery ended and all spawned tasks settled.

        Returns:
            False if ``timeout`` elapsed first.
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: self.discovery_done and self.pending_tasks == 0,
                timeout=timeout,
            )

    def acknowledge(self) -> None:
        """Mark the run as finished.

        A successful run is acknowledged by the coordinator itself; a failed
        run only once the caller has reported the failure.

        Raises:
            RuntimeError: If tasks are still pending or discovery is running.
        """
        with self._cond:
            if not (self.discovery_done and self.pending_tasks == 0):
                raise RuntimeError("Cannot finish a run that has not settled")
            self.finished = True
