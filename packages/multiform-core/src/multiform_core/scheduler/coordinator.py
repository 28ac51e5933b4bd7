"""Build coordinator.

Consumes the discovery stream, fans every discovered file out to one
CompileTask per build target and waits for the whole open-ended set of
tasks to settle. The run succeeds only when discovery has ended, every
spawned task has settled and nothing failed; the first failure wins.

Failures never cancel in-flight work. A task that fails early does not
stop its siblings from writing their artifacts; it only decides the final
status of the run.
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from multiform_core.discovery import discover_sources
from multiform_core.errors import DiscoveryError
from multiform_core.scheduler.cleanup import CleanupBarrier
from multiform_core.scheduler.directories import DirectoryCreator
from multiform_core.scheduler.state import RunState, RunStatus
from multiform_core.scheduler.task import CompiledOutput, CompileTask, SourceFile
from multiform_core.schemas import ResolvedConfig
from multiform_core.transform import Transformer, load_transformer

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BuildResult:
    """Outcome of one coordinator run.

    Attributes:
        state: Final run state.
        files: Number of discovered source files.
        outputs: Artifacts written by successful tasks.
        duration_ms: Wall time of the run in milliseconds.
    """

    state: RunState
    files: int
    outputs: tuple[CompiledOutput, ...] = field(default=())
    duration_ms: int = 0

    @property
    def status(self) -> RunStatus:
        return self.state.status

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCEEDED

    @property
    def error(self) -> BaseException | None:
        return self.state.first_error

    @property
    def tasks(self) -> int:
        return self.state.spawned_tasks

    def acknowledge(self) -> None:
        """Mark a reported failure as handled so the run counts as finished."""
        self.state.acknowledge()


class BuildCoordinator:
    """Schedule CompileTasks for every (file, target) pair.

    Attributes:
        config: Normalized configuration.
        transformer: Transform callable.
        state: State of the current (or last) run.

    Example:
        >>> config = MultiformConfig.from_file("multiform.json").resolve(Path.cwd())
        >>> result = BuildCoordinator(config).run()
        >>> result.succeeded
        True
    """

    def __init__(
        self,
        config: ResolvedConfig,
        transformer: Transformer | None = None,
        *,
        max_workers: int | None = None,
        directories: DirectoryCreator | None = None,
        barrier: CleanupBarrier | None = None,
        state: RunState | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            config: Normalized configuration.
            transformer: Transform callable. Loaded from ``config.transformer``
                when not given.
            max_workers: Worker threads for CompileTasks (executor default if None).
            directories: Directory creator shared by the tasks.
            barrier: Cleanup barrier over the target roots.
            state: Run state to update. A fresh one is created if None.
        """
        self.config = config
        self.transformer = transformer or load_transformer(config.transformer)
        self.max_workers = max_workers
        self.directories = directories or DirectoryCreator(os.getcwd())
        self.barrier = barrier or CleanupBarrier(config.target_dirs)
        self.state = state if state is not None else RunState()
        self._outputs: list[CompiledOutput] = []
        self._outputs_lock = threading.Lock()
        self._started = False
        self._log = logger.bind(component="build_coordinator")

    def run(self, files: Iterable[str] | None = None) -> BuildResult:
        """Run one build.

        Args:
            files: Relative source paths. Defaults to discovering
                ``config.source`` lazily.

        Returns:
            BuildResult. A successful run is already finished; a failed one
            must be acknowledged by the caller once reported.

        Raises:
            RuntimeError: If this coordinator already ran.
        """
        with self._outputs_lock:
            if self._started:
                raise RuntimeError("BuildCoordinator.run() may only be called once")
            self._started = True

        start_time = time.monotonic()
        state = self.state
        if files is None:
            files = discover_sources(self.config.source, self.config.extensions)

        self._log.info(
            "build_started",
            source=str(self.config.source),
            targets=len(self.config.targets),
        )

        self.barrier.start()

        file_count = 0
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="multiform"
        ) as executor:
            try:
                for relative_path in files:
                    file_count += 1
                    self._spawn(executor, SourceFile(self.config.source, relative_path))
            except Exception as e:
                if isinstance(e, DiscoveryError):
                    error = e
                else:
                    error = _discovery_error(self.config.source, e)
                self._log.error("discovery_failed", error=str(e))
                state.end_discovery(error)
            else:
                self._log.debug("discovery_ended", files=file_count)
                state.end_discovery()

            state.wait()

        cleanup_error = self.barrier.exception()
        if cleanup_error is not None:
            state.record_error(cleanup_error)

        duration_ms = int((time.monotonic() - start_time) * 1000)
        status = state.status
        if status == RunStatus.SUCCEEDED:
            state.acknowledge()

        self._log.info(
            "build_completed",
            status=status.value,
            files=file_count,
            tasks=state.spawned_tasks,
            duration_ms=duration_ms,
        )

        with self._outputs_lock:
            outputs = tuple(sorted(self._outputs, key=lambda o: o.code_path))
        return BuildResult(state=state, files=file_count, outputs=outputs, duration_ms=duration_ms)

    def _spawn(self, executor: ThreadPoolExecutor, source: SourceFile) -> None:
        """Submit one CompileTask per target for ``source``."""
        targets = self.config.targets
        self.state.task_spawned(len(targets))
        for target in targets:
            task = CompileTask(
                source=source,
                target=target,
                transformer=self.transformer,
                barrier=self.barrier,
                directories=self.directories,
            )
            future = executor.submit(task.run)
            future.add_done_callback(self._on_task_done)

    def _on_task_done(self, future: Future[CompiledOutput]) -> None:
        error = future.exception()
        if error is None:
            with self._outputs_lock:
                self._outputs.append(future.result())
        elif self.state.first_error is None:
            self._log.warning("first_failure_recorded", error=str(error))
        self.state.task_settled(error)


def _discovery_error(root: Path, error: Exception) -> DiscoveryError:
    wrapped = DiscoveryError(f"Failed to scan {root}", root=root, internal_details=str(error))
    wrapped.__cause__ = error
    return wrapped


def run_build(config: ResolvedConfig, *, max_workers: int | None = None) -> BuildResult:
    """Run a build with the configured transformer.

    Convenience function that creates a coordinator and runs it.

    Args:
        config: Normalized configuration.
        max_workers: Worker threads for CompileTasks.

    Returns:
        BuildResult of the run.
    """
    return BuildCoordinator(config, max_workers=max_workers).run()
