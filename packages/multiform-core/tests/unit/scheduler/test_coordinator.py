"""Unit tests for BuildCoordinator.

These run real builds against a temporary project with the identity
transform or a small in-test transformer.
"""

from __future__ import annotations

import threading
import time
from collections import Counter
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from multiform_core.errors import BuildIOError, DiscoveryError, TransformError
from multiform_core.scheduler import (
    BuildCoordinator,
    CleanupBarrier,
    CompileTask,
    RunState,
    RunStatus,
    run_build,
)
from multiform_core.transform import identity_transform

EXPECTED_MAP = """{
  "version": 3,
  "sources": [
    "a.js"
  ],
  "mappings": "AAAA",
  "file": "a.js",
  "sourceRoot": "../src"
}"""


def _failing_when_flagged(text: str, options: dict[str, Any]) -> dict[str, Any]:
    if options.get("fail"):
        raise ValueError(f"rejected {options['sourceFileName']}")
    return identity_transform(text, options).model_dump()


def _wait_until(predicate: Any, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached")
        time.sleep(0.005)


class TestSuccessfulBuild:
    """Tests for runs where every task succeeds."""

    def test_single_file_output(self, write_sources: Any, make_config: Any) -> None:
        write_sources({"a.js": "const x = 1;\n"})
        config = make_config([{"dir": "dist"}])

        result = BuildCoordinator(config).run()

        assert result.succeeded
        assert result.state.finished
        dist = config.targets[0].root_dir
        assert (dist / "a.js").read_text() == "const x = 1;\n\n//# sourceMappingURL=a.js.map\n"
        assert (dist / "a.js.map").read_text() == EXPECTED_MAP

    def test_one_task_per_file_and_target(
        self, write_sources: Any, make_config: Any, project_dir: Path
    ) -> None:
        write_sources({"a.js": "a", "lib/b.js": "b", "lib/deep/c.jsx": "c", "notes.txt": "n"})
        config = make_config([{"dir": "es5"}, {"dir": "es2015"}])

        result = BuildCoordinator(config, max_workers=4).run()

        assert result.succeeded
        assert result.files == 3
        assert result.tasks == 6
        assert len(result.outputs) == 6
        for target in ("es5", "es2015"):
            for relative in ("a.js", "lib/b.js", "lib/deep/c.jsx"):
                assert (project_dir / target / relative).is_file()
                assert (project_dir / target / f"{relative}.map").is_file()
            assert not (project_dir / target / "notes.txt").exists()

    def test_zero_files_still_wipes_targets(
        self, make_config: Any, project_dir: Path
    ) -> None:
        (project_dir / "dist" / "old").mkdir(parents=True)
        (project_dir / "dist" / "old" / "stale.js").write_text("stale")
        config = make_config([{"dir": "dist"}])

        result = BuildCoordinator(config).run()

        assert result.status == RunStatus.SUCCEEDED
        assert result.state.finished
        assert result.tasks == 0
        assert not (project_dir / "dist").exists()

    def test_rebuild_is_byte_identical(
        self, write_sources: Any, make_config: Any, project_dir: Path
    ) -> None:
        write_sources({"a.js": "a();\nb();\n", "lib/b.js": "c();\n"})
        config = make_config([{"dir": "one"}, {"dir": "two", "options": {"loose": True}}])

        def snapshot() -> dict[str, bytes]:
            return {
                str(p.relative_to(project_dir)): p.read_bytes()
                for p in sorted(project_dir.rglob("*"))
                if p.is_file() and p.relative_to(project_dir).parts[0] != "src"
            }

        assert BuildCoordinator(config).run().succeeded
        first = snapshot()
        (project_dir / "one" / "stale.js").write_text("left over")
        assert BuildCoordinator(config).run().succeeded

        assert snapshot() == first

    def test_each_source_read_once(
        self,
        write_sources: Any,
        make_config: Any,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        source_root = write_sources({"a.js": "a", "b.js": "b"})
        config = make_config([{"dir": "t1"}, {"dir": "t2"}, {"dir": "t3"}])
        reads: Counter[Path] = Counter()
        lock = threading.Lock()
        original = Path.read_text

        def counting_read_text(self: Path, *args: Any, **kwargs: Any) -> str:
            with lock:
                reads[self] += 1
            return original(self, *args, **kwargs)

        monkeypatch.setattr(Path, "read_text", counting_read_text)

        assert BuildCoordinator(config).run().succeeded

        assert reads == Counter({source_root / "a.js": 1, source_root / "b.js": 1})

    def test_no_write_before_targets_wiped(
        self,
        write_sources: Any,
        make_config: Any,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        write_sources({"a.js": "a", "b.js": "b", "c.js": "c"})
        config = make_config([{"dir": "t1"}, {"dir": "t2"}])
        events: list[str] = []
        lock = threading.Lock()

        def slow_remove(path: Path) -> None:
            time.sleep(0.05)
            with lock:
                events.append(f"delete {path.name}")

        def recording_write(path: Path, content: str) -> None:
            with lock:
                events.append("write")
            path.write_text(content, encoding="utf-8")

        monkeypatch.setattr(CompileTask, "_write", staticmethod(recording_write))
        barrier = CleanupBarrier(config.target_dirs, remove=slow_remove)

        assert BuildCoordinator(config, barrier=barrier).run().succeeded

        assert events[:2] == ["delete t1", "delete t2"]
        assert events[2:] == ["write"] * 12

    def test_run_build_helper(self, write_sources: Any, make_config: Any) -> None:
        write_sources({"a.js": "a"})
        result = run_build(make_config([{"dir": "dist"}]), max_workers=2)
        assert result.succeeded


class TestFailedBuild:
    """Tests for runs with at least one failure."""

    def test_failing_target_does_not_stop_siblings(
        self, write_sources: Any, make_config: Any, project_dir: Path
    ) -> None:
        write_sources({"a.js": "a", "b.js": "b"})
        config = make_config([{"dir": "t1", "options": {"fail": True}}, {"dir": "t2"}])

        result = BuildCoordinator(config, _failing_when_flagged).run()

        assert result.status == RunStatus.FAILED
        assert isinstance(result.error, TransformError)
        assert result.error.output_path.parent == project_dir / "t1"
        assert (project_dir / "t2" / "a.js").is_file()
        assert (project_dir / "t2" / "b.js.map").is_file()
        assert not (project_dir / "t1" / "a.js").exists()
        assert len(result.outputs) == 2

    def test_failed_run_needs_acknowledgement(
        self, write_sources: Any, make_config: Any
    ) -> None:
        write_sources({"a.js": "a"})
        config = make_config([{"dir": "t1", "options": {"fail": True}}])

        result = BuildCoordinator(config, _failing_when_flagged).run()

        assert not result.state.finished
        result.acknowledge()
        assert result.state.finished

    def test_cleanup_failure_fails_every_task(
        self, write_sources: Any, make_config: Any, project_dir: Path
    ) -> None:
        write_sources({"a.js": "a", "b.js": "b"})
        config = make_config([{"dir": "t1"}, {"dir": "t2"}])

        def remove(path: Path) -> None:
            raise PermissionError(13, "Permission denied", str(path))

        barrier = CleanupBarrier(config.target_dirs, remove=remove)
        result = BuildCoordinator(config, barrier=barrier).run()

        assert result.status == RunStatus.FAILED
        assert isinstance(result.error, BuildIOError)
        assert result.error.operation == "delete"
        assert result.outputs == ()
        assert not (project_dir / "t1").exists()
        assert not (project_dir / "t2").exists()

    def test_cleanup_failure_with_no_files(self, make_config: Any) -> None:
        config = make_config([{"dir": "dist"}])

        def remove(path: Path) -> None:
            raise PermissionError(13, "Permission denied", str(path))

        barrier = CleanupBarrier(config.target_dirs, remove=remove)
        result = BuildCoordinator(config, barrier=barrier).run()

        assert result.status == RunStatus.FAILED
        assert not result.state.finished

    def test_discovery_error_lets_in_flight_tasks_finish(
        self, write_sources: Any, make_config: Any, project_dir: Path
    ) -> None:
        write_sources({"a.js": "a"})
        config = make_config([{"dir": "dist"}])

        def files() -> Iterator[str]:
            yield "a.js"
            raise OSError("directory vanished")

        result = BuildCoordinator(config).run(files())

        assert result.status == RunStatus.FAILED
        assert isinstance(result.error, DiscoveryError)
        assert isinstance(result.error.__cause__, OSError)
        assert (project_dir / "dist" / "a.js").is_file()
        assert result.tasks == 1

    def test_missing_source_directory(self, make_config: Any) -> None:
        config = make_config([{"dir": "dist"}], source="does-not-exist")

        result = BuildCoordinator(config).run()

        assert result.status == RunStatus.FAILED
        assert isinstance(result.error, DiscoveryError)

    def test_first_failure_is_reported(self, write_sources: Any, make_config: Any) -> None:
        write_sources({"a.js": "a"})
        config = make_config([{"dir": "t1", "options": {"fail": True}}])

        def files() -> Iterator[str]:
            yield "a.js"
            _wait_until(lambda: state.pending_tasks == 0)
            raise OSError("late discovery failure")

        state = RunState()
        result = BuildCoordinator(config, _failing_when_flagged, state=state).run(files())

        assert isinstance(result.error, TransformError)


class TestLifecycle:
    """Tests for when a run may be declared done."""

    def test_no_success_while_discovery_is_open(
        self, write_sources: Any, make_config: Any
    ) -> None:
        write_sources({"a.js": "a", "b.js": "b"})
        config = make_config([{"dir": "dist"}])
        state = RunState()
        observed: list[tuple[RunStatus, bool]] = []

        def files() -> Iterator[str]:
            yield "a.js"
            _wait_until(lambda: state.pending_tasks == 0)
            observed.append((state.status, state.finished))
            yield "b.js"

        result = BuildCoordinator(config, state=state).run(files())

        assert observed == [(RunStatus.DISCOVERING, False)]
        assert result.succeeded
        assert result.tasks == 2

    def test_run_only_once(self, make_config: Any) -> None:
        coordinator = BuildCoordinator(make_config([{"dir": "dist"}]))
        coordinator.run()

        with pytest.raises(RuntimeError, match="only be called once"):
            coordinator.run()

    def test_transformer_loaded_from_config(self, make_config: Any) -> None:
        config = make_config(
            [{"dir": "dist"}],
            transformer="multiform_core.transform:identity_transform",
        )
        assert BuildCoordinator(config).transformer is identity_transform
