"""multiform build command - Compile the source tree into every build target."""

from __future__ import annotations

import click

from multiform_cli.config import load_config
from multiform_cli.errors import EXIT_FAILURE, CLIError, describe_failure
from multiform_cli.output import error, success, warning


@click.command("build")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=False),
    default="./multiform.json",
    help="Path to multiform.json [default: ./multiform.json]",
)
@click.option(
    "-j",
    "--jobs",
    "jobs",
    type=click.IntRange(min=1),
    default=None,
    help="Number of worker threads [default: executor default]",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Log scheduler events to stderr.",
)
def build(config_path: str, jobs: int | None, verbose: bool) -> None:
    """Compile every source file into every build target.

    Wipes each target directory, then writes one compiled file and one
    source map per (source file, target) pair. Exits non-zero if any
    file fails, or if the build stops before finishing.

    Examples:

        multiform build

        multiform build --config multiform.yaml --jobs 4
    """
    # Import here to avoid heavy imports at CLI startup
    from multiform_core import BuildCoordinator, ConfigurationError, ExitGuard, RunState
    from multiform_core.observability import configure_logging

    configure_logging(log_level="DEBUG" if verbose else "WARNING")

    config = load_config(config_path)

    state = RunState()
    try:
        coordinator = BuildCoordinator(config, max_workers=jobs, state=state)
    except ConfigurationError as e:
        raise CLIError(e.user_message) from None

    with ExitGuard(state, report=error):
        result = coordinator.run()

        if result.succeeded:
            if result.files == 0:
                warning(f"No source files found in {config.source}")
            success(
                f"Built {result.files} file(s) into {len(config.targets)} target(s) "
                f"({result.tasks} task(s))"
            )
            return

        assert result.error is not None
        error(describe_failure(result.error))
        result.acknowledge()
        raise SystemExit(EXIT_FAILURE)
