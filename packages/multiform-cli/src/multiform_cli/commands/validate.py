"""multiform validate command - Check multiform.json without building."""

from __future__ import annotations

import click

from multiform_cli.config import load_config
from multiform_cli.output import info, success


@click.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=False),
    default="./multiform.json",
    help="Path to multiform.json [default: ./multiform.json]",
)
def validate(config_path: str) -> None:
    """Validate multiform.json configuration.

    Loads and normalizes the configuration, then prints the resolved
    source root and build targets. Nothing is deleted or written.

    Examples:

        multiform validate

        multiform validate --config build/multiform.yaml
    """
    config = load_config(config_path)

    success("Configuration valid")
    info(f"Source: {config.source}")
    for target in config.targets:
        info(f"Target: {target.root_dir}")
