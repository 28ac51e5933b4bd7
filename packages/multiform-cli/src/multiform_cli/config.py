"""Configuration loading shared by the CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from multiform_cli.errors import (
    handle_file_not_found,
    handle_multiform_error,
    handle_validation_error,
)

if TYPE_CHECKING:
    from multiform_core.schemas import ResolvedConfig


def load_config(config_path: str) -> ResolvedConfig:
    """Load and normalize the configuration file.

    Relative paths inside the file are resolved against the directory
    that contains it.

    Args:
        config_path: Path to multiform.json (or a YAML file).

    Returns:
        Normalized configuration.

    Raises:
        CLIError: If the file is missing, unparsable or invalid.
    """
    # Import here to avoid heavy imports at CLI startup
    from multiform_core import ConfigurationError, MultiformConfig

    path = Path(config_path)
    if not path.is_file():
        handle_file_not_found(config_path)

    try:
        config = MultiformConfig.from_file(path)
    except PydanticValidationError as e:
        handle_validation_error(e, config_path)
    except ConfigurationError as e:
        handle_multiform_error(e)

    return config.resolve(path.resolve().parent)
