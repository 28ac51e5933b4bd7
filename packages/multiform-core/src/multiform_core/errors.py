"""Custom exception hierarchy for multiform-core.

This module defines the exception classes raised by a build run:
- MultiformError: Base exception for all multiform errors
- ConfigurationError: Configuration is missing or malformed (fatal before scheduling)
- DiscoveryError: The source discovery stream failed (fatal for the run)
- TransformError: The transform rejected one (file, target) pair (fails that task only)
- BuildIOError: Directory creation, file read/write or delete failed

User-facing messages are safe to display. Technical details are logged
internally via structlog and never folded into the message.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class MultiformError(Exception):
    """Base exception for multiform.

    Args:
        user_message: Safe message to display to the user.
        internal_details: Optional technical details for logging. This is
            logged internally but not part of the message.

    Example:
        >>> raise MultiformError(
        ...     "Build failed",
        ...     internal_details="worker pool shut down while tasks were pending",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        """Initialize MultiformError with user message and optional internal details.

        Args:
            user_message: Safe message to display to the user.
            internal_details: Technical details for internal logging only.
        """
        super().__init__(user_message)
        self.user_message = user_message

        if internal_details:
            logger.error(
                "multiform_error",
                error_type=self.__class__.__name__,
                user_message=user_message,
                internal_details=internal_details,
            )


class ConfigurationError(MultiformError):
    """Raised when the build configuration cannot be loaded or normalized.

    Use this exception when:
    - multiform.json / multiform.yaml cannot be parsed
    - The configured transformer cannot be imported
    - Required fields are missing

    Attributes:
        file_path: Path to the configuration file (if known).
        field_path: Dot-separated path to the invalid field (e.g., "builds.0.dir").

    Example:
        >>> raise ConfigurationError(
        ...     "Invalid JSON",
        ...     file_path="multiform.json",
        ...     internal_details="Expecting ',' delimiter: line 3 column 5",
        ... )
    """

    def __init__(
        self,
        user_message: str,
        *,
        file_path: str | None = None,
        field_path: str | None = None,
        internal_details: str | None = None,
    ) -> None:
        """Initialize ConfigurationError with context.

        Args:
            user_message: Safe message to display to the user.
            file_path: Path to the configuration file (optional).
            field_path: Dot-separated path to the field (optional).
            internal_details: Technical details for internal logging only.
        """
        context_parts: list[str] = []
        if file_path:
            context_parts.append(f"in {file_path}")
        if field_path:
            context_parts.append(f"field '{field_path}'")

        if context_parts:
            full_message = f"{user_message} ({', '.join(context_parts)})"
        else:
            full_message = user_message

        super().__init__(full_message, internal_details=internal_details)

        self.file_path = file_path
        self.field_path = field_path


class DiscoveryError(MultiformError):
    """Raised when the source discovery stream fails.

    Attributes:
        root: Source root that was being walked.
    """

    def __init__(
        self,
        user_message: str,
        *,
        root: Path | str | None = None,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(user_message, internal_details=internal_details)
        self.root = root


class TransformError(MultiformError):
    """Raised when the transform fails for a single (file, target) pair.

    The failure is reported with enough context to reproduce it: the source
    file, the output it was meant to produce and the options passed to the
    transform. It fails the owning task only.

    Attributes:
        source_path: Absolute path of the source file.
        output_path: Absolute path of the artifact that was not written.
        options: Options the transform was invoked with.

    Example:
        >>> raise TransformError(
        ...     source_path=Path("/repo/src/b.js"),
        ...     output_path=Path("/repo/dist-0/b.js"),
        ...     options={"ast": False},
        ...     reason="Unexpected token (1:4)",
        ... )
    """

    def __init__(
        self,
        *,
        source_path: Path,
        output_path: Path,
        options: dict[str, Any],
        reason: str,
    ) -> None:
        super().__init__(f"Failed to compile {source_path} to {output_path}: {reason}")
        self.source_path = source_path
        self.output_path = output_path
        self.options = options
        self.reason = reason


class BuildIOError(MultiformError):
    """Raised when a filesystem operation of the build fails.

    Attributes:
        path: Path the failed operation targeted.
        operation: Operation that failed (read, write, mkdir, delete).
    """

    def __init__(
        self,
        path: Path | str,
        operation: str,
        *,
        internal_details: str | None = None,
    ) -> None:
        super().__init__(f"Cannot {operation} {path}", internal_details=internal_details)
        self.path = path
        self.operation = operation
