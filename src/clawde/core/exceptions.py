"""Custom exception hierarchy for clawde.

All custom exceptions inherit from ClawdeError to enable:
- Unified exception handling at the CLI boundary
- Clear distinction from built-in exceptions
- Consistent error messaging patterns

Unsupported input (unknown extension, empty file) and exceeded resource
limits are deliberately NOT represented here: those paths log and return
empty results instead of raising.
"""

from pathlib import Path
from typing import Any

__all__ = [
    "ClawdeError",
    "ConfigError",
    "ConfigValidationError",
    "ExtractionError",
    "SearchError",
    "MarkerInvariantError",
    "SessionError",
]


class ClawdeError(Exception):
    """Base exception for all clawde errors.

    All custom exceptions in clawde should inherit from this class
    to enable unified exception handling and clear error boundaries.
    """

    pass


class ConfigError(ClawdeError):
    """Configuration loading or validation error.

    Raised when:
    - Configuration file cannot be read
    - Configuration file is not valid YAML or its root is not a mapping
    """

    pass


class ConfigValidationError(ConfigError):
    """Validation error with structured Pydantic details.

    Attributes:
        errors: List of error dicts with 'loc', 'msg', and 'type' fields.
            - loc: Tuple of field path components (e.g., ('log_level',))
            - msg: Human-readable error message
            - type: Pydantic error type code (e.g., 'bool_parsing')

    Example:
        >>> try:
        ...     load_config()
        ... except ConfigValidationError as e:
        ...     for err in e.errors:
        ...         path = ".".join(str(x) for x in err["loc"])
        ...         print(f"{path}: {err['msg']}")

    """

    def __init__(self, message: str, errors: list[dict[str, Any]]) -> None:
        """Initialize ConfigValidationError with message and structured errors.

        Args:
            message: Human-readable error message.
            errors: List of error dicts from Pydantic ValidationError.

        """
        super().__init__(message)
        self.errors = errors


class ExtractionError(ClawdeError):
    """I/O failure while reading a source file for comment extraction.

    Raised when:
    - The file cannot be stat'ed (removed between event and read)
    - The file cannot be read (permissions)

    Attributes:
        path: The file that could not be read.

    """

    def __init__(self, message: str, path: Path | str) -> None:
        """Initialize ExtractionError with message and failing path.

        Args:
            message: Error message.
            path: Path of the unreadable file.

        """
        super().__init__(message)
        self.path = Path(path)


class SearchError(ClawdeError):
    """Directory search could not be started.

    Raised only when the search root itself is missing or is not a
    directory. Failures on individual subtrees or files are logged and
    skipped instead.
    """

    pass


class MarkerInvariantError(ClawdeError):
    """Programming fault detected while classifying or rendering markers.

    Raised when a record reaches the prompt renderer with an action type
    that has no rendering branch (e.g. a context-only record inside an
    action batch). Sending a mis-rendered prompt to the assistant is worse
    than aborting the single operation, so this is never swallowed by the
    dispatch pipeline.
    """

    pass


class SessionError(ClawdeError):
    """Pseudo-terminal session error.

    Raised when:
    - The wrapped command cannot be spawned (not found, permission denied)
    - Writing to a session that has already been closed
    """

    pass
