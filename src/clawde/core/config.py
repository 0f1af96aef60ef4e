"""Configuration for the clawde wrapper.

Configuration is resolved in two layers:
1. Optional YAML file (``.clawde.yaml`` in the working directory by default)
2. ``CLAWDE_*`` environment variables, which override the file

Example:
    >>> from clawde.core.config import load_config
    >>> config = load_config(env={"CLAWDE_OUTPUT_THROTTLING": "off"})
    >>> config.output_throttling
    False

"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from clawde.core.exceptions import ConfigError, ConfigValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".clawde.yaml"

# Environment variable -> config field
ENV_OVERRIDES: dict[str, str] = {
    "CLAWDE_OUTPUT_THROTTLING": "output_throttling",
    "CLAWDE_INPUT_THROTTLING": "input_tracking",
    "CLAWDE_HELD_ENTER_DETECTION": "held_enter_detection",
    "CLAWDE_FORCE_ANSI": "force_ansi",
    "CLAWDE_LOG_FILE": "log_file",
    "CLAWDE_LOG_LEVEL": "log_level",
}

_BOOL_FIELDS = frozenset(
    {"output_throttling", "input_tracking", "held_enter_detection", "force_ansi"}
)


def parse_bool(value: str) -> bool:
    """Parse an environment flag.

    "true", "1", "yes" and "on" (case-insensitive) are true, anything
    else is false.
    """
    return value.strip().lower() in ("true", "1", "yes", "on")


class ClawdeConfig(BaseModel):
    """Runtime configuration for the wrapper and comment pipeline.

    Attributes:
        output_throttling: Debounce child output before writing to the terminal.
        input_tracking: Use the fast refresh rate while the user is typing.
        held_enter_detection: Treat rapid repeated Enter as a real submit.
        force_ansi: Request colour output from the wrapped program via its environment.
        log_file: Log destination for the interactive session (None = silent).
        log_level: Logging level name.
        include_context: Append AI: context comments to dispatched prompts.
        max_search_files: Cap on candidate files considered per search.
        search_workers: Worker threads used by the candidate search.
        poll_interval: Seconds between file watcher scans.
        submit_delay: Pause between prompt text and the submitting Enter.

    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    output_throttling: bool = Field(
        default=True,
        description="Debounce wrapped program output to reduce flicker",
    )
    input_tracking: bool = Field(
        default=True,
        description="Switch to the fast refresh rate while the user is typing",
    )
    held_enter_detection: bool = Field(
        default=False,
        description="Send a real Enter when Enter is held down",
    )
    force_ansi: bool = Field(
        default=True,
        description="Set TERM and FORCE_COLOR for the wrapped program so it emits colour",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file for interactive sessions (tilde expanded)",
    )
    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Logging level",
    )
    include_context: bool = Field(
        default=True,
        description="Append AI: context comments from the watched tree to prompts",
    )
    max_search_files: int = Field(
        default=10000,
        ge=1,
        description="Stop the candidate search after this many files",
    )
    search_workers: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Worker threads for the candidate search",
    )
    poll_interval: float = Field(
        default=0.5,
        gt=0,
        description="Seconds between file watcher scans",
    )
    submit_delay: float = Field(
        default=0.1,
        ge=0,
        description="Seconds to wait before sending Enter after a prompt",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def log_path(self) -> Path | None:
        """Return expanded log file path, or None if not set."""
        if not self.log_file:
            return None
        return Path(self.log_file).expanduser()


def _read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML config file into a dict.

    Raises:
        ConfigError: If the file is unreadable, malformed, or not a mapping.

    """
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for var, field_name in ENV_OVERRIDES.items():
        value = env.get(var)
        if not value:
            continue
        if field_name in _BOOL_FIELDS:
            overrides[field_name] = parse_bool(value)
        else:
            overrides[field_name] = value
        logger.debug("Config override from %s", var)
    return overrides


def load_config(
    config_file: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ClawdeConfig:
    """Load configuration from an optional YAML file and the environment.

    Args:
        config_file: Explicit config file. If None, ``.clawde.yaml`` in the
            current directory is used when it exists.
        env: Environment mapping (defaults to os.environ).

    Returns:
        Validated, frozen ClawdeConfig.

    Raises:
        ConfigError: If an explicit config file is missing or unreadable.
        ConfigValidationError: If a value fails validation.

    """
    data: dict[str, Any] = {}

    if config_file is not None:
        if not config_file.is_file():
            raise ConfigError(f"Config file not found: {config_file}")
        data = _read_config_file(config_file)
    else:
        default_path = Path.cwd() / DEFAULT_CONFIG_FILENAME
        if default_path.is_file():
            data = _read_config_file(default_path)
            logger.debug("Loaded config from %s", default_path)

    data.update(_env_overrides(os.environ if env is None else env))

    try:
        return ClawdeConfig(**data)
    except ValidationError as e:
        raise ConfigValidationError(
            f"Invalid configuration: {e.error_count()} error(s)",
            errors=[dict(err) for err in e.errors()],
        ) from e
