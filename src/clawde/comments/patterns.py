"""Comment pattern registry.

Maps file extensions to the lexical comment rules of their language. The
table lives in ``data/comment_patterns.yaml`` and is loaded once per
process; every extraction call shares the same read-only patterns.

Usage:
    >>> from clawde.comments.patterns import get_comment_pattern
    >>> get_comment_pattern(".go").single_line
    ('//',)
    >>> get_comment_pattern(".txt") is None
    True

"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path, PurePath
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from clawde.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

_DATA_FILE = Path(__file__).parent / "data" / "comment_patterns.yaml"


class MultilineTokens(BaseModel):
    """A start/end token pair for block comments (e.g. ``/*`` and ``*/``)."""

    model_config = ConfigDict(frozen=True)

    start: str = Field(..., min_length=1)
    end: str = Field(..., min_length=1)

    @property
    def is_symmetric(self) -> bool:
        """True when start and end are the same token (e.g. triple quotes)."""
        return self.start == self.end


class CommentPattern(BaseModel):
    """Comment syntax for one dialect.

    Attributes:
        name: Dialect name from the data file.
        extensions: File extensions (with leading dot, lowercase).
        single_line: Ordered single-line prefix tokens.
        multiline: Ordered block comment token pairs.

    """

    model_config = ConfigDict(frozen=True)

    name: str
    extensions: tuple[str, ...]
    single_line: tuple[str, ...] = ()
    multiline: tuple[MultilineTokens, ...] = ()

    @field_validator("extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, v: Any) -> Any:
        """Lowercase extensions and require the leading dot."""
        if not isinstance(v, list | tuple):
            return v
        normalized = []
        for ext in v:
            ext = str(ext).strip().lower()
            if not ext.startswith("."):
                raise ValueError(f"extension must start with '.': {ext!r}")
            normalized.append(ext)
        return tuple(normalized)

    @field_validator("multiline", mode="before")
    @classmethod
    def pairs_to_tokens(cls, v: Any) -> Any:
        """Accept ``[start, end]`` lists as written in the YAML table."""
        if not isinstance(v, list | tuple):
            return v
        pairs = []
        for item in v:
            if isinstance(item, list | tuple):
                if len(item) != 2:
                    raise ValueError(f"multiline entry must be [start, end], got {item!r}")
                pairs.append({"start": item[0], "end": item[1]})
            else:
                pairs.append(item)
        return pairs

    @property
    def multiline_tokens(self) -> tuple[str, ...]:
        """Every distinct start/end token, used when cleaning block text."""
        tokens: list[str] = []
        for pair in self.multiline:
            for token in (pair.start, pair.end):
                if token not in tokens:
                    tokens.append(token)
        return tuple(tokens)


@lru_cache(maxsize=1)
def _load_registry() -> dict[str, CommentPattern]:
    """Load and index the dialect table (once per process).

    Raises:
        ConfigError: If the packaged table is missing or invalid.

    """
    try:
        with _DATA_FILE.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot load comment patterns from {_DATA_FILE}: {e}") from e

    dialects = data.get("dialects") if isinstance(data, dict) else None
    if not isinstance(dialects, dict):
        raise ConfigError(f"{_DATA_FILE.name}: 'dialects' mapping is missing")

    registry: dict[str, CommentPattern] = {}
    for name, section in dialects.items():
        try:
            pattern = CommentPattern(name=name, **section)
        except (TypeError, ValidationError) as e:
            raise ConfigError(f"{_DATA_FILE.name}: invalid dialect {name!r}: {e}") from e
        for ext in pattern.extensions:
            if ext in registry:
                logger.warning(
                    "Extension %s registered by both %s and %s, keeping %s",
                    ext,
                    registry[ext].name,
                    name,
                    registry[ext].name,
                )
                continue
            registry[ext] = pattern

    logger.debug("Loaded %d comment dialects for %d extensions", len(dialects), len(registry))
    return registry


def get_comment_pattern(extension: str) -> CommentPattern | None:
    """Return the comment pattern for a file extension.

    Args:
        extension: Extension including the leading dot (e.g. ".py").

    Returns:
        CommentPattern, or None if the extension is not registered.

    """
    return _load_registry().get(extension.lower())


def pattern_for_path(path: str | PurePath) -> CommentPattern | None:
    """Return the comment pattern for a file path (by its suffix)."""
    return get_comment_pattern(PurePath(path).suffix)


def is_supported(path: str | PurePath) -> bool:
    """Check whether a file's extension has registered comment rules."""
    return pattern_for_path(path) is not None


def supported_extensions() -> list[str]:
    """Return all registered extensions, sorted."""
    return sorted(_load_registry())
