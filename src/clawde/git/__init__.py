"""Git integration for clawde.

Provides ignore lookup so that search and watching skip files git ignores.
"""

from clawde.git.ignore import (
    IGNORED_DIRECTORIES,
    GitIgnoreCache,
    build_ignore_predicate,
    should_ignore_directory,
)

__all__ = [
    "IGNORED_DIRECTORIES",
    "GitIgnoreCache",
    "build_ignore_predicate",
    "should_ignore_directory",
]
