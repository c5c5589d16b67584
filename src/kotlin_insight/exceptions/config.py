"""Configuration exceptions: paths, settings, analyzer selection.

These are fatal. They propagate to the caller before any file is analyzed.
"""

from pathlib import Path
from typing import Any, Iterable, Union

from .base import KotlinInsightError


class ConfigurationError(KotlinInsightError):
    """Base class for configuration-related errors."""

    pass


class InvalidPathError(ConfigurationError):
    """Raised when a provided path is invalid."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(f"Invalid path: {path}", details={"path": str(path), "reason": reason})
        self.path = path
        self.reason = reason


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class UnknownAnalyzerError(ConfigurationError):
    """Raised when an analyzer allowlist names an id that is not registered."""

    def __init__(self, analyzer_id: str, known: Iterable[str]):
        known_ids = list(known)
        super().__init__(
            f"Unknown analyzer id: {analyzer_id}",
            details={"analyzer": analyzer_id, "known": ", ".join(known_ids)},
        )
        self.analyzer_id = analyzer_id
        self.known = known_ids


class OutputDirectoryError(ConfigurationError):
    """Raised when the report/baseline output directory is not writable."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(
            f"Output directory not writable: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path
        self.reason = reason
