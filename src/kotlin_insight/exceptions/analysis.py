"""Analysis-related exceptions: discovery, parsing, analyzer failures.

All of these are recoverable. The orchestrator catches them per file (or per
analyzer and file), records a diagnostic and keeps going.
"""

from pathlib import Path
from typing import Union

from .base import KotlinInsightError

PathLike = Union[str, Path]


class AnalysisError(KotlinInsightError):
    """Base class for analysis-related errors."""
    pass


class DiscoveryError(AnalysisError):
    """Raised when a file or directory cannot be read during discovery."""

    def __init__(self, filepath: PathLike, reason: str):
        super().__init__(
            f"Cannot read file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = str(filepath)
        self.reason = reason


class ParseError(AnalysisError):
    """Raised when file content cannot be turned into a syntax tree."""

    def __init__(self, filepath: PathLike, reason: str, line: int = 0):
        details = {"filepath": str(filepath), "reason": reason}
        if line:
            details["line"] = str(line)
        super().__init__(f"Failed to parse Kotlin file: {filepath}", details=details)
        self.filepath = str(filepath)
        self.reason = reason
        self.line = line


class AnalyzerError(AnalysisError):
    """Raised when a single analyzer fails on a single file."""

    def __init__(self, analyzer_id: str, filepath: PathLike, reason: str):
        super().__init__(
            f"Analyzer '{analyzer_id}' failed on {filepath}",
            details={"analyzer": analyzer_id, "filepath": str(filepath), "reason": reason},
        )
        self.analyzer_id = analyzer_id
        self.filepath = str(filepath)
        self.reason = reason


class BaselineError(KotlinInsightError):
    """Raised when a baseline file exists but cannot be decoded."""

    def __init__(self, path: PathLike, reason: str):
        super().__init__(
            f"Invalid baseline file: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = str(path)
        self.reason = reason
