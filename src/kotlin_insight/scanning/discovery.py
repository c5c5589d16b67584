"""File discovery: walk a root, filter, classify and read package headers."""

from __future__ import annotations

import os
import re
from functools import lru_cache
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from ..config import DEFAULT_LAYER_RULES, AnalysisConfig
from ..exceptions import DiscoveryError, InvalidPathError
from ..logging_config import get_logger
from ..models import Diagnostic, DiagnosticKind, FileInfo, Layer

logger = get_logger(__name__)

TEST_DIRECTORIES = frozenset({"test", "tests", "androidTest"})
TEST_SUFFIXES = ("Tests", "Test", "Spec", "IT")

_PACKAGE_RE = re.compile(r"^\s*package\s+([A-Za-z_][\w.`]*)")


@lru_cache(maxsize=128)
def glob_to_regex(pattern: str) -> re.Pattern:
    """Compile a path glob: ``**`` spans directories, ``*`` and ``?`` stay in one segment."""
    out = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("/**", i) and i + 3 == len(pattern):
            out.append("(?:/.*)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(out) + "$")


def matches_any(relative_path: str, patterns: Iterable[str]) -> bool:
    return any(glob_to_regex(p).match(relative_path) for p in patterns)


def classify_layer(
    relative_path: str, rules: Sequence[tuple[str, str]] = DEFAULT_LAYER_RULES
) -> Layer:
    """First rule whose substring occurs in the path wins."""
    haystack = "/" + relative_path
    for substring, layer in rules:
        if substring in haystack:
            return Layer(layer)
    return Layer.UNKNOWN


def is_test_path(relative_path: str) -> bool:
    parts = relative_path.split("/")
    if any(part in TEST_DIRECTORIES for part in parts[:-1]):
        return True
    stem = parts[-1].rsplit(".", 1)[0]
    for suffix in TEST_SUFFIXES:
        if stem.endswith(suffix) and len(stem) > len(suffix):
            if suffix == "IT" and not stem[-3].islower():
                # EDIT, AUDIT: not an integration test
                continue
            return True
    return False


def read_header(path: Path, max_lines: int) -> list[str]:
    """Read at most ``max_lines`` lines. Invalid UTF-8 raises UnicodeDecodeError."""
    with open(path, encoding="utf-8") as f:
        return list(islice(f, max_lines))


def extract_package(lines: Iterable[str]) -> Optional[str]:
    for line in lines:
        m = _PACKAGE_RE.match(line)
        if m:
            return m.group(1).replace("`", "")
    return None


class FileDiscovery:
    """Finds the Kotlin files of a project and builds their FileInfo.

    Failures on single files or directories are recorded in ``diagnostics``
    and never abort the walk.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()
        self.diagnostics: list[Diagnostic] = []
        self._extensions = {ext.lower() for ext in self.config.extensions}

    def discover(
        self, root: Path, exclude_patterns: Optional[Sequence[str]] = None
    ) -> list[FileInfo]:
        """Walk ``root`` recursively and return its source files sorted by path."""
        root = Path(root).resolve()
        if not root.is_dir():
            raise InvalidPathError(root, "not a directory")
        patterns = list(self.config.exclude_patterns if exclude_patterns is None else exclude_patterns)

        files = []
        for path in self._walk(root, root, patterns):
            info = self._inspect(root, path, patterns)
            if info is not None:
                files.append(info)
        files.sort(key=lambda f: f.relative_path)
        logger.info(f"Discovered {len(files)} Kotlin files under {root}")
        return files

    def discover_paths(
        self,
        root: Path,
        paths: Sequence[Path],
        exclude_patterns: Optional[Sequence[str]] = None,
    ) -> list[FileInfo]:
        """Discover only ``paths`` (files or directories) below ``root``."""
        root = Path(root).resolve()
        patterns = list(self.config.exclude_patterns if exclude_patterns is None else exclude_patterns)
        seen: dict[str, FileInfo] = {}
        for raw in paths:
            path = Path(raw).resolve()
            if not path.exists():
                raise InvalidPathError(raw, "path does not exist")
            try:
                path.relative_to(root)
            except ValueError:
                raise InvalidPathError(raw, f"not inside {root}")
            candidates = self._walk(root, path, patterns) if path.is_dir() else [path]
            for candidate in candidates:
                info = self._inspect(root, candidate, patterns)
                if info is not None:
                    seen[info.relative_path] = info
        return [seen[key] for key in sorted(seen)]

    def _walk(self, root: Path, start: Path, patterns: list[str]) -> Iterator[Path]:
        def on_error(error: OSError) -> None:
            self._record(error.filename or str(start), f"cannot list directory: {error.strerror}")

        for dirpath, dirnames, filenames in os.walk(
            start, onerror=on_error, followlinks=self.config.follow_symlinks
        ):
            current = Path(dirpath)
            kept = []
            for name in sorted(dirnames):
                if name.startswith(".") and not self.config.allow_hidden_files:
                    continue
                rel = (current / name).relative_to(root).as_posix()
                if matches_any(rel, patterns):
                    logger.debug(f"Skipped directory (pattern): {rel}")
                    continue
                kept.append(name)
            dirnames[:] = kept
            for name in sorted(filenames):
                if name.startswith(".") and not self.config.allow_hidden_files:
                    continue
                yield current / name

    def _inspect(self, root: Path, path: Path, patterns: list[str]) -> Optional[FileInfo]:
        if path.suffix.lower() not in self._extensions:
            return None
        relative = path.relative_to(root).as_posix()
        if matches_any(relative, patterns):
            logger.debug(f"Skipped (pattern): {relative}")
            return None
        if path.is_symlink() and not self.config.follow_symlinks:
            logger.debug(f"Skipped (symlink): {relative}")
            return None

        try:
            size = path.stat().st_size
            if size > self.config.max_file_size_bytes:
                self._record(
                    relative, f"file exceeds {self.config.max_file_size_mb} MB ({size} bytes)"
                )
                return None
            header = read_header(path, self.config.header_lines)
        except UnicodeDecodeError as e:
            self._record(relative, f"not valid UTF-8: {e.reason}")
            return None
        except OSError as e:
            self._record(relative, f"cannot read file: {e.strerror or e}")
            return None

        return FileInfo(
            path=path,
            relative_path=relative,
            layer=classify_layer(relative, self.config.layer_rules),
            is_test=is_test_path(relative),
            package=extract_package(header),
        )

    def _record(self, file_path: str, reason: str) -> None:
        error = DiscoveryError(file_path, reason)
        logger.warning(str(error))
        self.diagnostics.append(
            Diagnostic(kind=DiagnosticKind.DISCOVERY, file_path=str(file_path), message=reason)
        )


def discover(
    root: Path,
    exclude_patterns: Optional[Sequence[str]] = None,
    config: Optional[AnalysisConfig] = None,
) -> list[FileInfo]:
    """Convenience wrapper around ``FileDiscovery(config).discover``."""
    return FileDiscovery(config).discover(root, exclude_patterns)
