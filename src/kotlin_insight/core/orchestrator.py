"""AnalysisOrchestrator: discovery -> parse -> analyzers -> aggregation.

Usage:
    orchestrator = AnalysisOrchestrator(load_config())
    result = orchestrator.analyze_all(Path("app"))

Files are analyzed in parallel on a thread pool; the analyzers for one file
run sequentially over that file's tree. Workers return a FileOutcome and only
the calling thread folds outcomes into the run, so completion order never
affects the result.
"""

from __future__ import annotations

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from ..analyzers import BaseAnalyzer, collect_file_stats, create_analyzers
from ..config import AnalysisConfig
from ..exceptions import AnalyzerError, DiscoveryError, InvalidPathError, ParseError
from ..logging_config import get_logger
from ..models import (
    AnalysisResult,
    Diagnostic,
    DiagnosticKind,
    FileInfo,
    FileStats,
    Finding,
)
from ..scanning import FileDiscovery, SyntaxParser
from .aggregator import aggregate, compute_metrics
from .progress import ProgressCallback

logger = get_logger(__name__)

MAX_DEFAULT_WORKERS = 8

_DIAGNOSTIC_ORDER = {kind: i for i, kind in enumerate(DiagnosticKind)}


def default_workers() -> int:
    return min(os.cpu_count() or 4, MAX_DEFAULT_WORKERS)


@dataclass
class FileOutcome:
    """What one worker produced for one file."""

    file: FileInfo
    findings: list[Finding] = field(default_factory=list)
    stats: Optional[FileStats] = None
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass
class _Accumulator:
    findings: list[Finding] = field(default_factory=list)
    stats: list[FileStats] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    completed: int = 0


class AnalysisOrchestrator:
    """Runs the selected analyzers over a Kotlin source tree.

    Configuration problems (unknown analyzer id, invalid root) raise before
    any file is read. Failures scoped to one file or one analyzer become
    diagnostics on the result.
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        analyzers: Optional[Sequence[BaseAnalyzer]] = None,
        parser: Optional[SyntaxParser] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        self.config = config or AnalysisConfig()
        if analyzers is None:
            analyzers = create_analyzers(self.config.analyzers, self.config.thresholds)
        self.analyzers = list(analyzers)
        self.parser = parser or SyntaxParser(self.config.parser)
        self.progress = progress
        self.workers = self.config.workers or default_workers()
        self._cancel = threading.Event()
        self._lock = threading.Lock()

        logger.debug(
            f"Orchestrator: analyzers={[a.id for a in self.analyzers]}, "
            f"parser={self.parser.mode}, workers={self.workers}"
        )

    @property
    def analyzer_ids(self) -> list[str]:
        return [a.id for a in self.analyzers]

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Stop dispatching files. In-flight results are discarded."""
        logger.info("Cancellation requested")
        self._cancel.set()

    def analyze_all(self, root: Path) -> AnalysisResult:
        """Analyze every Kotlin file under ``root``."""
        root = self._validate_root(root)
        discovery = FileDiscovery(self.config)
        files = discovery.discover(root)
        return self._run(root, files, discovery.diagnostics)

    def analyze_paths(self, root: Path, paths: Sequence[Path]) -> AnalysisResult:
        """Analyze only ``paths`` (files or directories) relative to ``root``."""
        root = self._validate_root(root)
        discovery = FileDiscovery(self.config)
        files = discovery.discover_paths(root, paths)
        return self._run(root, files, discovery.diagnostics)

    def analyze_file(self, file: FileInfo) -> FileOutcome:
        """Read, parse and run every applicable analyzer on one file."""
        outcome = FileOutcome(file=file)
        try:
            source = file.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            self._record(outcome, DiscoveryError(file.relative_path, f"not valid UTF-8: {e.reason}"))
            return outcome
        except OSError as e:
            self._record(outcome, DiscoveryError(file.relative_path, f"cannot read file: {e.strerror or e}"))
            return outcome

        try:
            tree = self.parser.parse(source, file.relative_path)
        except ParseError as e:
            self._record(outcome, e)
            return outcome

        outcome.stats = collect_file_stats(tree, file.relative_path)
        for analyzer in self.analyzers:
            if not analyzer.applies_to(file):
                continue
            try:
                outcome.findings.extend(analyzer.analyze(file, tree))
            except Exception as e:
                logger.debug(f"{analyzer.id} raised on {file.relative_path}", exc_info=True)
                self._record(outcome, AnalyzerError(analyzer.id, file.relative_path, str(e)))
        return outcome

    def _validate_root(self, root: Path) -> Path:
        path = Path(root)
        if not path.exists():
            raise InvalidPathError(root, "path does not exist")
        if not path.is_dir():
            raise InvalidPathError(root, "not a directory")
        return path.resolve()

    def _run(
        self, root: Path, files: list[FileInfo], diagnostics: list[Diagnostic]
    ) -> AnalysisResult:
        acc = _Accumulator(diagnostics=list(diagnostics))
        total = len(files)
        logger.info(f"Analyzing {total} files with {len(self.analyzers)} analyzers")

        if files:
            self._dispatch(files, acc)

        cancelled = self.cancelled
        findings = aggregate(acc.findings, self.analyzer_ids)
        metrics = compute_metrics(
            findings,
            total_files=total,
            stats=acc.stats,
            test_files=sum(1 for f in files if f.is_test),
        )
        acc.diagnostics.sort(
            key=lambda d: (d.file_path, _DIAGNOSTIC_ORDER[d.kind], d.analyzer_id or "")
        )
        if acc.diagnostics:
            logger.warning(f"{len(acc.diagnostics)} file(s) or analyzer run(s) skipped")
        logger.info(
            f"Analysis {'cancelled' if cancelled else 'complete'}: "
            f"{len(findings)} findings in {acc.completed}/{total} files"
        )
        return AnalysisResult(
            findings=findings,
            metrics=metrics,
            files=files,
            diagnostics=acc.diagnostics,
            analyzer_ids=self.analyzer_ids,
            root=str(root),
            cancelled=cancelled,
        )

    def _dispatch(self, files: list[FileInfo], acc: _Accumulator) -> None:
        executor = ThreadPoolExecutor(max_workers=min(self.workers, len(files)))
        futures: list[Future] = []
        try:
            for file in files:
                if self._cancel.is_set():
                    break
                futures.append(executor.submit(self._analyze_unless_cancelled, file))

            for future in as_completed(futures):
                if self._cancel.is_set():
                    break
                outcome = future.result()
                if outcome is None:
                    continue
                self._fold(acc, outcome, len(files))
        except KeyboardInterrupt:
            self._cancel.set()
            raise
        finally:
            if self._cancel.is_set():
                for future in futures:
                    future.cancel()
            executor.shutdown(wait=True)

    def _analyze_unless_cancelled(self, file: FileInfo) -> Optional[FileOutcome]:
        if self._cancel.is_set():
            return None
        return self.analyze_file(file)

    def _fold(self, acc: _Accumulator, outcome: FileOutcome, total: int) -> None:
        with self._lock:
            acc.findings.extend(outcome.findings)
            acc.diagnostics.extend(outcome.diagnostics)
            if outcome.stats is not None:
                acc.stats.append(outcome.stats)
            acc.completed += 1
            completed = acc.completed
        if self.progress is not None:
            self.progress(completed, total, outcome.file.relative_path)

    @staticmethod
    def _record(outcome: FileOutcome, error: Exception) -> None:
        logger.warning(str(error))
        if isinstance(error, AnalyzerError):
            diagnostic = Diagnostic(
                kind=DiagnosticKind.ANALYZER,
                file_path=error.filepath,
                message=error.reason,
                analyzer_id=error.analyzer_id,
            )
        elif isinstance(error, ParseError):
            diagnostic = Diagnostic(
                kind=DiagnosticKind.PARSE, file_path=error.filepath, message=error.reason
            )
        else:
            diagnostic = Diagnostic(
                kind=DiagnosticKind.DISCOVERY,
                file_path=getattr(error, "filepath", outcome.file.relative_path),
                message=getattr(error, "reason", str(error)),
            )
        outcome.diagnostics.append(diagnostic)
