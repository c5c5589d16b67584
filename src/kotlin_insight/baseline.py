"""Baseline management: persist a run and diff later runs against it."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from .exceptions import BaselineError, OutputDirectoryError
from .logging_config import get_logger
from .models import AnalysisMetrics, Baseline, Comparison, Finding

logger = get_logger(__name__)

PathLike = Union[str, Path]

HISTORY_PREFIX = "analysis_"
HISTORY_TIME_FORMAT = "%Y-%m-%d_%H-%M-%S"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def metric_deltas(
    current: AnalysisMetrics, baseline: AnalysisMetrics
) -> dict[str, Optional[float]]:
    """Relative change ``(current - base) / base`` per metric.

    An unchanged value is 0.0 even at zero. A value that moved away from a
    zero baseline has no meaningful ratio and maps to None.
    """
    before = baseline.numeric()
    deltas: dict[str, Optional[float]] = {}
    for name, value in current.numeric().items():
        base = before.get(name, 0.0)
        if value == base:
            deltas[name] = 0.0
        elif base == 0:
            deltas[name] = None
        else:
            deltas[name] = round((value - base) / base, 4)
    return deltas


class BaselineStore:
    """Reads and writes baseline JSON files and history snapshots.

    File layout::

        {
          "timestamp": "2026-01-01T00:00:00+00:00",
          "metrics": {...},
          "findingIds": ["0a1b...", ...],
          "findings": [{...}, ...]
        }
    """

    def load(self, path: PathLike) -> Optional[Baseline]:
        """Load a baseline; None when the file does not exist.

        Raises:
            BaselineError: If the file exists but cannot be decoded
        """
        p = Path(path)
        if not p.exists():
            logger.info(f"No baseline file at {p}")
            return None

        try:
            with open(p, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise BaselineError(p, str(e))

        if not isinstance(raw, dict):
            raise BaselineError(p, "expected a JSON object")
        try:
            baseline = Baseline(
                timestamp=str(raw["timestamp"]),
                metrics=AnalysisMetrics.from_dict(raw.get("metrics", {})),
                finding_ids=frozenset(raw.get("findingIds", [])),
                findings=tuple(Finding.from_dict(d) for d in raw.get("findings", [])),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise BaselineError(p, f"malformed baseline: {e}")

        logger.info(f"Loaded baseline with {len(baseline.finding_ids)} findings from {p}")
        return baseline

    def save(
        self,
        path: PathLike,
        findings: Sequence[Finding],
        metrics: AnalysisMetrics,
        timestamp: Optional[str] = None,
    ) -> Baseline:
        """Write a baseline for ``findings`` and return it.

        Raises:
            OutputDirectoryError: If the parent directory cannot be created or written
        """
        baseline = Baseline(
            timestamp=timestamp or utc_timestamp(),
            metrics=metrics,
            finding_ids=frozenset(f.id for f in findings),
            findings=tuple(sorted(findings, key=lambda f: f.id)),
        )
        self._write(Path(path), baseline)
        logger.info(f"Saved baseline with {len(baseline.finding_ids)} findings to {path}")
        return baseline

    def compare(
        self,
        current: Iterable[Finding],
        baseline: Baseline,
        metrics: Optional[AnalysisMetrics] = None,
    ) -> Comparison:
        """Diff current findings (and metrics, if given) against ``baseline``."""
        current_ids = frozenset(f.id for f in current)
        deltas = metric_deltas(metrics, baseline.metrics) if metrics is not None else {}
        return Comparison(
            new_ids=current_ids - baseline.finding_ids,
            resolved_ids=baseline.finding_ids - current_ids,
            unchanged_ids=current_ids & baseline.finding_ids,
            metric_deltas=deltas,
            baseline_timestamp=baseline.timestamp,
        )

    def save_history(
        self,
        directory: PathLike,
        findings: Sequence[Finding],
        metrics: AnalysisMetrics,
        when: Optional[datetime] = None,
    ) -> Path:
        """Write a timestamped snapshot ``analysis_<YYYY-MM-DD_HH-MM-SS>.json``."""
        when = when or datetime.now(timezone.utc)
        path = Path(directory) / f"{HISTORY_PREFIX}{when.strftime(HISTORY_TIME_FORMAT)}.json"
        self.save(path, findings, metrics, timestamp=when.replace(microsecond=0).isoformat())
        return path

    def list_history(self, directory: PathLike) -> list[Path]:
        """History snapshots in ``directory``, oldest first."""
        d = Path(directory)
        if not d.is_dir():
            return []
        return sorted(d.glob(f"{HISTORY_PREFIX}*.json"))

    @staticmethod
    def _write(path: Path, baseline: Baseline) -> None:
        data = {
            "timestamp": baseline.timestamp,
            "metrics": baseline.metrics.to_dict(),
            "findingIds": sorted(baseline.finding_ids),
            "findings": [f.to_dict() for f in baseline.findings],
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
        except OSError as e:
            raise OutputDirectoryError(path.parent, e.strerror or str(e))
