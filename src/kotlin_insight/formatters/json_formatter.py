"""JSON formatter for Kotlin Insight."""

import json
from typing import Optional

from ..models import AnalysisResult, Comparison
from .base import BaseFormatter


class JsonFormatter(BaseFormatter):
    """Render results as JSON with ``summary``, ``findings``, ``diagnostics`` and ``comparison``."""

    name = "json"
    extension = ".json"

    def format(
        self,
        result: AnalysisResult,
        comparison: Optional[Comparison] = None,
        generated_at: Optional[str] = None,
    ) -> str:
        summary = {
            "root": result.root,
            "analyzers": result.analyzer_ids,
            "cancelled": result.cancelled,
            "skipped_files": result.skipped_files,
            "metrics": result.metrics.to_dict(),
        }
        if generated_at:
            summary["generated_at"] = generated_at
        data = {
            "summary": summary,
            "findings": [f.to_dict() for f in result.findings],
            "diagnostics": [d.to_dict() for d in result.diagnostics],
            "comparison": comparison.to_dict() if comparison is not None else None,
        }
        return json.dumps(data, indent=2)
