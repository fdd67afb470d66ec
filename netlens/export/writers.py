"""JSON report writer."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any

from netlens.models import AnalysisResult


def export_json_document(path: str | Path, payload: dict[str, Any]) -> Path:
    """Write a formatted JSON document and return the destination path."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return target


def build_report_document(result: AnalysisResult, source: str = "") -> dict[str, Any]:
    return {
        "reportGeneratedAt": datetime.now(timezone.utc).isoformat(),
        "source": source,
        "analysis": result.to_dict(),
    }


def export_analysis_to_json(result: AnalysisResult, path: str | Path, *, source: str = "") -> Path:
    return export_json_document(path, build_report_document(result, source))
