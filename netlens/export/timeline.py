"""Timeline dataset export helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from netlens.analytics.timeline import TimelineEntry, timeline_rows


def export_timeline_to_csv(entries: Iterable[TimelineEntry], output_path: str | Path) -> Path:
    """Export one row per snapshot of an IP timeline to CSV."""
    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    dataframe = pd.DataFrame(timeline_rows(entries))
    dataframe.to_csv(target, index=False)
    return target


def export_timeline_to_xlsx(entries: Iterable[TimelineEntry], output_path: str | Path) -> Path:
    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    rows: list[dict[str, Any]] = timeline_rows(entries)
    with pd.ExcelWriter(target) as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name="timeline", index=False)
    return target
