"""Export utilities: audit log, JSON report and spreadsheet writers."""

from .logging import append_analysis_result, append_audit_record, default_audit_log_path, read_audit_log
from .reports import analysis_frames, export_analysis_to_xlsx, export_connections_to_csv
from .timeline import export_timeline_to_csv, export_timeline_to_xlsx
from .writers import export_analysis_to_json, export_json_document

__all__ = [
    "append_analysis_result",
    "append_audit_record",
    "analysis_frames",
    "default_audit_log_path",
    "export_analysis_to_json",
    "export_analysis_to_xlsx",
    "export_connections_to_csv",
    "export_json_document",
    "export_timeline_to_csv",
    "export_timeline_to_xlsx",
    "read_audit_log",
]
