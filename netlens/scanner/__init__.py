"""Scanner package: connection-table parsing, endpoint extraction and local snapshots."""

from .endpoints import extract_ip_port, format_endpoint
from .ip_utils import is_loopback_or_localhost, is_public_ip, is_wildcard
from .parser import GENERIC, LINUX, MACOS, WINDOWS, detect_format, parse_connection_table
from .snapshot import collect_local_connection_table

__all__ = [
    "GENERIC",
    "LINUX",
    "MACOS",
    "WINDOWS",
    "collect_local_connection_table",
    "detect_format",
    "extract_ip_port",
    "format_endpoint",
    "is_loopback_or_localhost",
    "is_public_ip",
    "is_wildcard",
    "parse_connection_table",
]
