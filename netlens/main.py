"""Command-line entrypoint for netlens."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Sequence

from netlens.analytics.engine import analyze_text
from netlens.analytics.scoring import OverallRiskContext
from netlens.analytics.timeline import AnalysisSnapshot, build_ip_timeline
from netlens.errors import NetLensError
from netlens.export.logging import append_analysis_result
from netlens.export.reports import export_analysis_to_xlsx
from netlens.export.timeline import export_timeline_to_csv
from netlens.export.writers import export_analysis_to_json
from netlens.intel.threat import ThreatIntelMatcher, ThreatList
from netlens.models import AnalysisResult
from netlens.scanner.snapshot import collect_local_connection_table
from netlens.storage.preferences import get_preference, list_snapshots, record_snapshot
from netlens.storage.threat_lists import ThreatListStore, parse_threat_list_payload

logger = logging.getLogger("netlens")

TOP_LISTENERS = 10


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8", errors="replace")


def _threat_lists_for(args: argparse.Namespace) -> list[ThreatList]:
    if getattr(args, "threat_lists", None):
        try:
            data = json.loads(Path(args.threat_lists).read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise NetLensError(f"Could not read threat lists from {args.threat_lists}: {exc}") from exc
        return [threat_list for threat_list in parse_threat_list_payload(data) if threat_list.is_active]
    return ThreatListStore.load().active_lists()


def _print_overall(context: OverallRiskContext) -> None:
    print(f"{context.description}: {context.detailed_message}")


def _print_result(result: AnalysisResult) -> None:
    if result.error:
        print(result.error)
        return

    _print_overall(result.overall_risk)
    summary = result.summary
    print(
        f"Format: {result.format} | Connections: {result.total_connections} | "
        f"critical {summary.critical}, suspicious {summary.suspicious}, "
        f"warning {summary.warning}, safe {summary.safe}"
    )

    if result.listening_ports:
        print("\nListening ports:")
        for listener in result.listening_ports[:TOP_LISTENERS]:
            print(f"  [{listener.risk.value:<10}] {listener.protocol} {listener.address:<24} {listener.service}")
        hidden = len(result.listening_ports) - TOP_LISTENERS
        if hidden > 0:
            print(f"  ... {hidden} more")

    if result.recommendations:
        print("\nRecommendations:")
        for item in result.recommendations:
            print(f"  ({item.type}) {item.title}")
            print(f"      {item.description}")


def cmd_analyze(args: argparse.Namespace) -> int:
    raw_text = _read_input(args.file)
    result = analyze_text(raw_text, _threat_lists_for(args))
    source = "stdin" if args.file == "-" else args.file

    _print_result(result)
    if args.json:
        print(f"\nJSON report written to {export_analysis_to_json(result, args.json, source=source)}")
    if args.xlsx and result.ok:
        print(f"XLSX report written to {export_analysis_to_xlsx(result, args.xlsx)}")
    if args.save_snapshot and result.ok:
        snapshot_id = record_snapshot(args.save_snapshot, result.format, raw_text)
        print(f"Saved snapshot #{snapshot_id} as {args.save_snapshot!r}")
    if not args.no_audit and get_preference("audit_log_enabled", True):
        append_analysis_result(result, source)
    return 0 if result.ok else 2


def cmd_snapshot(args: argparse.Namespace) -> int:
    text = collect_local_connection_table()
    if args.output:
        target = Path(args.output)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        print(f"Socket table written to {target}")
    else:
        sys.stdout.write(text)
    return 0


def cmd_threats(args: argparse.Namespace) -> int:
    store = ThreatListStore.load()
    action = args.threats_command

    if action == "list":
        if not store.lists:
            print("No threat lists configured.")
        for threat_list in store.lists:
            status = "active" if threat_list.is_active else "inactive"
            print(f"{threat_list.id}  {threat_list.name} ({status}, {len(threat_list.entries)} entries)")
        return 0
    if action == "export":
        print(f"Exported {len(store.lists)} list(s) to {store.export_json(args.file)}")
        return 0

    if action == "import":
        added = store.import_json(args.file)
        print(f"Successfully imported {added} threat intelligence lists.")
    elif action == "create":
        threat_list = store.create_list(args.name, args.description)
        print(f"Created threat list {threat_list.id}")
    elif action == "add":
        entry = store.add_entry(
            args.list_id,
            args.ip,
            description=args.description,
            severity=args.severity,
            source=args.source,
            tags=args.tag or (),
        )
        print(f"Added {entry.ip} ({entry.severity.value}) as {entry.id}")
    elif action == "toggle":
        state = "active" if store.toggle_list(args.list_id) else "inactive"
        print(f"Threat list {args.list_id} is now {state}")
    elif action == "delete":
        if not store.delete_list(args.list_id):
            raise NetLensError(f"Unknown threat list: {args.list_id}")
        print(f"Deleted threat list {args.list_id}")
    store.save()
    return 0


def cmd_timeline(args: argparse.Namespace) -> int:
    threat_lists = ThreatListStore.load().active_lists()
    snapshots = []
    for row in list_snapshots(args.limit):
        result = analyze_text(row["raw_text"], threat_lists)
        snapshots.append(AnalysisSnapshot.create(str(row["id"]), row["name"], row["created_at"], result))
    if not snapshots:
        print("No analysis history yet. Use 'netlens analyze --save-snapshot NAME' to build a timeline.")
        return 0

    entries = build_ip_timeline(snapshots, args.ip, ThreatIntelMatcher(threat_lists))
    found = sum(1 for entry in entries if entry.ip_found)
    print(f"Timeline for IP: {args.ip} ({found} snapshots found)")
    for entry in entries:
        stamp = entry.snapshot_timestamp.strftime("%Y-%m-%d %H:%M:%S")
        if entry.summary is None:
            print(f"  {stamp}  {entry.snapshot_name}: not found")
            continue
        summary = entry.summary
        print(
            f"  {stamp}  {entry.snapshot_name}: {summary.risk.value}, {summary.connection_count} connection(s), "
            f"ports {', '.join(summary.all_ports) or 'N/A'}, states {', '.join(summary.states)}"
        )
    if args.csv:
        print(f"Timeline written to {export_timeline_to_csv(entries, args.csv)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netlens",
        description="Risk assessment for netstat/ss connection-table snapshots.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    analyze = commands.add_parser("analyze", help="analyse a saved connection table")
    analyze.add_argument("file", help="netstat output file, or '-' for stdin")
    analyze.add_argument("--threat-lists", metavar="JSON", help="threat lists to use instead of the stored ones")
    analyze.add_argument("--json", metavar="OUT", help="write a JSON report")
    analyze.add_argument("--xlsx", metavar="OUT", help="write an XLSX workbook")
    analyze.add_argument("--save-snapshot", metavar="NAME", help="store the input for timeline queries")
    analyze.add_argument("--no-audit", action="store_true", help="skip the audit log entry")
    analyze.set_defaults(handler=cmd_analyze)

    snapshot = commands.add_parser("snapshot", help="dump this host's socket table as netstat text")
    snapshot.add_argument("--output", metavar="FILE")
    snapshot.set_defaults(handler=cmd_snapshot)

    threats = commands.add_parser("threats", help="manage threat-intelligence lists")
    threat_commands = threats.add_subparsers(dest="threats_command", required=True)
    threat_commands.add_parser("list")
    threat_commands.add_parser("import").add_argument("file")
    threat_commands.add_parser("export").add_argument("file")
    create = threat_commands.add_parser("create")
    create.add_argument("name")
    create.add_argument("--description", default="")
    add = threat_commands.add_parser("add")
    add.add_argument("list_id")
    add.add_argument("ip", help="IPv4 address or CIDR block")
    add.add_argument("--severity", choices=["low", "medium", "high", "critical"], default="medium")
    add.add_argument("--description", default="")
    add.add_argument("--source", default="")
    add.add_argument("--tag", action="append")
    threat_commands.add_parser("toggle").add_argument("list_id")
    threat_commands.add_parser("delete").add_argument("list_id")
    threats.set_defaults(handler=cmd_threats)

    timeline = commands.add_parser("timeline", help="follow an IP across stored snapshots")
    timeline.add_argument("ip")
    timeline.add_argument("--limit", type=int, default=25)
    timeline.add_argument("--csv", metavar="OUT")
    timeline.set_defaults(handler=cmd_timeline)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Application entrypoint."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.handler(args)
    except (NetLensError, OSError) as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"netlens: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
