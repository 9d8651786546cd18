from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from payments_recon import __version__ as TOOL_VERSION
from payments_recon.aggregations import build_dashboard
from payments_recon.contracts import build_run_summary
from payments_recon.export import EXPORT_FORMATS, write_export
from payments_recon.filters import FilterCriteria
from payments_recon.ingest import build_ingest_summary, ingest_with_format
from payments_recon.loader import load_matrix

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_NO_RECORDS = 3

OUTPUT_STAMP_ENV = "PAYMENTS_RECON_OUTPUT_STAMP"


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class PaymentsReconArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def configure_logging(args: argparse.Namespace) -> None:
    level = logging.WARNING
    if getattr(args, "verbose", False):
        level = logging.INFO
    if getattr(args, "quiet", False):
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)


def timestamp_token() -> str:
    override = os.environ.get(OUTPUT_STAMP_ENV)
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(input_path: Path) -> Path:
    return Path.cwd() / "payments-recon-output" / f"{input_path.stem}-{timestamp_token()}"


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload))


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (ValueError, UnicodeDecodeError, ImportError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def parse_iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def load_records(args: argparse.Namespace) -> tuple[Path, dict, str, list]:
    input_path = Path(args.input)
    try:
        loaded = load_matrix(input_path, sheet_name=args.sheet_name)
    except Exception as exc:
        raise CliError(str(exc), classify_exception(exc)) from exc
    detected_format, records = ingest_with_format(loaded["rows"])
    for warning in loaded["warnings"]:
        emit_human(f"Warning: {warning}", quiet=args.quiet)
    return input_path, loaded, detected_format, records


def money(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:,.2f}"


# ── Text renderers ─────────────────────────────────────────────────────────────

def render_ingest_text(summary: dict[str, Any]) -> str:
    rows = summary["rows"]
    lines = [
        f"Input: {summary['input_file']}",
        f"Detected format: {summary['detected_format']}",
        f"Rows read: {rows['total']}",
        f"Records: {rows['records']} ({rows['payments']} payments, {rows['facility_rows']} facility rows)",
    ]
    if summary["output_file"]:
        lines.append(f"Export written: {summary['output_file']}")
    return "\n".join(lines)


def render_summary_text(dashboard: dict[str, Any]) -> str:
    kpis = dashboard["kpis"]
    lines = [
        f"Records selected: {dashboard['records_selected']} of {dashboard['records_total']}",
        f"Payments: {kpis['paymentCount']}  Payers: {kpis['payerCount']}",
        f"Total entered:   {money(kpis['totalPaymentsEntered'])}",
        f"Total applied:   {money(kpis['totalPaymentsApplied'])}",
        f"Total unapplied: {money(kpis['totalUnapplied'])}",
        f"Smallest / largest payment: {money(kpis['minPayment'])} / {money(kpis['maxPayment'])}",
    ]
    if kpis["dateRange"]:
        span = kpis["dateRange"]
        lines.append(f"Entered: {span['first']} .. {span['last']} ({span['count']} days)")

    lines.append("")
    lines.append("By payment type:")
    lines.extend(f"  {row['type']}: {money(row['total'])} ({row['count']})" for row in dashboard["by_type"])
    lines.append("Applied by facility:")
    lines.extend(
        f"  {row['facility']}: {money(row['totalApplied'])} ({row['count']})"
        for row in dashboard["by_facility_applied"]
    )
    lines.append("Top payers:")
    lines.extend(f"  {row['payer'] or '(blank)'}: {money(row['total'])} ({row['count']})" for row in dashboard["top_payers"])
    if dashboard["unapplied_by_payment"]:
        lines.append("Outstanding unapplied:")
        lines.extend(
            f"  {row['paymentId']} {row['payer']}: {money(row['unapplied'])}"
            for row in dashboard["unapplied_by_payment"]
        )
    return "\n".join(lines)


# ── Parser ─────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = PaymentsReconArgumentParser(prog="payments-recon", description="Reconcile clinical payment exports.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest an export and write the canonical payment file.")
    ingest.add_argument("input", help="Input file path")
    ingest.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    ingest.add_argument("--output", help="Explicit export path")
    ingest.add_argument("--format", choices=EXPORT_FORMATS, default="csv", help="Export format")
    ingest.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name")
    ingest.add_argument("--json", action="store_true", help="Write the ingest summary as JSON to stdout")
    ingest.add_argument("--dry-run", action="store_true", help="Ingest without writing the export")
    ingest.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    ingest.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    summary = subparsers.add_parser("summary", help="Print totals, breakdowns and KPIs.")
    summary.add_argument("input", help="Input file path")
    summary.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name")
    summary.add_argument("--payer", dest="payers", action="append", default=[], help="Keep only this payer (repeatable)")
    summary.add_argument("--type", dest="payment_types", action="append", default=[], help="Keep only this payment type (repeatable)")
    summary.add_argument("--facility", dest="facilities", action="append", default=[], help="Keep only this facility (repeatable)")
    summary.add_argument("--min-amount", type=float, help="Minimum payment amount")
    summary.add_argument("--max-amount", type=float, help="Maximum payment amount")
    summary.add_argument("--search", default="", help="Substring of payer or notes")
    summary.add_argument("--from", dest="date_from", type=parse_iso_date, help="Earliest date entered (YYYY-MM-DD)")
    summary.add_argument("--to", dest="date_to", type=parse_iso_date, help="Latest date entered (YYYY-MM-DD)")
    summary.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    summary.add_argument("--output", help="Also write the JSON summary to this path")
    summary.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    summary.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    subparsers.add_parser("version", help="Print version")
    return parser


# ── Commands ───────────────────────────────────────────────────────────────────

def run_ingest(args: argparse.Namespace) -> int:
    input_path, loaded, detected_format, records = load_records(args)

    output_path = None
    if not args.dry_run and records:
        if args.output:
            output_path = Path(args.output)
        else:
            out_dir = Path(args.out_dir) if args.out_dir else default_output_dir(input_path)
            output_path = out_dir / f"payments.{args.format}"
        write_export(records, output_path, args.format)

    summary = build_ingest_summary(
        records,
        detected_format=detected_format,
        input_path=input_path,
        total_rows=len(loaded["rows"]),
        output_path=output_path,
        warnings=loaded["warnings"],
    )
    if args.json:
        print(json_dumps(summary))
    else:
        emit_human(render_ingest_text(summary), quiet=args.quiet)

    if not records:
        emit_human("No payment records found.", quiet=args.quiet)
        return EXIT_NO_RECORDS
    return EXIT_SUCCESS


def run_summary(args: argparse.Namespace) -> int:
    input_path, loaded, detected_format, records = load_records(args)
    criteria = FilterCriteria.build(
        payers=args.payers,
        payment_types=args.payment_types,
        facilities=args.facilities,
        min_amount=args.min_amount,
        max_amount=args.max_amount,
        search=args.search,
        date_from=args.date_from,
        date_to=args.date_to,
    )
    dashboard = build_dashboard(records, criteria)
    dashboard["detected_format"] = detected_format
    dashboard["run_summary"] = build_run_summary(
        command="summary",
        input_path=input_path,
        output_path=Path(args.output) if args.output else None,
        warnings=loaded["warnings"],
        metrics={
            "records_total": dashboard["records_total"],
            "records_selected": dashboard["records_selected"],
            "payments": dashboard["kpis"]["paymentCount"],
        },
    )

    if args.output:
        write_json(Path(args.output), dashboard)
        emit_human(f"Summary written: {args.output}", quiet=args.quiet or args.json)
    if args.json:
        print(json_dumps(dashboard))
    else:
        print(render_summary_text(dashboard))

    if not records:
        return EXIT_NO_RECORDS
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        configure_logging(args)
        if args.command == "ingest":
            return run_ingest(args)
        if args.command == "summary":
            return run_summary(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
