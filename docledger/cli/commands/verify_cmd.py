from __future__ import annotations

import argparse
import signal
import sqlite3
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from docledger.cli.context import CLIContext
from docledger.core.batch_verifier import BatchVerifier
from docledger.core.hash_engine import fingerprint_file
from docledger.core.hash_normalizer import normalize, split_manual_input
from docledger.core.links import parse_verify_link
from docledger.core.report_writer import ReportWriter
from docledger.core.spreadsheet_importer import load_batch_job
from docledger.db.repositories import VerificationRunRepository
from docledger.models.document_record import FIELD_LABELS, RECORD_FIELDS
from docledger.models.verification import (
    AggregateStatus,
    BatchJob,
    BatchReport,
    VerificationOutcome,
    VerificationStatus,
)
from docledger.utils.logger import get_logger

logger = get_logger("cli.verify")

_STATUS_STYLES = {
    VerificationStatus.VALID: "green",
    VerificationStatus.INVALID: "red",
    VerificationStatus.ERROR: "yellow",
}
_STATUS_BY_VALUE = {status.value: status for status in VerificationStatus}


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    verify_parser = subparsers.add_parser("verify", help="Verify a single document or fingerprint")
    source = verify_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("fingerprint", nargs="?", help="Fingerprint in any supported encoding")
    source.add_argument("--file", type=Path, help="Document to fingerprint and verify")
    source.add_argument("--link", help="Verification link (…/verify?hash=…)")
    verify_parser.set_defaults(handler=run_verify)

    batch_parser = subparsers.add_parser("batch", help="Verify many fingerprints at once")
    batch_source = batch_parser.add_mutually_exclusive_group(required=True)
    batch_source.add_argument("--hashes", help="Fingerprints separated by spaces or commas")
    batch_source.add_argument("--sheet", type=Path, help="Spreadsheet with Name and Hash columns")
    batch_parser.add_argument("--workers", type=int, default=None, help="Checks in flight at once")
    batch_parser.add_argument("--report-dir", type=Path, default=None, help="Write JSON/TXT reports here")
    batch_parser.set_defaults(handler=run_batch)

    report_parser = subparsers.add_parser("report", help="Show the last batch report written to a directory")
    report_parser.add_argument("directory", nargs="?", type=Path, default=None, help="Report directory (default: report_dir from config)")
    report_parser.set_defaults(handler=run_report)


def run_verify(args: argparse.Namespace, ctx: CLIContext) -> int:
    if args.file is not None:
        fingerprint = fingerprint_file(args.file)
        raw = fingerprint.value
    else:
        raw = parse_verify_link(args.link) if args.link else args.fingerprint
        fingerprint = normalize(raw)

    outcome = ctx.registry_client().check(fingerprint, raw=raw)
    _print_outcome(ctx, outcome)
    return 0 if outcome.is_valid else 1


def run_batch(args: argparse.Namespace, ctx: CLIContext) -> int:
    if args.sheet is not None:
        job = load_batch_job(args.sheet)
    else:
        job = BatchJob.from_values(split_manual_input(args.hashes), source="manual")

    verifier = ctx.batch_verifier(max_workers=args.workers)
    report = _run_cancellable(verifier, job)

    _print_report(ctx, report)

    try:
        VerificationRunRepository(ctx.database().connection).record_run(report)
    except sqlite3.Error as e:
        logger.warning("Could not record verification run: %s", e)

    report_dir = args.report_dir or ctx.config.report_dir_resolved
    if report_dir is not None:
        try:
            _, txt_path = ReportWriter.write_batch_report(Path(report_dir), report)
        except OSError as e:
            logger.error("Could not write verification report to %s: %s", report_dir, e)
            ctx.console.print(f"[red]Could not write report:[/red] {escape(str(e))}")
            return 1
        ctx.console.print(f"Report written to {escape(str(txt_path))}")

    return 0 if report.aggregate_status is AggregateStatus.ALL_VALID else 1


def run_report(args: argparse.Namespace, ctx: CLIContext) -> int:
    directory = args.directory or ctx.config.report_dir_resolved
    if directory is None:
        ctx.console.print("[red]No report directory given and none configured.[/red]")
        return 1

    data = ReportWriter.load_batch_report(Path(directory))
    if data is None:
        ctx.console.print(f"No verification report in {escape(str(directory))}.")
        return 1

    out = Table(title=f"Verification Report ({data.get('generated_at', '?')})")
    out.add_column("#", justify="right")
    out.add_column("Name")
    out.add_column("Fingerprint", no_wrap=True)
    out.add_column("Status")
    for entry in data.get("entries", []):
        status = str(entry.get("status", ""))
        style = _STATUS_STYLES.get(_STATUS_BY_VALUE.get(status), "white")
        detail = entry.get("holder") or entry.get("error") or ""
        out.add_row(
            str(entry.get("position", "")),
            escape(entry.get("label") or ""),
            escape(entry.get("fingerprint") or entry.get("raw") or "(empty)"),
            f"[{style}]{escape(status.upper())}[/{style}]" + (f" -- {escape(str(detail))}" if detail else ""),
        )
    ctx.console.print(out)

    stats = data.get("stats", {})
    ctx.console.print(
        f"Source: {escape(str(data.get('source', '?')))}  "
        f"valid {stats.get('valid', 0)} / invalid {stats.get('invalid', 0)} / errors {stats.get('errors', 0)}  "
        f"status: {escape(str(data.get('aggregate_status', '?')))}"
        + (" (cancelled)" if data.get("cancelled") else "")
    )
    return 0 if data.get("aggregate_status") == AggregateStatus.ALL_VALID.value else 1


def _run_cancellable(verifier: BatchVerifier, job: BatchJob) -> BatchReport:
    """Run a batch; Ctrl-C stops new checks and lets in-flight ones finish."""
    previous = signal.getsignal(signal.SIGINT)

    def _on_interrupt(signum, frame) -> None:
        verifier.cancel()

    signal.signal(signal.SIGINT, _on_interrupt)
    try:
        return verifier.run_batch(job)
    finally:
        signal.signal(signal.SIGINT, previous)


def _print_outcome(ctx: CLIContext, outcome: VerificationOutcome) -> None:
    style = _STATUS_STYLES[outcome.status]
    lines = [
        f"Fingerprint: {escape(outcome.fingerprint or outcome.raw)}",
        f"Status: [{style}]{escape(outcome.status_message)}[/{style}]",
    ]
    if outcome.record is not None:
        lines.append("")
        for name in RECORD_FIELDS:
            value = getattr(outcome.record, name)
            if value:
                lines.append(f"{FIELD_LABELS[name]}: {escape(value)}")
        lines.append(f"Verified at: {outcome.checked_at.isoformat()}")
    ctx.console.print(Panel.fit("\n".join(lines), title="Verify Document"))


def _print_report(ctx: CLIContext, report: BatchReport) -> None:
    out = Table(title=f"Batch Verification ({report.stats.total})")
    out.add_column("#", justify="right")
    out.add_column("Name")
    out.add_column("Fingerprint", no_wrap=True)
    out.add_column("Status")
    for index, outcome in enumerate(report.outcomes, start=1):
        style = _STATUS_STYLES[outcome.status]
        out.add_row(
            str(index),
            escape(outcome.label or ""),
            escape(outcome.fingerprint or outcome.raw or "(empty)"),
            f"[{style}]{escape(outcome.status_message)}[/{style}]",
        )
    ctx.console.print(out)
    ctx.console.print(escape(report.status_message))
