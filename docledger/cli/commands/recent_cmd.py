from __future__ import annotations

import argparse

from rich.markup import escape
from rich.table import Table

from docledger.cli.context import CLIContext
from docledger.db.repositories import VerificationRunRepository


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    recent_parser = subparsers.add_parser("recent", help="Show recently registered documents")
    recent_parser.add_argument("--clear", action="store_true", help="Forget the recent list")
    recent_parser.add_argument("--runs", type=int, default=0, help="Also list the last N batch runs")
    recent_parser.set_defaults(handler=run_recent)


def run_recent(args: argparse.Namespace, ctx: CLIContext) -> int:
    cache = ctx.record_cache()
    if args.clear:
        cache.clear()
        ctx.console.print("Recent list cleared.")
        return 0

    entries = cache.list()
    if not entries:
        ctx.console.print("No recent uploads.")
    else:
        out = Table(title=f"Recent Uploads ({len(entries)})")
        out.add_column("Name")
        out.add_column("Fingerprint", no_wrap=True)
        out.add_column("Added")
        for entry in entries:
            out.add_row(escape(entry.label or "(Unnamed)"), entry.fingerprint, entry.created_at.isoformat(timespec="seconds"))
        ctx.console.print(out)

    if args.runs > 0:
        runs = VerificationRunRepository(ctx.database().connection).get_recent_runs(args.runs)
        runs_table = Table(title=f"Batch Runs ({len(runs)})")
        for column in ("Completed", "Source", "Total", "Valid", "Invalid", "Errors", "Status"):
            runs_table.add_column(column)
        for run in runs:
            runs_table.add_row(
                str(run["completed_at"]),
                escape(str(run["source"])),
                str(run["total"]),
                str(run["valid"]),
                str(run["invalid"]),
                str(run["errors"]),
                str(run["aggregate_status"]) + (" (cancelled)" if run["cancelled"] else ""),
            )
        ctx.console.print(runs_table)
    return 0
