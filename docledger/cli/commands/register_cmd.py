from __future__ import annotations

import argparse
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from docledger.cli.context import CLIContext
from docledger.core.hash_engine import fingerprint_file
from docledger.core.hash_normalizer import normalize
from docledger.core.links import build_verify_link
from docledger.models.document_record import DocumentRecord


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    hash_parser = subparsers.add_parser("hash", help="Compute document fingerprints")
    hash_parser.add_argument("files", nargs="+", type=Path)
    hash_parser.set_defaults(handler=run_hash)

    add_parser = subparsers.add_parser("add", help="Register a document and its holder's details")
    add_parser.add_argument("file", type=Path)
    add_parser.add_argument("--name", dest="full_name", required=True)
    add_parser.add_argument("--dob", required=True)
    add_parser.add_argument("--gender", default="")
    add_parser.add_argument("--address", default="")
    add_parser.add_argument("--phone", required=True)
    add_parser.add_argument("--email", required=True)
    add_parser.add_argument("--aadhaar", default="")
    add_parser.add_argument("--pan", default="")
    add_parser.add_argument("--passport", default="")
    add_parser.add_argument("--driving-license", dest="driving_license", default="")
    add_parser.add_argument("--voter-id", dest="voter_id", default="")
    add_parser.set_defaults(handler=run_add)

    link_parser = subparsers.add_parser("link", help="Print the verification link for a fingerprint")
    link_parser.add_argument("fingerprint")
    link_parser.set_defaults(handler=run_link)


def run_hash(args: argparse.Namespace, ctx: CLIContext) -> int:
    out = Table(title=f"Fingerprints ({len(args.files)})")
    out.add_column("File")
    out.add_column("Fingerprint", no_wrap=True)
    for path in args.files:
        out.add_row(escape(str(path)), fingerprint_file(path).value)
    ctx.console.print(out)
    return 0


def run_add(args: argparse.Namespace, ctx: CLIContext) -> int:
    fingerprint = fingerprint_file(args.file)
    record = DocumentRecord(
        full_name=args.full_name,
        dob=args.dob,
        gender=args.gender,
        address=args.address,
        phone=args.phone,
        email=args.email,
        aadhaar=args.aadhaar,
        pan=args.pan,
        passport=args.passport,
        driving_license=args.driving_license,
        voter_id=args.voter_id,
    )

    receipt = ctx.registry_client().add(fingerprint, record)
    ctx.record_cache().record_success(fingerprint, record.full_name)

    lines = [
        f"Fingerprint: {fingerprint.value}",
        f"Transaction: {receipt.transaction_hash}",
        f"Block: {receipt.block_number if receipt.block_number is not None else '?'}",
        f"Verify link: {build_verify_link(ctx.config.verify_base_url, fingerprint)}",
    ]
    ctx.console.print(Panel.fit(escape("\n".join(lines)), title="Registered"))
    return 0


def run_link(args: argparse.Namespace, ctx: CLIContext) -> int:
    fingerprint = normalize(args.fingerprint)
    ctx.console.print(build_verify_link(ctx.config.verify_base_url, fingerprint), soft_wrap=True)
    return 0
