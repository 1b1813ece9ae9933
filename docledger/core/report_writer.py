"""Batch verification report generation and loading."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from docledger.models.verification import BatchReport, VerificationStatus
from docledger.utils.constants import BATCH_REPORT_BASENAME, REPORT_TITLE
from docledger.utils.logger import get_logger

logger = get_logger("core.report_writer")


class ReportWriter:
    """Generates and loads JSON/TXT reports for batch verification runs."""

    @staticmethod
    def write_batch_report(directory: Path, report: BatchReport) -> tuple[Path, Path]:
        """Write a report of a batch verification run.

        Generates two files in ``directory``:
        - _verification_report.json  -- machine-readable
        - _verification_report.txt   -- human-readable summary

        Args:
            directory: Output directory (created if missing).
            report: The finished BatchReport.

        Returns:
            Paths of the JSON and TXT reports.
        """
        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        report_data = {
            "generated_at": timestamp,
            "source": report.source,
            "aggregate_status": report.aggregate_status.value,
            "cancelled": report.cancelled,
            "stats": {
                "total": report.stats.total,
                "valid": report.stats.valid,
                "invalid": report.stats.invalid,
                "errors": report.stats.errors,
                "skipped": report.stats.skipped,
            },
            "entries": [
                {
                    "position": index + 1,
                    "label": o.label,
                    "raw": o.raw,
                    "fingerprint": o.fingerprint,
                    "status": o.status.value,
                    "error": o.error,
                    "holder": o.record.full_name if o.record else None,
                    "checked_at": o.checked_at.isoformat(),
                }
                for index, o in enumerate(report.outcomes)
            ],
        }

        json_path = directory / f"{BATCH_REPORT_BASENAME}.json"
        json_path.write_text(
            json.dumps(report_data, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("Verification report (JSON) written to: %s", json_path)

        lines = [
            REPORT_TITLE,
            f"Generated: {timestamp}",
            f"Source:    {report.source}",
            "",
            "=== Summary ===",
            f"  Status:   {report.status_message}",
            f"  Total:    {report.stats.total}",
            f"  Valid:    {report.stats.valid}",
            f"  Invalid:  {report.stats.invalid}",
            f"  Errors:   {report.stats.errors}",
        ]
        if report.stats.skipped:
            lines.append(f"  Skipped:  {report.stats.skipped}")
        lines.append("")

        problems = [o for o in report.outcomes if o.status is not VerificationStatus.VALID]
        if problems:
            lines.append(f"=== Not Valid ({len(problems)}) ===")
            lines.append("")
            for o in problems:
                lines.append(f"  {o.display_name}")
                if o.label:
                    lines.append(f"    Fingerprint: {o.fingerprint or o.raw or '(empty)'}")
                lines.append(f"    Status: {o.status_message}")
                lines.append("")

        valid = [o for o in report.outcomes if o.status is VerificationStatus.VALID]
        if valid:
            lines.append(f"=== Valid ({len(valid)}) ===")
            lines.append("")
            for o in valid:
                holder = o.record.display_label if o.record else "?"
                lines.append(f"  {o.display_name} -> {holder}")
            lines.append("")

        txt_path = directory / f"{BATCH_REPORT_BASENAME}.txt"
        txt_path.write_text("\n".join(lines), encoding="utf-8")
        logger.info("Verification report (TXT) written to: %s", txt_path)

        return json_path, txt_path

    @staticmethod
    def load_batch_report(directory: Path) -> dict | None:
        """Load a previously written JSON report.

        Returns:
            Parsed report data dict, or None if no readable report exists.
        """
        json_path = directory / f"{BATCH_REPORT_BASENAME}.json"
        if not json_path.exists():
            logger.debug("No verification report found at %s", json_path)
            return None

        try:
            data = json.loads(json_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Failed to load verification report: %s", e)
            return None

        logger.info(
            "Loaded verification report: %d entries (from %s)",
            len(data.get("entries", [])),
            data.get("generated_at", "?"),
        )
        return data
