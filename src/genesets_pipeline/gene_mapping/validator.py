"""Quality gates applied after reconciliation and before GMT export.

A reconciled table passes when enough retained records carry a stable gene
ID. Each curated gene set must be non-empty, without blank or repeated
members.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from genesets_pipeline.errors import OutputWriteFailure
from genesets_pipeline.gene_mapping.reconciler import ReconciliationReport

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of a quality gate.

    Messages start with PASSED, WARNING or FAILED when they carry a verdict;
    the remaining ones are informational.
    """
    passed: bool
    messages: list[str] = field(default_factory=list)
    stable_id_rate: float = 0.0


class ReconciliationValidator:
    """Stable-ID coverage gate for a ReconciliationReport."""

    def __init__(
        self,
        min_stable_id_rate: float = 0.90,
        warn_threshold: float = 0.95
    ):
        self.min_stable_id_rate = min_stable_id_rate
        self.warn_threshold = warn_threshold

    def _verdict(self, report: ReconciliationReport) -> tuple[bool, str]:
        rate = report.completeness_rate
        if report.retained == 0:
            return False, "FAILED: No records retained after reconciliation"
        if rate < self.min_stable_id_rate:
            return False, (
                f"FAILED: {rate:.1%} of retained genes have a stable ID, "
                f"minimum is {self.min_stable_id_rate:.1%}"
            )
        if rate < self.warn_threshold:
            return True, (
                f"WARNING: {rate:.1%} of retained genes have a stable ID, "
                f"expected at least {self.warn_threshold:.1%}"
            )
        return True, (
            f"PASSED: {report.with_stable_id}/{report.retained} retained genes "
            f"have a stable ID ({rate:.1%})"
        )

    def validate(self, report: ReconciliationReport) -> ValidationResult:
        """Check stable-ID coverage of a reconciliation pass.

        Ambiguous symbols and malformed rows are listed in the messages but
        never fail the gate.
        """
        passed, verdict = self._verdict(report)
        messages = [
            verdict,
            f"Retained {report.retained}/{report.total_records} records "
            f"({report.duplicates_dropped} duplicates dropped)",
        ]
        if report.malformed:
            messages.append(f"Dropped {report.malformed} rows without a gene symbol")
        if report.ambiguous_symbols:
            shown = ", ".join(report.ambiguous_symbols[:10])
            messages.append(
                f"{len(report.ambiguous_symbols)} symbols map to several "
                f"stable IDs: {shown}"
            )

        logger.info(verdict)
        return ValidationResult(
            passed=passed,
            messages=messages,
            stable_id_rate=report.completeness_rate,
        )

    def save_ambiguous_report(
        self,
        report: ReconciliationReport,
        output_path: Path
    ) -> None:
        """Write ambiguous symbols, one per line, under a commented header.

        Raises:
            OutputWriteFailure: If the file cannot be written
        """
        output_path = Path(output_path)
        header = [
            "# Ambiguous gene symbols",
            f"# Generated: {datetime.now():%Y-%m-%d %H:%M:%S}",
            f"# Total ambiguous: {len(report.ambiguous_symbols)}",
            "#",
        ]
        lines = header + list(report.ambiguous_symbols)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as e:
            raise OutputWriteFailure(output_path, str(e)) from e

        logger.info(
            f"Wrote {len(report.ambiguous_symbols)} ambiguous symbols to {output_path}"
        )


def validate_gene_set(symbols: list[str]) -> ValidationResult:
    """Gate for one gene set: non-empty, no blank members, no repeats."""
    if not symbols:
        return ValidationResult(passed=False, messages=["FAILED: Gene set is empty"])

    messages: list[str] = []
    blanks = sum(1 for s in symbols if s is None or not str(s).strip())
    if blanks:
        messages.append(f"FAILED: {blanks} blank members")

    repeated = {s: n for s, n in Counter(symbols).items() if n > 1}
    if repeated:
        messages.append(f"FAILED: repeated members {sorted(map(str, repeated))}")

    passed = not messages
    if passed:
        messages.append(f"PASSED: {len(symbols)} distinct members")
    logger.info(f"Gene set validation: {messages[0]}")
    return ValidationResult(passed=passed, messages=messages)
