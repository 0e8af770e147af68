"""Collapse multiple source observations of a gene into one record per symbol.

Rules, applied per symbol group (exact, case-sensitive match):

1. Candidates are ranked by completeness: the number of populated fields
   among stable_gene_id, protein_id, nomenclature_id and numeric_id.
2. Equally complete candidates keep source order (first seen wins), so
   callers must pass sources in a fixed order.
3. A missing nomenclature_id is filled from the winner's description when it
   carries a ``[Source:... Symbol;Acc:...]`` token.

When candidates disagree on stable_gene_id the winner's value is kept and the
symbol is reported as ambiguous. Values are never merged.
"""

import logging
import warnings
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

import polars as pl

from genesets_pipeline.errors import AmbiguousMapping, MalformedRecord
from genesets_pipeline.gene_mapping.extract import extract_nomenclature_id
from genesets_pipeline.gene_mapping.records import (
    CROSS_REFERENCE_FIELDS,
    IdentifierRecord,
    clean_value,
)

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    """Summary of one reconciliation pass.

    Attributes:
        total_records: Records offered to the reconciler (excluding malformed rows)
        retained: Records kept (one per symbol)
        duplicates_dropped: Records discarded as duplicates of a retained symbol
        malformed: Raw rows dropped for missing symbol
        ambiguous_symbols: Symbols whose sources disagreed on stable_gene_id
        filled_nomenclature: Retained records whose nomenclature_id came from the description
        with_stable_id: Retained records carrying a stable_gene_id
        completeness_rate: Fraction of retained records with a stable_gene_id (0-1)
    """
    total_records: int = 0
    retained: int = 0
    duplicates_dropped: int = 0
    malformed: int = 0
    ambiguous_symbols: list[str] = field(default_factory=list)
    filled_nomenclature: int = 0
    with_stable_id: int = 0
    completeness_rate: float = 0.0

    def __post_init__(self):
        if self.retained > 0:
            self.completeness_rate = self.with_stable_id / self.retained


def coalesce_identifier(by_stable_id: Any, by_symbol: Any) -> str | None:
    """Merge one field from two lookup passes.

    The stable-id-keyed value wins when non-empty, else the symbol-keyed
    value, else None.
    """
    preferred = clean_value(by_stable_id)
    if preferred is not None:
        return preferred
    return clean_value(by_symbol)


def merge_lookup_passes(
    by_stable_id: IdentifierRecord | None,
    by_symbol: IdentifierRecord | None,
) -> IdentifierRecord | None:
    """Merge the results of a lookup-by-stable-id and a lookup-by-symbol pass.

    Each cross-reference field and the description follow
    :func:`coalesce_identifier`. The symbol and source tag come from the
    stable-id-keyed record when present.
    """
    if by_stable_id is None:
        return by_symbol
    if by_symbol is None:
        return by_stable_id

    merged = {
        name: coalesce_identifier(getattr(by_stable_id, name), getattr(by_symbol, name))
        for name in CROSS_REFERENCE_FIELDS + ("description",)
    }
    return replace(by_stable_id, **merged)


def merge_lookup_columns(
    df: pl.DataFrame,
    output_column: str,
    stable_id_column: str,
    symbol_column: str,
) -> pl.DataFrame:
    """Column-wise version of :func:`coalesce_identifier` for polars tables.

    Empty strings count as missing, same as nulls.
    """
    def _non_empty(name: str) -> pl.Expr:
        col = pl.col(name).cast(pl.Utf8).str.strip_chars()
        return pl.when(col == "").then(None).otherwise(col)

    return df.with_columns(
        pl.coalesce([_non_empty(stable_id_column), _non_empty(symbol_column)])
        .alias(output_column)
    )


class Reconciler:
    """Priority-ordered stable deduplication of IdentifierRecords."""

    def __init__(self, fill_nomenclature: bool = True):
        """Initialize reconciler.

        Args:
            fill_nomenclature: Extract a missing nomenclature_id from the
                description of the retained record (default: True)
        """
        self.fill_nomenclature = fill_nomenclature

    def reconcile(
        self,
        records: Iterable[IdentifierRecord],
    ) -> tuple[list[IdentifierRecord], ReconciliationReport]:
        """Keep one record per symbol.

        Args:
            records: Records in source order (earlier sources win ties)

        Returns:
            Tuple of (retained_records, report). Retained records are in
            order of each symbol's first appearance.
        """
        groups: dict[str, list[IdentifierRecord]] = {}
        total = 0
        for record in records:
            total += 1
            groups.setdefault(record.symbol, []).append(record)

        retained: list[IdentifierRecord] = []
        ambiguous: list[str] = []
        filled = 0

        for symbol, candidates in groups.items():
            # sorted() is stable, so equal completeness keeps source order
            ranked = sorted(candidates, key=lambda r: r.completeness(), reverse=True)
            winner = ranked[0]

            stable_ids = {r.stable_gene_id for r in candidates if r.stable_gene_id}
            if len(stable_ids) > 1:
                ambiguous.append(symbol)
                message = (
                    f"Ambiguous stable_gene_id for {symbol}: {sorted(stable_ids)}; "
                    f"keeping {winner.stable_gene_id} from {winner.source_tag}"
                )
                logger.warning(message)
                warnings.warn(message, AmbiguousMapping, stacklevel=2)

            if self.fill_nomenclature and not winner.nomenclature_id:
                extracted = extract_nomenclature_id(winner.description)
                if extracted:
                    winner = replace(winner, nomenclature_id=extracted)
                    filled += 1

            retained.append(winner)

        report = ReconciliationReport(
            total_records=total,
            retained=len(retained),
            duplicates_dropped=total - len(retained),
            ambiguous_symbols=ambiguous,
            filled_nomenclature=filled,
            with_stable_id=sum(1 for r in retained if r.stable_gene_id),
        )

        logger.info(
            f"Reconciled {total} records to {len(retained)} symbols "
            f"({report.duplicates_dropped} duplicates, {len(ambiguous)} ambiguous, "
            f"{filled} nomenclature IDs from descriptions)"
        )

        return retained, report

    def reconcile_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
        source_tag: str,
        columns: Mapping[str, str] | None = None,
    ) -> tuple[list[IdentifierRecord], ReconciliationReport]:
        """Reconcile raw rows, dropping and counting rows without a symbol."""
        records: list[IdentifierRecord] = []
        malformed = 0
        for row in rows:
            try:
                records.append(IdentifierRecord.from_mapping(row, source_tag, columns))
            except MalformedRecord:
                malformed += 1

        if malformed:
            logger.info(f"Dropped {malformed} {source_tag} rows without a gene symbol")

        retained, report = self.reconcile(records)
        report.malformed = malformed
        return retained, report
