"""Collapse HGNC gene-group membership rows to one row per approved symbol."""

import polars as pl

from genesets_pipeline.gene_mapping.reconciler import Reconciler, ReconciliationReport
from genesets_pipeline.table import models
from genesets_pipeline.table.table import records_to_frame

# Gene-group table column -> identifier record field
HGNC_RECORD_COLUMNS = {
    "symbol": models.HGNC_SYMBOL,
    "stable_gene_id": models.HGNC_ENSEMBL,
    "numeric_id": models.HGNC_ENTREZ,
    "nomenclature_id": models.HGNC_ID,
    "description": models.HGNC_NAME,
}

EXPECTED_COLUMNS = [
    models.HGNC_SYMBOL, models.HGNC_ID, models.HGNC_NAME, models.HGNC_STATUS,
    models.HGNC_LOCUS_TYPE, models.HGNC_GROUP_NAME, models.HGNC_GROUP_ID,
    models.HGNC_CHROMOSOME, models.HGNC_ENTREZ, models.HGNC_ENSEMBL,
]


def with_hgnc_columns(gene_groups: pl.DataFrame) -> pl.DataFrame:
    """Add any expected HGNC column missing from the download as null."""
    missing = [c for c in EXPECTED_COLUMNS if c not in gene_groups.columns]
    if missing:
        gene_groups = gene_groups.with_columns(
            [pl.lit(None, dtype=pl.Utf8).alias(c) for c in missing]
        )
    return gene_groups


def collapse_hgnc_members(
    rows: pl.DataFrame, join_groups: bool = True
) -> tuple[pl.DataFrame, ReconciliationReport]:
    """One row per approved symbol from gene-group membership rows.

    Identifiers come from the reconciled record of each symbol. Group names
    and IDs are ``; ``-joined in first-seen order, or only the first group is
    kept when ``join_groups`` is False.

    Returns:
        Tuple of (table with HGNC_symbol, HGNC_ID, Name_hgnc, NCBI_Gene_ID,
        Ensembl_ID, Group_hgnc, Group_ID_hgnc, Status_hgnc, Locus_type_hgnc,
        Chromosome; reconciliation report)
    """
    rows = with_hgnc_columns(rows)
    records, report = Reconciler().reconcile_rows(
        rows.iter_rows(named=True), "hgnc_gene_groups", HGNC_RECORD_COLUMNS
    )
    identifiers = records_to_frame(records).select(
        pl.col("symbol").alias("HGNC_symbol"),
        pl.col("nomenclature_id").alias("HGNC_ID"),
        pl.col("description").alias("Name_hgnc"),
        pl.col("numeric_id").alias("NCBI_Gene_ID"),
        pl.col("stable_gene_id").alias("Ensembl_ID"),
    )

    def _groups(column: str) -> pl.Expr:
        values = pl.col(column).cast(pl.Utf8).drop_nulls()
        if join_groups:
            return values.unique(maintain_order=True).str.join("; ")
        return values.first()

    groups = (
        rows.filter(pl.col(models.HGNC_SYMBOL).is_not_null())
        .group_by(models.HGNC_SYMBOL, maintain_order=True)
        .agg(
            _groups(models.HGNC_GROUP_NAME).alias("Group_hgnc"),
            _groups(models.HGNC_GROUP_ID).alias("Group_ID_hgnc"),
            pl.col(models.HGNC_STATUS).first().alias("Status_hgnc"),
            pl.col(models.HGNC_LOCUS_TYPE).first().alias("Locus_type_hgnc"),
            pl.col(models.HGNC_CHROMOSOME).first().alias("Chromosome"),
        )
        .rename({models.HGNC_SYMBOL: "HGNC_symbol"})
    )

    return identifiers.join(groups, on="HGNC_symbol", how="left"), report
