"""Classification enrichment: Y/N membership flags against reference sets."""

from typing import Iterable, Mapping

import polars as pl
import structlog

from genesets_pipeline.errors import SourceUnavailable

logger = structlog.get_logger()

DEFAULT_SYMBOL_COLUMNS = ("symbol", "alias_symbol")


def annotate_membership(
    df: pl.DataFrame,
    flag_column: str,
    reference: Iterable[str],
    symbol_columns: Iterable[str] = DEFAULT_SYMBOL_COLUMNS,
) -> pl.DataFrame:
    """Add or overwrite a Y/N flag: Y when ANY symbol column is in ``reference``.

    Symbol columns missing from ``df`` are ignored. Rows are never removed
    and an existing flag column keeps its position, so re-running with the
    same reference gives identical output.

    Args:
        df: Gene set table
        flag_column: Name of the flag column
        reference: Qualifying symbols
        symbol_columns: Primary and alias symbol columns to test

    Returns:
        DataFrame with the flag column set to "Y" or "N"
    """
    reference_series = pl.Series("reference", sorted(set(reference)), dtype=pl.Utf8)
    present = [c for c in symbol_columns if c in df.columns]

    match = pl.lit(False)
    for column in present:
        match = match | pl.col(column).cast(pl.Utf8).is_in(reference_series).fill_null(False)

    df = df.with_columns(
        pl.when(match).then(pl.lit("Y")).otherwise(pl.lit("N")).alias(flag_column)
    )

    logger.info(
        "membership_annotated",
        flag=flag_column,
        reference_size=reference_series.len(),
        columns=present,
        flagged=df.filter(pl.col(flag_column) == "Y").height,
    )
    return df


def move_column_to_end(df: pl.DataFrame, column: str) -> pl.DataFrame:
    """Reorder so ``column`` is last; no-op when absent."""
    if column not in df.columns:
        return df
    return df.select([c for c in df.columns if c != column] + [column])


def annotate_kegg_flags(
    df: pl.DataFrame,
    kegg,
    mapper,
    flags: Mapping[str, str],
    symbol_columns: Iterable[str] = DEFAULT_SYMBOL_COLUMNS,
    last_column: str = "go_id",
) -> pl.DataFrame:
    """Flag rows whose symbol belongs to KEGG pathways matching each pattern.

    Args:
        df: Gene set table
        kegg: KEGGClient for the table's species
        mapper: GeneMapper used to turn KEGG Entrez IDs into symbols
        flags: Flag column -> pathway title regex
            (e.g. ``{"Metabolic": "Metabolic pathways|metabolism"}``)
        symbol_columns: Primary and alias symbol columns to test
        last_column: Column moved to the end afterwards

    Returns:
        DataFrame with one Y/N column per flag. When KEGG or mygene is
        unavailable the flag is written as all "N".
    """
    symbol_columns = tuple(symbol_columns)
    for flag_column, pattern in flags.items():
        try:
            entrez_ids = kegg.pathway_gene_ids(pattern)
            reference = mapper.map_entrez_to_symbols(sorted(entrez_ids))
        except SourceUnavailable as e:
            logger.warning(
                "kegg_flag_degraded",
                flag=flag_column,
                source=e.source,
                reason=e.reason,
            )
            reference = set()
        df = annotate_membership(df, flag_column, reference, symbol_columns)

    return move_column_to_end(df, last_column)
