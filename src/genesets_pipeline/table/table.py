"""Gene set table construction and CSV round-trip."""

from pathlib import Path
from typing import Iterable

import polars as pl
import structlog

from genesets_pipeline.gene_mapping.records import RECORD_COLUMNS, IdentifierRecord

logger = structlog.get_logger()


def records_to_frame(records: Iterable[IdentifierRecord]) -> pl.DataFrame:
    """One row per record, record columns in fixed order, all strings."""
    rows = [r.to_dict() for r in records]
    return pl.DataFrame(
        rows,
        schema={name: pl.Utf8 for name in RECORD_COLUMNS},
    )


def load_table(path: Path) -> pl.DataFrame:
    """Read a previously exported table with every column as a string.

    Empty cells come back as null.
    """
    df = pl.read_csv(path, infer_schema_length=0)
    logger.info("table_loaded", path=str(path), rows=df.height, columns=df.width)
    return df


def join_on_symbol(
    table: pl.DataFrame,
    other: pl.DataFrame,
    table_symbol: str = "symbol",
    other_symbol: str = "symbol",
) -> pl.DataFrame:
    """Left-join ``other`` onto ``table`` keeping every table row exactly once.

    ``other`` is reduced to its first row per symbol before joining.
    """
    other = other.unique(subset=other_symbol, keep="first", maintain_order=True)
    if other_symbol != table_symbol:
        other = other.rename({other_symbol: table_symbol})
    return table.join(other, on=table_symbol, how="left")
