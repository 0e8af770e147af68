"""Shared pieces of the curation stages: results, output paths, writing."""

from dataclasses import dataclass
from pathlib import Path

import polars as pl
import structlog

from genesets_pipeline.config.schema import PipelineConfig
from genesets_pipeline.output.writers import write_table_csv
from genesets_pipeline.persistence.provenance import ProvenanceTracker

logger = structlog.get_logger()

# Symbol column of each curated table
SYMBOL_COLUMNS = {
    "kinases": "symbol",
    "phosphatases": "HGNC_symbol",
    "tf": "HGNC_symbol",
}

ORTHOLOG_COLUMNS = ("Mouse_Symbol", "Ensembl_Mouse")


@dataclass
class StageResult:
    """Outcome of one curation stage.

    Attributes:
        name: Stage name
        output_path: Primary output file (or directory for multi-file stages)
        fetched: Records or rows obtained from upstream sources
        retained: Rows in the written table
        flagged: Rows with at least one positive classification flag
    """
    name: str
    output_path: Path
    fetched: int = 0
    retained: int = 0
    flagged: int = 0

    def summary_line(self) -> str:
        return f"{self.name}: fetched={self.fetched} retained={self.retained} flagged={self.flagged}"


def stage_output_path(config: PipelineConfig, stage: str, species: str = "human") -> Path:
    """Canonical CSV path of a curated table, e.g. ``<output_dir>/kinases/kinases_human.csv``."""
    return config.output_dir / stage / f"{stage}_{species}.csv"


def count_flagged(df: pl.DataFrame, flag_columns: list[str]) -> int:
    """Rows with "Y" in any of the (present) flag columns."""
    present = [c for c in flag_columns if c in df.columns]
    if not present:
        return 0
    condition = pl.lit(False)
    for column in present:
        condition = condition | (pl.col(column) == "Y").fill_null(False)
    return df.filter(condition).height


def write_stage_output(
    df: pl.DataFrame,
    path: Path,
    tracker: ProvenanceTracker,
) -> Path:
    """Write the table, its checksum sidecar and its provenance sidecar."""
    paths = write_table_csv(df, path)
    tracker.record_step(
        "table_written",
        {"path": str(path), "rows": df.height, "columns": df.columns},
    )
    tracker.save_sidecar(path)
    return paths["csv"]


def null_ortholog_columns(df: pl.DataFrame) -> pl.DataFrame:
    return df.with_columns([pl.lit(None, dtype=pl.Utf8).alias(c) for c in ORTHOLOG_COLUMNS])
