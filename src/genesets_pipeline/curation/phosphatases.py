"""Phosphatase curation from HGNC gene groups."""

import polars as pl
import structlog

from genesets_pipeline.api_clients.base import CachedAPIClient
from genesets_pipeline.config.schema import PipelineConfig
from genesets_pipeline.curation.base import (
    StageResult,
    count_flagged,
    null_ortholog_columns,
    stage_output_path,
    write_stage_output,
)
from genesets_pipeline.curation.hgnc_groups import collapse_hgnc_members, with_hgnc_columns
from genesets_pipeline.curation.kinases import map_human_to_mouse
from genesets_pipeline.persistence.provenance import ProvenanceTracker
from genesets_pipeline.sources.biomart import BioMartFetcher
from genesets_pipeline.table import models
from genesets_pipeline.table.classification import classify_phosphatases

logger = structlog.get_logger()

PHOSPHATASE_COLUMNS = [
    "phosphatase_id", "HGNC_symbol", "HGNC_ID", "Name_hgnc",
    "Substrate_protein", "Substrate_lipid", "Substrate_nucleotide",
    "Substrate_carbohydrate", "Substrate_other",
    "Is_catalytic", "Is_regulatory", "Is_receptor_type",
    "Class_primary",
    "Group_hgnc", "Group_ID_hgnc",
    "Status_hgnc", "Locus_type_hgnc",
    "Chromosome", "NCBI_Gene_ID", "Ensembl_ID",
    "Mouse_Symbol", "Ensembl_Mouse",
]


def build_phosphatase_table(
    config: PipelineConfig,
    gene_groups: pl.DataFrame,
    skip_mouse: bool = False,
    biomart: BioMartFetcher | None = None,
) -> StageResult:
    """Build ``phosphatases_human.csv`` from the HGNC gene-group table.

    Keeps approved protein-coding members of the phosphatase groups, one row
    per symbol, classifies them, and numbers them P0001... in symbol order.
    """
    tracker = ProvenanceTracker.from_config(config, stage="phosphatases", species="human")
    gene_groups = with_hgnc_columns(gene_groups)

    rows = gene_groups.filter(
        pl.col(models.HGNC_GROUP_NAME).is_in(models.PHOSPHATASE_GROUPS)
        & (pl.col(models.HGNC_STATUS) == "Approved")
        & (pl.col(models.HGNC_LOCUS_TYPE) == "gene with protein product")
    )
    logger.info(
        "phosphatase_group_rows",
        rows=rows.height,
        groups=len(models.PHOSPHATASE_GROUPS),
    )

    table, report = collapse_hgnc_members(rows)
    tracker.record_step(
        "collapse_groups",
        {"group_rows": rows.height, "symbols": table.height, "malformed": report.malformed},
    )

    table = classify_phosphatases(table).sort("HGNC_symbol")
    table = table.with_columns(
        pl.format("P{}", (pl.int_range(pl.len()) + 1).cast(pl.Utf8).str.zfill(4))
        .alias("phosphatase_id")
    )

    if skip_mouse:
        table = null_ortholog_columns(table)
    else:
        biomart = biomart or BioMartFetcher(CachedAPIClient.from_config(config), species="human")
        table = map_human_to_mouse(table, biomart, symbol_column="HGNC_symbol")

    table = table.select(PHOSPHATASE_COLUMNS)

    output_path = stage_output_path(config, "phosphatases", "human")
    write_stage_output(table, output_path, tracker)

    result = StageResult(
        name="phosphatases",
        output_path=output_path,
        fetched=rows.height,
        retained=table.height,
        flagged=count_flagged(table, ["Is_regulatory"]),
    )
    logger.info(
        "phosphatases_stage_complete",
        fetched=result.fetched,
        retained=result.retained,
        regulatory=result.flagged,
    )
    return result
