"""Transcription factor curation from HGNC gene groups."""

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
from genesets_pipeline.errors import SourceUnavailable
from genesets_pipeline.persistence.provenance import ProvenanceTracker
from genesets_pipeline.sources.biomart import BioMartFetcher
from genesets_pipeline.table import models
from genesets_pipeline.table.classification import is_tf_group
from genesets_pipeline.table.enrichment import annotate_membership

logger = structlog.get_logger()

TF_COLUMNS = [
    "HGNC_symbol", "HGNC_ID", "Name_hgnc",
    "Group_hgnc", "Group_ID_hgnc",
    "Status_hgnc", "Locus_type_hgnc",
    "Chromosome", "NCBI_Gene_ID", "Ensembl_ID",
    "In_GO_TF",
    "Mouse_Symbol", "Ensembl_Mouse",
]


def fetch_go_tf_symbols(biomart: BioMartFetcher) -> set[str]:
    """Symbols annotated with a DNA-binding TF activity GO term; empty when BioMart is down."""
    try:
        go_genes = biomart.fetch_by_go_terms(models.TF_GO_TERMS)
    except SourceUnavailable as e:
        logger.warning("go_tf_lookup_skipped", source=e.source, reason=e.reason)
        return set()
    return set(go_genes["symbol"].drop_nulls().to_list())


def build_tf_table(
    config: PipelineConfig,
    gene_groups: pl.DataFrame,
    go_tf_symbols: set[str] | None = None,
    skip_mouse: bool = False,
    biomart: BioMartFetcher | None = None,
) -> StageResult:
    """Build ``tf_human.csv`` from the HGNC gene-group table.

    Members of any TF-family group are kept, one row per symbol with its
    first TF group. ``In_GO_TF`` marks symbols also carrying a TF GO term;
    when ``go_tf_symbols`` is None they are fetched from BioMart.
    """
    tracker = ProvenanceTracker.from_config(config, stage="tf", species="human")
    gene_groups = with_hgnc_columns(gene_groups)
    needs_biomart = go_tf_symbols is None or not skip_mouse
    if needs_biomart and biomart is None:
        biomart = BioMartFetcher(CachedAPIClient.from_config(config), species="human")

    keep = [is_tf_group(name) for name in gene_groups[models.HGNC_GROUP_NAME].to_list()]
    rows = gene_groups.filter(pl.Series(keep, dtype=pl.Boolean))
    logger.info(
        "tf_group_rows",
        rows=rows.height,
        groups=rows[models.HGNC_GROUP_NAME].n_unique(),
    )

    table, report = collapse_hgnc_members(rows, join_groups=False)
    table = table.sort("HGNC_symbol")
    tracker.record_step(
        "collapse_groups",
        {"group_rows": rows.height, "symbols": table.height, "malformed": report.malformed},
    )

    if go_tf_symbols is None:
        go_tf_symbols = fetch_go_tf_symbols(biomart)
    table = annotate_membership(table, "In_GO_TF", go_tf_symbols, symbol_columns=("HGNC_symbol",))
    tracker.record_step("go_tf_flag", {"go_terms": models.TF_GO_TERMS, "reference": len(go_tf_symbols)})

    if skip_mouse:
        table = null_ortholog_columns(table)
    else:
        table = map_human_to_mouse(table, biomart, symbol_column="HGNC_symbol")

    table = table.select(TF_COLUMNS)

    output_path = stage_output_path(config, "tf", "human")
    write_stage_output(table, output_path, tracker)

    result = StageResult(
        name="tf",
        output_path=output_path,
        fetched=rows.height,
        retained=table.height,
        flagged=count_flagged(table, ["In_GO_TF"]),
    )
    logger.info(
        "tf_stage_complete",
        fetched=result.fetched,
        retained=result.retained,
        in_go_tf=result.flagged,
    )
    return result
