"""Export the curated tables as gene-set-matrix (GMT) files."""

from dataclasses import dataclass
from pathlib import Path

import polars as pl
import structlog

from genesets_pipeline.config.schema import PipelineConfig
from genesets_pipeline.curation.base import SYMBOL_COLUMNS, StageResult, stage_output_path
from genesets_pipeline.gene_mapping.validator import validate_gene_set
from genesets_pipeline.output.gmt import build_entries, combine_gmt_files, write_gmt
from genesets_pipeline.table.table import load_table

logger = structlog.get_logger()

GMT_SPECIES = ("human", "mouse")


@dataclass(frozen=True)
class CuratedSet:
    """One exported gene set.

    Attributes:
        name: GMT set name
        stage: Curated table it is drawn from
        species: Species of the member symbols (selects the output file)
        label: Description text; ``(n=<count>)`` is appended
        member_column: Column holding members; the stage's symbol column
            when None
        filter_column: Only rows with "Y" in this column, when set
    """
    name: str
    stage: str
    species: str
    label: str
    member_column: str | None = None
    filter_column: str | None = None


CURATED_SETS = [
    CuratedSet("KINASES_HUMAN_ALL", "kinases", "human", "All human kinases"),
    CuratedSet(
        "KINASES_HUMAN_PROTEIN", "kinases", "human", "Human protein kinases",
        filter_column="Substrate_protein",
    ),
    CuratedSet(
        "KINASES_MOUSE_ALL", "kinases", "mouse", "All mouse kinases (orthologs)",
        member_column="Mouse_Symbol",
    ),
    CuratedSet("PHOSPHATASES_HUMAN_ALL", "phosphatases", "human", "All human phosphatases from HGNC"),
    CuratedSet(
        "PHOSPHATASES_HUMAN_PROTEIN", "phosphatases", "human", "Human protein phosphatases",
        filter_column="Substrate_protein",
    ),
    CuratedSet(
        "PHOSPHATASES_HUMAN_CATALYTIC", "phosphatases", "human", "Human catalytic phosphatases",
        filter_column="Is_catalytic",
    ),
    CuratedSet(
        "PHOSPHATASES_MOUSE_ALL", "phosphatases", "mouse", "All mouse phosphatases (orthologs)",
        member_column="Mouse_Symbol",
    ),
    CuratedSet("TF_HUMAN_ALL", "tf", "human", "All human transcription factors"),
    CuratedSet(
        "TF_MOUSE_ALL", "tf", "mouse", "All mouse transcription factors (orthologs)",
        member_column="Mouse_Symbol",
    ),
]


def gmt_path(config: PipelineConfig, stage: str, species: str) -> Path:
    return config.gmt_dir / f"{stage}_{species}.gmt"


def combined_gmt_path(config: PipelineConfig, species: str) -> Path:
    return config.gmt_dir / f"curated_genesets_{species}.gmt"


def set_members(table: pl.DataFrame, gene_set: CuratedSet) -> list[str]:
    """Member symbols of ``gene_set`` in table order (may contain repeats)."""
    column = gene_set.member_column or SYMBOL_COLUMNS[gene_set.stage]
    if column not in table.columns:
        logger.warning("gmt_member_column_missing", name=gene_set.name, column=column)
        return []
    if gene_set.filter_column:
        if gene_set.filter_column not in table.columns:
            logger.warning("gmt_filter_column_missing", name=gene_set.name, column=gene_set.filter_column)
            return []
        table = table.filter(pl.col(gene_set.filter_column) == "Y")
    return table[column].drop_nulls().to_list()


def _load_stage_tables(config: PipelineConfig) -> dict[tuple[str, str], pl.DataFrame]:
    """Curated tables present on disk, keyed by (stage, species)."""
    tables = {}
    for stage in SYMBOL_COLUMNS:
        for species in GMT_SPECIES:
            path = stage_output_path(config, stage, species)
            if path.exists():
                tables[(stage, species)] = load_table(path)
    return tables


def _source_table(
    tables: dict[tuple[str, str], pl.DataFrame],
    gene_set: CuratedSet,
) -> tuple[pl.DataFrame | None, CuratedSet]:
    """Table a set is drawn from.

    Mouse sets prefer a mouse-native table of the stage, read through its
    own symbol column, over the ortholog column of the human table.
    """
    if gene_set.species == "mouse" and (gene_set.stage, "mouse") in tables:
        native = CuratedSet(gene_set.name, gene_set.stage, "mouse", gene_set.label)
        return tables[(gene_set.stage, "mouse")], native
    return tables.get((gene_set.stage, "human")), gene_set


def export_curated_gmt(config: PipelineConfig) -> StageResult:
    """Write ``<stage>_<species>.gmt`` per curated table and combined matrices.

    Sets whose source table is missing are skipped, as are empty sets.
    Combined ``curated_genesets_<species>.gmt`` files concatenate the
    per-stage files of one species.

    Returns:
        StageResult with fetched = tables found, retained = sets written and
        flagged = sets failing member validation
    """
    tables = _load_stage_tables(config)
    if not tables:
        logger.warning("gmt_no_curated_tables", output_dir=str(config.output_dir))

    placeholder = config.gmt.description_placeholder
    written: dict[str, list[Path]] = {species: [] for species in GMT_SPECIES}
    sets_written = 0
    failing = 0

    for stage in SYMBOL_COLUMNS:
        for species in GMT_SPECIES:
            groups: dict[str, list[str]] = {}
            descriptions: dict[str, str] = {}
            for gene_set in CURATED_SETS:
                if gene_set.stage != stage or gene_set.species != species:
                    continue
                table, source_set = _source_table(tables, gene_set)
                if table is None:
                    logger.info("gmt_set_skipped_no_table", name=gene_set.name, stage=stage)
                    continue
                members = set_members(table, source_set)
                groups[gene_set.name] = members
                unique_count = len(set(members))
                descriptions[gene_set.name] = (
                    f"{gene_set.label} (n={unique_count})" if gene_set.label else placeholder
                )

                validation = validate_gene_set(members)
                if not validation.passed:
                    failing += 1
                logger.info(
                    "gmt_set_validated",
                    name=gene_set.name,
                    passed=validation.passed,
                    messages=validation.messages,
                )

            entries = build_entries(groups, description=descriptions)
            if not entries:
                continue
            path = write_gmt(entries, gmt_path(config, stage, species))
            written[species].append(path)
            sets_written += len(entries)

    for species, paths in written.items():
        if paths:
            combine_gmt_files(paths, combined_gmt_path(config, species))

    result = StageResult(
        name="export_gmt",
        output_path=config.gmt_dir,
        fetched=len(tables),
        retained=sets_written,
        flagged=failing,
    )
    logger.info(
        "gmt_export_complete",
        tables=result.fetched,
        sets=result.retained,
        failing_validation=result.flagged,
        gmt_dir=str(config.gmt_dir),
    )
    return result
