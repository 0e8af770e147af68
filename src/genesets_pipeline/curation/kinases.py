"""Kinase curation: GO seed list, two-pass ID lookup, KEGG flags, orthologs."""

from dataclasses import replace
from pathlib import Path
from typing import Iterable

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
from genesets_pipeline.errors import SourceUnavailable
from genesets_pipeline.gene_mapping.extract import strip_source_annotation
from genesets_pipeline.gene_mapping.mapper import GeneMapper
from genesets_pipeline.gene_mapping.reconciler import (
    Reconciler,
    ReconciliationReport,
    merge_lookup_columns,
    merge_lookup_passes,
)
from genesets_pipeline.gene_mapping.records import IdentifierRecord
from genesets_pipeline.gene_mapping.validator import ReconciliationValidator
from genesets_pipeline.output.writers import write_table_csv
from genesets_pipeline.persistence.provenance import ProvenanceTracker
from genesets_pipeline.sources.base import fetch_or_empty
from genesets_pipeline.sources.biomart import BioMartFetcher
from genesets_pipeline.sources.kegg import KEGGClient
from genesets_pipeline.sources.hgnc import HGNCFetcher
from genesets_pipeline.sources.kinhub import KINHUB_URL, fetch_kinhub_table, parse_kinhub_table
from genesets_pipeline.sources.uniprot import UniProtFetcher
from genesets_pipeline.table.classification import (
    classify_kinase_substrate,
    reconcile_kinase_catalogs,
)
from genesets_pipeline.table.enrichment import (
    annotate_kegg_flags,
    annotate_membership,
    move_column_to_end,
)
from genesets_pipeline.table.table import join_on_symbol, records_to_frame

logger = structlog.get_logger()

SEED_SOURCE_TAG = "biomart_go"

KINASE_FLAGS = ["Metabolic", "Lipid"]

# Manning names match on symbols and on resolved HGNC and Ensembl IDs
CATALOG_MATCH_COLUMNS = ("symbol", "alias_symbol", "nomenclature_id", "stable_gene_id")


def _index_by_symbol(records: list[IdentifierRecord]) -> dict[str, IdentifierRecord]:
    """Reconcile one lookup pass and index the winners by symbol."""
    retained, _ = Reconciler(fill_nomenclature=False).reconcile(records)
    return {r.symbol: r for r in retained}


def resolve_kinase_records(
    seed: pl.DataFrame,
    biomart: BioMartFetcher,
    mapper: GeneMapper,
) -> tuple[list[IdentifierRecord], ReconciliationReport]:
    """Combine the seed list with both lookup passes and reconcile.

    Seed records come first so they win completeness ties. Each seed gene
    also gets one merged record: the lookup-by-stable-id result preferred
    field by field over the lookup-by-symbol result. Both passes degrade to
    empty on SourceUnavailable.
    """
    seed_records = [
        IdentifierRecord.from_mapping(row, SEED_SOURCE_TAG)
        for row in seed.select(
            "symbol", "stable_gene_id", "nomenclature_id", "description"
        ).iter_rows(named=True)
    ]
    symbols = [r.symbol for r in seed_records]
    stable_ids = [r.stable_gene_id for r in seed_records if r.stable_gene_id]

    by_symbol = _index_by_symbol(fetch_or_empty(biomart, symbols))

    try:
        by_stable = mapper.map_stable_ids(stable_ids) if stable_ids else {}
    except SourceUnavailable as e:
        logger.warning("stable_id_lookup_skipped", source=e.source, reason=e.reason)
        by_stable = {}

    merged = []
    for seed_record in seed_records:
        result = merge_lookup_passes(
            by_stable.get(seed_record.stable_gene_id),
            by_symbol.get(seed_record.symbol),
        )
        if result is not None:
            # The seed symbol names the row even if a lookup returned a newer symbol
            merged.append(replace(result, symbol=seed_record.symbol, source_tag="lookup_merged"))

    logger.info(
        "kinase_lookup_passes_complete",
        seed=len(seed_records),
        by_symbol=len(by_symbol),
        by_stable_id=len(by_stable),
        merged=len(merged),
    )
    return Reconciler().reconcile(seed_records + merged)


def map_human_to_mouse(
    table: pl.DataFrame,
    fetcher: BioMartFetcher,
    symbol_column: str = "symbol",
) -> pl.DataFrame:
    """Add Mouse_Symbol and Ensembl_Mouse, keeping one row per human symbol.

    When BioMart is unavailable both columns are left empty.
    """
    symbols = table[symbol_column].drop_nulls().to_list()
    try:
        orthologs = fetcher.fetch_orthologs(symbols)
    except SourceUnavailable as e:
        logger.warning("ortholog_mapping_skipped", source=e.source, reason=e.reason)
        return null_ortholog_columns(table)

    table = join_on_symbol(
        table.drop([c for c in ("Mouse_Symbol", "Ensembl_Mouse") if c in table.columns]),
        orthologs,
        table_symbol=symbol_column,
        other_symbol="symbol",
    )
    logger.info(
        "orthologs_mapped",
        rows=table.height,
        mapped=table.filter(pl.col("Mouse_Symbol").is_not_null()).height,
    )
    return table


def resolve_catalog_names(names: list[str], hgnc: HGNCFetcher) -> set[str]:
    """Current HGNC symbols, HGNC IDs and Ensembl IDs behind catalog names.

    Catalog names predate many HGNC renames; matching on these identifiers
    also finds kinases whose catalog name is now a previous symbol or alias.
    """
    identifiers = set()
    for record in hgnc.fetch(names):
        identifiers.update(
            v for v in (record.symbol, record.nomenclature_id, record.stable_gene_id) if v
        )
    return identifiers


def load_kinhub(kinhub_path: Path | None, client: CachedAPIClient) -> pl.DataFrame | None:
    """KinHub catalog from a saved page, else from kinhub.org.

    Returns None when the download fails.
    """
    if kinhub_path:
        return parse_kinhub_table(Path(kinhub_path).read_text(encoding="utf-8"))
    try:
        return fetch_kinhub_table(client)
    except SourceUnavailable as e:
        logger.warning("kinhub_fetch_skipped", source=e.source, reason=e.reason)
        return None


def annotate_kinase_catalogs(
    table: pl.DataFrame,
    manning: pl.DataFrame,
    kinhub: pl.DataFrame | None,
    output_dir: Path,
    resolved: Iterable[str] = (),
) -> pl.DataFrame:
    """Flag In_Manning / In_KinHub and write the catalog reconciliation table.

    ``resolved`` adds identifiers of the Manning names (see
    :func:`resolve_catalog_names`). Without a KinHub catalog only
    In_Manning is set and no reconciliation table is written.
    """
    manning_names = manning[manning.columns[0]].drop_nulls().to_list()
    table = annotate_membership(
        table, "In_Manning", set(manning_names) | set(resolved), CATALOG_MATCH_COLUMNS
    )
    if kinhub is None:
        return table

    kinhub_key = "Manning Name" if "Manning Name" in kinhub.columns else "HGNC"
    catalog = reconcile_kinase_catalogs(manning, kinhub, kinhub_key=kinhub_key)
    write_table_csv(catalog, Path(output_dir) / "kinase_catalog_reconciliation.csv")

    return annotate_membership(table, "In_KinHub", kinhub["HGNC"].drop_nulls().to_list())


def fill_protein_ids(table: pl.DataFrame, uniprot: UniProtFetcher) -> tuple[pl.DataFrame, int]:
    """Fill missing protein_id values from UniProt search hits.

    Existing values are kept. Returns the table and the number of filled rows.
    """
    missing = table.filter(pl.col("protein_id").is_null())["symbol"].to_list()
    if not missing:
        return table, 0

    hits = uniprot.fetch(missing)
    lookup = pl.DataFrame(
        {
            "symbol": [r.symbol for r in hits],
            "protein_id_uniprot": [r.protein_id for r in hits],
        },
        schema={"symbol": pl.Utf8, "protein_id_uniprot": pl.Utf8},
    )
    table = merge_lookup_columns(
        join_on_symbol(table, lookup), "protein_id", "protein_id", "protein_id_uniprot"
    ).drop("protein_id_uniprot")

    filled = len(missing) - table.filter(pl.col("protein_id").is_null()).height
    logger.info("uniprot_protein_ids_filled", missing=len(missing), filled=filled)
    return table, filled


def build_kinase_table(
    config: PipelineConfig,
    species: str | None = None,
    skip_mouse: bool = False,
    client: CachedAPIClient | None = None,
    biomart: BioMartFetcher | None = None,
    mapper: GeneMapper | None = None,
    kegg: KEGGClient | None = None,
    hgnc: HGNCFetcher | None = None,
    uniprot: UniProtFetcher | None = None,
) -> StageResult:
    """Build ``kinases_<species>.csv``.

    Steps:
    1. BioMart genes annotated with the configured kinase GO terms
       (essential: SourceUnavailable propagates)
    2. Lookup-by-symbol (BioMart) and lookup-by-stable-id (mygene) passes,
       merged and reconciled to one record per symbol
    3. Substrate_protein from GO terms; Metabolic and Lipid flags from KEGG
       (all "N" when KEGG is unavailable)
    4. Mouse only: missing protein IDs filled from UniProt search
    5. Manning/KinHub catalog flags when a Manning table is configured;
       human Manning names are resolved through HGNC first
    6. Human only: mouse orthologs unless ``skip_mouse``

    Returns:
        StageResult for the written table
    """
    species = species or config.species
    kinase_config = config.kinases
    client = client or CachedAPIClient.from_config(config)
    biomart = biomart or BioMartFetcher(
        client, species=species, exclude_symbol_pattern=kinase_config.exclude_symbol_pattern
    )
    mapper = mapper or GeneMapper(species=species)
    kegg = kegg or KEGGClient(client, species=species)

    tracker = ProvenanceTracker.from_config(config, stage="kinases", species=species)

    seed = biomart.fetch_by_go_terms(kinase_config.go_terms)
    tracker.record_step("fetch_go_seed", {"go_terms": kinase_config.go_terms, "genes": seed.height})

    retained, report = resolve_kinase_records(seed, biomart, mapper)
    validation = ReconciliationValidator().validate(report)
    for message in validation.messages:
        logger.info("kinase_reconciliation_check", message=message)
    tracker.record_step(
        "reconcile",
        {
            "total_records": report.total_records,
            "retained": report.retained,
            "ambiguous_symbols": report.ambiguous_symbols,
            "filled_nomenclature": report.filled_nomenclature,
        },
    )

    retained = [replace(r, description=strip_source_annotation(r.description)) for r in retained]
    table = join_on_symbol(
        records_to_frame(retained),
        seed.select("symbol", "alias_symbol", "go_id"),
    )

    table = classify_kinase_substrate(table)
    table = annotate_kegg_flags(
        table,
        kegg,
        mapper,
        {
            "Metabolic": kinase_config.metabolic_pathway_pattern,
            "Lipid": kinase_config.lipid_pathway_pattern,
        },
    )
    tracker.record_step("kegg_flags", {flag: count_flagged(table, [flag]) for flag in KINASE_FLAGS})

    output_path = stage_output_path(config, "kinases", species)

    if species == "mouse" and kinase_config.uniprot_fallback:
        uniprot = uniprot or UniProtFetcher(client, species="mouse")
        table, filled = fill_protein_ids(table, uniprot)
        tracker.record_step("uniprot_fallback", {"filled": filled})

    if kinase_config.manning_path:
        manning = pl.read_csv(kinase_config.manning_path, infer_schema_length=0)
        kinhub = load_kinhub(kinase_config.kinhub_path, client)
        resolved: set[str] = set()
        if species == "human":
            hgnc = hgnc or HGNCFetcher(client)
            resolved = resolve_catalog_names(
                manning[manning.columns[0]].drop_nulls().to_list(), hgnc
            )
        table = annotate_kinase_catalogs(
            table, manning, kinhub, output_path.parent, resolved
        )
        kinhub_source = str(kinase_config.kinhub_path or KINHUB_URL)
        tracker.record_step(
            "catalog_flags",
            {
                "manning": str(kinase_config.manning_path),
                "kinhub": kinhub_source if kinhub is not None else None,
                "resolved_identifiers": len(resolved),
            },
        )

    if species == "human" and not skip_mouse:
        table = map_human_to_mouse(table, biomart)

    table = move_column_to_end(table, "go_id")

    tracker.record_step("http_requests", client.request_counts())

    if report.ambiguous_symbols:
        ReconciliationValidator().save_ambiguous_report(
            report, output_path.with_name(f"kinases_{species}_ambiguous.txt")
        )

    write_stage_output(table, output_path, tracker)

    result = StageResult(
        name="kinases",
        output_path=output_path,
        fetched=report.total_records,
        retained=table.height,
        flagged=count_flagged(table, KINASE_FLAGS),
    )
    logger.info(
        "kinases_stage_complete",
        species=species,
        fetched=result.fetched,
        retained=result.retained,
        flagged=result.flagged,
    )
    return result
