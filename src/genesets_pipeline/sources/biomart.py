"""Ensembl BioMart queries: GO seed lists, symbol lookups and orthologs."""

import io
import re
from xml.sax.saxutils import quoteattr

import polars as pl
import structlog

from genesets_pipeline.api_clients.base import CachedAPIClient
from genesets_pipeline.errors import SourceUnavailable
from genesets_pipeline.gene_mapping.records import IdentifierRecord
from genesets_pipeline.sources.base import SourceFetcher

logger = structlog.get_logger()

BIOMART_URL = "https://www.ensembl.org/biomart/martservice"

DATASETS = {
    "human": "hsapiens_gene_ensembl",
    "mouse": "mmusculus_gene_ensembl",
}

# Nomenclature attributes per species: (symbol attribute, id attribute)
NOMENCLATURE_ATTRIBUTES = {
    "human": ("hgnc_symbol", "hgnc_id"),
    "mouse": ("mgi_symbol", "mgi_id"),
}

DEFAULT_EXCLUDE_PATTERN = r"^(Gm[0-9]+|.*Rik)$"

# Values per filter clause; keeps GET query strings well under URL limits
FILTER_CHUNK_SIZE = 300


def build_query_xml(dataset: str, attributes: list[str], filters: dict[str, list[str]]) -> str:
    """Build a martservice XML query returning headerless unique TSV rows."""
    filter_xml = "".join(
        f"<Filter name={quoteattr(name)} value={quoteattr(','.join(values))}/>"
        for name, values in filters.items()
    )
    attribute_xml = "".join(f"<Attribute name={quoteattr(a)}/>" for a in attributes)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        "<!DOCTYPE Query>"
        '<Query virtualSchemaName="default" formatter="TSV" header="0" '
        'uniqueRows="1" datasetConfigVersion="0.6">'
        f'<Dataset name={quoteattr(dataset)} interface="default">'
        f"{filter_xml}{attribute_xml}"
        "</Dataset></Query>"
    )


def parse_biomart_tsv(text: str, columns: list[str], source: str = "biomart") -> pl.DataFrame:
    """Parse a headerless martservice TSV body into an all-string DataFrame.

    Raises:
        SourceUnavailable: If BioMart returned an error page instead of rows
    """
    if text.lstrip().startswith("Query ERROR") or text.lstrip().startswith("<"):
        first_line = text.strip().splitlines()[0] if text.strip() else ""
        raise SourceUnavailable(source, f"BioMart query failed: {first_line[:200]}")

    if not text.strip():
        return pl.DataFrame(schema={c: pl.Utf8 for c in columns})

    df = pl.read_csv(
        io.StringIO(text),
        separator="\t",
        has_header=False,
        new_columns=columns,
        infer_schema_length=0,
        quote_char=None,
        truncate_ragged_lines=True,
    )
    if df.width != len(columns):
        raise SourceUnavailable(
            source, f"expected {len(columns)} columns, got {df.width}"
        )
    # Blank cells become null
    return df.with_columns(
        [
            pl.when(pl.col(c).str.strip_chars() == "").then(None).otherwise(pl.col(c)).alias(c)
            for c in columns
        ]
    )


class BioMartFetcher(SourceFetcher):
    """Ensembl BioMart martservice client for one species."""

    source_tag = "biomart"

    def __init__(
        self,
        client: CachedAPIClient,
        species: str = "human",
        exclude_symbol_pattern: str = DEFAULT_EXCLUDE_PATTERN,
        url: str = BIOMART_URL,
    ):
        super().__init__(client)
        if species not in DATASETS:
            raise ValueError(f"Unsupported species: {species}")
        self.species = species
        self.dataset = DATASETS[species]
        self.exclude_pattern = re.compile(exclude_symbol_pattern, re.IGNORECASE)
        self.url = url

    def _query(
        self,
        attributes: list[str],
        filters: dict[str, list[str]],
        dataset: str | None = None,
    ) -> pl.DataFrame:
        xml = build_query_xml(dataset or self.dataset, attributes, filters)
        text = self.client.get_text(self.url, params={"query": xml}, source=self.source_tag)
        return parse_biomart_tsv(text, attributes, source=self.source_tag)

    def _query_chunked(
        self,
        attributes: list[str],
        filter_name: str,
        values: list[str],
        dataset: str | None = None,
    ) -> pl.DataFrame:
        frames = [
            self._query(attributes, {filter_name: values[i:i + FILTER_CHUNK_SIZE]}, dataset)
            for i in range(0, len(values), FILTER_CHUNK_SIZE)
        ]
        if not frames:
            return pl.DataFrame(schema={c: pl.Utf8 for c in attributes})
        return pl.concat(frames, how="vertical")

    def _drop_excluded(self, df: pl.DataFrame, symbol_column: str) -> pl.DataFrame:
        """Drop rows whose symbol is blank or a placeholder (Gm12345, 1700001C19Rik)."""
        before = df.height
        keep = [
            bool(s) and not self.exclude_pattern.match(s)
            for s in df[symbol_column].to_list()
        ]
        df = df.filter(pl.Series(keep, dtype=pl.Boolean))
        if before != df.height:
            logger.info(
                "biomart_symbols_excluded",
                excluded=before - df.height,
                pattern=self.exclude_pattern.pattern,
            )
        return df

    def fetch_by_go_terms(self, go_terms: list[str]) -> pl.DataFrame:
        """Genes annotated with any of ``go_terms``, one row per stable gene ID.

        Returns:
            DataFrame with columns stable_gene_id, symbol, description,
            alias_symbol, nomenclature_id, go_id. ``go_id`` holds the sorted,
            ``;``-joined GO IDs of the gene.
        """
        alias_attr, nomenclature_attr = NOMENCLATURE_ATTRIBUTES[self.species]
        attributes = [
            "ensembl_gene_id",
            "external_gene_name",
            "description",
            alias_attr,
            nomenclature_attr,
            "go_id",
        ]
        logger.info("biomart_go_query_start", dataset=self.dataset, go_terms=go_terms)
        raw = self._query(attributes, {"go": list(go_terms)})

        raw = raw.rename(
            {
                "ensembl_gene_id": "stable_gene_id",
                "external_gene_name": "symbol",
                alias_attr: "alias_symbol",
                nomenclature_attr: "nomenclature_id",
            }
        )
        raw = self._drop_excluded(raw, "symbol")

        collapsed = (
            raw.group_by("stable_gene_id", maintain_order=True)
            .agg(
                pl.col("symbol").first(),
                pl.col("description").drop_nulls().first(),
                pl.col("alias_symbol").drop_nulls().first(),
                pl.col("nomenclature_id").drop_nulls().first(),
                pl.col("go_id").drop_nulls().unique().sort(),
            )
            .with_columns(pl.col("go_id").list.join(";"))
            .sort("symbol")
        )

        logger.info(
            "biomart_go_query_complete",
            raw_rows=raw.height,
            genes=collapsed.height,
        )
        return collapsed

    def fetch_by_symbols(self, symbols: list[str]) -> list[IdentifierRecord]:
        """Lookup-by-symbol pass: full cross-references for each symbol.

        One record per returned row; a symbol with several UniProt
        accessions yields several records, left for the reconciler.
        """
        _, nomenclature_attr = NOMENCLATURE_ATTRIBUTES[self.species]
        attributes = [
            "external_gene_name",
            "ensembl_gene_id",
            "entrezgene_id",
            "uniprotswissprot",
            nomenclature_attr,
            "description",
        ]
        df = self._query_chunked(attributes, "external_gene_name", list(symbols))
        df = self._drop_excluded(df, "external_gene_name")

        records = [
            IdentifierRecord.from_mapping(
                row,
                source_tag=self.source_tag,
                columns={
                    "symbol": "external_gene_name",
                    "stable_gene_id": "ensembl_gene_id",
                    "numeric_id": "entrezgene_id",
                    "protein_id": "uniprotswissprot",
                    "nomenclature_id": nomenclature_attr,
                },
            )
            for row in df.iter_rows(named=True)
        ]
        logger.info("biomart_symbol_lookup_complete", queried=len(symbols), records=len(records))
        return records

    def fetch(self, query: list[str]) -> list[IdentifierRecord]:
        return self.fetch_by_symbols(query)

    def fetch_orthologs(self, symbols: list[str]) -> pl.DataFrame:
        """Human -> mouse orthologs, first mapping per human symbol.

        Returns:
            DataFrame with columns symbol, Mouse_Symbol, Ensembl_Mouse
        """
        attributes = [
            "external_gene_name",
            "mmusculus_homolog_associated_gene_name",
            "mmusculus_homolog_ensembl_gene",
        ]
        df = self._query_chunked(
            attributes, "external_gene_name", list(symbols), dataset=DATASETS["human"]
        )
        df = (
            df.rename(
                {
                    "external_gene_name": "symbol",
                    "mmusculus_homolog_associated_gene_name": "Mouse_Symbol",
                    "mmusculus_homolog_ensembl_gene": "Ensembl_Mouse",
                }
            )
            .filter(pl.col("Mouse_Symbol").is_not_null())
            .unique(subset="symbol", keep="first", maintain_order=True)
        )
        logger.info("biomart_orthologs_complete", queried=len(symbols), mapped=df.height)
        return df
