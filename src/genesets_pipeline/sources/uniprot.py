"""UniProt REST search: protein accessions for gene symbols."""

import io

import polars as pl
import structlog

from genesets_pipeline.errors import SourceUnavailable
from genesets_pipeline.gene_mapping.records import IdentifierRecord
from genesets_pipeline.sources.base import SourceFetcher

logger = structlog.get_logger()

UNIPROT_SEARCH_URL = "https://rest.uniprot.org/uniprotkb/search"

SPECIES_TAXID = {"human": 9606, "mouse": 10090}


class UniProtFetcher(SourceFetcher):
    """Per-symbol UniProtKB search for one organism.

    A failing symbol is skipped and logged; the remaining symbols are still
    queried.
    """

    source_tag = "uniprot"

    def __init__(self, client, species: str = "mouse", url: str = UNIPROT_SEARCH_URL):
        super().__init__(client)
        if species not in SPECIES_TAXID:
            raise ValueError(f"Unsupported species: {species}")
        self.taxid = SPECIES_TAXID[species]
        self.url = url

    def search(self, symbol: str) -> pl.DataFrame:
        """Raw search hits for one symbol (columns ``Entry``, ``Gene Names``)."""
        params = {
            "query": f"gene_exact:{symbol} AND organism_id:{self.taxid}",
            "fields": "accession,gene_names",
            "format": "tsv",
            "size": 500,
        }
        text = self.client.get_text(self.url, params=params, source=self.source_tag)
        if not text.strip():
            return pl.DataFrame(schema={"Entry": pl.Utf8, "Gene Names": pl.Utf8})
        return pl.read_csv(
            io.StringIO(text),
            separator="\t",
            infer_schema_length=0,
            quote_char=None,
        )

    def fetch(self, query: list[str]) -> list[IdentifierRecord]:
        """First accession per symbol, as records carrying protein_id only."""
        records = []
        skipped = 0
        for symbol in query:
            try:
                hits = self.search(symbol)
            except SourceUnavailable as e:
                skipped += 1
                logger.warning("uniprot_symbol_skipped", symbol=symbol, reason=e.reason)
                continue
            if hits.height == 0:
                continue
            records.append(
                IdentifierRecord(
                    symbol=symbol,
                    protein_id=hits["Entry"][0],
                    source_tag=self.source_tag,
                )
            )

        logger.info(
            "uniprot_fetch_complete",
            queried=len(query),
            mapped=len(records),
            skipped=skipped,
        )
        return records
