"""Gene ID cross-referencing via mygene batch queries.

Provides the lookup-by-symbol and lookup-by-stable-id passes used by the
curation stages, plus Entrez -> symbol mapping for pathway reference sets.
Handles edge cases like missing data, notfound results, and nested data structures.
"""

import logging
from typing import Any

import mygene
import requests

from genesets_pipeline.errors import SourceUnavailable
from genesets_pipeline.gene_mapping.records import IdentifierRecord

logger = logging.getLogger(__name__)

# mygene species identifiers and the nomenclature field for each
SPECIES_TAXID = {"human": 9606, "mouse": 10090}
NOMENCLATURE_FIELD = {"human": "HGNC", "mouse": "MGI"}

FIELDS = "symbol,name,entrezgene,ensembl.gene,uniprot.Swiss-Prot,HGNC,MGI"


def _first(value: Any) -> Any:
    """Return the first element of list-valued mygene fields."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _swiss_prot(hit: dict) -> str | None:
    uniprot_data = hit.get("uniprot")
    if isinstance(uniprot_data, dict):
        return _first(uniprot_data.get("Swiss-Prot"))
    return None


def _ensembl_gene(hit: dict) -> str | None:
    ensembl_data = hit.get("ensembl")
    # ensembl can be a dict or a list of dicts for multi-locus genes
    if isinstance(ensembl_data, list):
        ensembl_data = ensembl_data[0] if ensembl_data else None
    if isinstance(ensembl_data, dict):
        return _first(ensembl_data.get("gene"))
    return None


class GeneMapper:
    """Batch gene ID mapper using mygene API.

    Every method returns one result per matched query; notfound hits are
    dropped and logged.
    """

    def __init__(self, species: str = "human", batch_size: int = 1000):
        """Initialize gene mapper.

        Args:
            species: "human" or "mouse"
            batch_size: Number of genes to query per batch (default: 1000)
        """
        if species not in SPECIES_TAXID:
            raise ValueError(f"Unsupported species: {species}")
        self.species = species
        self.batch_size = batch_size
        self.mg = mygene.MyGeneInfo()
        logger.info(f"Initialized GeneMapper for {species} with batch_size={batch_size}")

    def _querymany(self, ids: list[str], scopes: str, fields: str) -> list[dict]:
        """Run querymany in batches and return found hits only."""
        hits: list[dict] = []
        total = len(ids)
        for i in range(0, total, self.batch_size):
            batch = ids[i:i + self.batch_size]
            batch_num = i // self.batch_size + 1
            total_batches = (total + self.batch_size - 1) // self.batch_size
            logger.info(
                f"Processing batch {batch_num}/{total_batches} "
                f"({len(batch)} IDs, scopes={scopes})"
            )

            # returnall=True gives {'out': [...], 'missing': [...]}
            try:
                batch_results = self.mg.querymany(
                    batch,
                    scopes=scopes,
                    fields=fields,
                    species=SPECIES_TAXID[self.species],
                    returnall=True,
                )
            except requests.RequestException as e:
                logger.warning(f"mygene query failed on batch {batch_num}: {e}")
                raise SourceUnavailable("mygene", str(e)) from e
            for hit in batch_results.get("out", []):
                if hit.get("notfound", False):
                    continue
                hits.append(hit)

        logger.info(f"mygene matched {len(hits)} hits for {total} IDs")
        return hits

    def _hit_to_record(self, hit: dict, source_tag: str) -> IdentifierRecord | None:
        symbol = hit.get("symbol")
        if not symbol:
            return None
        nomenclature = _first(hit.get(NOMENCLATURE_FIELD[self.species]))
        # mygene returns HGNC as a bare number and MGI with its prefix
        if nomenclature and self.species == "human" and not str(nomenclature).startswith("HGNC:"):
            nomenclature = f"HGNC:{nomenclature}"
        return IdentifierRecord(
            symbol=symbol,
            stable_gene_id=_ensembl_gene(hit),
            numeric_id=_first(hit.get("entrezgene")),
            protein_id=_swiss_prot(hit),
            nomenclature_id=nomenclature,
            description=hit.get("name"),
            source_tag=source_tag,
        )

    def _records_by_query(self, hits: list[dict], source_tag: str) -> dict[str, IdentifierRecord]:
        # For duplicate query results, keep the first hit
        records: dict[str, IdentifierRecord] = {}
        for hit in hits:
            query = str(hit.get("query", ""))
            if query in records:
                continue
            record = self._hit_to_record(hit, source_tag)
            if record is not None:
                records[query] = record
        return records

    def map_symbols(self, symbols: list[str]) -> dict[str, IdentifierRecord]:
        """Lookup-by-symbol pass.

        Returns:
            Dict of queried symbol -> IdentifierRecord
        """
        hits = self._querymany(symbols, scopes="symbol", fields=FIELDS)
        return self._records_by_query(hits, source_tag="mygene_symbol")

    def map_stable_ids(self, stable_ids: list[str]) -> dict[str, IdentifierRecord]:
        """Lookup-by-stable-id pass.

        Returns:
            Dict of queried Ensembl gene ID -> IdentifierRecord
        """
        hits = self._querymany(stable_ids, scopes="ensembl.gene", fields=FIELDS)
        return self._records_by_query(hits, source_tag="mygene_ensembl")

    def map_entrez_to_symbols(self, entrez_ids: list[str]) -> set[str]:
        """Map Entrez gene IDs to the set of their current symbols."""
        if not entrez_ids:
            return set()
        hits = self._querymany(
            [str(e) for e in entrez_ids], scopes="entrezgene", fields="symbol"
        )
        symbols = {hit["symbol"] for hit in hits if hit.get("symbol")}
        logger.info(f"Mapped {len(entrez_ids)} Entrez IDs to {len(symbols)} symbols")
        return symbols
