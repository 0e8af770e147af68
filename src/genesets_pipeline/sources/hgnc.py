"""HGNC REST lookups and the bulk gene-group download."""

from pathlib import Path
from urllib.parse import quote

import httpx
import polars as pl
import structlog
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from genesets_pipeline.errors import SourceUnavailable
from genesets_pipeline.gene_mapping.records import IdentifierRecord
from genesets_pipeline.sources.base import SourceFetcher

logger = structlog.get_logger()

HGNC_REST_URL = "https://rest.genenames.org"
HGNC_GENE_GROUPS_URL = "https://www.genenames.org/cgi-bin/genegroup/download-all/csv"

JSON_HEADERS = {"Accept": "application/json"}

SYMBOL_FIELDS = ("symbol", "prev_symbol", "alias_symbol")

DOC_COLUMNS = {
    "symbol": "symbol",
    "stable_gene_id": "ensembl_gene_id",
    "numeric_id": "entrez_id",
    "protein_id": "uniprot_ids",
    "nomenclature_id": "hgnc_id",
    "description": "name",
}


def _docs(payload: dict, source: str) -> list[dict]:
    """Return ``response.docs`` of an HGNC JSON payload."""
    try:
        docs = payload["response"]["docs"]
    except (KeyError, TypeError) as e:
        raise SourceUnavailable(source, f"payload has no response.docs: {e}") from e
    if not isinstance(docs, list):
        raise SourceUnavailable(source, "response.docs is not a list")
    return docs


def _flatten(doc: dict) -> dict:
    # uniprot_ids is a list; keep the first accession
    flat = dict(doc)
    uniprot = flat.get("uniprot_ids")
    if isinstance(uniprot, list):
        flat["uniprot_ids"] = uniprot[0] if uniprot else None
    return flat


class HGNCFetcher(SourceFetcher):
    """HGNC REST client (human only).

    Names are resolved through the ``fetch`` endpoint, trying the approved
    symbol first, then previous symbols, then aliases.
    """

    source_tag = "hgnc"

    def __init__(self, client, base_url: str = HGNC_REST_URL):
        super().__init__(client)
        self.base_url = base_url.rstrip("/")

    def _lookup(self, symbol: str) -> dict | None:
        for field in SYMBOL_FIELDS:
            url = f"{self.base_url}/fetch/{field}/{quote(symbol, safe='')}"
            payload = self.client.get_json(url, source=self.source_tag, headers=JSON_HEADERS)
            docs = _docs(payload, self.source_tag)
            if docs:
                return docs[0]
        return None

    def search_symbol(self, symbol: str) -> dict | None:
        """Resolve a symbol (current, previous or alias) to its HGNC entry.

        Returns:
            Dict with symbol, hgnc_id, alias_symbol, prev_symbol and
            ensembl_gene_id, or None when HGNC has no match
        """
        doc = self._lookup(symbol)
        if doc is None:
            return None
        return {
            "symbol": doc.get("symbol"),
            "hgnc_id": doc.get("hgnc_id"),
            "alias_symbol": list(doc.get("alias_symbol") or []),
            "prev_symbol": list(doc.get("prev_symbol") or []),
            "ensembl_gene_id": doc.get("ensembl_gene_id"),
        }

    def fetch(self, query: list[str]) -> list[IdentifierRecord]:
        """Current HGNC records for ``query`` names, one per resolved name.

        A name that fails or has no match is skipped; the remaining names
        are still resolved.
        """
        records = []
        skipped = 0
        for name in query:
            try:
                doc = self._lookup(name)
            except SourceUnavailable as e:
                skipped += 1
                logger.warning("hgnc_symbol_skipped", symbol=name, reason=e.reason)
                continue
            if doc is None or not doc.get("symbol"):
                continue
            records.append(
                IdentifierRecord.from_mapping(_flatten(doc), self.source_tag, DOC_COLUMNS)
            )

        logger.info(
            "hgnc_symbols_resolved",
            queried=len(query),
            resolved=len(records),
            skipped=skipped,
        )
        return records


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=60),
    retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.TransportError)),
    reraise=True,
)
def _stream_to_file(url: str, temp_path: Path, timeout: float) -> None:
    with httpx.stream("GET", url, timeout=timeout, follow_redirects=True) as response:
        response.raise_for_status()
        with open(temp_path, "wb") as f:
            for chunk in response.iter_bytes(chunk_size=8192):
                f.write(chunk)


def download_gene_groups(
    output_path: Path,
    url: str = HGNC_GENE_GROUPS_URL,
    force: bool = False,
    timeout: float = 120.0,
) -> Path:
    """Download the HGNC all-gene-groups table (tab-separated despite the URL).

    Args:
        output_path: Where to save the table
        url: HGNC bulk download URL
        force: If True, re-download even if file exists
        timeout: Per-request timeout in seconds

    Returns:
        Path to the downloaded file

    Raises:
        SourceUnavailable: On any httpx error after retries
    """
    output_path = Path(output_path)

    if output_path.exists() and output_path.stat().st_size > 0 and not force:
        logger.info("hgnc_gene_groups_exists", path=str(output_path))
        return output_path

    output_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = output_path.with_suffix(output_path.suffix + ".tmp")

    logger.info("hgnc_gene_groups_download_start", url=url)
    try:
        _stream_to_file(url, temp_path, timeout)
        temp_path.replace(output_path)
    except httpx.HTTPError as e:
        raise SourceUnavailable("hgnc_gene_groups", str(e)) from e
    finally:
        temp_path.unlink(missing_ok=True)

    logger.info(
        "hgnc_gene_groups_download_complete",
        path=str(output_path),
        size_mb=round(output_path.stat().st_size / 1024 / 1024, 2),
    )
    return output_path


def load_gene_groups(path: Path) -> pl.DataFrame:
    """Read the HGNC gene-group table with every column as a string."""
    df = pl.read_csv(
        path,
        separator="\t",
        infer_schema_length=0,
        quote_char=None,
        null_values=[""],
    )
    logger.info("hgnc_gene_groups_loaded", path=str(path), rows=df.height)
    return df
