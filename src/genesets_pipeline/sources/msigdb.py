"""MSigDB gene-set-matrix download with an injected cache.

The cache key is the release filename, so a cached collection is never
re-fetched. A failed download contributes no gene sets instead of aborting.
"""

from typing import Callable, Iterable

import httpx
import structlog
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from genesets_pipeline.api_clients.cache import ResponseCache
from genesets_pipeline.errors import SourceUnavailable
from genesets_pipeline.output.gmt import parse_gmt_text

logger = structlog.get_logger()

MSIGDB_BASE_URL = "https://data.broadinstitute.org/gsea-msigdb/msigdb/release"

SPECIES_TOKENS = {"human": "Hs", "mouse": "Mm"}


def msigdb_filename(collection: str, species: str, version: str) -> str:
    """Release filename for one collection.

    >>> msigdb_filename("H", "human", "2024.1")
    'h.all.v2024.1.Hs.symbols.gmt'
    >>> msigdb_filename("H", "mouse", "2024.1")
    'mh.all.v2024.1.Mm.symbols.gmt'
    """
    if species not in SPECIES_TOKENS:
        raise ValueError(f"Unsupported species: {species}")
    token = SPECIES_TOKENS[species]
    code = collection.lower()
    if species == "mouse":
        code = f"m{code}"
    return f"{code}.all.v{version}.{token}.symbols.gmt"


def msigdb_url(collection: str, species: str, version: str) -> str:
    token = SPECIES_TOKENS[species]
    return f"{MSIGDB_BASE_URL}/{version}.{token}/{msigdb_filename(collection, species, version)}"


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=60),
    retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.TransportError)),
    reraise=True,
)
def _get_bytes(url: str, timeout: float) -> bytes:
    response = httpx.get(url, timeout=timeout, follow_redirects=True)
    response.raise_for_status()
    return response.content


def download_bytes(url: str, timeout: float = 30.0) -> bytes:
    """GET ``url`` with retry.

    Raises:
        SourceUnavailable: On any httpx error after retries
    """
    try:
        return _get_bytes(url, timeout)
    except httpx.HTTPError as e:
        raise SourceUnavailable("msigdb", str(e)) from e


def load_msigdb(
    collections: Iterable[str],
    species: str,
    version: str,
    cache: ResponseCache,
    downloader: Callable[[str], bytes] | None = None,
) -> dict[str, list[str]]:
    """Load gene sets of the given collections.

    Args:
        collections: Collection codes (e.g. ``["H", "C2"]``)
        species: "human" or "mouse"
        version: Release token (e.g. ``"2024.1"``)
        cache: Cache consulted before any network call
        downloader: url -> bytes; raises SourceUnavailable on failure
            (default: :func:`download_bytes`)

    Returns:
        Gene set name -> member symbols. A collection whose download fails
        contributes nothing.
    """
    downloader = downloader or download_bytes
    gene_sets: dict[str, list[str]] = {}

    for collection in collections:
        filename = msigdb_filename(collection, species, version)
        data = cache.get(filename)
        cached = data is not None

        if not cached:
            url = msigdb_url(collection, species, version)
            logger.info("msigdb_download_start", collection=collection, url=url)
            try:
                data = downloader(url)
            except SourceUnavailable as e:
                logger.warning(
                    "msigdb_download_failed",
                    collection=collection,
                    species=species,
                    reason=e.reason,
                )
                continue
        else:
            logger.info("msigdb_cache_hit", collection=collection, filename=filename)

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning(
                "msigdb_payload_malformed",
                collection=collection,
                filename=filename,
                reason=str(e),
            )
            continue
        if not cached:
            cache.put(filename, data)
        entries = parse_gmt_text(text)
        for entry in entries:
            gene_sets[entry.name] = entry.members
        logger.info("msigdb_collection_loaded", collection=collection, sets=len(entries))

    return gene_sets
