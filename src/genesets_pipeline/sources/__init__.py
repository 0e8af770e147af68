"""Upstream source fetchers.

Each fetcher wraps one public database behind CachedAPIClient (or httpx for
bulk downloads) and reports failures as SourceUnavailable.
"""

from genesets_pipeline.sources.base import SourceFetcher, fetch_or_empty
from genesets_pipeline.sources.biomart import BioMartFetcher
from genesets_pipeline.sources.hgnc import (
    HGNCFetcher,
    download_gene_groups,
    load_gene_groups,
)
from genesets_pipeline.sources.kegg import KEGGClient
from genesets_pipeline.sources.kinhub import fetch_kinhub_table, parse_kinhub_table
from genesets_pipeline.sources.msigdb import load_msigdb, msigdb_filename
from genesets_pipeline.sources.uniprot import UniProtFetcher

__all__ = [
    "SourceFetcher",
    "fetch_or_empty",
    "BioMartFetcher",
    "HGNCFetcher",
    "download_gene_groups",
    "load_gene_groups",
    "KEGGClient",
    "fetch_kinhub_table",
    "parse_kinhub_table",
    "load_msigdb",
    "msigdb_filename",
    "UniProtFetcher",
]
