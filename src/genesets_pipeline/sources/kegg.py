"""KEGG REST client: pathway listings and pathway gene members."""

import re

import structlog

from genesets_pipeline.api_clients.base import CachedAPIClient

logger = structlog.get_logger()

KEGG_REST_URL = "https://rest.kegg.jp"

KEGG_ORGANISMS = {"human": "hsa", "mouse": "mmu"}


def parse_two_column(text: str) -> list[tuple[str, str]]:
    """Split a KEGG flat-file response into (left, right) pairs."""
    pairs = []
    for line in text.splitlines():
        if not line.strip():
            continue
        left, _, right = line.partition("\t")
        pairs.append((left.strip(), right.strip()))
    return pairs


class KEGGClient:
    """Minimal KEGG REST client for one organism.

    Raises SourceUnavailable (through CachedAPIClient) on network failures.
    """

    source_tag = "kegg"

    def __init__(self, client: CachedAPIClient, species: str = "human", base_url: str = KEGG_REST_URL):
        if species not in KEGG_ORGANISMS:
            raise ValueError(f"Unsupported species: {species}")
        self.client = client
        self.organism = KEGG_ORGANISMS[species]
        self.base_url = base_url.rstrip("/")

    def list_pathways(self) -> dict[str, str]:
        """Pathway ID -> title for the organism."""
        text = self.client.get_text(
            f"{self.base_url}/list/pathway/{self.organism}", source=self.source_tag
        )
        pathways = {}
        for pathway_id, title in parse_two_column(text):
            pathways[pathway_id.removeprefix("path:")] = title
        return pathways

    def pathway_genes(self, pathway_id: str) -> set[str]:
        """Entrez gene IDs linked to one pathway."""
        text = self.client.get_text(
            f"{self.base_url}/link/{self.organism}/{pathway_id}", source=self.source_tag
        )
        prefix = f"{self.organism}:"
        return {
            gene.removeprefix(prefix)
            for _, gene in parse_two_column(text)
            if gene.startswith(prefix)
        }

    def pathway_gene_ids(self, name_pattern: str) -> set[str]:
        """Entrez gene IDs of every pathway whose title matches ``name_pattern``.

        Matching is a case-insensitive regex search on the pathway title.
        """
        pattern = re.compile(name_pattern, re.IGNORECASE)
        matched = [pid for pid, title in self.list_pathways().items() if pattern.search(title)]

        gene_ids: set[str] = set()
        for pathway_id in matched:
            gene_ids |= self.pathway_genes(pathway_id)

        logger.info(
            "kegg_pathway_genes",
            pattern=name_pattern,
            pathways=len(matched),
            genes=len(gene_ids),
        )
        return gene_ids
