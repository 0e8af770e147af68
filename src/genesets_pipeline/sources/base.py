"""Common contract for upstream source fetchers."""

from abc import ABC, abstractmethod
from typing import Any

import structlog

from genesets_pipeline.api_clients.base import CachedAPIClient
from genesets_pipeline.errors import SourceUnavailable
from genesets_pipeline.gene_mapping.records import IdentifierRecord

logger = structlog.get_logger()


class SourceFetcher(ABC):
    """Adapter querying one upstream source.

    Subclasses set ``source_tag`` and implement ``fetch``. Network errors,
    non-200 responses, timeouts and malformed payloads surface as
    SourceUnavailable.
    """

    source_tag: str = "unknown"

    def __init__(self, client: CachedAPIClient):
        self.client = client

    @abstractmethod
    def fetch(self, query: Any) -> list[IdentifierRecord]:
        """Return the records matching ``query``.

        Raises:
            SourceUnavailable: On network/HTTP failure or malformed payload
        """


def fetch_or_empty(fetcher: SourceFetcher, query: Any) -> list[IdentifierRecord]:
    """Call ``fetcher.fetch`` and degrade to an empty result on SourceUnavailable.

    Only for non-essential sources; essential data must call ``fetch``
    directly so the failure propagates.
    """
    try:
        return fetcher.fetch(query)
    except SourceUnavailable as e:
        logger.warning(
            "source_unavailable_skipped",
            source=e.source,
            reason=e.reason,
        )
        return []
