"""HTTP client and download caches."""

from genesets_pipeline.api_clients.base import CachedAPIClient
from genesets_pipeline.api_clients.cache import FileCache, MemoryCache, ResponseCache

__all__ = ["CachedAPIClient", "FileCache", "MemoryCache", "ResponseCache"]
