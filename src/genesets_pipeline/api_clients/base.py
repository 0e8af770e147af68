"""Cached HTTP client shared by the REST source fetchers."""

import logging
import time
from collections import Counter
from pathlib import Path
from typing import Any

import requests
import requests_cache
from requests.exceptions import (
    ChunkedEncodingError,
    ConnectionError,
    HTTPError,
    RequestException,
    Timeout,
)
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from genesets_pipeline import __version__
from genesets_pipeline.config.schema import PipelineConfig
from genesets_pipeline.errors import SourceUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = f"genesets-pipeline/{__version__}"
CACHE_NAME = "http_cache"


class CachedAPIClient:
    """
    GET-only client for BioMart, HGNC, UniProt and KEGG.

    Features:
    - SQLite response cache (requests-cache) with configurable TTL
    - Retry on 429/5xx/network errors with exponential backoff
    - Fixed per-request timeout
    - Per-source throttling of network (non-cached) requests
    - Failures after the last retry surface as SourceUnavailable tagged
      with the calling source
    """

    def __init__(
        self,
        cache_dir: Path,
        rate_limit: int = 5,
        max_retries: int = 3,
        cache_ttl: int = 86400,
        timeout: int = 30,
    ):
        """
        Args:
            cache_dir: Directory holding the SQLite cache
            rate_limit: Network requests per second, per source
            max_retries: Attempts per request (1 = no retry)
            cache_ttl: Cache time-to-live in seconds (0 = never expire)
            timeout: Per-request timeout in seconds
        """
        self.cache_dir = Path(cache_dir)
        self.rate_limit = rate_limit
        self.max_retries = max_retries
        self.timeout = timeout
        self._last_request: dict[str, float] = {}
        self._counts: Counter = Counter()

        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.session = requests_cache.CachedSession(
            cache_name=str(self.cache_dir / CACHE_NAME),
            backend="sqlite",
            expire_after=cache_ttl if cache_ttl > 0 else None,
        )
        self.session.headers["User-Agent"] = USER_AGENT

    def _throttle(self, source: str) -> None:
        """Wait until 1/rate_limit seconds have passed since the source's last network request."""
        last = self._last_request.get(source)
        if last is not None:
            remaining = 1 / self.rate_limit - (time.monotonic() - last)
            if remaining > 0:
                time.sleep(remaining)

    def _retrying(self):
        return retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=2, max=60),
            retry=retry_if_exception_type(
                (HTTPError, Timeout, ConnectionError, ChunkedEncodingError)
            ),
            reraise=True,
        )

    def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        source: str = "http",
        **kwargs,
    ) -> requests.Response:
        """
        GET ``url`` through the cache.

        Args:
            url: Request URL
            params: Query parameters
            source: Source tag used for throttling, counts and errors
            **kwargs: Passed to ``requests``

        Returns:
            Response with a 2xx status

        Raises:
            SourceUnavailable: On any requests error (HTTP status, timeout,
                connection or truncated body) after the last retry
        """
        @self._retrying()
        def _attempt():
            self._throttle(source)
            response = self.session.get(url, params=params, timeout=self.timeout, **kwargs)
            if not getattr(response, "from_cache", False):
                self._last_request[source] = time.monotonic()
            if response.status_code == 429:
                logger.warning(f"{source} rate limited (429) on {url}; backing off")
            response.raise_for_status()
            return response

        try:
            response = _attempt()
        except RequestException as e:
            self._counts[(source, "failed")] += 1
            logger.warning(f"{source} request failed after {self.max_retries} attempts: {e}")
            raise SourceUnavailable(source, str(e)) from e

        origin = "cache" if getattr(response, "from_cache", False) else "network"
        self._counts[(source, origin)] += 1
        return response

    def get_text(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        source: str = "http",
        **kwargs,
    ) -> str:
        """Body of a GET as text (TSV and flat-file sources)."""
        return self.get(url, params=params, source=source, **kwargs).text

    def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        source: str = "http",
        **kwargs,
    ) -> dict[str, Any]:
        """
        Body of a GET decoded as JSON.

        Raises:
            SourceUnavailable: On request failure or when the body is not JSON
        """
        response = self.get(url, params=params, source=source, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise SourceUnavailable(source, f"malformed JSON payload: {e}") from e

    def request_counts(self) -> dict[str, dict[str, int]]:
        """Responses per source, split into cache, network and failed."""
        counts: dict[str, dict[str, int]] = {}
        for (source, origin), n in sorted(self._counts.items()):
            counts.setdefault(source, {})[origin] = n
        return counts

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "CachedAPIClient":
        return cls(
            cache_dir=config.cache_dir,
            rate_limit=config.api.rate_limit_per_second,
            max_retries=config.api.max_retries,
            cache_ttl=config.api.cache_ttl_seconds,
            timeout=config.api.timeout_seconds,
        )
