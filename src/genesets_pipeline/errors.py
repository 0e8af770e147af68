"""Error types shared by fetchers, the reconciler and output writers."""

from pathlib import Path


class GenesetsPipelineError(Exception):
    """Base class for pipeline errors."""


class SourceUnavailable(GenesetsPipelineError):
    """Upstream source failed: network error, non-200 status, timeout or malformed payload.

    Attributes:
        source: Source tag of the fetcher that failed
        reason: Human-readable failure description
    """

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source} unavailable: {reason}")


class MalformedRecord(GenesetsPipelineError):
    """Raw row is missing the mandatory gene symbol."""


class OutputWriteFailure(GenesetsPipelineError):
    """Filesystem error while writing a CSV, gene-set-matrix or checksum file."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to write {self.path}: {reason}")


class AmbiguousMapping(UserWarning):
    """One symbol resolved to conflicting stable gene IDs across sources.

    Resolved deterministically by the reconciler and reported as a warning.
    """
