"""Reference gene-set curation pipeline (kinases, phosphatases, transcription factors)."""

__version__ = "0.1.0"
