"""Persistence layer for provenance tracking."""

from genesets_pipeline.persistence.provenance import ProvenanceTracker

__all__ = ["ProvenanceTracker"]
