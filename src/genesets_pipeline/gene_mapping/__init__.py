"""Gene identity module.

Provides the identifier record, nomenclature extraction, priority-ordered
reconciliation, batch ID mapping via mygene, and validation gates.
"""

from genesets_pipeline.gene_mapping.extract import (
    extract_nomenclature_id,
    strip_source_annotation,
)
from genesets_pipeline.gene_mapping.mapper import GeneMapper
from genesets_pipeline.gene_mapping.reconciler import (
    Reconciler,
    ReconciliationReport,
    coalesce_identifier,
    merge_lookup_columns,
    merge_lookup_passes,
)
from genesets_pipeline.gene_mapping.records import IdentifierRecord
from genesets_pipeline.gene_mapping.validator import (
    ReconciliationValidator,
    ValidationResult,
    validate_gene_set,
)

__all__ = [
    "extract_nomenclature_id",
    "strip_source_annotation",
    "GeneMapper",
    "Reconciler",
    "ReconciliationReport",
    "coalesce_identifier",
    "merge_lookup_columns",
    "merge_lookup_passes",
    "IdentifierRecord",
    "ReconciliationValidator",
    "ValidationResult",
    "validate_gene_set",
]
