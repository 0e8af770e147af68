"""Gene set tables: construction, membership enrichment and classification."""

from genesets_pipeline.table.classification import (
    classify_kinase_substrate,
    classify_phosphatases,
    is_tf_group,
    reconcile_kinase_catalogs,
)
from genesets_pipeline.table.enrichment import (
    annotate_kegg_flags,
    annotate_membership,
    move_column_to_end,
)
from genesets_pipeline.table.table import join_on_symbol, load_table, records_to_frame

__all__ = [
    "classify_kinase_substrate",
    "classify_phosphatases",
    "is_tf_group",
    "reconcile_kinase_catalogs",
    "annotate_kegg_flags",
    "annotate_membership",
    "move_column_to_end",
    "join_on_symbol",
    "load_table",
    "records_to_frame",
]
