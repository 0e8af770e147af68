"""Curation stages: kinases, phosphatases, transcription factors and GMT export."""

from genesets_pipeline.curation.base import StageResult, stage_output_path
from genesets_pipeline.curation.gmt_export import export_curated_gmt
from genesets_pipeline.curation.kinases import build_kinase_table, map_human_to_mouse
from genesets_pipeline.curation.phosphatases import build_phosphatase_table
from genesets_pipeline.curation.transcription_factors import build_tf_table

__all__ = [
    "StageResult",
    "stage_output_path",
    "export_curated_gmt",
    "build_kinase_table",
    "map_human_to_mouse",
    "build_phosphatase_table",
    "build_tf_table",
]
