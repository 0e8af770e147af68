"""Provenance sidecars for curated gene set outputs."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from genesets_pipeline.errors import OutputWriteFailure
from genesets_pipeline.output.writers import md5sum

SIDECAR_SUFFIX = ".provenance.json"


def sidecar_path_for(output_path: Path) -> Path:
    """``curated/tf/tf_human.csv`` -> ``curated/tf/tf_human.csv.provenance.json``."""
    output_path = Path(output_path)
    return output_path.with_name(output_path.name + SIDECAR_SUFFIX)


class ProvenanceTracker:
    """
    Provenance of one curation stage run.

    Holds the pipeline version, data source versions, config hash and the
    ordered processing steps (fetch counts, reconciliation results, flags).
    The sidecar also carries the MD5 of the output it describes.
    """

    def __init__(
        self,
        pipeline_version: str,
        config: "PipelineConfig",
        stage: Optional[str] = None,
        species: Optional[str] = None,
    ):
        """
        Args:
            pipeline_version: Pipeline version string (e.g., "0.1.0")
            config: PipelineConfig instance
            stage: Curation stage name, e.g. "kinases"
            species: Species of the output (default: config species)
        """
        self.pipeline_version = pipeline_version
        self.stage = stage
        self.species = species or config.species
        self.config_hash = config.config_hash()
        self.data_source_versions = config.versions.model_dump()
        self.processing_steps = []
        self.created_at = datetime.now(timezone.utc)

    def record_step(self, step_name: str, details: Optional[dict] = None) -> None:
        step = {
            "name": step_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if details:
            step["details"] = details
        self.processing_steps.append(step)

    def create_metadata(self) -> dict:
        return {
            "stage": self.stage,
            "species": self.species,
            "pipeline_version": self.pipeline_version,
            "data_source_versions": self.data_source_versions,
            "config_hash": self.config_hash,
            "created_at": self.created_at.isoformat(),
            "processing_steps": self.processing_steps,
        }

    def save_sidecar(self, output_path: Path) -> Path:
        """
        Write the provenance sidecar next to ``output_path``.

        Args:
            output_path: Curated table (or other stage output) being described

        Returns:
            Path to the sidecar

        Raises:
            OutputWriteFailure: If the sidecar cannot be written
        """
        output_path = Path(output_path)
        sidecar_path = sidecar_path_for(output_path)

        metadata = self.create_metadata()
        if output_path.is_file():
            metadata["output"] = {"file": output_path.name, "md5": md5sum(output_path)}

        try:
            sidecar_path.parent.mkdir(parents=True, exist_ok=True)
            with open(sidecar_path, "w", encoding="utf-8") as f:
                json.dump(metadata, f, indent=2, default=str)
        except OSError as e:
            raise OutputWriteFailure(sidecar_path, str(e)) from e
        return sidecar_path

    @staticmethod
    def load_sidecar(sidecar_path: Path) -> dict:
        with open(sidecar_path, encoding="utf-8") as f:
            return json.load(f)

    @classmethod
    def from_config(
        cls,
        config: "PipelineConfig",
        stage: Optional[str] = None,
        version: Optional[str] = None,
        species: Optional[str] = None,
    ) -> "ProvenanceTracker":
        """
        Create a tracker for ``stage``.

        Args:
            config: PipelineConfig instance
            stage: Curation stage name
            version: Pipeline version string. If None, uses genesets_pipeline.__version__
            species: Species of the output (default: config species)
        """
        if version is None:
            from genesets_pipeline import __version__
            version = __version__

        return cls(version, config, stage=stage, species=species)
