"""Pydantic models for pipeline configuration."""

import hashlib
import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class DataSourceVersions(BaseModel):
    """Releases of the upstream sources, recorded in every provenance sidecar."""

    ensembl_release: int = Field(
        ...,
        ge=100,
        description="Ensembl release queried through BioMart",
    )
    msigdb_version: str = Field(
        default="2024.1",
        description="MSigDB release used to build gene-set-matrix filenames",
    )


class APIConfig(BaseModel):
    """HTTP behaviour shared by BioMart, HGNC, UniProt and KEGG requests."""

    rate_limit_per_second: int = Field(
        default=5,
        ge=1,
        description="Network requests per second, per source",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Attempts per request before the source counts as unavailable",
    )
    cache_ttl_seconds: int = Field(
        default=86400,
        ge=0,
        description="Lifetime of cached responses in seconds (0 = never expire)",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=1,
        description="Per-request timeout in seconds, also used for bulk downloads",
    )


class MSigDBConfig(BaseModel):
    """Collections downloaded by the msigdb command."""

    collections: list[str] = Field(
        default_factory=lambda: ["H"],
        description="MSigDB collection codes (e.g. H, C2)",
    )


class KinaseConfig(BaseModel):
    """Seed query and filtering for the kinase stage."""

    go_terms: list[str] = Field(
        default_factory=lambda: ["GO:0004672", "GO:0004674", "GO:0016301", "GO:0016773"],
        description="GO terms whose annotated genes form the kinase seed list",
    )
    exclude_symbol_pattern: str = Field(
        default=r"^(Gm[0-9]+|.*Rik)$",
        description="Case-insensitive regex of placeholder symbols to drop",
    )
    metabolic_pathway_pattern: str = Field(
        default="Metabolic pathways|metabolism",
        description="KEGG pathway title regex for the Metabolic flag",
    )
    lipid_pathway_pattern: str = Field(
        default="lipid",
        description="KEGG pathway title regex for the Lipid flag",
    )
    manning_path: Path | None = Field(
        default=None,
        description="Manning kinome table (CSV); enables the catalog flags",
    )
    kinhub_path: Path | None = Field(
        default=None,
        description="Saved KinHub kinase page; fetched from kinhub.org when unset",
    )
    uniprot_fallback: bool = Field(
        default=True,
        description="Mouse tables: fill missing protein IDs from UniProt search",
    )


class GMTConfig(BaseModel):
    """Gene-set-matrix export settings."""

    description_placeholder: str = Field(
        default="na",
        description="Description written when a gene set has none",
    )


class PipelineConfig(BaseModel):
    """Top-level settings loaded from config/default.yaml."""

    data_dir: Path = Field(
        ...,
        description="Directory for downloaded inputs (gene groups, GMT downloads), created on first write",
    )
    cache_dir: Path = Field(
        ...,
        description="Directory holding the SQLite HTTP cache",
    )
    output_dir: Path = Field(
        ...,
        description="Directory for curated CSV and GMT outputs",
    )
    species: Literal["human", "mouse"] = Field(
        default="human",
        description="Default species for stage commands",
    )
    versions: DataSourceVersions = Field(
        ...,
        description="Upstream source releases",
    )
    api: APIConfig = Field(
        default_factory=APIConfig,
        description="HTTP client settings",
    )
    msigdb: MSigDBConfig = Field(
        default_factory=MSigDBConfig,
        description="MSigDB download settings",
    )
    kinases: KinaseConfig = Field(
        default_factory=KinaseConfig,
        description="Kinase stage settings",
    )
    gmt: GMTConfig = Field(
        default_factory=GMTConfig,
        description="Gene-set-matrix export settings",
    )

    @property
    def gmt_dir(self) -> Path:
        """Directory holding exported gene-set-matrix files."""
        return self.output_dir / "gmt"

    def config_hash(self) -> str:
        """SHA-256 of the settings serialised with sorted keys."""
        payload = json.dumps(self.model_dump(mode="python"), sort_keys=True, default=str)
        return hashlib.sha256(payload.encode()).hexdigest()
