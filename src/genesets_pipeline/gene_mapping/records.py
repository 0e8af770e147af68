"""Normalized cross-reference bundle for one gene observation."""

import math
from dataclasses import asdict, dataclass
from typing import Any, Mapping

from genesets_pipeline.errors import MalformedRecord

# Fields counted for completeness, in declared precedence order
CROSS_REFERENCE_FIELDS = (
    "stable_gene_id",
    "protein_id",
    "nomenclature_id",
    "numeric_id",
)

RECORD_COLUMNS = (
    "symbol",
    "stable_gene_id",
    "numeric_id",
    "protein_id",
    "nomenclature_id",
    "description",
    "source_tag",
)


def clean_value(value: Any) -> str | None:
    """Normalize a raw cell value to a stripped string or None.

    Blank strings, NaN and None become None. Float-typed numeric IDs
    (``1234.0``) are rendered without the decimal part.
    """
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return str(int(value))
    text = str(value).strip()
    if not text or text.upper() in ("NA", "NAN", "NONE"):
        return None
    return text


@dataclass
class IdentifierRecord:
    """One gene candidate observed by a source fetcher.

    Attributes:
        symbol: Species-specific gene symbol (required, non-empty)
        stable_gene_id: Ensembl-style stable gene ID
        numeric_id: Entrez-style numeric gene ID
        protein_id: UniProt accession
        nomenclature_id: HGNC/MGI-style nomenclature ID
        description: Free-text annotation, may embed a nomenclature accession
        source_tag: Fetcher that produced the record (provenance only)
    """
    symbol: str
    stable_gene_id: str | None = None
    numeric_id: str | None = None
    protein_id: str | None = None
    nomenclature_id: str | None = None
    description: str | None = None
    source_tag: str = "unknown"

    def __post_init__(self):
        symbol = clean_value(self.symbol)
        if symbol is None:
            raise MalformedRecord(
                f"Record from {self.source_tag} has no gene symbol"
            )
        self.symbol = symbol
        for name in CROSS_REFERENCE_FIELDS + ("description",):
            setattr(self, name, clean_value(getattr(self, name)))

    def completeness(self) -> int:
        """Number of populated cross-reference fields (0-4)."""
        return sum(1 for name in CROSS_REFERENCE_FIELDS if getattr(self, name))

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)

    @classmethod
    def from_mapping(
        cls,
        row: Mapping[str, Any],
        source_tag: str,
        columns: Mapping[str, str] | None = None,
    ) -> "IdentifierRecord":
        """Build a record from a raw row.

        Args:
            row: Raw row keyed by upstream column names
            source_tag: Tag of the producing source
            columns: Map of record field -> upstream column name. Fields
                not listed are looked up under their own name.

        Raises:
            MalformedRecord: If the row has no usable symbol
        """
        columns = dict(columns or {})
        values = {}
        for name in RECORD_COLUMNS:
            if name == "source_tag":
                continue
            values[name] = row.get(columns.get(name, name))
        return cls(source_tag=source_tag, **values)
