"""Extraction of nomenclature accessions embedded in Ensembl descriptions.

Ensembl gene descriptions end with a provenance token such as::

    protein kinase AMP-activated catalytic subunit alpha 1 [Source:HGNC Symbol;Acc:HGNC:9376]
    v-abl Abelson murine leukemia oncogene 1 [Source:MGI Symbol;Acc:MGI:87859]

``extract_nomenclature_id`` returns the accession (``HGNC:9376``,
``MGI:87859``). Anything that does not match returns None.
"""

import re

# [Source:<authority> Symbol;Acc:<accession>] at the end of the description
SOURCE_ANNOTATION_PATTERN = re.compile(
    r"\s*\[Source:(?P<authority>[^;\]]+?)\s+Symbol;Acc:(?P<accession>[^\]\s]+)\]\s*$"
)


def extract_nomenclature_id(description: str | None) -> str | None:
    """Return the bracketed nomenclature accession of a description, or None.

    Args:
        description: Free-text gene description (may be None)

    Returns:
        Accession string such as ``MGI:87859``, or None when the description
        is empty or carries no ``[Source:... Symbol;Acc:...]`` token
    """
    if not description:
        return None
    match = SOURCE_ANNOTATION_PATTERN.search(description)
    if match is None:
        return None
    return match.group("accession")


def strip_source_annotation(description: str | None) -> str | None:
    """Remove a trailing ``[Source:... Symbol;Acc:...]`` token."""
    if description is None:
        return None
    return SOURCE_ANNOTATION_PATTERN.sub("", description)
