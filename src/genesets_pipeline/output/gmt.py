"""Gene-set-matrix (GMT) serialization.

One line per gene set::

    NAME<TAB>DESCRIPTION<TAB>member1<TAB>member2...

No header, UTF-8, ``\\n`` line endings, no trailing empty fields. Empty sets
are never written and member lists are deduplicated in insertion order.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

import structlog

from genesets_pipeline.errors import OutputWriteFailure

logger = structlog.get_logger()

DEFAULT_DESCRIPTION = "na"


@dataclass
class GeneSetEntry:
    """One named gene set.

    Attributes:
        name: Set identifier, unique within one matrix
        description: Free text; a placeholder when unused
        members: Ordered, deduplicated, non-empty member symbols
    """
    name: str
    description: str = DEFAULT_DESCRIPTION
    members: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.name or "\t" in self.name:
            raise ValueError(f"Invalid gene set name: {self.name!r}")
        if not self.members:
            raise ValueError(f"Gene set {self.name} has no members")
        # Tabs or newlines in the description would break the line format
        self.description = " ".join(str(self.description).split()) or DEFAULT_DESCRIPTION


def dedupe_members(members: Iterable) -> list[str]:
    """Drop blank/None members and repeats, keeping first occurrences."""
    seen: set[str] = set()
    result: list[str] = []
    for member in members:
        if member is None:
            continue
        text = str(member).strip()
        if not text or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result


def build_entries(
    groups: Mapping[str, Iterable],
    description: str | Mapping[str, str] = DEFAULT_DESCRIPTION,
) -> list[GeneSetEntry]:
    """Turn ``{name: members}`` into entries, skipping empty groups.

    Args:
        groups: Set name -> member symbols, in output order
        description: One description for every set, or a per-name mapping
            (missing names get the placeholder)

    Returns:
        Entries in the order of ``groups``, without empty groups
    """
    entries = []
    for name, members in groups.items():
        cleaned = dedupe_members(members)
        if not cleaned:
            logger.info("gmt_empty_group_skipped", name=name)
            continue
        if isinstance(description, Mapping):
            desc = description.get(name, DEFAULT_DESCRIPTION)
        else:
            desc = description
        entries.append(GeneSetEntry(name=name, description=desc, members=cleaned))
    return entries


def format_gmt_line(entry: GeneSetEntry) -> str:
    """Render one entry as a GMT line (without the newline)."""
    return "\t".join([entry.name, entry.description, *entry.members])


def write_gmt(entries: Iterable[GeneSetEntry], path: Path, append: bool = False) -> Path:
    """Write entries to ``path``.

    Raises:
        ValueError: If two entries share a name
        OutputWriteFailure: On filesystem errors
    """
    path = Path(path)
    entries = list(entries)

    names = [e.name for e in entries]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate gene set names: {duplicates}")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a" if append else "w", encoding="utf-8", newline="\n") as f:
            for entry in entries:
                f.write(format_gmt_line(entry) + "\n")
    except OSError as e:
        raise OutputWriteFailure(path, str(e)) from e

    logger.info("gmt_written", path=str(path), sets=len(entries), append=append)
    return path


def parse_gmt_line(line: str) -> GeneSetEntry | None:
    """Parse one GMT line; blank lines and lines without members give None."""
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) < 3 or not fields[0]:
        return None
    members = dedupe_members(fields[2:])
    if not members:
        return None
    return GeneSetEntry(name=fields[0], description=fields[1], members=members)


def read_gmt(path: Path) -> list[GeneSetEntry]:
    """Read every gene set of a GMT file."""
    with open(path, encoding="utf-8") as f:
        return parse_gmt_text(f.read())


def parse_gmt_text(text: str) -> list[GeneSetEntry]:
    entries = []
    for line in text.splitlines():
        entry = parse_gmt_line(line)
        if entry is not None:
            entries.append(entry)
    return entries


def combine_gmt_files(paths: Iterable[Path], output_path: Path) -> Path:
    """Concatenate GMT files, skipping later sets whose name was already seen.

    Missing input files are skipped.
    """
    combined: list[GeneSetEntry] = []
    seen: set[str] = set()
    for path in paths:
        path = Path(path)
        if not path.exists():
            logger.warning("gmt_input_missing", path=str(path))
            continue
        for entry in read_gmt(path):
            if entry.name in seen:
                logger.warning("gmt_duplicate_name_skipped", name=entry.name, path=str(path))
                continue
            seen.add(entry.name)
            combined.append(entry)

    return write_gmt(combined, output_path)
