"""Output generation: CSV tables with checksums and gene-set-matrix files."""

from genesets_pipeline.output.gmt import (
    GeneSetEntry,
    build_entries,
    combine_gmt_files,
    format_gmt_line,
    parse_gmt_line,
    read_gmt,
    write_gmt,
)
from genesets_pipeline.output.writers import (
    md5sum,
    verify_checksum,
    write_table_csv,
)

__all__ = [
    "GeneSetEntry",
    "build_entries",
    "combine_gmt_files",
    "format_gmt_line",
    "parse_gmt_line",
    "read_gmt",
    "write_gmt",
    "md5sum",
    "verify_checksum",
    "write_table_csv",
]
