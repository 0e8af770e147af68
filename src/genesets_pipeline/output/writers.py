"""CSV table writer with MD5 checksum sidecar."""

import hashlib
from pathlib import Path

import polars as pl
import structlog

from genesets_pipeline.errors import OutputWriteFailure

logger = structlog.get_logger()

CHECKSUM_SUFFIX = ".md5"


def md5sum(path: Path) -> str:
    h = hashlib.md5()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(8192), b''):
            h.update(chunk)
    return h.hexdigest()


def checksum_path(path: Path) -> Path:
    """Sidecar path: the output path with ``.md5`` appended."""
    path = Path(path)
    return path.with_name(path.name + CHECKSUM_SUFFIX)


def write_checksum(path: Path) -> Path:
    """Write ``<md5>  <basename>`` (md5sum format) next to ``path``.

    Raises:
        OutputWriteFailure: If the file cannot be read or the sidecar written
    """
    path = Path(path)
    sidecar = checksum_path(path)
    try:
        digest = md5sum(path)
        sidecar.write_text(f"{digest}  {path.name}\n", encoding="utf-8")
    except OSError as e:
        raise OutputWriteFailure(sidecar, str(e)) from e
    return sidecar


def verify_checksum(path: Path) -> bool:
    """True when the sidecar exists and matches the current file content."""
    path = Path(path)
    sidecar = checksum_path(path)
    if not path.exists() or not sidecar.exists():
        return False
    expected = sidecar.read_text(encoding="utf-8").split()[0]
    return md5sum(path).lower() == expected.lower()


def write_table_csv(
    df: pl.DataFrame | pl.LazyFrame,
    path: Path,
    checksum: bool = True,
) -> dict:
    """
    Write a gene set table as UTF-8 comma-separated CSV with header.

    The checksum sidecar is written immediately after the CSV.

    Args:
        df: Polars DataFrame or LazyFrame
        path: Output CSV path (parent directories are created)
        checksum: Also write ``<path>.md5`` (default: True)

    Returns:
        Dictionary with output file paths:
        {
            "csv": Path to CSV file,
            "md5": Path to checksum sidecar (None when checksum=False)
        }

    Raises:
        OutputWriteFailure: On any filesystem error
    """
    path = Path(path)

    if isinstance(df, pl.LazyFrame):
        df = df.collect()

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        df.write_csv(path, include_header=True)
    except OSError as e:
        raise OutputWriteFailure(path, str(e)) from e

    md5_path = write_checksum(path) if checksum else None

    logger.info(
        "table_written",
        path=str(path),
        rows=df.height,
        columns=df.width,
        checksum=bool(md5_path),
    )

    return {
        "csv": path,
        "md5": md5_path,
    }
