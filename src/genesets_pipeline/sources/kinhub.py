"""KinHub kinase catalog: HTML table scrape."""

import io
import re

import pandas as pd
import polars as pl
import structlog

from genesets_pipeline.api_clients.base import CachedAPIClient
from genesets_pipeline.errors import SourceUnavailable

logger = structlog.get_logger()

KINHUB_URL = "http://www.kinhub.org/kinases.html"

# First four columns are positional; the rest keep their page headers
KINHUB_COLUMNS = ("HGNC", "Group", "Family", "SubFamily")

UNIPROT_ACCESSION_PATTERN = re.compile(r"P[0-9]|Q[0-9]")


def _cell(value) -> str | None:
    if pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def parse_kinhub_table(html: str) -> pl.DataFrame:
    """Parse the first table of the KinHub kinase page.

    Blank rows and blank columns are stripped, rows whose last column does
    not look like a UniProt accession are dropped, and the first four
    columns are named HGNC, Group, Family and SubFamily.

    Raises:
        ValueError: If the page has no table or fewer than four non-blank columns
    """
    tables = pd.read_html(io.StringIO(html), flavor="lxml")
    if not tables:
        raise ValueError("No table found in KinHub page")
    table = tables[0]

    headers = [str(c).strip() for c in table.columns]
    rows = [[_cell(v) for v in row] for row in table.itertuples(index=False)]

    rows = [row for row in rows if any(v is not None for v in row)]
    keep = [i for i in range(len(headers)) if any(row[i] is not None for row in rows)]
    headers = [headers[i] for i in keep]
    rows = [[row[i] for i in keep] for row in rows]

    if len(headers) < len(KINHUB_COLUMNS):
        raise ValueError(f"KinHub table has {len(headers)} columns, expected at least 4")

    rows = [row for row in rows if row[-1] and UNIPROT_ACCESSION_PATTERN.search(row[-1])]
    headers[:len(KINHUB_COLUMNS)] = KINHUB_COLUMNS
    # Page headers that collide with the positional names get a suffix
    seen: set[str] = set()
    for i, name in enumerate(headers):
        while name in seen:
            name = f"{name}_page"
        headers[i] = name
        seen.add(name)

    df = pl.DataFrame(
        {name: [row[i] for row in rows] for i, name in enumerate(headers)},
        schema={name: pl.Utf8 for name in headers},
    )
    logger.info("kinhub_table_parsed", rows=df.height, columns=df.width)
    return df


def fetch_kinhub_table(client: CachedAPIClient, url: str = KINHUB_URL) -> pl.DataFrame:
    """Download and parse the KinHub kinase page.

    Raises:
        SourceUnavailable: On network or HTTP failure, or when the page has
            no usable table
    """
    html = client.get_text(url, source="kinhub")
    try:
        return parse_kinhub_table(html)
    except ValueError as e:
        raise SourceUnavailable("kinhub", f"malformed page: {e}") from e
