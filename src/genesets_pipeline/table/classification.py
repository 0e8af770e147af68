"""Rule-based classification of kinase and phosphatase tables."""

import re

import polars as pl
import structlog

from genesets_pipeline.table.models import (
    CLASS_PRIMARY_RULES,
    KINASE_STATUS_REASONS,
    PROTEIN_KINASE_GO_TERMS,
    RECEPTOR_TYPE_PATTERN,
    REGULATORY_PATTERN,
    SUBSTRATE_RULES,
    TF_GROUP_PATTERNS,
)

logger = structlog.get_logger()

TF_GROUP_REGEX = re.compile("(" + "|".join(TF_GROUP_PATTERNS) + ")", re.IGNORECASE)


def _yes_no(condition: pl.Expr) -> pl.Expr:
    return pl.when(condition.fill_null(False)).then(pl.lit("Y")).otherwise(pl.lit("N"))


def _column_or_null(df: pl.DataFrame, name: str) -> pl.Expr:
    if name in df.columns:
        return pl.col(name).cast(pl.Utf8)
    return pl.lit(None, dtype=pl.Utf8)


def classify_phosphatases(df: pl.DataFrame, group_column: str = "Group_hgnc") -> pl.DataFrame:
    """Add substrate, catalytic/regulatory, receptor and primary-class columns.

    All rules read ``group_column`` (the ``; ``-joined HGNC group names of a
    gene). Substrate rules are case-insensitive; the others are case-sensitive.

    Args:
        df: One row per phosphatase

    Returns:
        DataFrame with added columns:
        - Substrate_protein, Substrate_lipid, Substrate_nucleotide,
          Substrate_carbohydrate, Substrate_other: "Y"/"N" (not exclusive)
        - Is_catalytic, Is_regulatory, Is_receptor_type: "Y"/"N"
        - Class_primary: first matching rule of CLASS_PRIMARY_RULES, else "Other"
    """
    groups = pl.col(group_column).fill_null("")

    df = df.with_columns(
        [_yes_no(groups.str.contains(f"(?i){pattern}")).alias(name) for name, pattern in SUBSTRATE_RULES.items()]
    )

    regulatory = groups.str.contains(REGULATORY_PATTERN)
    df = df.with_columns([
        _yes_no(~regulatory).alias("Is_catalytic"),
        _yes_no(regulatory).alias("Is_regulatory"),
        _yes_no(groups.str.contains(RECEPTOR_TYPE_PATTERN)).alias("Is_receptor_type"),
    ])

    pattern, label = CLASS_PRIMARY_RULES[0]
    class_expr = pl.when(groups.str.contains(pattern)).then(pl.lit(label))
    for pattern, label in CLASS_PRIMARY_RULES[1:]:
        class_expr = class_expr.when(groups.str.contains(pattern)).then(pl.lit(label))
    df = df.with_columns(class_expr.otherwise(pl.lit("Other")).alias("Class_primary"))

    logger.info(
        "phosphatases_classified",
        rows=df.height,
        protein=df.filter(pl.col("Substrate_protein") == "Y").height,
        lipid=df.filter(pl.col("Substrate_lipid") == "Y").height,
        catalytic=df.filter(pl.col("Is_catalytic") == "Y").height,
        regulatory=df.filter(pl.col("Is_regulatory") == "Y").height,
    )
    return df


def classify_kinase_substrate(df: pl.DataFrame, go_column: str = "go_id") -> pl.DataFrame:
    """Set Substrate_protein to Y for kinases annotated with a protein kinase GO term."""
    pattern = "|".join(re.escape(term) for term in PROTEIN_KINASE_GO_TERMS)
    return df.with_columns(
        _yes_no(_column_or_null(df, go_column).str.contains(pattern)).alias("Substrate_protein")
    )


def is_tf_group(name: str | None) -> bool:
    """True when an HGNC group name denotes a transcription factor family."""
    if not name:
        return False
    return TF_GROUP_REGEX.search(name) is not None


def reconcile_kinase_catalogs(
    manning: pl.DataFrame,
    kinhub: pl.DataFrame,
    kinhub_key: str = "HGNC",
) -> pl.DataFrame:
    """Compare the Manning 2002 kinome with the KinHub catalog.

    The first column of ``manning`` holds the kinase name; ``Group``,
    ``Family``, ``Pseudogene?`` and ``Novelty`` are used when present. The
    KinHub catalog is matched on ``kinhub_key`` and its last column is taken
    as the UniProt accession.

    Returns:
        One row per name in either catalog with In_Manning, In_KinHub,
        Manning_* and KinHub_* metadata, Status (BOTH, MANNING_ONLY_PSEUDO,
        MANNING_ONLY, KINHUB_ONLY), Exclude and Exclusion_Reason. Sorted by
        In_Manning desc, In_KinHub desc, name.
    """
    manning = manning.rename({manning.columns[0]: "Manning_Name"})
    manning_names = manning["Manning_Name"].drop_nulls().unique(maintain_order=True).to_list()
    kinhub_names = kinhub[kinhub_key].drop_nulls().unique(maintain_order=True).to_list()

    manning_set = set(manning_names)
    names = manning_names + [n for n in kinhub_names if n not in manning_set]

    table = pl.DataFrame({"Manning_Name": names}, schema={"Manning_Name": pl.Utf8}).with_columns([
        pl.col("Manning_Name").is_in(manning_names).alias("In_Manning"),
        pl.col("Manning_Name").is_in(kinhub_names).alias("In_KinHub"),
    ])

    manning_meta = manning.select([
        pl.col("Manning_Name"),
        _column_or_null(manning, "Group").alias("Manning_Group"),
        _column_or_null(manning, "Family").alias("Manning_Family"),
        _column_or_null(manning, "Pseudogene?").alias("Manning_Pseudogene"),
        _column_or_null(manning, "Novelty").alias("Manning_Novelty"),
    ]).unique(subset="Manning_Name", keep="first", maintain_order=True)

    kinhub_meta = kinhub.select([
        pl.col(kinhub_key).alias("Manning_Name"),
        _column_or_null(kinhub, "HGNC").alias("KinHub_HGNC"),
        _column_or_null(kinhub, "Group").alias("KinHub_Group"),
        _column_or_null(kinhub, "Family").alias("KinHub_Family"),
        pl.col(kinhub.columns[-1]).cast(pl.Utf8).alias("KinHub_UniProt"),
    ]).unique(subset="Manning_Name", keep="first", maintain_order=True)

    table = (
        table.join(manning_meta, on="Manning_Name", how="left")
        .join(kinhub_meta, on="Manning_Name", how="left")
    )

    in_manning = pl.col("In_Manning")
    in_kinhub = pl.col("In_KinHub")
    pseudo = (
        pl.col("Manning_Pseudogene").str.contains("Y|R").fill_null(False)
        | pl.col("Manning_Novelty").str.contains("(?i)pseudogene").fill_null(False)
    )
    table = table.with_columns(
        pl.when(in_manning & in_kinhub).then(pl.lit("BOTH"))
        .when(in_manning & ~in_kinhub & pseudo).then(pl.lit("MANNING_ONLY_PSEUDO"))
        .when(in_manning & ~in_kinhub).then(pl.lit("MANNING_ONLY"))
        .otherwise(pl.lit("KINHUB_ONLY"))
        .alias("Status")
    )

    reason = pl.when(pl.lit(False)).then(pl.lit(""))
    for status, text in KINASE_STATUS_REASONS.items():
        reason = reason.when(pl.col("Status") == status).then(pl.lit(text))
    table = table.with_columns([
        (pl.col("Status") == "MANNING_ONLY_PSEUDO").alias("Exclude"),
        reason.otherwise(pl.lit("")).alias("Exclusion_Reason"),
    ]).sort(
        ["In_Manning", "In_KinHub", "Manning_Name"],
        descending=[True, True, False],
    )

    logger.info(
        "kinase_catalogs_reconciled",
        total=table.height,
        **{
            status.lower(): table.filter(pl.col("Status") == status).height
            for status in KINASE_STATUS_REASONS
        },
    )
    return table
