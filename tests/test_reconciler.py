"""Tests for reconciliation of duplicate gene observations and its validation gates."""

import warnings

import polars as pl
import pytest

from genesets_pipeline.errors import AmbiguousMapping
from genesets_pipeline.gene_mapping import (
    IdentifierRecord,
    Reconciler,
    ReconciliationReport,
    ReconciliationValidator,
    coalesce_identifier,
    merge_lookup_columns,
    merge_lookup_passes,
    validate_gene_set,
)


def _record(symbol, source_tag, **ids):
    return IdentifierRecord(symbol=symbol, source_tag=source_tag, **ids)


def test_most_complete_record_wins():
    records = [
        _record("Abl1", "a", stable_gene_id="ENSMUSG1"),
        _record("Abl1", "b", stable_gene_id="ENSMUSG1", numeric_id="11350", protein_id="P00520"),
    ]

    retained, report = Reconciler().reconcile(records)

    assert len(retained) == 1
    assert retained[0].source_tag == "b"
    assert report.total_records == 2
    assert report.duplicates_dropped == 1


def test_tie_keeps_first_seen():
    records = [
        _record("Src", "a", numeric_id="20779"),
        _record("Src", "b", protein_id="P05480"),
    ]

    retained, _ = Reconciler().reconcile(records)

    assert retained[0].source_tag == "a"
    assert retained[0].protein_id is None


def test_ambiguous_stable_id_keeps_first_source():
    """Two sources disagree on Brd4's stable ID: source order decides, values are not merged."""
    source_a = _record("Brd4", "A", stable_gene_id="ENSMUSG00000024002", numeric_id="57261")
    source_b = _record("Brd4", "B", stable_gene_id="ENSMUSG00000099999", numeric_id="57261")

    with pytest.warns(AmbiguousMapping):
        retained, report = Reconciler().reconcile([source_a, source_b])

    assert len(retained) == 1
    assert retained[0].stable_gene_id == "ENSMUSG00000024002"
    assert retained[0].source_tag == "A"
    assert report.ambiguous_symbols == ["Brd4"]


def test_reconcile_is_deterministic():
    records = [
        _record("Brd4", "A", stable_gene_id="ENSMUSG1"),
        _record("Abl1", "A", numeric_id="11350"),
        _record("Brd4", "B", stable_gene_id="ENSMUSG2"),
        _record("Abl1", "B", numeric_id="11350", protein_id="P00520"),
        _record("Src", "A"),
    ]

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", AmbiguousMapping)
        first, _ = Reconciler().reconcile(list(records))
        second, _ = Reconciler().reconcile(list(records))

    assert [r.to_dict() for r in first] == [r.to_dict() for r in second]
    # Order of first appearance
    assert [r.symbol for r in first] == ["Brd4", "Abl1", "Src"]
    assert [r.source_tag for r in first] == ["A", "B", "A"]


def test_symbols_are_case_sensitive():
    retained, _ = Reconciler().reconcile([_record("ABL1", "a"), _record("Abl1", "b")])

    assert [r.symbol for r in retained] == ["ABL1", "Abl1"]


def test_nomenclature_filled_from_description():
    record = _record(
        "Abl1",
        "biomart",
        stable_gene_id="ENSMUSG00000026842",
        description="c-abl oncogene 1 [Source:MGI Symbol;Acc:MGI:87859]",
    )

    retained, report = Reconciler().reconcile([record])

    assert retained[0].nomenclature_id == "MGI:87859"
    assert report.filled_nomenclature == 1


def test_nomenclature_fill_can_be_disabled():
    record = _record("Abl1", "biomart", description="c-abl [Source:MGI Symbol;Acc:MGI:87859]")

    retained, report = Reconciler(fill_nomenclature=False).reconcile([record])

    assert retained[0].nomenclature_id is None
    assert report.filled_nomenclature == 0


def test_existing_nomenclature_not_overwritten():
    record = _record(
        "Abl1",
        "biomart",
        nomenclature_id="MGI:1",
        description="c-abl [Source:MGI Symbol;Acc:MGI:87859]",
    )

    retained, _ = Reconciler().reconcile([record])

    assert retained[0].nomenclature_id == "MGI:1"


def test_reconcile_rows_counts_malformed():
    rows = [
        {"Approved symbol": "PTEN", "Ensembl gene ID": "ENSG00000171862"},
        {"Approved symbol": "", "Ensembl gene ID": "ENSG00000000002"},
        {"Approved symbol": None},
    ]

    retained, report = Reconciler().reconcile_rows(
        rows, "hgnc", {"symbol": "Approved symbol", "stable_gene_id": "Ensembl gene ID"}
    )

    assert [r.symbol for r in retained] == ["PTEN"]
    assert report.malformed == 2
    assert report.total_records == 1


def test_report_completeness_rate():
    retained, report = Reconciler().reconcile([
        _record("A", "x", stable_gene_id="ENSG1"),
        _record("B", "x"),
    ])

    assert report.with_stable_id == 1
    assert report.completeness_rate == 0.5


# Lookup pass merging

def test_coalesce_identifier():
    assert coalesce_identifier("ENSG1", "ENSG2") == "ENSG1"
    assert coalesce_identifier("", "ENSG2") == "ENSG2"
    assert coalesce_identifier(None, None) is None


def test_merge_lookup_passes_prefers_stable_id_pass():
    by_stable = _record("ABL1", "mygene_ensembl", stable_gene_id="ENSG00000097007", numeric_id="25")
    by_symbol = _record("ABL1", "biomart", numeric_id="999", protein_id="P00519")

    merged = merge_lookup_passes(by_stable, by_symbol)

    assert merged.stable_gene_id == "ENSG00000097007"
    assert merged.numeric_id == "25"
    assert merged.protein_id == "P00519"
    assert merged.source_tag == "mygene_ensembl"

    assert merge_lookup_passes(None, by_symbol) is by_symbol
    assert merge_lookup_passes(by_stable, None) is by_stable
    assert merge_lookup_passes(None, None) is None


def test_merge_lookup_columns():
    df = pl.DataFrame({
        "id_by_stable": ["HGNC:76", "", None],
        "id_by_symbol": ["HGNC:1", "HGNC:11283", None],
    })

    result = merge_lookup_columns(df, "HGNC_ID", "id_by_stable", "id_by_symbol")

    assert result["HGNC_ID"].to_list() == ["HGNC:76", "HGNC:11283", None]


# Validation

def test_validator_passes_high_coverage():
    report = ReconciliationReport(total_records=10, retained=10, with_stable_id=10)

    result = ReconciliationValidator().validate(report)

    assert result.passed
    assert result.stable_id_rate == 1.0
    assert any("PASSED" in m for m in result.messages)


def test_validator_warns_between_thresholds():
    report = ReconciliationReport(total_records=100, retained=100, with_stable_id=92)

    result = ReconciliationValidator().validate(report)

    assert result.passed
    assert any("WARNING" in m for m in result.messages)


def test_validator_fails_low_coverage():
    report = ReconciliationReport(total_records=10, retained=10, with_stable_id=5)

    result = ReconciliationValidator(min_stable_id_rate=0.9).validate(report)

    assert not result.passed
    assert any("FAILED" in m for m in result.messages)


def test_validator_fails_empty():
    result = ReconciliationValidator().validate(ReconciliationReport())

    assert not result.passed


def test_save_ambiguous_report(tmp_path):
    report = ReconciliationReport(retained=2, ambiguous_symbols=["Brd4", "Abl1"])
    output = tmp_path / "reports" / "ambiguous.txt"

    ReconciliationValidator().save_ambiguous_report(report, output)

    lines = output.read_text().splitlines()
    assert "# Total ambiguous: 2" in lines
    assert lines[-2:] == ["Brd4", "Abl1"]


def test_validate_gene_set():
    assert validate_gene_set(["Abl1", "Src"]).passed
    assert not validate_gene_set([]).passed
    assert not validate_gene_set(["Abl1", ""]).passed
    assert not validate_gene_set(["Abl1", "Abl1"]).passed
