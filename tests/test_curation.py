"""Tests for the curation stages with fake upstream sources."""

import json
from unittest.mock import Mock

import polars as pl
import pytest

from conftest import write_config
from genesets_pipeline.config import load_config
from genesets_pipeline.curation import (
    build_kinase_table,
    build_phosphatase_table,
    build_tf_table,
    export_curated_gmt,
    stage_output_path,
)
from genesets_pipeline.curation.base import StageResult, count_flagged
from genesets_pipeline.curation.gmt_export import combined_gmt_path, gmt_path
from genesets_pipeline.errors import SourceUnavailable
from genesets_pipeline.gene_mapping import IdentifierRecord
from genesets_pipeline.output import read_gmt, verify_checksum
from genesets_pipeline.persistence.provenance import sidecar_path_for
from genesets_pipeline.sources.kinhub import KINHUB_URL


def _kinase_seed():
    return pl.DataFrame({
        "stable_gene_id": ["ENSG00000097007", "ENSG00000121879"],
        "symbol": ["ABL1", "PIK3CA"],
        "description": [
            "ABL proto-oncogene 1 [Source:HGNC Symbol;Acc:HGNC:76]",
            "phosphatidylinositol-4,5-bisphosphate 3-kinase catalytic subunit alpha",
        ],
        "alias_symbol": ["ABL1", "PIK3CA"],
        "nomenclature_id": ["HGNC:76", "HGNC:8975"],
        "go_id": ["GO:0004672;GO:0004713", "GO:0016301"],
    })


def _fake_biomart(orthologs=None):
    biomart = Mock()
    biomart.fetch_by_go_terms.return_value = _kinase_seed()
    biomart.fetch.return_value = [
        IdentifierRecord(
            symbol="ABL1",
            stable_gene_id="ENSG00000097007",
            numeric_id="25",
            protein_id="P00519",
            nomenclature_id="HGNC:76",
            source_tag="biomart",
        ),
    ]
    biomart.fetch_orthologs.return_value = orthologs if orthologs is not None else pl.DataFrame({
        "symbol": ["ABL1"],
        "Mouse_Symbol": ["Abl1"],
        "Ensembl_Mouse": ["ENSMUSG00000026842"],
    })
    return biomart


def _fake_mapper():
    mapper = Mock()
    mapper.map_stable_ids.return_value = {
        "ENSG00000121879": IdentifierRecord(
            symbol="PIK3CA",
            stable_gene_id="ENSG00000121879",
            numeric_id="5290",
            nomenclature_id="HGNC:8975",
            source_tag="mygene_ensembl",
        ),
    }
    mapper.map_entrez_to_symbols.side_effect = lambda ids: {"PIK3CA"} if ids else set()
    return mapper


def _fake_kegg():
    kegg = Mock()
    kegg.pathway_gene_ids.side_effect = lambda pattern: {"5290"} if "Metabolic" in pattern else set()
    return kegg


def test_stage_result_summary_line(tmp_path):
    result = StageResult("tf", tmp_path / "tf.csv", fetched=10, retained=8, flagged=3)

    assert result.summary_line() == "tf: fetched=10 retained=8 flagged=3"


def test_count_flagged_ignores_missing_columns():
    df = pl.DataFrame({"A": ["Y", "N", None], "B": ["N", "N", "Y"]})

    assert count_flagged(df, ["A", "B", "C"]) == 2
    assert count_flagged(df, ["C"]) == 0


# Kinases

def test_build_kinase_table(test_config):
    result = build_kinase_table(
        test_config,
        species="human",
        client=Mock(),
        biomart=_fake_biomart(),
        mapper=_fake_mapper(),
        kegg=_fake_kegg(),
    )

    path = stage_output_path(test_config, "kinases", "human")
    assert result.output_path == path
    assert result.retained == 2
    assert result.fetched == 4
    assert result.flagged == 1

    table = pl.read_csv(path, infer_schema_length=0)
    assert table.columns[-1] == "go_id"
    rows = {row["symbol"]: row for row in table.iter_rows(named=True)}
    assert rows["ABL1"]["protein_id"] == "P00519"
    assert rows["ABL1"]["Substrate_protein"] == "Y"
    assert rows["ABL1"]["Mouse_Symbol"] == "Abl1"
    assert rows["PIK3CA"]["numeric_id"] == "5290"
    assert rows["PIK3CA"]["Substrate_protein"] == "N"
    assert rows["PIK3CA"]["Metabolic"] == "Y"
    assert rows["PIK3CA"]["Lipid"] == "N"
    assert rows["PIK3CA"]["Mouse_Symbol"] is None

    assert verify_checksum(path)
    sidecar = json.loads(sidecar_path_for(path).read_text())
    steps = [s["name"] for s in sidecar["processing_steps"]]
    assert steps[0] == "fetch_go_seed"
    assert "table_written" in steps


def test_build_kinase_table_lookups_degrade(test_config):
    biomart = _fake_biomart()
    biomart.fetch.side_effect = SourceUnavailable("biomart", "timeout")
    mapper = _fake_mapper()
    mapper.map_stable_ids.side_effect = SourceUnavailable("mygene", "timeout")

    result = build_kinase_table(
        test_config,
        species="human",
        skip_mouse=True,
        client=Mock(),
        biomart=biomart,
        mapper=mapper,
        kegg=_fake_kegg(),
    )

    table = pl.read_csv(result.output_path, infer_schema_length=0)
    assert table["symbol"].to_list() == ["ABL1", "PIK3CA"]
    assert table["nomenclature_id"].to_list() == ["HGNC:76", "HGNC:8975"]
    assert "Mouse_Symbol" not in table.columns
    biomart.fetch_orthologs.assert_not_called()


def test_build_kinase_table_seed_failure_propagates(test_config):
    biomart = _fake_biomart()
    biomart.fetch_by_go_terms.side_effect = SourceUnavailable("biomart", "HTTP 503")

    with pytest.raises(SourceUnavailable):
        build_kinase_table(
            test_config,
            client=Mock(),
            biomart=biomart,
            mapper=_fake_mapper(),
            kegg=_fake_kegg(),
        )

    assert not stage_output_path(test_config, "kinases", "human").exists()


def _catalog_config(tmp_path):
    manning = tmp_path / "manning.csv"
    manning.write_text("Name,Group,Family\nABL,TK,Abl\nNEWK,CAMK,CAMKL\n")
    return load_config(write_config(tmp_path, f"kinases:\n  manning_path: {manning}\n"))


KINHUB_CATALOG = pl.DataFrame(
    {
        "HGNC": ["ABL1"],
        "Group": ["TK"],
        "Family": ["Abl"],
        "SubFamily": [None],
        "UniprotID": ["P00519"],
    },
    schema={c: pl.Utf8 for c in ("HGNC", "Group", "Family", "SubFamily", "UniprotID")},
)


def test_build_kinase_table_resolves_catalog_names(tmp_path, monkeypatch):
    config = _catalog_config(tmp_path)
    fetch_kinhub = Mock(return_value=KINHUB_CATALOG)
    monkeypatch.setattr("genesets_pipeline.curation.kinases.fetch_kinhub_table", fetch_kinhub)
    hgnc = Mock()
    hgnc.fetch.return_value = [
        IdentifierRecord(
            symbol="ABL1",
            stable_gene_id="ENSG00000097007",
            nomenclature_id="HGNC:76",
            source_tag="hgnc",
        ),
    ]

    result = build_kinase_table(
        config,
        species="human",
        skip_mouse=True,
        client=Mock(),
        biomart=_fake_biomart(),
        mapper=_fake_mapper(),
        kegg=_fake_kegg(),
        hgnc=hgnc,
    )

    hgnc.fetch.assert_called_once_with(["ABL", "NEWK"])
    fetch_kinhub.assert_called_once()
    table = pl.read_csv(result.output_path, infer_schema_length=0)
    rows = {row["symbol"]: row for row in table.iter_rows(named=True)}
    assert rows["ABL1"]["In_Manning"] == "Y"
    assert rows["PIK3CA"]["In_Manning"] == "N"
    assert rows["ABL1"]["In_KinHub"] == "Y"
    assert (result.output_path.parent / "kinase_catalog_reconciliation.csv").exists()

    sidecar = json.loads(sidecar_path_for(result.output_path).read_text())
    catalog_step = next(s for s in sidecar["processing_steps"] if s["name"] == "catalog_flags")
    assert catalog_step["details"]["kinhub"] == KINHUB_URL
    assert catalog_step["details"]["resolved_identifiers"] == 3


def test_build_kinase_table_without_kinhub(tmp_path, monkeypatch):
    config = _catalog_config(tmp_path)
    monkeypatch.setattr(
        "genesets_pipeline.curation.kinases.fetch_kinhub_table",
        Mock(side_effect=SourceUnavailable("kinhub", "HTTP 503")),
    )
    hgnc = Mock()
    hgnc.fetch.return_value = []

    result = build_kinase_table(
        config,
        species="human",
        skip_mouse=True,
        client=Mock(),
        biomart=_fake_biomart(),
        mapper=_fake_mapper(),
        kegg=_fake_kegg(),
        hgnc=hgnc,
    )

    table = pl.read_csv(result.output_path, infer_schema_length=0)
    assert table["In_Manning"].to_list() == ["N", "N"]
    assert "In_KinHub" not in table.columns
    assert not (result.output_path.parent / "kinase_catalog_reconciliation.csv").exists()


def test_build_mouse_kinase_table_fills_protein_ids(test_config):
    uniprot = Mock()
    uniprot.fetch.return_value = [
        IdentifierRecord(symbol="PIK3CA", protein_id="P42337", source_tag="uniprot"),
    ]
    biomart = _fake_biomart()

    result = build_kinase_table(
        test_config,
        species="mouse",
        client=Mock(),
        biomart=biomart,
        mapper=_fake_mapper(),
        kegg=_fake_kegg(),
        uniprot=uniprot,
    )

    uniprot.fetch.assert_called_once_with(["PIK3CA"])
    biomart.fetch_orthologs.assert_not_called()
    table = pl.read_csv(result.output_path, infer_schema_length=0)
    assert result.output_path.name == "kinases_mouse.csv"
    assert table["protein_id"].to_list() == ["P00519", "P42337"]

    sidecar = json.loads(sidecar_path_for(result.output_path).read_text())
    fallback = next(s for s in sidecar["processing_steps"] if s["name"] == "uniprot_fallback")
    assert fallback["details"] == {"filled": 1}


def test_build_mouse_kinase_table_uniprot_fallback_disabled(tmp_path):
    config = load_config(write_config(tmp_path, "kinases:\n  uniprot_fallback: false\n"))
    uniprot = Mock()

    result = build_kinase_table(
        config,
        species="mouse",
        client=Mock(),
        biomart=_fake_biomart(),
        mapper=_fake_mapper(),
        kegg=_fake_kegg(),
        uniprot=uniprot,
    )

    uniprot.fetch.assert_not_called()
    table = pl.read_csv(result.output_path, infer_schema_length=0)
    assert table["protein_id"].to_list() == ["P00519", None]


# HGNC gene groups

HGNC_COLUMNS = [
    "Approved symbol", "HGNC ID", "Approved name", "Status", "Locus type",
    "Group name", "Group ID", "Chromosome", "NCBI Gene ID", "Ensembl gene ID",
]


def _gene_groups(rows):
    return pl.DataFrame(rows, schema={c: pl.Utf8 for c in HGNC_COLUMNS}, orient="row")


def _phosphatase_groups():
    protein = "gene with protein product"
    return _gene_groups([
        ("PTPRC", "HGNC:9666", "protein tyrosine phosphatase receptor type C", "Approved", protein,
         "Protein tyrosine phosphatases receptor type", "813", "1q31.3-q32.1", "5788", "ENSG00000081237"),
        ("PTPN11", "HGNC:9644", "protein tyrosine phosphatase non-receptor type 11", "Approved", protein,
         "Protein tyrosine phosphatases non-receptor type", "812", "12q24.13", "5781", "ENSG00000179295"),
        ("PPM1A", "HGNC:9275", "protein phosphatase, Mg2+/Mn2+ dependent 1A", "Approved", protein,
         "Protein phosphatases, Mg2+/Mn2+ dependent", "701", "14q23.1", "5494", "ENSG00000100614"),
        ("PPM1A", "HGNC:9275", "protein phosphatase, Mg2+/Mn2+ dependent 1A", "Approved", protein,
         "Serine/threonine phosphatases", "1", "14q23.1", "5494", "ENSG00000100614"),
        ("ABL1", "HGNC:76", "ABL proto-oncogene 1", "Approved", protein,
         "ABL family", "1", "9q34.12", "25", "ENSG00000097007"),
        ("PTPN20", "HGNC:23423", "withdrawn", "Entry Withdrawn", protein,
         "Protein tyrosine phosphatases non-receptor type", "812", None, None, None),
        ("PTPRVP", "HGNC:9676", "pseudogene", "Approved", "pseudogene",
         "Protein tyrosine phosphatases receptor type", "813", "1q32.1", None, None),
    ])


def test_build_phosphatase_table(test_config):
    result = build_phosphatase_table(test_config, _phosphatase_groups(), skip_mouse=True)

    assert result.fetched == 4
    assert result.retained == 3
    assert result.flagged == 0

    table = pl.read_csv(result.output_path, infer_schema_length=0)
    assert table.columns[0] == "phosphatase_id"
    assert table["HGNC_symbol"].to_list() == ["PPM1A", "PTPN11", "PTPRC"]
    assert table["phosphatase_id"].to_list() == ["P0001", "P0002", "P0003"]

    ppm1a = table.row(0, named=True)
    assert ppm1a["Group_hgnc"] == "Protein phosphatases, Mg2+/Mn2+ dependent; Serine/threonine phosphatases"
    assert ppm1a["Group_ID_hgnc"] == "701; 1"
    assert ppm1a["Class_primary"] == "Ser/Thr phosphatase"
    assert ppm1a["NCBI_Gene_ID"] == "5494"
    assert ppm1a["Mouse_Symbol"] is None
    assert table.row(2, named=True)["Is_receptor_type"] == "Y"
    assert result.output_sidecar_path_for(path).exists()


def test_build_phosphatase_table_orthologs(test_config):
    biomart = Mock()
    biomart.fetch_orthologs.return_value = pl.DataFrame({
        "symbol": ["PTPN11", "PTPRC"],
        "Mouse_Symbol": ["Ptpn11", "Ptprc"],
        "Ensembl_Mouse": ["ENSMUSG00000043733", "ENSMUSG00000026395"],
    })

    result = build_phosphatase_table(test_config, _phosphatase_groups(), biomart=biomart)

    table = pl.read_csv(result.output_path, infer_schema_length=0)
    assert table["Mouse_Symbol"].to_list() == [None, "Ptpn11", "Ptprc"]
    assert table.columns[-2:] == ["Mouse_Symbol", "Ensembl_Mouse"]


def _tf_groups():
    protein = "gene with protein product"
    return _gene_groups([
        ("SOX2", "HGNC:11195", "SRY-box transcription factor 2", "Approved", protein,
         "SOX transcription factors", "757", "3q26.33", "6657", "ENSG00000181449"),
        ("FOXA1", "HGNC:5021", "forkhead box A1", "Approved", protein,
         "Forkhead boxes", "508", "14q21.1", "3169", "ENSG00000129514"),
        ("FOXA1", "HGNC:5021", "forkhead box A1", "Approved", protein,
         "Basic leucine zipper proteins", "506", "14q21.1", "3169", "ENSG00000129514"),
        ("TP53", "HGNC:11998", "tumor protein p53", "Approved", protein,
         "Zinc fingers", "26", "17p13.1", "7157", "ENSG00000141510"),
    ])


def test_build_tf_table(test_config):
    result = build_tf_table(test_config, _tf_groups(), go_tf_symbols={"FOXA1"}, skip_mouse=True)

    assert (result.fetched, result.retained, result.flagged) == (3, 2, 1)
    table = pl.read_csv(result.output_path, infer_schema_length=0)
    assert table["HGNC_symbol"].to_list() == ["FOXA1", "SOX2"]
    assert table["Group_hgnc"].to_list() == ["Forkhead boxes", "SOX transcription factors"]
    assert table["In_GO_TF"].to_list() == ["Y", "N"]
    assert result.output_path == stage_output_path(test_config, "tf", "human")


def test_build_tf_table_go_lookup_degrades(test_config):
    biomart = Mock()
    biomart.fetch_by_go_terms.side_effect = SourceUnavailable("biomart", "timeout")
    biomart.fetch_orthologs.return_value = pl.DataFrame({
        "symbol": ["SOX2"],
        "Mouse_Symbol": ["Sox2"],
        "Ensembl_Mouse": ["ENSMUSG00000074637"],
    })

    result = build_tf_table(test_config, _tf_groups(), biomart=biomart)

    table = pl.read_csv(result.output_path, infer_schema_length=0)
    assert table["In_GO_TF"].to_list() == ["N", "N"]
    assert table["Mouse_Symbol"].to_list() == [None, "Sox2"]
    assert result.flagged == 0


# GMT export

def _write_table(config, stage, species, data):
    path = stage_output_path(config, stage, species)
    path.parent.mkdir(parents=True, exist_ok=True)
    pl.DataFrame(data).write_csv(path)
    return path


def _write_human_tables(config):
    _write_table(config, "kinases", "human", {
        "symbol": ["ABL1", "PIK3CA"],
        "Substrate_protein": ["Y", "N"],
        "Mouse_Symbol": ["Abl1", None],
    })
    _write_table(config, "phosphatases", "human", {
        "HGNC_symbol": ["PTPN11", "PPP1R12A", "PTPN11B"],
        "Substrate_protein": ["Y", "Y", "Y"],
        "Is_catalytic": ["Y", "N", "Y"],
        "Mouse_Symbol": ["Ptpn11", "Ppp1r12a", "Ptpn11"],
    })


def test_export_curated_gmt(test_config):
    _write_human_tables(test_config)

    result = export_curated_gmt(test_config)

    assert result.fetched == 2
    assert result.retained == 7
    # PHOSPHATASES_MOUSE_ALL carries a duplicated ortholog
    assert result.flagged == 1

    human = {e.name: e for e in read_gmt(gmt_path(test_config, "kinases", "human"))}
    assert human["KINASES_HUMAN_ALL"].members == ["ABL1", "PIK3CA"]
    assert human["KINASES_HUMAN_ALL"].description == "All human kinases (n=2)"
    assert human["KINASES_HUMAN_PROTEIN"].members == ["ABL1"]

    mouse = {e.name: e for e in read_gmt(gmt_path(test_config, "phosphatases", "mouse"))}
    assert mouse["PHOSPHATASES_MOUSE_ALL"].members == ["Ptpn11", "Ppp1r12a"]
    assert mouse["PHOSPHATASES_MOUSE_ALL"].description == "All mouse phosphatases (orthologs) (n=2)"

    combined = [e.name for e in read_gmt(combined_gmt_path(test_config, "human"))]
    assert combined == [
        "KINASES_HUMAN_ALL", "KINASES_HUMAN_PROTEIN",
        "PHOSPHATASES_HUMAN_ALL", "PHOSPHATASES_HUMAN_PROTEIN", "PHOSPHATASES_HUMAN_CATALYTIC",
    ]
    assert [e.name for e in read_gmt(combined_gmt_path(test_config, "mouse"))] == [
        "KINASES_MOUSE_ALL", "PHOSPHATASES_MOUSE_ALL",
    ]


def test_export_skips_missing_tables(test_config):
    _write_human_tables(test_config)

    export_curated_gmt(test_config)

    assert not gmt_path(test_config, "tf", "human").exists()
    assert not gmt_path(test_config, "tf", "mouse").exists()


def test_export_prefers_native_mouse_table(test_config):
    _write_human_tables(test_config)
    _write_table(test_config, "kinases", "mouse", {"symbol": ["Abl1", "Src"]})

    export_curated_gmt(test_config)

    mouse = {e.name: e for e in read_gmt(gmt_path(test_config, "kinases", "mouse"))}
    assert mouse["KINASES_MOUSE_ALL"].members == ["Abl1", "Src"]


def test_export_without_tables(test_config):
    result = export_curated_gmt(test_config)

    assert (result.fetched, result.retained) == (0, 0)
    assert not combined_gmt_path(test_config, "human").exists()
