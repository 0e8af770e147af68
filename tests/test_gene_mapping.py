"""Tests for identifier records, nomenclature extraction and mygene mapping.

Uses mocked mygene responses to avoid real API calls.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from genesets_pipeline.errors import MalformedRecord, SourceUnavailable
from genesets_pipeline.gene_mapping import (
    GeneMapper,
    IdentifierRecord,
    extract_nomenclature_id,
    strip_source_annotation,
)
from genesets_pipeline.gene_mapping.records import clean_value


# Mock mygene response fixtures

MOCK_SYMBOL_RESPONSE = {
    'out': [
        {
            'query': 'ABL1',
            'symbol': 'ABL1',
            'name': 'ABL proto-oncogene 1, non-receptor tyrosine kinase',
            'entrezgene': 25,
            'ensembl': {'gene': 'ENSG00000097007'},
            'uniprot': {'Swiss-Prot': 'P00519'},
            'HGNC': '76',
        },
        {
            'query': 'SRC',
            'symbol': 'SRC',
            'entrezgene': 6714,
            'ensembl': [{'gene': 'ENSG00000197122'}, {'gene': 'ENSG00000000001'}],
            'uniprot': {'Swiss-Prot': ['P12931', 'Q00000']},
            'HGNC': 'HGNC:11283',
        },
        {
            'query': 'NOTAGENE',
            'notfound': True,
        },
    ],
    'missing': ['NOTAGENE']
}

MOCK_MOUSE_RESPONSE = {
    'out': [
        {
            'query': 'ENSMUSG00000026842',
            'symbol': 'Abl1',
            'entrezgene': 11350,
            'ensembl': {'gene': 'ENSMUSG00000026842'},
            'MGI': 'MGI:87859',
        },
    ],
    'missing': []
}


# IdentifierRecord

def test_clean_value():
    assert clean_value(None) is None
    assert clean_value("  ") is None
    assert clean_value("NA") is None
    assert clean_value(float("nan")) is None
    assert clean_value(1234.0) == "1234"
    assert clean_value(" Abl1 ") == "Abl1"


def test_record_completeness():
    record = IdentifierRecord(
        symbol="Abl1",
        stable_gene_id="ENSMUSG00000026842",
        numeric_id="11350",
        description="c-abl oncogene 1",
    )

    assert record.completeness() == 2
    assert IdentifierRecord(symbol="Abl1").completeness() == 0


def test_record_normalizes_blank_fields():
    record = IdentifierRecord(symbol=" Src ", stable_gene_id="", protein_id="NA")

    assert record.symbol == "Src"
    assert record.stable_gene_id is None
    assert record.protein_id is None


def test_record_without_symbol_is_malformed():
    with pytest.raises(MalformedRecord):
        IdentifierRecord(symbol="", stable_gene_id="ENSG00000097007")

    with pytest.raises(MalformedRecord):
        IdentifierRecord.from_mapping({"ensembl_gene_id": "ENSG1"}, "biomart")


def test_record_from_mapping_with_column_map():
    row = {
        "external_gene_name": "Abl1",
        "ensembl_gene_id": "ENSMUSG00000026842",
        "entrezgene_id": 11350.0,
        "description": "c-abl oncogene 1",
    }
    record = IdentifierRecord.from_mapping(
        row,
        "biomart",
        {
            "symbol": "external_gene_name",
            "stable_gene_id": "ensembl_gene_id",
            "numeric_id": "entrezgene_id",
        },
    )

    assert record.symbol == "Abl1"
    assert record.numeric_id == "11350"
    assert record.description == "c-abl oncogene 1"
    assert record.source_tag == "biomart"
    assert record.to_dict()["stable_gene_id"] == "ENSMUSG00000026842"


# Nomenclature extraction

def test_extract_hgnc_accession():
    description = (
        "protein kinase AMP-activated catalytic subunit alpha 1 "
        "[Source:HGNC Symbol;Acc:HGNC:9376]"
    )
    assert extract_nomenclature_id(description) == "HGNC:9376"


def test_extract_mgi_accession():
    description = "c-abl oncogene 1, non-receptor tyrosine kinase [Source:MGI Symbol;Acc:MGI:87859]"
    assert extract_nomenclature_id(description) == "MGI:87859"


def test_extract_no_match_returns_none():
    assert extract_nomenclature_id("plain description") is None
    assert extract_nomenclature_id("[Source:NCBI gene;Acc:12345]") is None
    assert extract_nomenclature_id("") is None
    assert extract_nomenclature_id(None) is None


def test_strip_source_annotation():
    description = "c-abl oncogene 1 [Source:MGI Symbol;Acc:MGI:87859]"

    assert strip_source_annotation(description) == "c-abl oncogene 1"
    assert strip_source_annotation("no token") == "no token"
    assert strip_source_annotation(None) is None


# GeneMapper with mocked mygene

def test_mapper_map_symbols():
    """Test lookup-by-symbol pass: notfound dropped, lists flattened, HGNC prefixed."""
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mg.querymany.return_value = MOCK_SYMBOL_RESPONSE
        mock_mygene.return_value = mock_mg

        mapper = GeneMapper(species="human")
        records = mapper.map_symbols(['ABL1', 'SRC', 'NOTAGENE'])

    assert set(records) == {'ABL1', 'SRC'}

    abl1 = records['ABL1']
    assert abl1.stable_gene_id == 'ENSG00000097007'
    assert abl1.numeric_id == '25'
    assert abl1.protein_id == 'P00519'
    assert abl1.nomenclature_id == 'HGNC:76'
    assert abl1.source_tag == 'mygene_symbol'

    src = records['SRC']
    assert src.stable_gene_id == 'ENSG00000197122'
    assert src.protein_id == 'P12931'
    assert src.nomenclature_id == 'HGNC:11283'


def test_mapper_map_stable_ids_mouse():
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mg.querymany.return_value = MOCK_MOUSE_RESPONSE
        mock_mygene.return_value = mock_mg

        mapper = GeneMapper(species="mouse")
        records = mapper.map_stable_ids(['ENSMUSG00000026842'])

        _, kwargs = mock_mg.querymany.call_args
        assert kwargs['scopes'] == 'ensembl.gene'
        assert kwargs['species'] == 10090

    assert records['ENSMUSG00000026842'].symbol == 'Abl1'
    assert records['ENSMUSG00000026842'].nomenclature_id == 'MGI:87859'


def test_mapper_batching():
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mg.querymany.return_value = {'out': [], 'missing': []}
        mock_mygene.return_value = mock_mg

        mapper = GeneMapper(batch_size=2)
        mapper.map_symbols(['A', 'B', 'C', 'D', 'E'])

    assert mock_mg.querymany.call_count == 3


def test_mapper_entrez_to_symbols():
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mg.querymany.return_value = {
            'out': [
                {'query': '25', 'symbol': 'ABL1'},
                {'query': '6714', 'symbol': 'SRC'},
                {'query': '0', 'notfound': True},
            ],
        }
        mock_mygene.return_value = mock_mg

        mapper = GeneMapper()
        assert mapper.map_entrez_to_symbols([25, 6714, 0]) == {'ABL1', 'SRC'}
        assert mapper.map_entrez_to_symbols([]) == set()

    assert mock_mg.querymany.call_count == 1


def test_mapper_network_error_is_source_unavailable():
    with patch('mygene.MyGeneInfo') as mock_mygene:
        mock_mg = MagicMock()
        mock_mg.querymany.side_effect = requests.ConnectionError("mygene down")
        mock_mygene.return_value = mock_mg

        mapper = GeneMapper()
        with pytest.raises(SourceUnavailable) as exc_info:
            mapper.map_symbols(['ABL1'])

    assert exc_info.value.source == "mygene"


def test_mapper_rejects_unknown_species():
    with patch('mygene.MyGeneInfo'):
        with pytest.raises(ValueError):
            GeneMapper(species="zebrafish")
