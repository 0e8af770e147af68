"""Shared fixtures: a config rooted in tmp_path."""

import pytest

from genesets_pipeline.config import load_config


def write_config(tmp_path, extra: str = ""):
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(f"""
data_dir: {tmp_path / "data"}
cache_dir: {tmp_path / "cache"}
output_dir: {tmp_path / "curated"}
species: human
versions:
  ensembl_release: 113
  msigdb_version: "2024.1"
api:
  rate_limit_per_second: 100
  max_retries: 1
  cache_ttl_seconds: 3600
  timeout_seconds: 5
{extra}""")
    return config_file


@pytest.fixture
def config_file(tmp_path):
    return write_config(tmp_path)


@pytest.fixture
def test_config(config_file):
    return load_config(config_file)
