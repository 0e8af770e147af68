"""Stage commands: build one curated table or gene-set matrix.

Each command loads the config, runs its stage and prints the stage summary
line (``<stage>: fetched=N retained=M flagged=K``) to standard error.
"""

import logging
import sys
from pathlib import Path

import click

from genesets_pipeline.api_clients.cache import FileCache
from genesets_pipeline.config.loader import load_config, load_config_with_overrides
from genesets_pipeline.curation import (
    build_kinase_table,
    build_phosphatase_table,
    build_tf_table,
    export_curated_gmt,
)
from genesets_pipeline.output.gmt import build_entries, write_gmt
from genesets_pipeline.sources.hgnc import download_gene_groups, load_gene_groups
from genesets_pipeline.sources.msigdb import load_msigdb

logger = logging.getLogger(__name__)

GENE_GROUPS_FILENAME = "hgnc_gene_groups.tsv"


def _fail(message: str, error: Exception) -> None:
    click.echo(click.style(f"{message}: {error}", fg='red'), err=True)
    logger.exception(message)
    sys.exit(1)


def _report(result) -> None:
    click.echo(click.style(f"  Output: {result.output_path}", fg='green'))
    click.echo(result.summary_line(), err=True)


def _gene_groups(config, refresh: bool):
    path = Path(config.data_dir) / "hgnc" / GENE_GROUPS_FILENAME
    download_gene_groups(path, force=refresh, timeout=config.api.timeout_seconds)
    return load_gene_groups(path)


@click.command('kinases')
@click.option(
    '--species',
    type=click.Choice(['human', 'mouse']),
    default=None,
    help='Species to curate (default: species from config)'
)
@click.option(
    '--skip-mouse',
    is_flag=True,
    help='Skip human -> mouse ortholog mapping'
)
@click.pass_context
def kinases(ctx, species, skip_mouse):
    """Build the kinase table from GO-annotated BioMart genes.

    Examples:

        genesets-pipeline kinases

        genesets-pipeline kinases --species mouse
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== Kinases ===", bold=True))

    try:
        config = load_config_with_overrides(config_path, {"species": species})
        click.echo(f"  Species: {config.species}")
        result = build_kinase_table(config, species=config.species, skip_mouse=skip_mouse)
    except Exception as e:
        _fail("Kinase stage failed", e)

    _report(result)


@click.command('phosphatases')
@click.option(
    '--skip-mouse',
    is_flag=True,
    help='Skip human -> mouse ortholog mapping'
)
@click.option(
    '--refresh',
    is_flag=True,
    help='Re-download the HGNC gene-group table'
)
@click.pass_context
def phosphatases(ctx, skip_mouse, refresh):
    """Build the phosphatase table from HGNC gene groups."""
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== Phosphatases ===", bold=True))

    try:
        config = load_config(config_path)
        gene_groups = _gene_groups(config, refresh)
        result = build_phosphatase_table(config, gene_groups, skip_mouse=skip_mouse)
    except Exception as e:
        _fail("Phosphatase stage failed", e)

    _report(result)


@click.command('tf')
@click.option(
    '--skip-mouse',
    is_flag=True,
    help='Skip human -> mouse ortholog mapping'
)
@click.option(
    '--refresh',
    is_flag=True,
    help='Re-download the HGNC gene-group table'
)
@click.pass_context
def tf(ctx, skip_mouse, refresh):
    """Build the transcription factor table from HGNC gene groups."""
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== Transcription factors ===", bold=True))

    try:
        config = load_config(config_path)
        gene_groups = _gene_groups(config, refresh)
        result = build_tf_table(config, gene_groups, skip_mouse=skip_mouse)
    except Exception as e:
        _fail("TF stage failed", e)

    _report(result)


@click.command('export-gmt')
@click.pass_context
def export_gmt(ctx):
    """Export curated tables as GMT files (per stage and combined)."""
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== GMT export ===", bold=True))

    try:
        config = load_config(config_path)
        result = export_curated_gmt(config)
    except Exception as e:
        _fail("GMT export failed", e)

    _report(result)


@click.command('msigdb')
@click.option(
    '--collection',
    'collections',
    multiple=True,
    help='MSigDB collection code, repeatable (default: collections from config)'
)
@click.option(
    '--species',
    type=click.Choice(['human', 'mouse']),
    default=None,
    help='Species (default: species from config)'
)
@click.pass_context
def msigdb(ctx, collections, species):
    """Download MSigDB collections into the cache and write one merged GMT.

    Collections that cannot be downloaded are skipped with a warning.

    Examples:

        genesets-pipeline msigdb --collection H --collection C2
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== MSigDB ===", bold=True))

    try:
        config = load_config_with_overrides(config_path, {"species": species})
        collections = list(collections) or config.msigdb.collections
        version = config.versions.msigdb_version
        click.echo(f"  Collections: {', '.join(collections)}")
        click.echo(f"  Version: {version} ({config.species})")

        cache = FileCache(Path(config.data_dir) / "msigdb")
        gene_sets = load_msigdb(collections, config.species, version, cache)
        entries = build_entries(gene_sets, description=config.gmt.description_placeholder)
        output_path = config.gmt_dir / f"msigdb_{version}_{config.species}.gmt"
        write_gmt(entries, output_path)
    except Exception as e:
        _fail("MSigDB download failed", e)

    click.echo(click.style(f"  Output: {output_path}", fg='green'))
    click.echo(
        f"msigdb: fetched={len(gene_sets)} retained={len(entries)} flagged=0",
        err=True,
    )
