"""Command-line entry point: the ``genesets-pipeline`` command group."""

import logging
from pathlib import Path

import click

from genesets_pipeline import __version__
from genesets_pipeline.config.loader import CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH, load_config
from genesets_pipeline.cli.run_cmd import run
from genesets_pipeline.cli.stage_cmd import export_gmt, kinases, msigdb, phosphatases, tf

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.version_option(__version__, prog_name='genesets-pipeline')
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default=str(DEFAULT_CONFIG_PATH),
    envvar=CONFIG_ENV_VAR,
    help=f'Settings YAML file (env: {CONFIG_ENV_VAR})'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Log at DEBUG level'
)
@click.pass_context
def cli(ctx, config, verbose):
    """Curated kinase, phosphatase and transcription factor gene sets.

    Gene identifiers from BioMart, HGNC, mygene and UniProt are reconciled
    into CSV tables, which are then exported as GMT files.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _section(title: str, rows: list[tuple[str, object]]) -> None:
    width = max(len(label) for label, _ in rows) + 2
    click.echo(click.style(title, bold=True))
    for label, value in rows:
        click.echo(f"  {label + ':':<{width}}{value}")
    click.echo()


@cli.command()
@click.pass_context
def info(ctx):
    """Show the version, config hash and effective settings."""
    config_path = ctx.obj['config_path']
    click.echo(f"genesets-pipeline {__version__} (config: {config_path})")

    try:
        config = load_config(config_path)
    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)

    click.echo(f"Config hash: {config.config_hash()[:16]}")
    click.echo()
    _section("Sources", [
        ("Ensembl Release", config.versions.ensembl_release),
        ("MSigDB Version", config.versions.msigdb_version),
    ])
    _section("Paths", [
        ("Data", config.data_dir),
        ("Cache", config.cache_dir),
        ("Output", config.output_dir),
        ("GMT", config.gmt_dir),
    ])
    _section("Curation", [
        ("Species", config.species),
        ("Kinase GO terms", ", ".join(config.kinases.go_terms)),
        ("MSigDB collections", ", ".join(config.msigdb.collections)),
    ])
    _section("HTTP", [
        ("Requests/s per source", config.api.rate_limit_per_second),
        ("Attempts", config.api.max_retries),
        ("Cache TTL (s)", config.api.cache_ttl_seconds),
        ("Timeout (s)", config.api.timeout_seconds),
    ])


for command in (kinases, phosphatases, tf, export_gmt, msigdb, run):
    cli.add_command(command)


if __name__ == '__main__':
    cli()
