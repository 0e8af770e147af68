"""Run command: execute the full pipeline step by step."""

import logging
import sys
from pathlib import Path

import click

from genesets_pipeline.config.loader import load_config_with_overrides
from genesets_pipeline.orchestrator import build_steps, run_steps, select_steps

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    "ok": 'green',
    "skipped": 'yellow',
    "failed": 'red',
    "planned": None,
}


@click.command('run', context_settings={'ignore_unknown_options': True})
@click.option('--from', 'from_step', type=int, default=None, help='First step number (1-based)')
@click.option('--to', 'to_step', type=int, default=None, help='Last step number (inclusive)')
@click.option('--dry-run', is_flag=True, help='Print step commands without executing anything')
@click.option('--force', is_flag=True, help='Re-run steps whose outputs already exist')
@click.option(
    '--log-dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help='Log directory (default: sessions/<yymmdd_HHMMSS>_genesets_run)'
)
@click.option('--continue-on-error', is_flag=True, help='Keep running after a failed step')
@click.option(
    '--species',
    type=click.Choice(['human', 'mouse']),
    default=None,
    help='Species for the kinase step (default: species from config)'
)
@click.argument('passthrough', nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx, from_step, to_step, dry_run, force, log_dir, continue_on_error, species, passthrough):
    """Run kinases, phosphatases, tf and export-gmt as separate processes.

    Arguments after ``--`` are passed to the three table stages.

    Examples:

        genesets-pipeline run --dry-run

        genesets-pipeline run --from 2 --to 3 -- --skip-mouse
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== Genesets Pipeline Run ===", bold=True))

    try:
        config = load_config_with_overrides(config_path, {"species": species})
        steps = select_steps(
            build_steps(config, config_path, species=config.species, passthrough=passthrough),
            from_step,
            to_step,
        )
    except Exception as e:
        click.echo(click.style(f"Error preparing run: {e}", fg='red'), err=True)
        logger.exception("Failed to prepare pipeline run")
        sys.exit(1)

    summary = run_steps(
        steps,
        log_dir=log_dir,
        dry_run=dry_run,
        force=force,
        continue_on_error=continue_on_error,
    )

    for outcome in summary.outcomes:
        label = click.style(outcome.status.upper(), fg=STATUS_COLORS.get(outcome.status))
        click.echo(f"  [{label}] {outcome.name}")
        if dry_run:
            click.echo(f"      {outcome.command}")
        elif outcome.log_path:
            click.echo(f"      log: {outcome.log_path}")

    if dry_run:
        click.echo(click.style("Dry run: nothing executed", fg='yellow'))
        return

    click.echo(f"Logs: {summary.log_dir}")
    if summary.exit_code != 0:
        click.echo(
            click.style(f"Failed steps: {', '.join(summary.failed)}", fg='red'),
            err=True,
        )
        sys.exit(summary.exit_code)

    click.echo(click.style("Pipeline complete", fg='green'))
