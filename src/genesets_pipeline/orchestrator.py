"""Run the curation stages in order, each as its own process.

Each step is a ``genesets-pipeline`` stage command launched with the current
interpreter. Output of every step goes to ``<log_dir>/<step>.log``; one line
per step event goes to ``<log_dir>/run.log`` and a ``run_summary.yaml`` is
written at the end. Steps whose outputs already exist are skipped unless
forced.
"""

import shlex
import subprocess
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

import structlog
import yaml

from genesets_pipeline.config.schema import PipelineConfig
from genesets_pipeline.curation.base import stage_output_path
from genesets_pipeline.curation.gmt_export import combined_gmt_path

logger = structlog.get_logger()

CLI_MODULE = "genesets_pipeline.cli.main"
SESSIONS_DIR = Path("sessions")
RUN_LOG = "run.log"
RUN_SUMMARY = "run_summary.yaml"


@dataclass(frozen=True)
class PipelineStep:
    """A runnable pipeline step.

    Attributes:
        name: Ordered step name, e.g. ``01_kinases``
        command: Full argv
        outputs: Files whose presence means the step already ran
    """
    name: str
    command: list[str]
    outputs: list[Path] = field(default_factory=list)

    def outputs_exist(self) -> bool:
        return bool(self.outputs) and all(p.exists() for p in self.outputs)


@dataclass
class StepOutcome:
    name: str
    status: str  # planned, skipped, ok, failed
    command: str
    returncode: int | None = None
    log_path: str | None = None


@dataclass
class RunSummary:
    log_dir: Path
    dry_run: bool
    outcomes: list[StepOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[str]:
        return [o.name for o in self.outcomes if o.status == "failed"]

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def to_dict(self) -> dict:
        return {
            "log_dir": str(self.log_dir),
            "dry_run": self.dry_run,
            "exit_code": self.exit_code,
            "steps": [asdict(o) for o in self.outcomes],
        }


def default_log_dir(now: datetime | None = None) -> Path:
    """``sessions/<yymmdd_HHMMSS>_genesets_run``."""
    now = now or datetime.now()
    return SESSIONS_DIR / f"{now:%y%m%d_%H%M%S}_genesets_run"


def build_steps(
    config: PipelineConfig,
    config_path: Path | str,
    species: str | None = None,
    passthrough: Sequence[str] = (),
) -> list[PipelineStep]:
    """Ordered steps of a full run.

    ``passthrough`` arguments are appended to the three table stages.
    """
    species = species or config.species
    base = [sys.executable, "-m", CLI_MODULE, "--config", str(config_path)]
    extra = list(passthrough)

    return [
        PipelineStep(
            "01_kinases",
            base + ["kinases", "--species", species] + extra,
            [stage_output_path(config, "kinases", species)],
        ),
        PipelineStep(
            "02_phosphatases",
            base + ["phosphatases"] + extra,
            [stage_output_path(config, "phosphatases", "human")],
        ),
        PipelineStep(
            "03_tf",
            base + ["tf"] + extra,
            [stage_output_path(config, "tf", "human")],
        ),
        PipelineStep(
            "04_export_gmt",
            base + ["export-gmt"],
            [combined_gmt_path(config, "human")],
        ),
    ]


def select_steps(
    steps: list[PipelineStep],
    from_step: int | None = None,
    to_step: int | None = None,
) -> list[PipelineStep]:
    """Slice steps by 1-based inclusive step numbers.

    Raises:
        ValueError: If the range is empty or out of bounds
    """
    start = 1 if from_step is None else from_step
    end = len(steps) if to_step is None else to_step
    if start < 1 or end > len(steps) or start > end:
        raise ValueError(
            f"Invalid step range {start}..{end}; steps are numbered 1..{len(steps)}"
        )
    return steps[start - 1:end]


def _append_run_log(log_dir: Path, message: str) -> None:
    stamp = datetime.now().isoformat(timespec="seconds")
    with open(log_dir / RUN_LOG, "a", encoding="utf-8") as f:
        f.write(f"{stamp} {message}\n")


def run_steps(
    steps: list[PipelineStep],
    log_dir: Path | None = None,
    dry_run: bool = False,
    force: bool = False,
    continue_on_error: bool = False,
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> RunSummary:
    """Execute ``steps`` in order.

    Args:
        steps: Steps to run
        log_dir: Per-run log directory (default: :func:`default_log_dir`)
        dry_run: Only plan; nothing is executed and no file is created
        force: Re-run steps whose outputs exist
        continue_on_error: Keep going after a failed step
        runner: ``subprocess.run`` compatible callable

    Returns:
        RunSummary; ``exit_code`` is non-zero when any step failed
    """
    log_dir = Path(log_dir) if log_dir else default_log_dir()
    summary = RunSummary(log_dir=log_dir, dry_run=dry_run)

    if dry_run:
        for step in steps:
            command = shlex.join(step.command)
            logger.info("step_planned", step=step.name, command=command)
            summary.outcomes.append(StepOutcome(step.name, "planned", command))
        return summary

    log_dir.mkdir(parents=True, exist_ok=True)
    _append_run_log(log_dir, f"run started: {len(steps)} steps")

    for index, step in enumerate(steps, start=1):
        command = shlex.join(step.command)

        if step.outputs_exist() and not force:
            logger.info("step_skipped_outputs_exist", step=step.name)
            _append_run_log(log_dir, f"{step.name} skipped (outputs exist)")
            summary.outcomes.append(StepOutcome(step.name, "skipped", command))
            continue

        step_log = log_dir / f"{step.name}.log"
        logger.info("step_start", step=step.name, index=index, total=len(steps), command=command)
        _append_run_log(log_dir, f"{step.name} start: {command}")

        with open(step_log, "w", encoding="utf-8") as log_file:
            result = runner(
                step.command,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                check=False,
            )

        status = "ok" if result.returncode == 0 else "failed"
        summary.outcomes.append(
            StepOutcome(step.name, status, command, result.returncode, str(step_log))
        )
        _append_run_log(log_dir, f"{step.name} {status} (exit {result.returncode})")

        if status == "failed":
            logger.error("step_failed", step=step.name, returncode=result.returncode, log=str(step_log))
            if not continue_on_error:
                break
        else:
            logger.info("step_complete", step=step.name)

    with open(log_dir / RUN_SUMMARY, "w", encoding="utf-8") as f:
        yaml.safe_dump(summary.to_dict(), f, sort_keys=False)
    _append_run_log(log_dir, f"run finished: exit {summary.exit_code}")

    return summary
