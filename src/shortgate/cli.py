from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer

from shortgate.config import Settings, load_settings
from shortgate.exceptions import ConfigError
from shortgate.fix import FixPlan, GuardFixer
from shortgate.model import TestCategory
from shortgate.runner import EXIT_DIAGNOSTICS, EXIT_ERRORS, EXIT_OK, RunContext, classify_tree, run_check
from shortgate.schema import CheckReportDTO, FixResultDTO

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Check test files for short-mode hygiene.")

_FORMATS = ("text", "json")
_FIXABLE = (TestCategory.INTEGRATION, TestCategory.END_TO_END)


def setup_logging(level: str = "WARNING") -> None:
    """Configure logging to stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _default_paths(paths: Optional[List[Path]]) -> list[Path]:
    return list(paths) if paths else [Path(".")]


def _require_format(output_format: str) -> str:
    if output_format not in _FORMATS:
        raise typer.BadParameter(f"expected one of {', '.join(_FORMATS)}", param_hint="--format")
    return output_format


def _load_settings_or_exit(config: Optional[Path]) -> Settings:
    try:
        return load_settings(root=Path.cwd(), config_path=config)
    except ConfigError as exc:
        typer.secho(f"config error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=EXIT_ERRORS) from exc


@app.command()
def check(
    paths: List[Path] = typer.Argument(None, help="Directories to check (default: current directory)."),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to a shortgate.toml file."),
    jobs: int = typer.Option(1, "--jobs", "-j", min=1, help="Packages checked concurrently."),
    output_format: str = typer.Option("text", "--format", help="Output format (text|json)."),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """Report forbidden calls in unit tests and unguarded slow tests."""
    setup_logging(log_level)
    _require_format(output_format)
    settings = _load_settings_or_exit(config)
    context = RunContext.from_settings(settings)
    report = run_check(_default_paths(paths), context, jobs=jobs)
    if output_format == "json":
        payload = CheckReportDTO.from_report(report).model_dump()
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    else:
        for line in report.lines():
            typer.echo(line, err=True)
        for error in report.errors:
            typer.secho(error.message, err=True, fg=typer.colors.RED)
    logger.info(
        "%d diagnostic(s), %d error(s) across %d package(s)",
        len(report.diagnostics),
        len(report.errors),
        len(report.packages),
    )
    raise typer.Exit(code=report.exit_code)


@app.command()
def classify(
    paths: List[Path] = typer.Argument(None),
    config: Optional[Path] = typer.Option(None, "--config"),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """List every test file found with its category."""
    setup_logging(log_level)
    settings = _load_settings_or_exit(config)
    context = RunContext.from_settings(settings)
    for category, path in classify_tree(_default_paths(paths), context):
        typer.echo(f"{category.value}\t{path}")
    for error in context.errors:
        typer.secho(error.message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code=EXIT_ERRORS if context.failed else EXIT_OK)


@app.command()
def fix(
    paths: List[Path] = typer.Argument(None),
    config: Optional[Path] = typer.Option(None, "--config"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would change without writing."),
    output_format: str = typer.Option("text", "--format", help="Output format (text|json)."),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """Insert the short-mode guard into integration and e2e tests that lack it."""
    setup_logging(log_level)
    _require_format(output_format)
    settings = _load_settings_or_exit(config)
    context = RunContext.from_settings(settings)
    fixer = GuardFixer(
        context.guard,
        skip_reason=settings.fix.skip_reason,
        imports=settings.fix.imports,
    )
    plans: list[FixPlan] = []
    for category, path in classify_tree(_default_paths(paths), context):
        if category not in _FIXABLE:
            continue
        plan = fixer.plan_file(path)
        for message in plan.errors:
            context.record_error(message, path=path)
        for message in plan.warnings:
            logger.warning("%s: %s", path, message)
        if plan.changed and not dry_run:
            fixer.apply(plan)
        plans.append(plan)

    changed = [plan for plan in plans if plan.changed]
    if output_format == "json":
        payload = [
            FixResultDTO(path=str(plan.path), functions=list(plan.functions), changed=plan.changed).model_dump()
            for plan in changed
        ]
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    else:
        verb = "would insert" if dry_run else "inserted"
        for plan in changed:
            for qualname in plan.functions:
                typer.echo(f"{plan.path}: {verb} guard in {qualname}")
    for error in context.errors:
        typer.secho(error.message, err=True, fg=typer.colors.RED)

    if context.failed:
        raise typer.Exit(code=EXIT_ERRORS)
    if dry_run and changed:
        raise typer.Exit(code=EXIT_DIAGNOSTICS)
    raise typer.Exit(code=EXIT_OK)


def main() -> None:
    app()
