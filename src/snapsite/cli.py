from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import SiteConfig, apply_env_overrides, load_config
from .errors import SnapsiteError, format_error_chain
from .logging_utils import configure_logging
from .pipeline import BuildReport
from .render import BUILTIN_STAGES
from .utils import load_yaml_file
from .validation import ValidationIssue, ValidationReport, group_validation_issues, validate_config_data
from .version import __version__

LOGGER = logging.getLogger(__name__)

CONSOLE = Console()


def render_build_summary(report: BuildReport) -> Table:
    table = Table(title="Build Summary", show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Source", report.source)
    table.add_row("Destination", report.destination)
    table.add_row("Cleaned", "yes" if report.cleaned else "no")
    table.add_row("Files read", f"[green]{report.files_read}[/green]")
    table.add_row("Stages run", ", ".join(report.stages_run) or "[dim](none)[/dim]")
    table.add_row("Files written", f"[green]{report.files_written}[/green]")
    table.add_row("Elapsed", f"{report.elapsed:.2f}s")
    return table


def _resolve_config(args: argparse.Namespace) -> SiteConfig:
    config_path: Optional[Path] = getattr(args, "config", None)
    config = load_config(config_path) if config_path else apply_env_overrides(SiteConfig())

    overrides = {}
    if getattr(args, "source", None):
        overrides["source"] = Path(args.source).expanduser().resolve()
    if getattr(args, "destination", None):
        overrides["destination"] = Path(args.destination).expanduser().resolve()
    if getattr(args, "clean", None) is not None:
        overrides["clean"] = args.clean
    if getattr(args, "strict_paths", False):
        overrides["strict_paths"] = True
    extra_stages = getattr(args, "stage", None) or []
    for name in extra_stages:
        if name not in BUILTIN_STAGES:
            raise ValueError(f"Unknown stage '{name}' (available: {', '.join(sorted(BUILTIN_STAGES))})")
    if extra_stages:
        overrides["stages"] = [*config.stages, *extra_stages]
    return replace(config, **overrides) if overrides else config


def _log_level(args: argparse.Namespace) -> str:
    if getattr(args, "log_level", None):
        return args.log_level
    return "DEBUG" if getattr(args, "verbose", False) else "INFO"


def render_validation_section(section: str, issues: List[ValidationIssue]) -> Table:
    table = Table(title=section, title_justify="left", title_style="bold", show_header=True, header_style="bold")
    table.add_column("Path", style="cyan", no_wrap=True)
    table.add_column("Message")
    table.add_column("Code", style="dim", no_wrap=True)
    for issue in issues:
        table.add_row(issue.path, escape(issue.message), issue.code)
    return table


def _print_validation_report(report: ValidationReport) -> None:
    if report.errors:
        CONSOLE.print(f"[bold red]✗ Validation Errors: {len(report.errors)} error(s) detected[/bold red]")
        for section, issues in group_validation_issues(report.errors).items():
            CONSOLE.print(render_validation_section(section, issues))
    if report.warnings:
        CONSOLE.print(f"[bold yellow]⚠ Warnings: {len(report.warnings)} warning(s)[/bold yellow]")
        for section, issues in group_validation_issues(report.warnings).items():
            CONSOLE.print(render_validation_section(section, issues))


def run_build(args: argparse.Namespace) -> int:
    try:
        configure_logging(
            _log_level(args),
            console_level=getattr(args, "console_level", None),
            log_file=getattr(args, "log_file", None),
            console=CONSOLE,
        )
    except (OSError, ValueError) as exc:
        CONSOLE.print(f"[red]Invalid logging options:[/red] {exc}")
        return 1

    try:
        config = _resolve_config(args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        CONSOLE.print(f"[red]Invalid configuration:[/red] {exc}")
        return 1

    pipeline = config.build_pipeline()
    try:
        report = pipeline.build()
    except SnapsiteError as exc:
        CONSOLE.print("[red]Build failed[/red]")
        CONSOLE.print(format_error_chain(exc), markup=False)
        return 1

    CONSOLE.print(render_build_summary(report))
    return 0


def run_validate_config(args: argparse.Namespace) -> int:
    try:
        data = load_yaml_file(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        CONSOLE.print(f"[red]✗ Configuration error:[/red] {exc}")
        return 1

    report = validate_config_data(data)
    if report.is_valid:
        try:
            config = load_config(args.config)
        except (OSError, ValueError) as exc:
            report.errors.append(ValidationIssue(severity="error", path="<root>", message=str(exc), code="config"))
        else:
            if config.source is not None and not config.source.is_dir():
                report.warnings.append(
                    ValidationIssue(
                        severity="warning",
                        path="source",
                        message=f"Source directory {config.source} does not exist",
                        code="missing-source",
                    )
                )
            if config.destination is not None and config.clean and not config.destination.is_dir():
                report.warnings.append(
                    ValidationIssue(
                        severity="warning",
                        path="clean",
                        message=f"clean is enabled but destination {config.destination} does not exist",
                        code="missing-destination",
                    )
                )

    _print_validation_report(report)
    if not report.is_valid:
        return 1
    CONSOLE.print(f"[green]✓ Configuration passed validation[/green] ({args.config})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="snapsite", description="Build a static site from a source tree.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Read, transform and write the site")
    build.add_argument("--config", type=Path, help="Path to a snapsite YAML configuration")
    build.add_argument("--source", help="Source directory (overrides the configuration)")
    build.add_argument("--destination", help="Destination directory (overrides the configuration)")
    build.add_argument(
        "--clean",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Empty the destination before writing",
    )
    build.add_argument("--strict-paths", action="store_true", help="Fail when two files map to one logical path")
    build.add_argument(
        "--stage",
        action="append",
        choices=sorted(BUILTIN_STAGES),
        help="Append a builtin stage (repeatable)",
    )
    build.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    build.add_argument("--log-level", help="Log level for all handlers (e.g. INFO, DEBUG)")
    build.add_argument("--console-level", help="Log level for console output only")
    build.add_argument("--log-file", type=Path, help="Also write logs to this file")
    build.set_defaults(handler=run_build)

    validate = subparsers.add_parser("validate-config", help="Check a configuration file")
    validate.add_argument("--config", type=Path, required=True, help="Path to a snapsite YAML configuration")
    validate.set_defaults(handler=run_validate_config)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
