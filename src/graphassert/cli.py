from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import typer
import yaml

from graphassert.api import build_options
from graphassert.config import get_settings
from graphassert.constants import EXIT_INTERNAL_ERROR, EXIT_NOT_EQUIVALENT, EXIT_SUCCESS
from graphassert.core.equivalency.comparator import EquivalencyComparator
from graphassert.core.equivalency.options import EquivalencyOptionsBuilder
from graphassert.core.equivalency.tracing import Tracer
from graphassert.core.errors import GraphAssertError
from graphassert.core.formatting.reason import validate_reason
from graphassert.core.formatting.reporter import render

app = typer.Typer(add_completion=False, help="Structural equivalence checks for YAML and JSON documents")

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _parse_level(value: str) -> int:
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level: {value}")
    return level


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=_parse_level(level), format=_LOG_FORMAT)


def _load_document(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise GraphAssertError(f"Could not parse {path}: {exc}") from exc


@app.command()
def compare(
    expected: Path = typer.Argument(..., exists=True, dir_okay=False, help="Expected YAML/JSON document"),
    subject: Path = typer.Argument(..., exists=True, dir_okay=False, help="Actual YAML/JSON document"),
    strict_ordering: bool | None = typer.Option(
        None, "--strict-ordering/--loose-ordering", help="Override collection ordering mode"
    ),
    exclude: list[str] | None = typer.Option(None, "--exclude", help="Member or key name to skip (repeatable)"),
    allow_extra_keys: bool = typer.Option(False, "--allow-extra-keys", help="Ignore keys only present in SUBJECT"),
    trace: bool = typer.Option(False, "--trace", help="Print the comparison trace"),
    because: str = typer.Option("", "--because", help="Reason appended to every discrepancy"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """Compare SUBJECT against EXPECTED and report every discrepancy."""
    _configure_logging(log_level)

    def configure(builder: EquivalencyOptionsBuilder) -> EquivalencyOptionsBuilder:
        if strict_ordering is not None:
            builder.with_ordering("strict" if strict_ordering else "loose")
        if exclude:
            builder.excluding_members_named(*exclude)
        if allow_extra_keys:
            builder.allowing_extra_keys()
        if trace:
            builder.with_tracing()
        return builder

    try:
        validate_reason(because, ())
        expected_doc = _load_document(expected)
        subject_doc = _load_document(subject)
        options = build_options(configure)
        tracer = Tracer(enabled=options.tracing)
        discrepancies = EquivalencyComparator(options, tracer=tracer).compare(subject_doc, expected_doc)
        settings = get_settings()
        report = render(
            discrepancies,
            because or None,
            max_length=settings.max_format_length,
            max_depth=settings.max_format_depth,
        )
    except (GraphAssertError, OSError) as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(EXIT_INTERNAL_ERROR) from exc

    logger.info("event=cli_compare_done discrepancies=%d", len(discrepancies))
    if tracer.has_lines:
        typer.echo("Trace:")
        typer.echo(tracer.text())
    if discrepancies:
        typer.echo(report)
        typer.echo(f"{len(discrepancies)} discrepancy(ies) found")
        raise typer.Exit(EXIT_NOT_EQUIVALENT)
    typer.echo("Documents are equivalent")
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def config() -> None:
    """Print the effective settings (config file plus environment overrides)."""
    try:
        settings = get_settings()
    except GraphAssertError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(EXIT_INTERNAL_ERROR) from exc
    typer.echo(yaml.safe_dump(settings.to_dict(), sort_keys=True).rstrip())
    if settings.source_path is not None:
        typer.echo(f"Source: {settings.source_path}")
    raise typer.Exit(EXIT_SUCCESS)

