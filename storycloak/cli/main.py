#!/usr/bin/env python3
"""StoryCloak CLI - recover, redact and inspect attack story exports."""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from storycloak.core.config import StoryCloakConfig, load_config
from storycloak.core.exceptions import StoryCloakError
from storycloak.engine import StoryEngine
from storycloak.observability.logging import configure_logging, correlation_context
from storycloak.session import StorySession

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _fail(error: StoryCloakError) -> "click.ClickException":
    """Turn a package error into a click error, listing recovery suggestions."""
    for suggestion in error.recovery_suggestions:
        click.echo(f"Hint: {suggestion}", err=True)
    return click.ClickException(error.message)


def _open_session(
    ctx: click.Context,
    input_file: str,
    anonymize: bool = False,
    zoom: Optional[str] = None,
    filtered: bool = True,
) -> StorySession:
    config: StoryCloakConfig = ctx.obj["config"]
    session = StorySession(StoryEngine(config), filtered=filtered)
    try:
        session.load(input_file)
        if anonymize:
            session.set_redaction(True)
        if zoom:
            projection = session.zoom(zoom)
            if not projection.zoomed:
                click.echo(f"Warning: node '{zoom}' not found; showing the full tree", err=True)
    except StoryCloakError as e:
        raise _fail(e) from e
    return session


@click.group()
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML configuration file",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Override the configured log level",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    help="Override the configured log format",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: Optional[str],
    log_level: Optional[str],
    log_format: Optional[str],
) -> None:
    """StoryCloak - recover, redact and shape XDR attack story exports."""
    ctx.ensure_object(dict)
    try:
        config = load_config(config_file)
    except StoryCloakError as e:
        raise _fail(e) from e

    if log_level:
        config.logging.level = log_level.upper()
    if log_format:
        config.logging.format = log_format
    configure_logging(config.logging)

    ctx.obj["config"] = config
    ctx.with_resource(correlation_context())


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def parse(ctx: click.Context, input_file: str) -> None:
    """Recover a story file and report how it was parsed."""
    snapshot = _open_session(ctx, input_file).snapshot()

    click.echo(f"Stage: {snapshot.stage}")
    for failure in snapshot.failures:
        location = f" (line {failure.line}, column {failure.column})" if failure.line else ""
        click.echo(f"  failed {failure.stage.value}: {failure.error}{location}")
    click.echo(f"Items: {len(snapshot.document.items)}")
    click.echo(f"Nodes: {snapshot.statistics.total}")
    if snapshot.document.device_name:
        click.echo(f"Device: {snapshot.document.device_name}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print statistics as JSON")
@click.pass_context
def stats(ctx: click.Context, input_file: str, as_json: bool) -> None:
    """Count story nodes by category."""
    statistics = _open_session(ctx, input_file).snapshot().statistics

    if as_json:
        click.echo(json.dumps(statistics.to_dict(), indent=2))
        return

    click.echo(f"Total:     {statistics.total}")
    click.echo(f"Processes: {statistics.processes}")
    click.echo(f"Files:     {statistics.files}")
    click.echo(f"Accounts:  {statistics.accounts}")
    click.echo(f"Networks:  {statistics.networks}")
    click.echo(f"Registry:  {statistics.registry}")
    click.echo(f"Other:     {statistics.others}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--anonymize", "-a", is_flag=True, help="Redact identifiers")
@click.option("--zoom", "-z", "zoom_id", help="Show only this node and its descendants")
@click.option("--no-filter", is_flag=True, help="Keep noise nodes instead of promoting them")
@click.pass_context
def tree(
    ctx: click.Context,
    input_file: str,
    anonymize: bool,
    zoom_id: Optional[str],
    no_filter: bool,
) -> None:
    """Print the shaped process tree."""
    session = _open_session(
        ctx, input_file, anonymize=anonymize, zoom=zoom_id, filtered=not no_filter
    )
    snapshot = session.snapshot()
    click.echo(session.engine.render(snapshot.projection, snapshot.document))


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--anonymize", "-a", is_flag=True, help="Redact identifiers")
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False),
    help="Directory for the exported file (default: configured output_dir)",
)
@click.pass_context
def export(
    ctx: click.Context, input_file: str, anonymize: bool, output_dir: Optional[str]
) -> None:
    """Export the recovered story as pretty-printed JSON."""
    session = _open_session(ctx, input_file, anonymize=anonymize)
    try:
        path = session.export_json(output_dir)
    except StoryCloakError as e:
        raise _fail(e) from e
    click.echo(f"✓ Exported story to {path}")


def _write_report(content: str, output: Optional[str]) -> None:
    if output is None:
        click.echo(content)
        return
    output_path = Path(output)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Could not write report to {output_path}: {e}") from e
    click.echo(f"✓ Report written to {output_path}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--anonymize", "-a", is_flag=True, help="Redact identifiers")
@click.option("--zoom", "-z", "zoom_id", help="Only report on this node's subtree")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write to a file")
@click.pass_context
def commands(
    ctx: click.Context,
    input_file: str,
    anonymize: bool,
    zoom_id: Optional[str],
    output: Optional[str],
) -> None:
    """List every command line, oldest first."""
    session = _open_session(ctx, input_file, anonymize=anonymize, zoom=zoom_id)
    try:
        content = session.export_command_lines()
    except StoryCloakError as e:
        raise _fail(e) from e
    _write_report(content, output)


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--anonymize", "-a", is_flag=True, help="Redact identifiers")
@click.option("--zoom", "-z", "zoom_id", help="Only report on this node's subtree")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write to a file")
@click.pass_context
def scripts(
    ctx: click.Context,
    input_file: str,
    anonymize: bool,
    zoom_id: Optional[str],
    output: Optional[str],
) -> None:
    """List the content of every executed PowerShell script, oldest first."""
    session = _open_session(ctx, input_file, anonymize=anonymize, zoom=zoom_id)
    try:
        content = session.export_scripts()
    except StoryCloakError as e:
        raise _fail(e) from e
    _write_report(content, output)


@cli.command()
def version() -> None:
    """Show StoryCloak version."""
    from storycloak import __version__

    click.echo(f"StoryCloak v{__version__}")


def main() -> int:
    """Main entry point."""
    try:
        cli()
        return 0
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
