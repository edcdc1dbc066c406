"""Root CLI group for rulectl with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from rulectl import __version__
from rulectl.commands import register_commands
from rulectl.commands._context import AppContext
from rulectl.config.settings import RulectlSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="rulectl")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug info.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "-r",
    "--rules",
    "rule_paths",
    multiple=True,
    type=click.Path(exists=True, path_type=Path),
    help="Rule file or directory (repeatable). Overrides [rules] paths.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    rule_paths: tuple[Path, ...],
) -> None:
    """rulectl — evaluate declarative rule sets from the command line."""
    ctx.ensure_object(dict)
    settings = RulectlSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        rule_paths=tuple(str(p.resolve()) for p in rule_paths),
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
