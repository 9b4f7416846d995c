"""GeoFuse command line interface"""

import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..geo_core.config import ConfigManager, create_cli_overrides
from ..geo_core.exceptions import ConfigurationError, GeoFuseError, InvalidInputError
from ..geo_core.models import RequestContext
from ..geo_engine.aggregator import GeoAggregator
from ..threat_engine.fusion import ThreatEngine
from ..main import setup_logging

logger = logging.getLogger(__name__)

# Messages go to stderr; stdout carries JSON only
console = Console(stderr=True)

EXIT_ERROR = 1
EXIT_USAGE = 2


def print_error(message: str):
    console.print(f"[red]Error:[/red] {message}")


def print_success(message: str):
    console.print(f"[green]{message}[/green]")


def emit_json(data: Dict[str, Any]):
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def build_context(headers: Tuple[str, ...], path: Optional[str]) -> Optional[RequestContext]:
    if not headers and not path:
        return None
    try:
        return RequestContext.from_header_lines(headers, path=path or "")
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'-H' / '--header'")


def run_lookup(coro, ctx: click.Context):
    """Run a lookup coroutine, translating errors into exit codes"""
    try:
        return asyncio.run(coro)
    except InvalidInputError as e:
        print_error(f"{e.message}: {e.context.get('value')}")
        ctx.exit(EXIT_USAGE)
    except GeoFuseError as e:
        print_error(e.message)
        logger.debug(f"Lookup failed: {e.to_dict()}")
        ctx.exit(EXIT_ERROR)


header_option = click.option('-H', '--header', 'headers', multiple=True,
                             help='Request header "Name: value" (repeatable)')
path_option = click.option('-p', '--path', help='Request path to inspect')


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.version_option(version=__version__, prog_name="geofuse")
@click.option('-c', '--config', 'config_path', type=click.Path(dir_okay=False), help='YAML or JSON configuration file')
@click.option('-V', '--verbose', is_flag=True, help='Verbose output (DEBUG level)')
@click.option('-q', '--quiet', is_flag=True, help='Quiet mode (WARNING level)')
@click.option('-T', '--timeout', type=float, help='Provider and threat check timeout in seconds')
@click.option('--log-file', help='Also write logs to this file')
@click.pass_context
def main_cli(ctx, config_path, verbose, quiet, timeout, log_file):
    """Multi-source IP geolocation and threat assessment"""
    overrides = create_cli_overrides(verbose=verbose, quiet=quiet, timeout=timeout, log_file=log_file)
    try:
        manager = ConfigManager(config_path, cli_overrides=overrides)
    except ConfigurationError as e:
        print_error(f"{e.message} ({e.context.get('config_file', '')})")
        ctx.exit(EXIT_USAGE)

    errors = manager.validate()
    if errors:
        for error in errors:
            print_error(error)
        ctx.exit(EXIT_USAGE)

    setup_logging(manager.config.log_level, manager.config.log_file)
    ctx.obj = manager.config


@main_cli.command()
@click.argument('ip')
@click.option('-t', '--threat', 'include_threat', is_flag=True, help='Attach a threat assessment')
@header_option
@path_option
@click.pass_context
def lookup(ctx, ip, include_threat, headers, path):
    """Aggregated geolocation for IP"""
    context = build_context(headers, path)
    include_threat = include_threat or ctx.obj.enable_threat_check
    aggregator = GeoAggregator(ctx.obj)
    record = run_lookup(aggregator.get_geo_info(ip, context, include_threat=include_threat), ctx)
    emit_json(record.to_dict())


@main_cli.command()
@click.argument('ip')
@header_option
@path_option
@click.pass_context
def threat(ctx, ip, headers, path):
    """Threat assessment for IP"""
    context = build_context(headers, path)
    engine = ThreatEngine(ctx.obj)
    assessment = run_lookup(engine.assess(ip, context), ctx)
    emit_json(assessment.to_dict())


@main_cli.command()
@click.argument('ip')
@header_option
@click.pass_context
def ipinfo(ctx, ip, headers):
    """Basic IP characteristics merged across providers"""
    context = build_context(headers, None)
    aggregator = GeoAggregator(ctx.obj)
    record = run_lookup(aggregator.get_ip_info(ip, context), ctx)
    emit_json(record.to_dict())


@main_cli.command()
@click.pass_context
def providers(ctx):
    """List geolocation providers in priority order"""
    config = ctx.obj
    aggregator = GeoAggregator(config)

    table = Table(title="Geolocation Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Priority", justify="right")
    table.add_column("Enabled")
    table.add_column("Configured")

    for provider in aggregator.registry:
        enabled = config.providers.get(provider.name, True)
        table.add_row(
            provider.name,
            str(provider.priority),
            "yes" if enabled else "no",
            "[green]yes[/green]" if provider.is_configured() else "[yellow]no[/yellow]",
        )

    Console().print(table)


@main_cli.command('init-config')
@click.argument('path', type=click.Path(dir_okay=False))
@click.option('-f', '--force', is_flag=True, help='Overwrite an existing file')
@click.pass_context
def init_config(ctx, path, force):
    """Write a configuration file with default settings to PATH"""
    if os.path.exists(path) and not force:
        print_error(f"{path} already exists (use --force to overwrite)")
        ctx.exit(EXIT_USAGE)

    manager = ConfigManager(use_environment=False)
    try:
        manager.save_config(path)
    except ConfigurationError as e:
        print_error(e.message)
        ctx.exit(EXIT_ERROR)
    print_success(f"Configuration written to {path}")
