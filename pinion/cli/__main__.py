"""Pinion CLI - Main Entry Point.

Commands:
    routes - Print the route table with analysis findings
    run    - Serve controllers with uvicorn
"""

import logging
import os
import sys

import click

from . import __version__, __cli_name__
from .colors import _CHECK, _CROSS, error, info, kv, success, warning
from ..application import Pinion
from ..controller.analyzer import IssueType, analyze_routes, print_analysis
from ..controller.compiler import build_route_table
from ..faults import ConfigFault


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, verbose: bool):
    """Controller-based HTTP routing and dispatch."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command('routes')
@click.argument('path', type=click.Path())
def routes(path: str):
    """
    Print the route table of a controller file or directory.

    Examples:
      pinion routes ./controller
      pinion routes app/controllers.py
    """
    try:
        table = build_route_table(path, os.getcwd())
    except ConfigFault as e:
        error(f"  {_CROSS} {e.message}")
        sys.exit(1)

    if not table:
        warning("No routes found")
        return

    results = analyze_routes(table)
    print_analysis(results)

    issues = [issue for result in results for issue in result.issues]
    errors = sum(1 for issue in issues if issue.type is IssueType.ERROR)
    warnings = len(issues) - errors
    click.echo()
    summary = f"{len(table)} route(s), {errors} error(s), {warnings} warning(s)"
    if errors:
        error(f"  {_CROSS} {summary}")
    else:
        success(f"  {_CHECK} {summary}")


@cli.command('run')
@click.argument('path', type=click.Path())
@click.option('--host', default='127.0.0.1', help='Bind host')
@click.option('--port', default=8000, type=int, help='Bind port')
@click.option('--mode', type=click.Choice(['debug', 'production']), default='debug', help='Application mode')
def run(path: str, host: str, port: int, mode: str):
    """
    Serve controllers with uvicorn.

    Examples:
      pinion run ./controller
      pinion run ./controller --port 9000 --mode production
    """
    info(f"Pinion v{__version__}")
    kv("Controller", path)
    kv("Mode", mode)
    kv("Address", f"http://{host}:{port}")
    click.echo()

    app = Pinion(controller=path, mode=mode, root_path=os.getcwd())
    try:
        app.run(host=host, port=port)
    except ConfigFault as e:
        error(f"  {_CROSS} {e.message}")
        sys.exit(1)


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
