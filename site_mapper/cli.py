# === FILE: site_mapper/cli.py ===
#!/usr/bin/env python3
"""
Command line entry point of SiteMapper.

Commands:
  map URL   Crawl URL, synthesize its sitemap, print or save it
  config    Show the effective configuration
  serve     Run the HTTP API (GET /api/tools/sitemap)

Common options:
  --config PATH       YAML/JSON config (default: configs/default.yaml when present)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stderr only when omitted)
  --log-format FORMAT Logging format string

map options:
  --depth N           Crawl levels, homepage included
  --debug             Attach crawl diagnostics to the output
  --no-explore        Only read the homepage
  --json PATH         Save the JSON response to a file
  --html PATH         Save an HTML rendering of the outline
  --pretty            Indent JSON output
  --budget SEC        Override the wall-clock budget
  --outline           Print only the outline text

Example:
  site-mapper map example.com --depth 2 --json out/example.json --pretty
"""
import asyncio
import json
import sys
from pathlib import Path

import click
from aiohttp import web
from pydantic import ValidationError

from site_mapper import __version__
from site_mapper.config import load_config
from site_mapper.engine import SitemapRequest, generate_sitemap
from site_mapper.logger import init_logging
from site_mapper.report.html_report import render_html
from site_mapper.report.json_report import render_json
from site_mapper.server import create_app

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteMapper, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to a YAML/JSON configuration file.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Logging level'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file (stderr only when omitted)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(name)s %(message)s',
    show_default=True,
    help='Logging format string'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """SiteMapper command group."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except (OSError, ValueError, TypeError) as e:
        print_error(f'Failed to load configuration: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('map', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--depth', '-d', type=click.IntRange(1, 5), default=None, help='Crawl levels, homepage included')
@click.option('--debug', is_flag=True, help='Attach crawl diagnostics')
@click.option('--no-explore', 'no_explore', is_flag=True, help='Only read the homepage')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Save the JSON response to a file'
)
@click.option(
    '--html', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Save an HTML rendering of the outline'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Directory with sitemap.html.j2 (packaged template by default)'
)
@click.option('--pretty', is_flag=True, help='Indent JSON output (2 spaces)')
@click.option('--outline', is_flag=True, help='Print only the outline text')
@click.option('--budget', type=click.FloatRange(min=1, min_open=False), default=None, help='Wall-clock budget (seconds)')
@click.pass_context
def map_site(ctx, url, depth, debug, no_explore, json_output, html_output, template_dir, pretty, outline, budget):
    """Crawl URL and generate its sitemap."""
    cfg = ctx.obj['config']
    if budget is not None:
        try:
            cfg = cfg.model_validate(
                {**cfg.model_dump(), 'budget': budget, 'synthesis_reserve': min(cfg.synthesis_reserve, budget / 3)}
            )
        except ValidationError as e:
            print_error(f'Invalid budget: {e}')
    try:
        request = SitemapRequest(url=url, depth=depth, debug=debug, explore=not no_explore)
    except ValidationError as e:
        print_error(f'Invalid request: {e}')

    try:
        response = asyncio.run(generate_sitemap(request, cfg))
    except Exception as e:
        print_error(f'Sitemap generation failed: {e}')

    if response.error:
        click.secho(f'Warning: {response.error}', fg='yellow', err=True)

    if not json_output and not html_output:
        if outline:
            click.echo(response.sitemap)
        else:
            click.echo(json.dumps(response.to_dict(), ensure_ascii=False, indent=2 if pretty else None))
        return

    if json_output:
        try:
            saved_json = render_json(response, json_output, pretty=pretty)
            click.echo(f'JSON report: {saved_json}')
        except OSError as e:
            print_error(f'Failed to save JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(response, html_output, template_dir)
            click.echo(f'HTML report: {saved_html}')
        except OSError as e:
            print_error(f'Failed to save HTML: {e}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the effective configuration as JSON."""
    cfg = ctx.obj['config']
    click.echo(json.dumps(cfg.public_dict(), indent=2, ensure_ascii=False))


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default='127.0.0.1', show_default=True)
@click.option('--port', default=8080, show_default=True, type=int)
@click.pass_context
def serve(ctx, host, port):
    """Run the HTTP API."""
    web.run_app(create_app(ctx.obj['config']), host=host, port=port)


if __name__ == "__main__":
    cli()
