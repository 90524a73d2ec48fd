"""Command line interface for httpbench."""

import sys
from typing import Any, Dict, Optional

import click
import yaml
from click.core import ParameterSource
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from . import run_benchmark
from .core.config import BenchmarkConfig, ConfigLoader
from .report import format_report
from .utils.logging import setup_logging

USAGE = "Usage: httpbench [options] [http[s]://]hostname[:port]/path"

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

# command line parameter -> BenchmarkConfig field
RUN_SETTINGS = {
    'requests': 'requests',
    'concurrency': 'concurrency',
    'keep_alive': 'keep_alive',
    'verbosity': 'verbosity',
}

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def _fail(message: Optional[str] = None) -> None:
    if message:
        err_console.print(f"[red]{escape(message)}[/red]")
    console.print(USAGE, markup=False)
    sys.exit(1)


def _command_line_settings(ctx: click.Context, url: Optional[str]) -> Dict[str, Any]:
    """Values given explicitly on the command line; these win over --config."""
    settings: Dict[str, Any] = {}
    for param, field_name in RUN_SETTINGS.items():
        if ctx.get_parameter_source(param) is ParameterSource.COMMANDLINE:
            settings[field_name] = ctx.params[param]
    if url:
        settings['url'] = url
    return settings


def _describe(error: ValidationError) -> Optional[str]:
    """Message for a rejected configuration; None when only the usage applies."""
    messages = []
    for err in error.errors():
        if err['loc'] == ('url',):
            if err['type'] == 'missing':
                return None
            return f"{err['input']}: invalid URL"
        messages.append(err['msg'])
    return "; ".join(messages)


def build_config(ctx: click.Context, url: Optional[str], config_file: Optional[str]) -> BenchmarkConfig:
    overrides = _command_line_settings(ctx, url)
    try:
        if config_file:
            return ConfigLoader.load_benchmark(config_file, overrides)
        return BenchmarkConfig(**overrides)
    except ValidationError as e:
        _fail(_describe(e))
    except (OSError, ValueError, yaml.YAMLError) as e:
        _fail(f"Cannot load {config_file}: {e}")


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.argument('url', required=False)
@click.option('-n', 'requests', type=int, default=1, show_default=True, help='Number of requests to perform')
@click.option('-c', 'concurrency', type=int, default=1, show_default=True,
              help='Number of multiple requests to make at a time')
@click.option('-k', 'keep_alive', is_flag=True, default=False, help='Use HTTP KeepAlive feature')
@click.option('-v', 'verbosity', type=int, default=0, show_default=True,
              help='How much troubleshooting info to print')
@click.option('--config', 'config_file', type=click.Path(dir_okay=False),
              help='YAML file with run settings')
@click.option('--save-config', type=click.Path(dir_okay=False),
              help='Write the effective run settings to a YAML file')
@click.option('--log-level', envvar='HTTPBENCH_LOG_LEVEL', type=click.Choice(LOG_LEVELS, case_sensitive=False),
              help='Logging level [default: WARNING, DEBUG with -v]')
@click.option('--log-file', help='Log file path')
@click.pass_context
def cli(ctx, url, requests, concurrency, keep_alive, verbosity, config_file, save_config, log_level, log_file):
    """Benchmark an HTTP server with concurrent GET requests."""
    config = build_config(ctx, url, config_file)

    if log_level is None:
        log_level = 'DEBUG' if config.verbosity > 0 else 'WARNING'
    setup_logging(level=log_level, log_file=log_file)

    if save_config:
        ConfigLoader.save_config(config, save_config)

    target = config.target
    console.print(f"Benchmarking {target.hostname} (be patient)...", end="", markup=False)
    report = run_benchmark(config)
    console.print("..done\n\n", markup=False)
    console.print(format_report(report), markup=False, soft_wrap=True)


def main():
    """Entry point for the httpbench console script."""
    cli()


if __name__ == '__main__':
    main()
