"""
Command line entry point for the stats agent.
"""

import json
import sys
from typing import Optional

import click

from stats_agent.aggregator import StatsAggregator
from stats_agent.api import serve as serve_app
from stats_agent.config import ConfigError, load_config
from stats_agent.log import setup_logging


def _load(config: Optional[str], **overrides):
    try:
        return load_config(config).with_overrides(**overrides)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(package_name='dbhost-stats-agent')
def cli():
    """Database host stats agent"""


@cli.command()
@click.option('--config', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Path to a YAML config file with an "agent" section')
@click.option('--host', default=None, help='Host to bind to (default: 0.0.0.0)')
@click.option('--port', type=int, default=None, help='Port to bind to (default: 8273)')
@click.option('--log-level', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
              help='Log level (default: INFO)')
def serve(config: Optional[str], host: Optional[str], port: Optional[int], log_level: Optional[str]):
    """Run the authenticated /stats HTTP service"""
    setup_logging(log_level or 'INFO')
    agent_config = _load(config, host=host, port=port, log_level=log_level)
    setup_logging(agent_config.log_level, agent_config.log_file)
    serve_app(agent_config)


@cli.command()
@click.option('--config', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Path to a YAML config file with an "agent" section')
def snapshot(config: Optional[str]):
    """Collect one snapshot locally and print it as JSON"""
    agent_config = _load(config)
    setup_logging(agent_config.log_level, agent_config.log_file)
    result = StatsAggregator.from_config(agent_config).aggregate()
    click.echo(json.dumps(result.to_dict(), indent=2))


def main():
    cli()


if __name__ == '__main__':
    main()
