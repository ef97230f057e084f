"""Tests for the example deployment files under deploy/"""
from pathlib import Path

import pytest

from stats_agent.config import ConfigError, load_config

DEPLOY_DIR = Path(__file__).parent.parent / 'deploy'


def read_env_file(path):
    environ = {}
    for line in path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith('#'):
            key, _, value = line.partition('=')
            environ[key] = value
    return environ


def test_example_refuses_to_start_without_token():
    """Test the shipped production example does not carry a usable secret"""
    environ = read_env_file(DEPLOY_DIR / 'agent.env')

    with pytest.raises(ConfigError, match='AGENT_TOKEN'):
        load_config(str(DEPLOY_DIR / 'agent.yml'), environ=environ)


def test_example_starts_once_token_is_set():
    environ = read_env_file(DEPLOY_DIR / 'agent.env')
    environ['AGENT_TOKEN'] = 'a-real-secret'

    config = load_config(str(DEPLOY_DIR / 'agent.yml'), environ=environ)
    assert config.is_production
    assert config.port == 8273
