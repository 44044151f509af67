"""
Shared fixtures.

The global config is replaced by the defaults for every test, so that a
config.yaml or WALKBASS_* variables on the machine can't change results.
"""

import pytest

import walkbass.config as config_module
from walkbass.config import EngineConfig, ProgressConfig
from walkbass.db.store import PhraseStore


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    config = EngineConfig(progress=ProgressConfig(show_progress=False))
    monkeypatch.setattr(config_module, "_config", config)
    return config


@pytest.fixture
def store(default_config):
    return PhraseStore(default_config)
