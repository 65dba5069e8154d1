from __future__ import annotations

import os

import pytest

from plughost.core.config.manager import ConfigManager
from plughost.core.config.paths import ConfigFsPaths
from tests.helpers.plugins import DummyLogger, make_key


@pytest.fixture
def tmp_config_root(tmp_path):
    """
    Provides an isolated root with config/ under tmp_path.
    """
    fs = ConfigFsPaths(root=str(tmp_path))
    os.makedirs(fs.config_dir, exist_ok=True)
    return fs


@pytest.fixture
def config_manager(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, logger=DummyLogger(), read_only=False)
    cm.load_all()
    return cm


@pytest.fixture
def signing_key():
    return make_key()
