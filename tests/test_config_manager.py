from __future__ import annotations

import json
import os

import pytest

from plughost.core.config.manager import ConfigManager
from plughost.core.config.models import PluginsConfig
from plughost.core.errors import ConfigError
from tests.helpers.plugins import DummyLogger, make_key


def test_load_all_writes_defaults(config_manager, tmp_config_root):
    cfg = config_manager.get()
    assert cfg.plugins_path == "data/plugins"
    assert cfg.static_root_path == "public"
    assert cfg.update_check.interval_seconds == 600
    assert os.path.exists(tmp_config_root.plugins)
    assert os.path.exists(tmp_config_root.app)
    assert os.path.exists(os.path.join(tmp_config_root.last_known_good_dir, "plugins.json"))


def test_env_and_allow_list_are_normalized():
    cfg = PluginsConfig.model_validate({"env": " Dev ", "allow_unsigned": "a, b,,a"})
    assert cfg.env == "development"
    assert cfg.dev_mode is True
    assert cfg.allow_unsigned == ["a", "b"]
    assert PluginsConfig().dev_mode is False


def test_public_keys_are_validated(signing_key):
    _, pub = signing_key
    assert PluginsConfig.model_validate({"public_keys": pub}).public_keys == pub
    with pytest.raises(ValueError):
        PluginsConfig.model_validate({"public_keys": {"k": "not base64!"}})
    with pytest.raises(ValueError):
        PluginsConfig.model_validate({"public_keys": {"k": "c2hvcnQ="}})


def test_save_rejects_invalid_config(config_manager):
    with pytest.raises(ConfigError):
        config_manager.save_non_sensitive("plugins.json", {"unknown_field": True})
    with pytest.raises(ConfigError):
        config_manager.save_non_sensitive("nope.json", {})


def test_save_round_trips_and_reloads(config_manager, tmp_config_root):
    _, pub = make_key()
    config_manager.save_non_sensitive("plugins.json", {"env": "development", "public_keys": pub})
    assert config_manager.get().dev_mode is True
    with open(tmp_config_root.plugins, "r", encoding="utf-8") as f:
        assert json.load(f)["public_keys"] == pub
    assert os.listdir(tmp_config_root.backups_dir)


def test_corrupt_file_is_restored_from_last_known_good(config_manager, tmp_config_root):
    config_manager.save_non_sensitive("plugins.json", {"allow_unsigned": ["acme-ds"]})
    with open(tmp_config_root.plugins, "w", encoding="utf-8") as f:
        f.write("{broken")

    cm = ConfigManager(fs=tmp_config_root, logger=DummyLogger())
    cfg = cm.load_all()
    assert cfg.allow_unsigned == ["acme-ds"]
    assert any(".corrupt." in n for n in os.listdir(tmp_config_root.backups_dir))


def test_read_only_manager_refuses_writes(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, logger=DummyLogger(), read_only=True)
    cfg = cm.load_all()
    assert cfg.plugins_path == "data/plugins"
    assert not os.path.exists(tmp_config_root.plugins)
    with pytest.raises(ConfigError):
        cm.save_non_sensitive("plugins.json", {})


def test_get_before_load_raises(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root)
    with pytest.raises(ConfigError):
        cm.get()
