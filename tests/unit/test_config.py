from __future__ import annotations

import pytest

from featurerunner.core import config as config_core
from featurerunner.core.retry import RetryConfiguration


@pytest.fixture()
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.toml"
    monkeypatch.setenv("FEATURERUNNER_CONFIG_PATH", str(path))
    config_core.reset_config_cache()
    yield path
    config_core.reset_config_cache()


def test_missing_config_is_empty(config_file):
    assert config_core.get_config() == {}
    assert config_core.retry_defaults() == RetryConfiguration()


def test_retry_defaults_from_config(config_file):
    config_file.write_text("[retry]\nfail_after = 2\nmax_delay = 500\n", encoding="utf-8")
    assert config_core.retry_defaults() == RetryConfiguration(initial_delay=1000, max_delay=500, fail_after=2)


def test_retry_defaults_reject_non_integers(config_file):
    config_file.write_text('[retry]\nfail_after = "two"\n', encoding="utf-8")
    with pytest.raises(ValueError):
        config_core.retry_defaults()


def test_invalid_config_file(config_file):
    config_file.write_text("not = [valid", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid config file"):
        config_core.get_config()


def test_reporter_flags(config_file):
    config_file.write_text("[reporter]\nprint_summary = true\n", encoding="utf-8")
    assert config_core.reporter_flag("print_summary", False) is True
    assert config_core.reporter_flag("print_results", False) is False
    assert config_core.reporter_flag("print_results", True) is True


def test_world_merges_config_and_file(config_file, tmp_path):
    config_file.write_text('[world]\nstage = "dev"\nendpoint = "https://cfg"\n', encoding="utf-8")
    world_json = tmp_path / "world.json"
    world_json.write_text('{"endpoint": "https://file"}', encoding="utf-8")
    assert config_core.load_world(world_json) == {"stage": "dev", "endpoint": "https://file"}

    world_toml = tmp_path / "world.toml"
    world_toml.write_text('tenant = "t1"\n', encoding="utf-8")
    assert config_core.load_world(world_toml) == {"stage": "dev", "endpoint": "https://cfg", "tenant": "t1"}
    assert config_core.load_world(None) == {"stage": "dev", "endpoint": "https://cfg"}


def test_world_file_must_be_an_object(config_file, tmp_path):
    world = tmp_path / "world.json"
    world.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        config_core.load_world(world)
