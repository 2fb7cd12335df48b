"""Tests for the JSON configuration manager."""

import json

from fingps.utils.config import Config


def test_defaults_when_file_missing(tmp_path):
    config = Config(tmp_path / "config.json")
    assert config.get('max_simulation_months') == 600
    assert config.get('default_strategy') == 'avalanche'
    assert config.get('missing', 'fallback') == 'fallback'


def test_file_overrides_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({'max_simulation_months': 240, 'log_level': 'DEBUG'}))
    config = Config(path)
    assert config.get('max_simulation_months') == 240
    assert config.get('log_level') == 'DEBUG'
    assert config.get('default_strategy') == 'avalanche'


def test_unreadable_file_falls_back(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    config = Config(path)
    assert config.get_all() == Config.DEFAULT_CONFIG
    assert 'Could not read config' in caplog.text


def test_non_object_falls_back(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2, 3]")
    assert Config(path).get_all() == Config.DEFAULT_CONFIG


def test_save_round_trip(tmp_path):
    path = tmp_path / "config.json"
    config = Config(path)
    config.set('default_strategy', 'snowball')
    config.save()
    assert Config(path).get('default_strategy') == 'snowball'


def test_get_all_is_a_copy(tmp_path):
    config = Config(tmp_path / "config.json")
    values = config.get_all()
    values['max_simulation_months'] = 1
    assert config.get('max_simulation_months') == 600
