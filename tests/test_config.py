"""Tests for configuration and surface presets."""
import sys
import os
import json
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from outparse.config import Config


def test_defaults(tmp_path):
    config = Config(tmp_path / "config.json")
    assert config.surface == "editor"
    assert config.max_length == 2000
    assert config.debounce_ms == 1000
    assert config.engine == "local"
    assert config.tone == "Professional"
    assert config.credits == 3


def test_surface_presets(tmp_path):
    config = Config(tmp_path / "config.json")
    config.surface = "free"
    assert (config.max_length, config.debounce_ms) == (500, 1200)
    config.surface = "unbounded"
    assert config.max_length is None
    assert config.debounce_ms == 700
    with pytest.raises(ValueError):
        config.surface = "enterprise"


def test_explicit_overrides(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"surface": "free", "max_length": 42, "debounce_ms": 5}))
    config = Config(path)
    assert config.max_length == 42
    assert config.debounce_ms == 5


def test_persisted(tmp_path):
    path = tmp_path / "sub" / "config.json"
    config = Config(path)
    config.tone = "Casual"
    assert Config(path).tone == "Casual"


def test_corrupt_file_ignored(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert Config(path).engine == "local"


def test_override_is_not_persisted(tmp_path):
    path = tmp_path / "config.json"
    config = Config(path)
    config.tone = "Casual"
    config.override("engine", "api")
    config.override("surface", "free")
    assert config.engine == "api"
    assert config.max_length == 500

    reloaded = Config(path)
    assert reloaded.engine == "local"
    assert reloaded.surface == "editor"
    assert reloaded.tone == "Casual"


def test_override_then_set_persists_only_the_set_key(tmp_path):
    path = tmp_path / "config.json"
    config = Config(path)
    config.override("debounce_ms", 10)
    config.set("credits", 7)
    assert config.debounce_ms == 10
    stored = json.loads(path.read_text())
    assert stored["credits"] == 7
    assert stored["debounce_ms"] is None

    config.set("debounce_ms", 20)
    assert Config(path).debounce_ms == 20
