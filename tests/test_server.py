"""Tests for server.py configuration loading."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from server import load_config


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("VAULT_ROOT", "EXCLUDE_DIRS", "INDEX_DB", "API_ENABLED", "API_PORT"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadConfig:
    def test_defaults(self, clean_env, tmp_path):
        clean_env.setenv("VAULT_ROOT", str(tmp_path))
        config = load_config()
        assert config.vault_root == tmp_path
        assert config.exclude_dirs == {".git", ".obsidian", "node_modules", ".trash"}
        assert config.index_db == ":memory:"
        assert config.api_enabled is True
        assert config.api_port == 9400

    def test_overrides(self, clean_env, tmp_path):
        clean_env.setenv("VAULT_ROOT", str(tmp_path))
        clean_env.setenv("EXCLUDE_DIRS", " archive , .git ,")
        clean_env.setenv("INDEX_DB", str(tmp_path / "index.db"))
        clean_env.setenv("API_ENABLED", "false")
        clean_env.setenv("API_PORT", "8123")
        config = load_config()
        assert config.exclude_dirs == {"archive", ".git"}
        assert config.index_db == str(tmp_path / "index.db")
        assert config.api_enabled is False
        assert config.api_port == 8123

    def test_missing_root(self, clean_env):
        assert load_config() is None

    def test_root_not_a_directory(self, clean_env, tmp_path):
        clean_env.setenv("VAULT_ROOT", str(tmp_path / "missing"))
        assert load_config() is None

    def test_bad_port(self, clean_env, tmp_path):
        clean_env.setenv("VAULT_ROOT", str(tmp_path))
        clean_env.setenv("API_PORT", "http")
        assert load_config() is None
