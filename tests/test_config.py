"""Tests for storage root resolution."""

from pathlib import Path

from debuggraph.config import get_data_dir


def test_override_wins(monkeypatch, tmp_path):
    monkeypatch.setenv("DEBUG_DATA_DIR", "/somewhere/else")
    assert get_data_dir(tmp_path) == tmp_path


def test_env_var(monkeypatch, tmp_path):
    monkeypatch.setenv("DEBUG_DATA_DIR", str(tmp_path))
    assert get_data_dir() == tmp_path


def test_default_under_home(monkeypatch):
    monkeypatch.delenv("DEBUG_DATA_DIR", raising=False)
    assert get_data_dir() == Path.home() / ".debug-thinking-mcp"
