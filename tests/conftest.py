"""Shared fixtures for facetflow tests."""

import pytest

from facetflow.config import clear_settings_instance
from sample_rules import USERS_YAML


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep settings away from ~/.facetflow and the caller's environment."""
    monkeypatch.setenv("FACETFLOW_CONFIG_DIR", str(tmp_path / "settings"))
    for key in ("FACETFLOW_DEBUG", "FACETFLOW_RAISE_ON_GUARD_VIOLATION", "FACETFLOW_LOG_RULE_APPLICATION"):
        monkeypatch.delenv(key, raising=False)
    clear_settings_instance()
    yield
    clear_settings_instance()


@pytest.fixture
def users_yaml(tmp_path):
    """Write the users rule family to a temp file."""
    path = tmp_path / "users.yaml"
    path.write_text(USERS_YAML)
    return path
