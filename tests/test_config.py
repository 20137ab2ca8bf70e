"""Tests for facetflow settings."""

import logging
from pathlib import Path

import pytest

from facetflow.config import (
    FacetflowSettings,
    clear_settings_instance,
    get_settings,
    set_settings_instance,
)


@pytest.fixture
def facetflow_logger():
    """Restore the facetflow logger after a test changes it."""
    logger = logging.getLogger("facetflow")
    level, handlers = logger.level, list(logger.handlers)
    yield logger
    logger.setLevel(level)
    logger.handlers[:] = handlers


class TestFacetflowSettings:
    """Test suite for FacetflowSettings."""

    def test_defaults(self) -> None:
        settings = FacetflowSettings()

        assert settings.debug is False
        assert settings.raise_on_guard_violation is True
        assert settings.log_rule_application is False
        assert settings.config_path is None

    def test_environment_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("FACETFLOW_RAISE_ON_GUARD_VIOLATION", "false")
        monkeypatch.setenv("FACETFLOW_LOG_RULE_APPLICATION", "1")

        settings = FacetflowSettings()

        assert settings.raise_on_guard_violation is False
        assert settings.log_rule_application is True

    def test_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "facetflow.yaml"
        path.write_text(
            "facetflow:\n"
            "  raise_on_guard_violation: false\n"
            "  log_rule_application: true\n"
            "  rules: []\n"
        )

        settings = FacetflowSettings.from_yaml(path)

        assert settings.raise_on_guard_violation is False
        assert settings.log_rule_application is True
        assert settings.config_path == path

    def test_from_yaml_kwargs_win(self, tmp_path: Path) -> None:
        path = tmp_path / "facetflow.yaml"
        path.write_text("facetflow:\n  raise_on_guard_violation: false\n")

        assert FacetflowSettings.from_yaml(path, raise_on_guard_violation=True).raise_on_guard_violation is True

    def test_from_missing_yaml(self, tmp_path: Path) -> None:
        settings = FacetflowSettings.from_yaml(tmp_path / "missing.yaml")

        assert settings.raise_on_guard_violation is True
        assert settings.config_path == tmp_path / "missing.yaml"

    def test_invalid_section_warns(self, tmp_path: Path, caplog) -> None:
        path = tmp_path / "facetflow.yaml"
        path.write_text("facetflow: [1, 2]\n")

        with caplog.at_level(logging.WARNING, logger="facetflow"):
            settings = FacetflowSettings.from_yaml(path)

        assert settings.raise_on_guard_violation is True
        assert "Invalid facetflow section" in caplog.text


class TestApplyLogging:
    """Test suite for apply_logging."""

    def test_debug_raises_level(self, facetflow_logger) -> None:
        facetflow_logger.handlers[:] = []

        FacetflowSettings(debug=True).apply_logging()

        assert facetflow_logger.level == logging.DEBUG
        assert len(facetflow_logger.handlers) == 1

    def test_no_debug_leaves_logger(self, facetflow_logger) -> None:
        facetflow_logger.setLevel(logging.WARNING)

        FacetflowSettings().apply_logging()

        assert facetflow_logger.level == logging.WARNING


class TestGetSettings:
    """Test suite for the global settings instance."""

    def test_singleton(self) -> None:
        assert get_settings() is get_settings()

    def test_reads_config_dir(self, tmp_path: Path, monkeypatch) -> None:
        config_dir = tmp_path / "custom"
        config_dir.mkdir()
        (config_dir / "facetflow.yaml").write_text("facetflow:\n  log_rule_application: true\n")
        monkeypatch.setenv("FACETFLOW_CONFIG_DIR", str(config_dir))

        settings = get_settings()

        assert settings.log_rule_application is True
        assert settings.config_path == config_dir / "facetflow.yaml"

    def test_without_file(self) -> None:
        assert get_settings().config_path is None

    def test_set_and_clear(self) -> None:
        custom = FacetflowSettings(raise_on_guard_violation=False)
        set_settings_instance(custom)
        assert get_settings() is custom

        clear_settings_instance()
        assert get_settings() is not custom
