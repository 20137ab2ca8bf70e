"""Tests for the facetflow CLI."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from facetflow.cli import Inspect, Resolve, entry_point, handle_inspect, handle_resolve, load_target, main
from facetflow.config import get_settings
from facetflow.errors import ConfigurationLoadError
from facetflow.pipeline import Configuration


class TestLoadTarget:
    """Test suite for load_target."""

    def test_yaml_file(self, users_yaml: Path) -> None:
        assert load_target(str(users_yaml)).name == "users"

    def test_import_path(self) -> None:
        config = load_target("sample_rules:users")

        assert isinstance(config, Configuration)
        assert config.name == "users"

    def test_import_path_not_a_configuration(self) -> None:
        with pytest.raises(ConfigurationLoadError, match="is not a Configuration"):
            load_target("sample_rules:not_a_configuration")

    def test_missing_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationLoadError, match="not found"):
            load_target(str(tmp_path / "missing.yml"))


class TestInspect:
    """Test suite for the inspect subcommand."""

    def test_json_output(self, users_yaml: Path, capsys) -> None:
        handle_inspect(Inspect(target=str(users_yaml), output="json"))

        data = json.loads(capsys.readouterr().out)
        assert data["name"] == "users"
        assert data["raise_on_guard_violation"] is True
        assert data["execution_order"] == ["by_name", "without_archived", "paginate"]
        assert data["rules"][1] == {"name": "without_archived", "match": "unless archived?"}
        assert data["facets"] == [{"name": "admins", "match": "role='admin'"}]
        assert data["guards"] == ["missing required params: tenant"]
        assert data["defaults"] == {"page": 1}
        assert data["attributes"] == ["tenant"]

    def test_table_output(self, users_yaml: Path, capsys) -> None:
        handle_inspect(Inspect(target=str(users_yaml)))

        out = capsys.readouterr().out
        assert "Rule Family: users" in out
        assert "Guard mode: raise" in out
        assert "by_name" in out
        assert "[ last] paginate" in out
        assert "admins" in out
        assert "missing required params: tenant" in out

    def test_validate(self, users_yaml: Path, capsys) -> None:
        handle_inspect(Inspect(target=str(users_yaml), validate=True))
        assert "Rule validation passed" in capsys.readouterr().out

    def test_load_error_exits(self, tmp_path: Path, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            handle_inspect(Inspect(target=str(tmp_path / "missing.yaml")))

        assert exc_info.value.code == 1
        assert "Error loading" in capsys.readouterr().out

    def test_invalid_order_exits(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "bad_order.yaml"
        path.write_text(
            "facetflow:\n"
            "  rules:\n"
            "    - action: sample_rules.by_name\n"
            "      presence: [name]\n"
            "      order: middle\n"
        )

        with pytest.raises(SystemExit) as exc_info:
            handle_inspect(Inspect(target=str(path)))

        assert exc_info.value.code == 1
        assert "Error loading" in capsys.readouterr().out


class TestResolve:
    """Test suite for the resolve subcommand."""

    def test_prints_subject_as_json(self, users_yaml: Path, capsys) -> None:
        handle_resolve(Resolve(target=str(users_yaml), params='{"tenant": "t"}'))

        users = json.loads(capsys.readouterr().out)
        assert [user["name"] for user in users] == ["ada", "bob"]

    def test_presence_overrides(self, users_yaml: Path, capsys) -> None:
        handle_resolve(Resolve(target=str(users_yaml), params='{"tenant": "t", "page": 2}', presence="archived"))

        users = json.loads(capsys.readouterr().out)
        assert [user["name"] for user in users] == ["cy"]

    def test_absent_override_masks_default(self, users_yaml: Path, capsys) -> None:
        handle_resolve(Resolve(target=str(users_yaml), params='{"tenant": "t"}', presence="archived,-page"))

        users = json.loads(capsys.readouterr().out)
        assert [user["name"] for user in users] == ["ada", "bob", "cy"]

    def test_import_path_target(self, capsys) -> None:
        handle_resolve(Resolve(target="sample_rules:users", params='{"name": "cy"}'))

        users = json.loads(capsys.readouterr().out)
        assert users == [{"name": "cy", "role": "user", "archived": True}]

    def test_guard_violation_exits(self, users_yaml: Path, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            handle_resolve(Resolve(target=str(users_yaml)))

        assert exc_info.value.code == 1
        assert "missing required params: tenant" in capsys.readouterr().out

    def test_recorded_violation_exits(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "record.yaml"
        path.write_text(
            "facetflow:\n"
            "  raise_on_guard_violation: false\n"
            "  subject: sample_rules.all_users\n"
            "  guards:\n"
            "    - require: [tenant]\n"
            "      message: tenant is required\n"
        )

        with pytest.raises(SystemExit) as exc_info:
            handle_resolve(Resolve(target=str(path)))

        assert exc_info.value.code == 1
        assert "tenant is required" in capsys.readouterr().out

    def test_undefined_subject_exits(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("facetflow:\n  name: empty\n")

        with pytest.raises(SystemExit) as exc_info:
            handle_resolve(Resolve(target=str(path)))

        assert exc_info.value.code == 1
        assert "failed to build subject" in capsys.readouterr().out

    @pytest.mark.parametrize("params", ["{not json", "[1, 2]"])
    def test_invalid_params_exit(self, users_yaml: Path, params: str, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            handle_resolve(Resolve(target=str(users_yaml), params=params))

        assert exc_info.value.code == 1
        assert "--params" in capsys.readouterr().out

    def test_non_json_subject_printed_as_repr(self, capsys) -> None:
        handle_resolve(Resolve(target="sample_rules:tagged"))
        assert capsys.readouterr().out.strip() == "{'ada'}"


class TestMain:
    """Test suite for main and the entry point."""

    def test_dispatches_inspect(self, users_yaml: Path, capsys) -> None:
        main(Inspect(target=str(users_yaml), output="json"))
        assert json.loads(capsys.readouterr().out)["name"] == "users"

    def test_config_dir_sets_settings(self, users_yaml: Path, tmp_path: Path, capsys) -> None:
        settings_dir = tmp_path / "custom"
        settings_dir.mkdir()
        (settings_dir / "facetflow.yaml").write_text("facetflow:\n  raise_on_guard_violation: false\n")

        main(Inspect(target=str(users_yaml), output="json"), config_dir=settings_dir)

        assert get_settings().raise_on_guard_violation is False
        assert json.loads(capsys.readouterr().out)["raise_on_guard_violation"] is False

    @patch("facetflow.cli.tyro.cli")
    def test_entry_point_uses_tyro(self, mock_cli) -> None:
        entry_point()
        mock_cli.assert_called_once_with(main)
