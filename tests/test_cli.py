"""Tests for the CLI and YAML settings loading."""

import pytest

from queryjam.cli.main import app, create_parser
from queryjam.settings import load_settings


class TestInit:

    def test_writes_default_config(self, tmp_path, capsys):
        path = tmp_path / "queryjam.yaml"
        assert app(["init", "--path", str(path)]) == 0
        assert "database_url" in path.read_text()
        assert f"Created {path}" in capsys.readouterr().out

    def test_refuses_to_overwrite(self, tmp_path):
        path = tmp_path / "queryjam.yaml"
        path.write_text("port: 9000\n")

        assert app(["init", "--path", str(path)]) == 1
        assert path.read_text() == "port: 9000\n"

        assert app(["init", "--path", str(path), "--force"]) == 0
        assert "query_rate_limit" in path.read_text()

    def test_default_config_loads(self, tmp_path):
        path = tmp_path / "queryjam.yaml"
        app(["init", "--path", str(path)])

        settings = load_settings(path)
        assert settings.PORT == 8000
        assert settings.QUERY_RATE_LIMIT == 30


class TestParser:

    def test_serve_arguments(self):
        args = create_parser().parse_args(["serve", "-c", "prod.yaml", "--port", "9000"])
        assert args.command == "serve"
        assert args.config == "prod.yaml"
        assert args.port == 9000
        assert args.host is None

    def test_no_command_prints_help(self, capsys):
        assert app([]) == 0
        assert "queryjam" in capsys.readouterr().out

    def test_missing_config(self, tmp_path, capsys):
        assert app(["init-db", "--config", str(tmp_path / "nope.yaml")]) == 1
        assert "not found" in capsys.readouterr().out

    def test_init_db(self, tmp_path):
        path = tmp_path / "queryjam.yaml"
        path.write_text(f"database_url: sqlite+aiosqlite:///{tmp_path}/cli.db\n")
        assert app(["init-db", "--config", str(path)]) == 0
        assert (tmp_path / "cli.db").exists()


class TestSettings:

    def test_yaml_keys_are_case_insensitive(self, tmp_path):
        path = tmp_path / "queryjam.yaml"
        path.write_text("Query_Rate_Limit: 5\nredis_url: redis://cache:6379/0\n")

        settings = load_settings(path, message_rate_limit=7)
        assert settings.QUERY_RATE_LIMIT == 5
        assert settings.MESSAGE_RATE_LIMIT == 7
        assert settings.REDIS_URL == "redis://cache:6379/0"

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "queryjam.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_settings(path)
