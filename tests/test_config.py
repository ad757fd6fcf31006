"""
Tests for configuration loading and environment overrides.

Run with: pytest tests/test_config.py -v
"""

import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core import config as config_module
from core.config import ENV_OVERRIDES, apply_env_overrides, get_project_root, load_config

CONFIG_YAML = """
api:
  base_url: "http://localhost:3001"
  cors_origins: ["http://localhost:7860"]
storage:
  db_path: "storage/users.sqlite"
auth:
  jwt_secret: "from-file"
  token_ttl_hours: 24
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(ENV_OVERRIDES) + ["FRONTEND_URL", "CORS_ORIGIN", "PORT"]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


class TestLoadConfig:
    """Tests for reading config.yaml."""

    def test_project_root_has_config(self):
        assert (get_project_root() / "config.yaml").exists()

    def test_shipped_config_has_all_sections(self):
        config = load_config()
        for section in ("api", "storage", "auth", "liveness", "widget", "logging"):
            assert section in config

    def test_shipped_liveness_defaults(self):
        liveness = load_config()["liveness"]
        assert liveness["sample_interval_ms"] == 500
        assert liveness["max_attempts"] == 30
        assert liveness["required_valid_samples"] == 20

    def test_load_from_path(self, config_file):
        config = load_config(str(config_file))
        assert config["auth"]["jwt_secret"] == "from-file"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(str(path)) == {}


class TestEnvOverrides:
    """Tests for environment variable overrides."""

    def test_jwt_secret_and_db_path(self, monkeypatch, config_file):
        monkeypatch.setenv("JWT_SECRET", "from-env")
        monkeypatch.setenv("DATABASE_PATH", "/data/users.sqlite")

        config = load_config(str(config_file))

        assert config["auth"]["jwt_secret"] == "from-env"
        assert config["storage"]["db_path"] == "/data/users.sqlite"

    def test_widget_settings(self, monkeypatch):
        monkeypatch.setenv("ACTIONID_CLIENT_ID", "democid")

        config = apply_env_overrides({})

        assert config["widget"]["cid"] == "democid"

    @pytest.mark.parametrize("env_name", ["FRONTEND_URL", "CORS_ORIGIN"])
    def test_cors_origin(self, monkeypatch, config_file, env_name):
        monkeypatch.setenv(env_name, "https://app.example.com")

        config = load_config(str(config_file))

        assert config["api"]["cors_origins"] == ["https://app.example.com"]

    def test_empty_value_ignored(self, monkeypatch, config_file):
        monkeypatch.setenv("JWT_SECRET", "")
        assert load_config(str(config_file))["auth"]["jwt_secret"] == "from-file"


class TestServerConfig:
    """Tests for host/port resolution."""

    def test_port_from_base_url(self, monkeypatch):
        monkeypatch.setattr(config_module, "get_api_config", lambda: {"base_url": "http://localhost:4000"})
        assert config_module.get_server_config() == {"host": "0.0.0.0", "port": 4000}

    def test_port_env_override(self, monkeypatch):
        monkeypatch.setattr(config_module, "get_api_config", lambda: {"base_url": "http://localhost:4000"})
        monkeypatch.setenv("PORT", "8080")
        assert config_module.get_server_config()["port"] == 8080


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
