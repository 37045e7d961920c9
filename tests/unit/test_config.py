"""
Unit tests for configuration and port resolution.
"""

from pathlib import Path

import pytest

from namesite.config import AppConfig, resolve_port, DEFAULT_PORT, PACKAGE_DIR


class TestResolvePort:
    """Tests for the PORT → NODE_PORT → 3000 chain."""

    def test_default(self):
        assert resolve_port({}) == DEFAULT_PORT == 3000

    def test_port_wins(self):
        assert resolve_port({"PORT": "8080", "NODE_PORT": "9090"}) == 8080

    def test_node_port_fallback(self):
        assert resolve_port({"NODE_PORT": "9090"}) == 9090

    def test_empty_values_are_unset(self):
        assert resolve_port({"PORT": "", "NODE_PORT": "9090"}) == 9090
        assert resolve_port({"PORT": "  ", "NODE_PORT": ""}) == 3000

    def test_invalid_value(self):
        with pytest.raises(ValueError, match="PORT"):
            resolve_port({"PORT": "http"})

    def test_invalid_node_port(self):
        with pytest.raises(ValueError, match="NODE_PORT"):
            resolve_port({"NODE_PORT": "80a"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        monkeypatch.setenv("NODE_PORT", "4567")
        assert resolve_port() == 4567


class TestAppConfig:
    """Tests for AppConfig."""

    def test_packaged_paths(self):
        config = AppConfig()

        assert Path(config.views_dir) == PACKAGE_DIR / "views"
        assert Path(config.client_dir) == PACKAGE_DIR / "client"
        assert Path(config.favicon_path) == PACKAGE_DIR / "client" / "img" / "favicon.png"
        assert (Path(config.views_dir) / "notFound.html").is_file()

    def test_favicon_follows_client_dir(self, tmp_path):
        config = AppConfig(client_dir=str(tmp_path))
        assert Path(config.favicon_path) == tmp_path / "img" / "favicon.png"

    def test_from_env(self):
        config = AppConfig.from_env({
            "NODE_PORT": "4000",
            "HTTP_HOST": "127.0.0.1",
            "HTTP_WORKERS": "2",
            "HTTP_LOG_LEVEL": "debug",
            "HTTP_LOG_FORMAT": "JSON",
        })

        assert config.port == 4000
        assert config.host == "127.0.0.1"
        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_overrides_win(self):
        config = AppConfig.from_env({"PORT": "8080"}, port=9000, host=None)

        assert config.port == 9000
        assert config.host == "0.0.0.0"

    def test_validate_defaults(self):
        AppConfig().validate()
        AppConfig(port=0).validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"min_workers": 0},
        {"min_workers": 4, "max_workers": 2},
        {"buffer_size": 10},
        {"timeout": 0},
        {"body_limit": 2 * 1024 * 1024},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
        {"assets_prefix": "assets"},
        {"views_dir": "/nonexistent/views"},
        {"client_dir": "/nonexistent/client"},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            AppConfig(**overrides).validate()
