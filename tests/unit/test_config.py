"""
Unit tests for server configuration.
"""

import json
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

from webserver.config import ConfigError, ServerConfig


class TestDefaults:
    def test_defaults(self):
        config = ServerConfig()

        assert config.port == 8080
        assert config.document_root == "./StaticFiles"
        assert config.log_directory == "./Logs"
        assert config.host == "0.0.0.0"
        assert config.read_timeout is None
        assert config.max_workers is None

    def test_defaults_are_valid(self):
        ServerConfig().validate()

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            ServerConfig().port = 9000


class TestValidate:
    @pytest.mark.parametrize("kwargs", [
        {"port": -1},
        {"port": 65536},
        {"document_root": ""},
        {"log_directory": ""},
        {"backlog": 0},
        {"buffer_size": 0},
        {"read_timeout": 0},
        {"read_timeout": -1.5},
        {"max_line_length": 0},
        {"max_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"log_level": "LOUD"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            ServerConfig(**kwargs).validate()

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()


class TestJSONFile:
    """Tests for the Config/server-config.json file."""

    def test_from_file(self, tmp_path: Path):
        path = tmp_path / "server-config.json"
        path.write_text(json.dumps({
            "Port": 9090,
            "DocumentRoot": "/srv/www",
            "LogDirectory": "/var/log/web",
            "ReadTimeout": 15,
            "LogLevel": "debug",
        }))

        config = ServerConfig.from_file(path)

        assert config.port == 9090
        assert config.document_root == "/srv/www"
        assert config.log_directory == "/var/log/web"
        assert config.read_timeout == 15.0
        assert config.log_level == "DEBUG"

    def test_partial_file_keeps_defaults(self, tmp_path: Path):
        path = tmp_path / "server-config.json"
        path.write_text('{"Port": 8081}')

        config = ServerConfig.from_file(path)

        assert config.port == 8081
        assert config.document_root == "./StaticFiles"

    def test_unknown_keys_ignored(self):
        config = ServerConfig.from_dict({"Port": 8082, "Theme": "dark"})

        assert config.port == 8082

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "server-config.json"
        path.write_text("{not json")

        with pytest.raises(ConfigError):
            ServerConfig.from_file(path)

    @pytest.mark.parametrize("data", [
        {"Port": "eighty"},
        {"Port": True},
        {"Port": 80.5},
        {"DocumentRoot": 5},
        {"Port": 70000},
        [1, 2, 3],
    ])
    def test_bad_values(self, data):
        with pytest.raises(ConfigError):
            ServerConfig.from_dict(data)

    def test_load_or_create_writes_defaults(self, tmp_path: Path):
        """A missing file is created with indented defaults."""
        path = tmp_path / "Config" / "server-config.json"

        config = ServerConfig.load_or_create(path)

        assert config == ServerConfig()
        assert path.exists()
        text = path.read_text()
        assert json.loads(text) == {
            "Port": 8080,
            "DocumentRoot": "./StaticFiles",
            "LogDirectory": "./Logs",
        }
        assert '\n  "Port": 8080' in text

    def test_load_or_create_reads_existing(self, tmp_path: Path):
        path = tmp_path / "server-config.json"
        ServerConfig(port=9000, document_root="site").save(path)

        config = ServerConfig.load_or_create(path)

        assert config.port == 9000
        assert config.document_root == "site"

    def test_load_or_create_falls_back_on_bad_file(self, tmp_path: Path, caplog):
        """An invalid file is reported and the defaults are used."""
        path = tmp_path / "server-config.json"
        path.write_text("{broken")

        with caplog.at_level("ERROR", logger="webserver.config"):
            config = ServerConfig.load_or_create(path)

        assert config == ServerConfig()
        assert "Using defaults" in caplog.text
        assert path.read_text() == "{broken"


class TestOverrides:
    def test_with_env(self):
        env = {
            "WEBSERVER_PORT": "9999",
            "WEBSERVER_DOCUMENT_ROOT": "/tmp/www",
            "WEBSERVER_LOG_DIRECTORY": "/tmp/logs",
            "WEBSERVER_HOST": "127.0.0.1",
            "WEBSERVER_READ_TIMEOUT": "2.5",
            "WEBSERVER_LOG_LEVEL": "warning",
        }

        config = ServerConfig().with_env(env)

        assert config.port == 9999
        assert config.document_root == "/tmp/www"
        assert config.log_directory == "/tmp/logs"
        assert config.host == "127.0.0.1"
        assert config.read_timeout == 2.5
        assert config.log_level == "WARNING"

    def test_with_env_ignores_unset_and_empty(self):
        config = ServerConfig(port=1234).with_env({"WEBSERVER_PORT": "", "OTHER": "x"})

        assert config.port == 1234

    def test_with_env_invalid(self):
        with pytest.raises(ConfigError):
            ServerConfig().with_env({"WEBSERVER_PORT": "http"})

    def test_override_skips_none(self):
        config = ServerConfig(port=1234).override(port=None, host="127.0.0.1")

        assert config.port == 1234
        assert config.host == "127.0.0.1"

    def test_override_unknown_setting(self):
        with pytest.raises(ConfigError):
            ServerConfig().override(colour="blue")

    def test_precedence(self, tmp_path: Path):
        """CLI beats environment beats file beats defaults."""
        path = tmp_path / "server-config.json"
        path.write_text('{"Port": 1111, "DocumentRoot": "from-file", "LogDirectory": "logs-file"}')

        config = (ServerConfig.from_file(path)
            .with_env({"WEBSERVER_PORT": "2222", "WEBSERVER_DOCUMENT_ROOT": "from-env"})
            .override(port=3333))

        assert config.port == 3333
        assert config.document_root == "from-env"
        assert config.log_directory == "logs-file"
        assert config.host == "0.0.0.0"
