"""
Tests for configuration models and hierarchical loading.

Precedence, lowest to highest: defaults, config file, FEEDCEL_* environment
variables, CLI arguments.
"""

import json
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from feedcel.core.config import AppConfig, ConfigManager, FetchConfig, FilterConfig, OutputConfig, ServerConfig
from feedcel.core.exceptions import ConfigurationError, ErrorCode


@pytest.fixture(autouse=True)
def clean_environment(tmp_path, monkeypatch):
    """Run every test from an empty directory with no FEEDCEL_* variables."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    for name in list(os.environ):
        if name.startswith("FEEDCEL_"):
            monkeypatch.delenv(name)


class TestConfigModels:
    """Test model defaults and validation."""

    def test_defaults(self):
        config = AppConfig()
        assert config.fetch.timeout == 10.0
        assert config.fetch.user_agent is None
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 8080
        assert config.server.compile_error_status == 500
        assert config.output.default_format == "json"
        assert config.output.show_excluded is True
        assert config.filter.default_expression == "true"
        assert config.filter.on_error == "exclude"
        assert config.effective_log_level() == "WARNING"

    @pytest.mark.parametrize("model,values", [
        (FetchConfig, {'timeout': 0}),
        (FetchConfig, {'timeout': 301}),
        (ServerConfig, {'port': 0}),
        (ServerConfig, {'compile_error_status': 200}),
        (OutputConfig, {'default_format': "csv"}),
        (FilterConfig, {'on_error': "ignore"}),
        (AppConfig, {'log_level': "LOUD"}),
        (AppConfig, {'unknown': 1}),
    ])
    def test_invalid_values(self, model, values):
        with pytest.raises(ValidationError):
            model(**values)

    def test_values_normalized(self):
        assert OutputConfig(default_format="RSS").default_format == "rss"
        assert FilterConfig(on_error="ABORT").on_error == "abort"
        assert AppConfig(log_level="info").log_level == "INFO"

    @pytest.mark.parametrize("flags,expected", [
        ({'verbose': True}, "INFO"),
        ({'debug': True}, "DEBUG"),
        ({'verbose': True, 'debug': True}, "DEBUG"),
        ({'log_level': "ERROR"}, "ERROR"),
    ])
    def test_effective_log_level(self, flags, expected):
        assert AppConfig(**flags).effective_log_level() == expected

    def test_validate_assignment(self):
        config = AppConfig()
        with pytest.raises(ValidationError):
            config.server.port = 70000


class TestConfigManager:
    """Test loading from files, environment and CLI arguments."""

    def test_defaults_without_sources(self):
        manager = ConfigManager()
        config = manager.load_config()
        assert config == AppConfig()
        assert manager.config is config

    def test_yaml_file(self, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(
            "fetch:\n  timeout: 3\n"
            "server:\n  port: 9000\n  compile_error_status: 400\n"
            "filter:\n  default_expression: has(item.Author)\n"
        )
        config = ConfigManager(config_file).load_config()

        assert config.fetch.timeout == 3.0
        assert config.server.port == 9000
        assert config.server.compile_error_status == 400
        assert config.filter.default_expression == "has(item.Author)"

    def test_json_file(self, tmp_path):
        config_file = tmp_path / "custom.json"
        config_file.write_text(json.dumps({'output': {'default_format': "atom"}}))
        assert ConfigManager(config_file).load_config().output.default_format == "atom"

    def test_discovers_file_in_working_directory(self, tmp_path):
        (tmp_path / "feedcel.yaml").write_text("verbose: true\n")
        assert ConfigManager().load_config().verbose is True

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("fetch:\n  timeout: 3\n")
        monkeypatch.setenv("FEEDCEL_FETCH_TIMEOUT", "7.5")
        monkeypatch.setenv("FEEDCEL_ON_ERROR", "abort")
        monkeypatch.setenv("FEEDCEL_SHOW_EXCLUDED", "no")

        config = ConfigManager(config_file).load_config()

        assert config.fetch.timeout == 7.5
        assert config.filter.on_error == "abort"
        assert config.output.show_excluded is False

    def test_cli_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("FEEDCEL_PORT", "9000")
        monkeypatch.setenv("FEEDCEL_FORMAT", "rss")

        config = ConfigManager().load_config(cli_args={'port': 9100, 'format': "atom", 'host': None})

        assert config.server.port == 9100
        assert config.output.default_format == "atom"
        assert config.server.host == "127.0.0.1"

    def test_cli_output_file(self):
        config = ConfigManager().load_config(cli_args={'output': Path("out.xml"), 'verbose': True})
        assert config.output.output_file == Path("out.xml")
        assert config.verbose is True

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigManager(tmp_path / "absent.yaml").load_config()
        assert exc_info.value.error_code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_malformed_file(self, tmp_path):
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("fetch: [unclosed\n")
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigManager(config_file).load_config()
        assert exc_info.value.error_code == ErrorCode.CONFIG_INVALID_FORMAT

    def test_file_must_be_mapping(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- one\n- two\n")
        with pytest.raises(ConfigurationError):
            ConfigManager(config_file).load_config()

    def test_invalid_environment_value(self, monkeypatch):
        monkeypatch.setenv("FEEDCEL_PORT", "eighty")
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigManager().load_config()
        assert exc_info.value.error_code == ErrorCode.CONFIG_ENVIRONMENT

    def test_validation_failure(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigManager().load_config(cli_args={'compile_error_status': 302})
        assert exc_info.value.error_code == ErrorCode.CONFIG_INVALID_VALUE
        assert exc_info.value.suggestions
