"""Tests for the config module."""

import pytest

from logserver.config import Config, MirrorConfig, _parse_bool, load_config
from logserver.errors import ConfigError


class TestParserBool:
    def test_true_values(self):
        for val in ("true", "True", "TRUE", "1", "yes", "YES", " true "):
            assert _parse_bool(val) is True

    def test_false_values(self):
        for val in ("false", "False", "0", "no", "NO", "", "random"):
            assert _parse_bool(val) is False


class TestConfigDefaults:
    def test_default_log_dir(self):
        cfg = Config()
        assert cfg.log_dir == "./logs"
        assert cfg.default_log_file == "application.log"

    def test_default_diagnostics(self):
        cfg = Config()
        assert cfg.diagnostics_file == "graylog_debug.log"
        assert cfg.diagnostics_level == "INFO"

    def test_default_mirror(self):
        cfg = MirrorConfig()
        assert cfg.enabled is True
        assert cfg.port == 12201
        assert cfg.project == "Agents"
        assert cfg.chunk_size == 1400
        assert cfg.static_fields == {
            "application": "mcp-logging-service",
            "environment": "development",
        }

    def test_frozen(self):
        cfg = Config()
        with pytest.raises(AttributeError):
            cfg.log_dir = "/tmp"


class TestLoadConfig:
    def test_defaults(self):
        cfg = load_config(environ={})
        assert cfg == Config()

    def test_env_overrides(self):
        environ = {
            "LOG_DIR": "/tmp/logs",
            "DEFAULT_LOG_FILE": "svc.log",
            "DIAGNOSTICS_FILE": "",
            "DIAGNOSTICS_LEVEL": "debug",
            "MIRROR_ENABLED": "false",
            "GRAYLOG_HOST": "collector.local",
            "GRAYLOG_PORT": "12202",
            "GRAYLOG_PROJECT": "agents",
            "GRAYLOG_CHUNK_SIZE": "8192",
            "GRAYLOG_TIMEOUT": "2.5",
            "GRAYLOG_COMPRESS": "0",
        }
        cfg = load_config(environ=environ)
        assert cfg.log_dir == "/tmp/logs"
        assert cfg.default_log_file == "svc.log"
        assert cfg.diagnostics_file == ""
        assert cfg.diagnostics_level == "DEBUG"
        assert cfg.mirror.enabled is False
        assert cfg.mirror.host == "collector.local"
        assert cfg.mirror.port == 12202
        assert cfg.mirror.project == "agents"
        assert cfg.mirror.chunk_size == 8192
        assert cfg.mirror.timeout == 2.5
        assert cfg.mirror.compress is False

    def test_invalid_env_value(self):
        with pytest.raises(ConfigError, match="GRAYLOG_PORT"):
            load_config(environ={"GRAYLOG_PORT": "not-a-port"})

    def test_invalid_chunk_size(self):
        with pytest.raises(ConfigError, match="chunk_size"):
            load_config(environ={"GRAYLOG_CHUNK_SIZE": "12"})

    def test_env_port_out_of_range(self):
        with pytest.raises(ConfigError, match="port"):
            load_config(environ={"GRAYLOG_PORT": "70000"})

    def test_env_unknown_diagnostics_level(self):
        with pytest.raises(ConfigError, match="DIAGNOSTICS_LEVEL"):
            load_config(environ={"DIAGNOSTICS_LEVEL": "loud"})


class TestYamlConfig:
    def test_yaml_values(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(
            "log_dir: /var/log/app\n"
            "mirror:\n"
            "  host: graylog.example.com\n"
            "  static_fields:\n"
            "    environment: production\n"
        )
        cfg = load_config(str(path), environ={})
        assert cfg.log_dir == "/var/log/app"
        assert cfg.mirror.host == "graylog.example.com"
        assert cfg.mirror.static_fields == {"environment": "production"}
        assert cfg.mirror.port == 12201

    def test_env_wins_over_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("mirror:\n  host: from-yaml\n")
        cfg = load_config(str(path), environ={"GRAYLOG_HOST": "from-env"})
        assert cfg.mirror.host == "from-env"

    def test_config_path_env(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("default_log_file: other.log\n")
        cfg = load_config(environ={"CONFIG_PATH": str(path)})
        assert cfg.default_log_file == "other.log"

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "nope.yml"), environ={})
        assert cfg == Config()

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert load_config(str(path), environ={}) == Config()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("mirror: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(str(path), environ={})

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(str(path), environ={})

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("mirror:\n  bogus: 1\n")
        with pytest.raises(ConfigError, match="bogus"):
            load_config(str(path), environ={})

    @pytest.mark.parametrize("yaml_text, key", [
        ("mirror:\n  chunk_size: big\n", "mirror.chunk_size"),
        ("mirror:\n  port: true\n", "mirror.port"),
        ("mirror:\n  timeout: [1]\n", "mirror.timeout"),
        ("mirror:\n  static_fields: production\n", "mirror.static_fields"),
        ("mirror:\n  enabled: 3\n", "mirror.enabled"),
        ("diagnostics_level: 10\n", "diagnostics_level"),
        ("diagnostics_level: LOUD\n", "diagnostics_level"),
        ("log_dir: [a, b]\n", "log_dir"),
    ])
    def test_wrong_type_names_key(self, tmp_path, yaml_text, key):
        path = tmp_path / "config.yml"
        path.write_text(yaml_text)
        with pytest.raises(ConfigError, match=f"Invalid value for {key}"):
            load_config(str(path), environ={})

    def test_string_values_coerced(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(
            "diagnostics_level: debug\n"
            "mirror:\n"
            "  port: '12205'\n"
            "  timeout: 3\n"
            "  enabled: 'no'\n"
        )
        cfg = load_config(str(path), environ={})
        assert cfg.diagnostics_level == "DEBUG"
        assert cfg.mirror.port == 12205
        assert cfg.mirror.timeout == 3.0
        assert isinstance(cfg.mirror.timeout, float)
        assert cfg.mirror.enabled is False

    def test_port_out_of_range(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("mirror:\n  port: 70000\n")
        with pytest.raises(ConfigError, match="port"):
            load_config(str(path), environ={})
