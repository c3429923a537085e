"""Configuration module — frozen dataclasses built from defaults, YAML and environment."""

import logging
import os
from dataclasses import dataclass, field, fields, replace

import yaml

from logserver.errors import ConfigError

logger = logging.getLogger(__name__)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _default_static_fields() -> dict:
    return {
        "application": "mcp-logging-service",
        "environment": "development",
    }


@dataclass(frozen=True)
class MirrorConfig:
    enabled: bool = True
    host: str = "localhost"
    port: int = 12201
    hostname: str = "mcp-server-logging"
    source: str = "mcp-server"
    project: str = "Agents"
    static_fields: dict = field(default_factory=_default_static_fields)
    chunk_size: int = 1400
    timeout: float = 10.0
    compress: bool = True


@dataclass(frozen=True)
class Config:
    log_dir: str = "./logs"
    default_log_file: str = "application.log"
    diagnostics_file: str = "graylog_debug.log"
    diagnostics_level: str = "INFO"
    server_name: str = "logging"
    server_version: str = "1.0.0"
    mirror: MirrorConfig = field(default_factory=MirrorConfig)


# field name -> kind, per section
_FIELD_KINDS = {
    None: {
        "log_dir": "str",
        "default_log_file": "str",
        "diagnostics_file": "str",
        "diagnostics_level": "level",
        "server_name": "str",
        "server_version": "str",
    },
    "mirror": {
        "enabled": "bool",
        "host": "str",
        "port": "int",
        "hostname": "str",
        "source": "str",
        "project": "str",
        "static_fields": "dict",
        "chunk_size": "int",
        "timeout": "float",
        "compress": "bool",
    },
}

# env var -> (section, field name)
_ENV_OVERRIDES = {
    "LOG_DIR": (None, "log_dir"),
    "DEFAULT_LOG_FILE": (None, "default_log_file"),
    "DIAGNOSTICS_FILE": (None, "diagnostics_file"),
    "DIAGNOSTICS_LEVEL": (None, "diagnostics_level"),
    "MIRROR_ENABLED": ("mirror", "enabled"),
    "GRAYLOG_HOST": ("mirror", "host"),
    "GRAYLOG_PORT": ("mirror", "port"),
    "GRAYLOG_HOSTNAME": ("mirror", "hostname"),
    "GRAYLOG_SOURCE": ("mirror", "source"),
    "GRAYLOG_PROJECT": ("mirror", "project"),
    "GRAYLOG_CHUNK_SIZE": ("mirror", "chunk_size"),
    "GRAYLOG_TIMEOUT": ("mirror", "timeout"),
    "GRAYLOG_COMPRESS": ("mirror", "compress"),
}

DIAGNOSTICS_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _coerce(kind: str, value):
    """Convert a YAML or env value to the field's type. Raises ValueError."""
    if kind == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return _parse_bool(value)
    elif kind in ("int", "float"):
        # bool is an int subclass, never a number here
        if isinstance(value, bool):
            raise ValueError("expected a number")
        convert = int if kind == "int" else float
        if isinstance(value, str):
            return convert(value.strip())
        if isinstance(value, int) or (kind == "float" and isinstance(value, float)):
            return convert(value)
    elif kind in ("str", "level"):
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            text = str(value)
            if kind == "level":
                text = text.strip().upper()
                if text not in DIAGNOSTICS_LEVELS:
                    raise ValueError(f"expected one of {', '.join(DIAGNOSTICS_LEVELS)}")
            return text
    elif kind == "dict":
        if isinstance(value, dict):
            return {str(k): v for k, v in value.items()}
    raise ValueError(f"expected {kind}, got {type(value).__name__}")


def load_yaml_config(path: str | None) -> dict:
    """Load a YAML config file. Returns an empty dict if there is no path or no file."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def _check_keys(section: str, data: dict, cls) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(str(key) for key in set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in {section}: {', '.join(unknown)}")


def _coerce_section(section: str | None, data: dict) -> dict:
    kinds = _FIELD_KINDS[section]
    result = {}
    for key, value in data.items():
        try:
            result[key] = _coerce(kinds[key], value)
        except ValueError as e:
            name = f"{section}.{key}" if section else key
            raise ConfigError(f"Invalid value for {name}: {value!r} ({e})") from e
    return result


def _from_mapping(data: dict) -> Config:
    data = dict(data)
    mirror_data = data.pop("mirror", None) or {}
    if not isinstance(mirror_data, dict):
        raise ConfigError("'mirror' section must be a mapping")

    _check_keys("config", data, Config)
    _check_keys("mirror", mirror_data, MirrorConfig)

    mirror = MirrorConfig(**_coerce_section("mirror", mirror_data))
    return Config(mirror=mirror, **_coerce_section(None, data))


def _apply_env(config: Config, environ) -> Config:
    top, mirror = {}, {}
    for var, (section, name) in _ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is None:
            continue
        try:
            value = _coerce(_FIELD_KINDS[section][name], raw)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {var}: {raw!r}") from e
        (mirror if section == "mirror" else top)[name] = value

    if mirror:
        top["mirror"] = replace(config.mirror, **mirror)
    return replace(config, **top) if top else config


def load_config(path: str | None = None, environ=None) -> Config:
    """Build Config from defaults, an optional YAML file and environment variables.

    The YAML path comes from ``path`` or the ``CONFIG_PATH`` environment
    variable. Environment variables win over the file.
    """
    environ = os.environ if environ is None else environ
    yaml_data = load_yaml_config(path or environ.get("CONFIG_PATH"))
    config = _from_mapping(yaml_data)
    config = _apply_env(config, environ)

    if not 0 < config.mirror.port < 65536:
        raise ConfigError("mirror.port must be between 1 and 65535")
    if config.mirror.chunk_size <= 12:
        raise ConfigError("mirror.chunk_size must be larger than the GELF chunk header")
    if config.mirror.timeout <= 0:
        raise ConfigError("mirror.timeout must be positive")
    return config
