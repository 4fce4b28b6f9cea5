"""Application configuration loaded from a YAML file with environment overrides."""

from __future__ import annotations

import functools
import os
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = "config.yaml"


class ConfigError(Exception):
    """Raised when the configuration cannot be read or interpreted."""


@dataclass
class DatabaseConfig:
    """Connection settings for the backing database."""

    driver: str = ""
    host: str = ""
    port: int = 0
    username: str = ""
    password: str = field(default="", repr=False)
    name: str = ""
    ssl_mode: str = ""
    timezone: str = ""


@dataclass
class ServerConfig:
    """Settings for the HTTP application."""

    port: int = 0
    environment: str = ""
    short_url: str = ""


@dataclass
class Config:
    """The complete configuration, plus the flat settings it was built from."""

    app: ServerConfig | None = None
    database: DatabaseConfig | None = None
    settings: dict[str, Any] = field(default_factory=dict, repr=False)
    environ: Mapping[str, str] = field(default_factory=dict, repr=False, compare=False)

    def get_string(self, key: str) -> str:
        """Return the value for a dotted key as a string, or "" when unset."""
        key = key.lower()
        env_value = self.environ.get(_env_name(key))
        if env_value is not None:
            return env_value
        return _to_str(self.settings.get(key))


def _env_name(key: str) -> str:
    return key.replace(".", "_").upper()


def _flatten(mapping: Mapping[Any, Any], prefix: str = "") -> Iterator[tuple[str, Any]]:
    for raw_key, value in mapping.items():
        key = f"{prefix}{raw_key}".lower()
        if isinstance(value, Mapping):
            yield from _flatten(value, key + ".")
        else:
            yield key, value


def _to_str(value: Any) -> str:
    if value is None or isinstance(value, (Mapping, list, tuple)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_int(value: Any, key: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ConfigError(f"Error unmarshaling config: {key} is not an integer: {value!r}")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ConfigError(
            f"Error unmarshaling config: {key} is not an integer: {value!r}"
        ) from None


def _str_field(value: Any, key: str) -> str:
    return _to_str(value)


_Converter = Callable[[Any, str], Any]

_SERVER_FIELDS: dict[str, tuple[str, _Converter]] = {
    "port": ("port", _to_int),
    "environment": ("environment", _str_field),
    "short_url": ("short_url", _str_field),
}

_DATABASE_FIELDS: dict[str, tuple[str, _Converter]] = {
    "driver": ("driver", _str_field),
    "host": ("host", _str_field),
    "port": ("port", _to_int),
    "username": ("username", _str_field),
    "password": ("password", _str_field),
    "name": ("name", _str_field),
    "sslmode": ("ssl_mode", _str_field),
    "timezone": ("timezone", _str_field),
}


def _build_section(
    cls: type,
    fields: Mapping[str, tuple[str, _Converter]],
    section: str,
    settings: Mapping[str, Any],
) -> Any:
    prefix = section + "."
    kwargs = {}
    for yaml_key, (attr, convert) in fields.items():
        full_key = prefix + yaml_key
        if full_key in settings:
            kwargs[attr] = convert(settings[full_key], full_key)
    return cls(**kwargs)


def load_config(
    path: str | os.PathLike[str] = DEFAULT_CONFIG_PATH,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Read the YAML file at *path*, applying overrides from *environ*.

    An environment variable overrides a key when its name is the key upper-cased
    with dots replaced by underscores, e.g. ``APP_SHORT_URL`` for ``app.short_url``.
    """
    if environ is None:
        environ = os.environ
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Error reading config file: {exc}") from exc
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Error reading config file: {exc}") from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError("Error reading config file: top level must be a mapping")

    settings = dict(_flatten(raw))
    for key in settings:
        override = environ.get(_env_name(key))
        if override is not None:
            settings[key] = override

    sections = {str(k).lower() for k, v in raw.items() if isinstance(v, Mapping)}
    sections.update(key.split(".", 1)[0] for key in settings if "." in key)

    app = (
        _build_section(ServerConfig, _SERVER_FIELDS, "app", settings)
        if "app" in sections
        else None
    )
    database = (
        _build_section(DatabaseConfig, _DATABASE_FIELDS, "database", settings)
        if "database" in sections
        else None
    )
    return Config(app=app, database=database, settings=settings, environ=environ)


@functools.cache
def get_config() -> Config:
    """Load ``config.yaml`` from the working directory once and reuse it."""
    import logging

    config = load_config(DEFAULT_CONFIG_PATH)
    logging.getLogger(__name__).info("Configuration loaded successfully: %s", config)
    return config