"""Settings loaded from config.yaml and environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, TypeVar

import yaml

T = TypeVar("T")

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


class ConfigError(Exception):
    """Raised when the configuration cannot be read or is invalid."""


def _setting(key: str, env: str, *, default: Any, required: bool = False) -> Any:
    return field(
        default=default,
        metadata={"key": key, "env": env, "required": required, "kind": type(default)},
    )


@dataclass(frozen=True)
class ClientConfig:
    """Client settings."""

    addr: str = _setting("addr", "ADDR", default="", required=True)
    is_interactive: bool = _setting("isInteractive", "INTERACTIVE", default=False)
    send_wrong_challenge: bool = _setting(
        "sendWrongChallenge", "SEND_WRONG_CHALLENGE", default=False
    )


@dataclass(frozen=True)
class ServerConfig:
    """Server settings."""

    addr: str = _setting("addr", "ADDR", default="", required=True)


def _coerce(key: str, value: Any, kind: Any) -> Any:
    if kind is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            if value == "":
                return False
            if value in _TRUE:
                return True
            if value in _FALSE:
                return False
        raise ConfigError(f"cannot parse {value!r} as a boolean for {key!r}")
    if kind is str:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (int, float)):
            return str(value)
        raise ConfigError(f"cannot use {value!r} as a string for {key!r}")
    raise ConfigError(f"unsupported setting type for {key!r}")


def _read_file(path: str | os.PathLike[str]) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError:
        return {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"failed to read config file {os.fspath(path)!r}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("config file must hold a mapping")
    return data


def load_config(
    config_cls: type[T],
    path: str | os.PathLike[str] = "config.yaml",
    environ: Mapping[str, str] | None = None,
) -> T:
    """Build config_cls from the file at path, with environment variables taking precedence.

    A missing file is not an error; unknown keys in the file and missing
    required settings are.
    """
    env = os.environ if environ is None else environ
    settings = {f.metadata["key"].lower(): f for f in fields(config_cls)}

    file_values: dict[str, Any] = {}
    for key, value in _read_file(path).items():
        lowered = str(key).lower()
        if lowered not in settings:
            raise ConfigError(f"unknown configuration key {key!r}")
        file_values[lowered] = value

    values: dict[str, Any] = {}
    for lowered, setting in settings.items():
        key = setting.metadata["key"]
        env_value = env.get(setting.metadata["env"], "")
        if env_value != "":
            raw = env_value
        else:
            raw = file_values.get(lowered)
        value = setting.default if raw is None else _coerce(key, raw, setting.metadata["kind"])
        if setting.metadata["required"] and not value:
            raise ConfigError(f"setting {key!r} is required")
        values[setting.name] = value
    return config_cls(**values)