from __future__ import annotations

import os
import sys
import tomllib
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
DEFAULT_CONFIG_FILE = Path.home() / ".config" / "sheet_finder" / "config.toml"
ENV_FILE_ENV_VAR = "SHEET_FINDER_ENV_FILE"
CONFIG_FILE_ENV_VAR = "SHEET_FINDER_CONFIG_FILE"

DEFAULT_ROOT_FOLDER_ID = "10ZuF87OUmjYRJphLWbGcpIlEUyX1ryWt"
DEFAULT_DRIVE_API_URL = "https://www.googleapis.com/drive/v3/files"
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

_PATH_TO_ENV_KEY: dict[tuple[str, str], str] = {
    ("google", "api_key"): "GOOGLE_API_KEY",
    ("google", "root_folder_id"): "GOOGLE_DRIVE_ROOT_FOLDER_ID",
    ("google", "api_url"): "GOOGLE_DRIVE_API_URL",
    ("http", "timeout_seconds"): "SHEET_FINDER_HTTP_TIMEOUT",
}
_ENV_KEY_TO_PATH = {env_name: path for path, env_name in _PATH_TO_ENV_KEY.items()}

_DEFAULTS: dict[tuple[str, str], str] = {
    ("google", "root_folder_id"): DEFAULT_ROOT_FOLDER_ID,
    ("google", "api_url"): DEFAULT_DRIVE_API_URL,
    ("http", "timeout_seconds"): str(DEFAULT_HTTP_TIMEOUT_SECONDS),
}

_SECTION_FIELDS: dict[str, set[str]] = {}
for section, field in _PATH_TO_ENV_KEY:
    _SECTION_FIELDS.setdefault(section, set()).add(field)


class ConfigError(RuntimeError):
    """Raised when the configuration cannot be loaded."""


class MissingCredentialError(ConfigError):
    """Raised when a request needs the Drive API key and none is configured."""

    def __init__(self) -> None:
        super().__init__(f"{_PATH_TO_ENV_KEY[('google', 'api_key')]} is not configured")


@dataclass(frozen=True)
class GoogleConfig:
    api_key: str | None
    root_folder_id: str
    api_url: str

    def require_api_key(self) -> str:
        if not self.api_key:
            raise MissingCredentialError()
        return self.api_key


@dataclass(frozen=True)
class HttpConfig:
    timeout_seconds: float


@dataclass(frozen=True)
class AppConfig:
    google: GoogleConfig
    http: HttpConfig


_CONFIG_CACHE: AppConfig | None = None


def get_config() -> AppConfig:
    """Return a cached configuration using the default sources."""
    global _CONFIG_CACHE
    if _CONFIG_CACHE is None:
        _CONFIG_CACHE = load_config()
    return _CONFIG_CACHE


def load_config(
    *,
    env_file: Path | str | None = None,
    config_file: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load a configuration from `.env`, the personal config file, and environment variables.

    The API key may be absent here; requests that need it call
    `GoogleConfig.require_api_key()` and fail with `MissingCredentialError`.
    """
    env_path = _resolve_env_file(env_file)
    config_path = _resolve_config_file(config_file)

    merged: dict[str, Any] = {}
    _deep_merge(merged, _env_mapping_to_nested(_parse_env_file(env_path)))
    _deep_merge(merged, _filter_known_sections(_read_config_file(config_path)))
    runtime_values = environ if environ is not None else os.environ
    _deep_merge(merged, _env_mapping_to_nested(runtime_values))
    return _build_app_config(merged)


def doctor(*, env_file: Path | str | None = None, config_file: Path | str | None = None) -> bool:
    """Validate configuration sources and print a diagnostic summary."""
    try:
        config = load_config(env_file=env_file, config_file=config_file)
        api_key = config.google.require_api_key()
    except ConfigError as exc:
        print("Configuration invalid:", file=sys.stderr)
        print(f"  {exc}", file=sys.stderr)
        return False

    print("Configuration looks good.", file=sys.stdout)
    print(f"  Drive API key: {mask_secret(api_key)}", file=sys.stdout)
    print(f"  Drive root folder ID: {config.google.root_folder_id}", file=sys.stdout)
    print(f"  Drive API URL: {config.google.api_url}", file=sys.stdout)
    print(f"  HTTP timeout: {config.http.timeout_seconds:g}s", file=sys.stdout)
    return True


def mask_secret(value: str) -> str:
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}...{value[-4:]}"


def _build_app_config(data: Mapping[str, Any]) -> AppConfig:
    values: dict[tuple[str, str], str] = {}
    for path in _PATH_TO_ENV_KEY:
        section_name, key = path
        section = data.get(section_name)
        raw_value = section.get(key) if isinstance(section, Mapping) else None
        if raw_value is None or str(raw_value).strip() == "":
            default = _DEFAULTS.get(path)
            if default is not None:
                values[path] = default
            continue
        values[path] = str(raw_value).strip()

    timeout_raw = values[("http", "timeout_seconds")]
    try:
        timeout = float(timeout_raw)
    except ValueError as exc:
        raise ConfigError(
            f"Invalid value for {_PATH_TO_ENV_KEY[('http', 'timeout_seconds')]}: {timeout_raw!r}"
        ) from exc
    if timeout <= 0:
        raise ConfigError(
            f"{_PATH_TO_ENV_KEY[('http', 'timeout_seconds')]} must be positive, got {timeout_raw!r}"
        )

    return AppConfig(
        google=GoogleConfig(
            api_key=values.get(("google", "api_key")),
            root_folder_id=values[("google", "root_folder_id")],
            api_url=values[("google", "api_url")],
        ),
        http=HttpConfig(timeout_seconds=timeout),
    )


def _resolve_env_file(explicit: Path | str | None) -> Path:
    if explicit is not None:
        return Path(explicit)
    override = os.environ.get(ENV_FILE_ENV_VAR)
    if override:
        return Path(override)
    return DEFAULT_ENV_FILE


def _resolve_config_file(explicit: Path | str | None) -> Path:
    if explicit is not None:
        return Path(explicit)
    override = os.environ.get(CONFIG_FILE_ENV_VAR)
    if override:
        return Path(override)
    return DEFAULT_CONFIG_FILE


def _parse_env_file(path: Path) -> dict[str, str]:
    try:
        contents = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as exc:
        raise ConfigError(f"Failed to read env file {path}: {exc}") from exc

    values: dict[str, str] = {}
    for raw_line in contents.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :]
        if "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        values[key.strip()] = _strip_quotes(raw_value.strip())
    return values


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and ((value[0] == value[-1]) and value.startswith(("'", '"'))):
        return value[1:-1]
    return value


def _read_config_file(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid TOML: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc


def _filter_known_sections(raw: Mapping[str, Any]) -> dict[str, Any]:
    filtered: dict[str, Any] = {}
    for section, allowed_fields in _SECTION_FIELDS.items():
        raw_section = raw.get(section)
        if not isinstance(raw_section, Mapping):
            continue
        filtered_section = {
            field: str(raw_section[field]) for field in allowed_fields if field in raw_section
        }
        if filtered_section:
            filtered[section] = filtered_section
    return filtered


def _env_mapping_to_nested(mapping: Mapping[str, Any]) -> dict[str, Any]:
    nested: dict[str, Any] = {}
    for key, value in mapping.items():
        path = _ENV_KEY_TO_PATH.get(key)
        if not path:
            continue
        nested.setdefault(path[0], {})[path[1]] = value
    return nested


def _deep_merge(target: MutableMapping[str, Any], data: Mapping[str, Any]) -> None:
    for key, value in data.items():
        if isinstance(value, Mapping):
            child = target.get(key)
            if not isinstance(child, MutableMapping):
                child = {}
                target[key] = child
            _deep_merge(child, value)
        elif value is not None:
            target[key] = value


__all__ = [
    "AppConfig",
    "ConfigError",
    "GoogleConfig",
    "HttpConfig",
    "MissingCredentialError",
    "doctor",
    "get_config",
    "load_config",
    "mask_secret",
]
