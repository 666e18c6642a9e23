from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y")


# Persistence keys
QUOTES_KEY = "quotes"
SELECTED_CATEGORY_KEY = "selectedCategory"
LAST_QUOTE_KEY = "lastQuote"

EXPORT_FILENAME = "quotes.json"

DEFAULT_QUOTES = [
    ("The best way to predict the future is to invent it.", "Inspiration"),
    ("Life is what happens when you're busy making other plans.", "Life"),
    ("JavaScript is the language of the web.", "Programming"),
    ("Simplicity is the soul of efficiency.", "Motivation"),
]


@dataclass(frozen=True)
class Settings:
    data_dir: str = "data"
    remote_base_url: str = "http://localhost:8080"
    remote_resource: str = "quotes"
    remote_timeout_s: float = 10.0
    sync_interval_s: float = 30.0
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_to_file: bool = True
    rest_host: str = "127.0.0.1"
    rest_port: int = 8080
    rest_source: str = "data/remote_quotes.json"

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)


# env var -> (field, parser)
_ENV_OVERRIDES = {
    "QK_DATA_DIR": ("data_dir", str),
    "QK_REMOTE_BASE_URL": ("remote_base_url", str),
    "QK_REMOTE_RESOURCE": ("remote_resource", str),
    "QK_REMOTE_TIMEOUT_S": ("remote_timeout_s", float),
    "QK_SYNC_INTERVAL_S": ("sync_interval_s", float),
    "QK_LOG_LEVEL": ("log_level", str),
    "QK_LOG_DIR": ("log_dir", str),
    "QK_LOG_TO_FILE": ("log_to_file", bool),
    "QK_REST_HOST": ("rest_host", str),
    "QK_REST_PORT": ("rest_port", int),
    "QK_REST_SOURCE": ("rest_source", str),
}


def load_config(path: str | Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    return cfg


def _from_env(settings: Settings) -> Settings:
    overrides: dict[str, Any] = {}
    for env_name, (field_name, kind) in _ENV_OVERRIDES.items():
        if os.getenv(env_name) is None:
            continue
        current = getattr(settings, field_name)
        if kind is int:
            overrides[field_name] = _env_int(env_name, current)
        elif kind is float:
            overrides[field_name] = _env_float(env_name, current)
        elif kind is bool:
            overrides[field_name] = _env_bool(env_name, current)
        else:
            overrides[field_name] = os.getenv(env_name)
    return replace(settings, **overrides)


def settings_from_mapping(cfg: Mapping[str, Any], base: Optional[Settings] = None) -> Settings:
    base = base or Settings()
    known = {f.name for f in fields(Settings)}
    return replace(base, **{k: v for k, v in cfg.items() if k in known})


def load_settings(path: str | Path | None = None) -> Settings:
    """Defaults, then the YAML file (if any), then QK_* environment variables."""
    settings = Settings()
    if path is not None:
        settings = settings_from_mapping(load_config(path), settings)
    return _from_env(settings)
