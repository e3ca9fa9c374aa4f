# src/doctorfinder/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/doctorfinder/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `DOCTORFINDER_CONFIG_PATH`
- environment variables (e.g., `DOCTORFINDER_STORE_PATH`, `DOCTORFINDER_LOG_LEVEL`)

Design rule:
- Tuning knobs (default radius, grid cell size, geocoder endpoint) live in YAML, not in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from doctorfinder.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `doctorfinder.config`."""
    text = resources.files("doctorfinder.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "DoctorFinder"
    http_timeout_seconds: float = Field(10, gt=0)
    log_level: str = "INFO"


class CacheSettings(BaseModel):
    enabled: bool = True
    dir: str = ".cache/doctorfinder"
    default_ttl_seconds: int = 60 * 60 * 24


class StoreSettings(BaseModel):
    backend: Literal["json", "memory"] = "json"
    path: str = "data/doctors.json"


class IndexSettings(BaseModel):
    cell_size_deg: float = Field(0.1, gt=0, le=90)


class SearchSettings(BaseModel):
    default_radius_km: float = Field(10, gt=0)
    max_radius_km: float = Field(500, gt=0)
    default_mode: Literal["near", "within"] = "near"


class GeocoderSettings(BaseModel):
    enabled: bool = True
    base_url: str = "https://nominatim.openstreetmap.org/search"
    user_agent: str = "doctorfinder/0.1.0 (+https://local)"
    country_codes: list[str] = Field(default_factory=list)
    cache_ttl_seconds: int = 60 * 60 * 24 * 7


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    index: IndexSettings = Field(default_factory=IndexSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    geocoder: GeocoderSettings = Field(default_factory=GeocoderSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: the whitelist is kept small; anything else belongs in a YAML file.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("DOCTORFINDER_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    cache_dir = os.getenv("DOCTORFINDER_CACHE_DIR")
    if cache_dir:
        data.setdefault("cache", {})["dir"] = cache_dir

    store_path = os.getenv("DOCTORFINDER_STORE_PATH")
    if store_path:
        data.setdefault("store", {})["path"] = store_path

    store_backend = os.getenv("DOCTORFINDER_STORE_BACKEND")
    if store_backend:
        data.setdefault("store", {})["backend"] = store_backend.strip().lower()

    geocoder_url = os.getenv("DOCTORFINDER_GEOCODER_URL")
    if geocoder_url:
        data.setdefault("geocoder", {})["base_url"] = geocoder_url

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("DOCTORFINDER_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
