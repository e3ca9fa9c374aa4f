"""
Geocoding client (Nominatim-compatible).

Turns a free-text place label ("Koramangala, Bangalore") into a `GeoPoint` so patients can
search without knowing coordinates. Results are cached on disk per normalized label;
misses are not cached so a later retry can succeed.

Failures:
- no match -> `GeocodingFailed`
- transport / HTTP / payload errors -> `BackendUnavailable` (no automatic retry)
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from doctorfinder.config.settings import Settings
from doctorfinder.core.cache import FileCache
from doctorfinder.core.env import resolve_project_path
from doctorfinder.core.http import get_json
from doctorfinder.domain.errors import BackendUnavailable, GeocodingFailed, InvalidCoordinates
from doctorfinder.domain.models import GeoPoint

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def geocode(self, label: str) -> GeoPoint: ...


def normalize_label(label: str) -> str:
    return " ".join(label.lower().split())


def build_cache(settings: Settings) -> FileCache:
    return FileCache(
        resolve_project_path(settings.cache.dir),
        enabled=settings.cache.enabled,
        default_ttl_seconds=settings.cache.default_ttl_seconds,
    )


class NominatimGeocoder:
    """Fetches and caches `/search?format=jsonv2` lookups."""

    def __init__(self, settings: Settings, cache: FileCache, *, transport: httpx.BaseTransport | None = None):
        self._settings = settings
        self._cache = cache
        self._transport = transport

    def _fetch(self, label: str) -> dict[str, float] | None:
        cfg = self._settings.geocoder
        params: dict[str, Any] = {"q": label, "format": "jsonv2", "limit": 1}
        if cfg.country_codes:
            params["countrycodes"] = ",".join(cfg.country_codes)
        logger.info("Geocoding %r", label)
        try:
            payload = get_json(
                cfg.base_url,
                params=params,
                headers={"User-Agent": cfg.user_agent},
                timeout_seconds=self._settings.app.http_timeout_seconds,
                transport=self._transport,
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Geocoder request failed for %r: %s", label, exc)
            raise BackendUnavailable("geocoder", str(exc)) from exc

        if not isinstance(payload, list) or not payload:
            return None
        first = payload[0]
        try:
            return {"lat": float(first["lat"]), "lng": float(first["lon"])}
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendUnavailable("geocoder", f"unexpected payload: {first!r}") from exc

    def geocode(self, label: str) -> GeoPoint:
        """Resolve `label` to a point; raises GeocodingFailed when nothing matches."""
        key = normalize_label(label)
        if not key:
            raise GeocodingFailed(label)
        if not self._settings.geocoder.enabled:
            raise BackendUnavailable("geocoder", "disabled by configuration")

        hit = self._cache.get_or_set(
            "geocode",
            key,
            lambda: self._fetch(label),
            ttl_seconds=int(self._settings.geocoder.cache_ttl_seconds),
        )
        if not isinstance(hit, dict):
            raise GeocodingFailed(label)
        try:
            return GeoPoint.of(hit.get("lat"), hit.get("lng"))
        except InvalidCoordinates as exc:
            raise BackendUnavailable("geocoder", f"returned invalid coordinates for {label!r}") from exc
