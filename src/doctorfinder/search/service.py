from __future__ import annotations

# Proximity search orchestration:
# - validate the query (origin, radius, mode) before touching the index
# - run one of the two index primitives ("near" or "within")
# - annotate every hit with its Haversine distance and sort by it
#
# Output order never depends on the index primitive: both modes are re-sorted by
# `distance_km` (then name, then id) so callers get reproducible results.

import logging
import math
from typing import Callable

from doctorfinder.config.settings import SearchSettings
from doctorfinder.core.geo import haversine_km
from doctorfinder.core.spatial_index import GeoIndex
from doctorfinder.domain.errors import InvalidCoordinates, InvalidRadius, InvalidSearchMode
from doctorfinder.domain.models import (
    DoctorRecord,
    GeoPoint,
    SearchMode,
    SearchQuery,
    SearchResponse,
    SearchResult,
)
from doctorfinder.ingestion.geocoder import Geocoder

logger = logging.getLogger(__name__)

SEARCH_MODES: tuple[SearchMode, ...] = ("near", "within")


def annotate(origin: GeoPoint, records: list[DoctorRecord]) -> list[SearchResult]:
    """Attach `distance_km` (2 dp) to each record and order nearest first."""
    results = [
        SearchResult(**dict(r), distance_km=round(haversine_km(origin, r.location), 2))
        for r in records
    ]
    results.sort(key=lambda r: (r.distance_km, r.name, r.id))
    return results


class SearchService:
    def __init__(
        self,
        index: GeoIndex,
        *,
        settings: SearchSettings | None = None,
        geocoder: Geocoder | None = None,
    ):
        self._index = index
        self._settings = settings or SearchSettings()
        self._geocoder = geocoder

    def _effective_radius(self, radius_km: float | None) -> float:
        if radius_km is None:
            return float(self._settings.default_radius_km)
        if isinstance(radius_km, bool) or not isinstance(radius_km, (int, float)):
            raise InvalidRadius(radius_km)
        r = float(radius_km)
        if not math.isfinite(r) or r <= 0:
            raise InvalidRadius(radius_km)
        if r > self._settings.max_radius_km:
            raise InvalidRadius(radius_km, f"radius_km must be <= {self._settings.max_radius_km:g}")
        return r

    def _primitive(self, mode: str) -> Callable[[GeoPoint, float], list[DoctorRecord]]:
        if mode == "near":
            return self._index.query_near
        if mode == "within":
            return self._index.query_within
        raise InvalidSearchMode(mode)

    def search(self, query: SearchQuery, mode: SearchMode | None = None) -> SearchResponse:
        """Find records around `query.origin`; the result is always sorted by distance_km."""
        mode = mode or self._settings.default_mode
        primitive = self._primitive(mode)
        origin = query.origin
        if not isinstance(origin, GeoPoint):
            raise InvalidCoordinates(detail="origin must be a GeoPoint")
        radius_km = self._effective_radius(query.radius_km)

        hits = primitive(origin, radius_km)
        if query.specialty:
            wanted = query.specialty.strip().casefold()
            hits = [r for r in hits if r.specialty.casefold() == wanted]
        results = annotate(origin, hits)
        if query.limit is not None:
            results = results[: query.limit]

        logger.debug(
            "search mode=%s origin=%.5f,%.5f radius_km=%g -> %d", mode, origin.lat, origin.lng, radius_km, len(results)
        )
        return SearchResponse(
            location_label=query.location_label,
            origin=origin,
            radius_km=radius_km,
            mode=mode,
            count=len(results),
            results=results,
        )

    def search_text(
        self,
        label: str,
        *,
        radius_km: float | None = None,
        mode: SearchMode | None = None,
        specialty: str | None = None,
        limit: int | None = None,
    ) -> SearchResponse:
        """Geocode a free-text place label, then `search` around it."""
        if self._geocoder is None:
            raise InvalidCoordinates(detail="coordinates are required (no geocoder configured)")
        # Validate cheap inputs before spending a geocoder call.
        self._primitive(mode or self._settings.default_mode)
        self._effective_radius(radius_km)
        origin = self._geocoder.geocode(label)
        query = SearchQuery(origin=origin, radius_km=radius_km, location_label=label, specialty=specialty, limit=limit)
        return self.search(query, mode)
