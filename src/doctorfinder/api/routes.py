"""
API routes.

Endpoints:
- POST   `/api/doctors`: create a doctor record.
- GET    `/api/doctors`: list all records.
- GET    `/api/doctors/{id}`: fetch one record.
- DELETE `/api/doctors/{id}`: delete a record.
- POST   `/api/doctors/search`: proximity search, index-native "near" primitive.
- POST   `/api/doctors/search-within`: proximity search, spherical-cap "within" primitive.
- GET    `/api/geocode`: resolve a place label to coordinates.
- GET    `/api/specialties`, `/api/health`: UI helpers.
"""

from __future__ import annotations

import logging
import threading
from functools import lru_cache
from typing import NoReturn

from fastapi import APIRouter, HTTPException

from doctorfinder.config.settings import get_settings
from doctorfinder.directory.service import DirectoryService
from doctorfinder.domain.errors import (
    BackendUnavailable,
    DoctorFinderError,
    GeocodingFailed,
    InvalidCoordinates,
    RecordNotFound,
)
from doctorfinder.domain.models import (
    KNOWN_SPECIALTIES,
    DoctorCreate,
    DoctorRecord,
    GeoPoint,
    SearchMode,
    SearchQuery,
    SearchRequest,
    SearchResponse,
)
from doctorfinder.ingestion.geocoder import Geocoder, NominatimGeocoder, build_cache
from doctorfinder.search.service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


_directory_instance: DirectoryService | None = None
_directory_lock = threading.Lock()


def _directory() -> DirectoryService:
    """Process-wide directory, built exactly once even when first requests race."""
    global _directory_instance
    instance = _directory_instance
    if instance is not None:
        return instance
    with _directory_lock:
        if _directory_instance is None:
            _directory_instance = DirectoryService.from_settings(get_settings())
        return _directory_instance


@lru_cache
def _geocoder() -> Geocoder:
    settings = get_settings()
    return NominatimGeocoder(settings, build_cache(settings))


def _search_service() -> SearchService:
    return SearchService(_directory().index, settings=get_settings().search, geocoder=_geocoder())


def _raise_http(exc: Exception) -> NoReturn:
    """Translate a domain error into an HTTPException with a `{code, message}` detail."""
    if isinstance(exc, (RecordNotFound, GeocodingFailed)):
        status = 404
    elif isinstance(exc, BackendUnavailable):
        status = 503
    elif isinstance(exc, ValueError):
        status = 400
    else:
        logger.exception("Unhandled error")
        status = 500
    code = exc.code if isinstance(exc, DoctorFinderError) else ("VALIDATION_ERROR" if status == 400 else "INTERNAL_ERROR")
    raise HTTPException(status_code=status, detail={"code": code, "message": str(exc)}) from exc


@router.get("/doctors", response_model=list[DoctorRecord])
def list_doctors() -> list[DoctorRecord]:
    """Return every doctor record (insertion order)."""
    return _directory().list()


@router.post("/doctors", response_model=DoctorRecord, status_code=201)
def create_doctor(payload: DoctorCreate) -> DoctorRecord:
    """Create a doctor; coordinates are mandatory and range-checked."""
    try:
        return _directory().create(payload)
    except Exception as e:
        _raise_http(e)


@router.get("/doctors/{doctor_id}", response_model=DoctorRecord)
def get_doctor(doctor_id: str) -> DoctorRecord:
    try:
        return _directory().get(doctor_id)
    except Exception as e:
        _raise_http(e)


@router.delete("/doctors/{doctor_id}")
def delete_doctor(doctor_id: str) -> dict:
    try:
        removed = _directory().delete(doctor_id)
    except Exception as e:
        _raise_http(e)
    if not removed:
        _raise_http(RecordNotFound(doctor_id))
    return {"message": "Doctor deleted successfully", "id": doctor_id}


def _run_search(request: SearchRequest, mode: SearchMode) -> SearchResponse:
    try:
        service = _search_service()
        if request.coordinates is not None:
            query = SearchQuery(
                origin=GeoPoint.from_mapping(request.coordinates),
                radius_km=request.radius_km,
                location_label=request.location_label,
                specialty=request.specialty,
                limit=request.limit,
            )
            return service.search(query, mode)
        if request.location_label and request.location_label.strip():
            return service.search_text(
                request.location_label,
                radius_km=request.radius_km,
                mode=mode,
                specialty=request.specialty,
                limit=request.limit,
            )
        raise InvalidCoordinates(detail="Provide coordinates or a location label")
    except Exception as e:
        _raise_http(e)


@router.post("/doctors/search", response_model=SearchResponse)
def search_doctors(request: SearchRequest) -> SearchResponse:
    """Doctors within `radius_km` of the origin, nearest first."""
    return _run_search(request, "near")


@router.post("/doctors/search-within", response_model=SearchResponse)
def search_doctors_within(request: SearchRequest) -> SearchResponse:
    """Same as `/search`, but membership is the spherical-cap containment test."""
    return _run_search(request, "within")


@router.get("/geocode")
def geocode(q: str) -> dict:
    try:
        point = _geocoder().geocode(q)
    except Exception as e:
        _raise_http(e)
    return {"location_label": q, "coordinates": point.model_dump()}


@router.get("/specialties")
def get_specialties() -> dict:
    return {"specialties": list(KNOWN_SPECIALTIES)}


@router.get("/health")
def health() -> dict:
    try:
        count = len(_directory())
    except Exception as e:
        _raise_http(e)
    return {"status": "ok", "records": count}
