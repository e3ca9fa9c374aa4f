"""
Domain error taxonomy.

Validation errors double as `ValueError` so callers that only care about "bad input"
can catch the builtin; the API layer maps each class to an HTTP status + error code.
"""

from __future__ import annotations


class DoctorFinderError(Exception):
    """Base exception for all doctorfinder errors."""

    code = "INTERNAL_ERROR"


class InvalidCoordinates(DoctorFinderError, ValueError):
    """Latitude/longitude missing, non-numeric, NaN/inf or out of range."""

    code = "INVALID_COORDINATES"

    def __init__(self, lat: object = None, lng: object = None, detail: str | None = None):
        self.lat = lat
        self.lng = lng
        message = detail or "Invalid or missing coordinates. lat/lng must be valid numbers."
        super().__init__(f"{message} (lat={lat!r}, lng={lng!r})")


class InvalidLocation(InvalidCoordinates):
    """A doctor record was submitted without a usable location."""


class InvalidRadius(DoctorFinderError, ValueError):
    code = "INVALID_RADIUS"

    def __init__(self, radius_km: object, detail: str = "radius_km must be a finite number > 0"):
        self.radius_km = radius_km
        super().__init__(f"{detail} (got {radius_km!r})")


class InvalidSearchMode(DoctorFinderError, ValueError):
    code = "INVALID_MODE"

    def __init__(self, mode: object):
        self.mode = mode
        super().__init__(f"Unknown search mode {mode!r}; expected 'near' or 'within'")


class InvalidRecordId(DoctorFinderError, ValueError):
    code = "INVALID_ID"

    def __init__(self, record_id: object):
        self.record_id = record_id
        super().__init__(f"Invalid doctor ID: {record_id!r}")


class RecordNotFound(DoctorFinderError, LookupError):
    """No record with the given (well-formed) id exists."""

    code = "NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Doctor not found: {record_id}")


class BackendUnavailable(DoctorFinderError):
    """The storage backend or an external collaborator could not be reached."""

    code = "BACKEND_UNAVAILABLE"

    def __init__(self, backend: str, detail: str):
        self.backend = backend
        super().__init__(f"{backend} unavailable: {detail}")


class GeocodingFailed(DoctorFinderError, LookupError):
    """The geocoder answered, but had no match for the label."""

    code = "LOCATION_NOT_FOUND"

    def __init__(self, label: str):
        self.label = label
        super().__init__(f"Location not found: {label!r}")
