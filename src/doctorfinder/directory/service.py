"""
Doctor directory: create / list / get / delete over a `DoctorStore`.

The directory is the single owner of a record set. Every mutation runs under one lock and
follows the same order: validate, write the store, then update the `GeoIndex`. A failed
store write leaves the index untouched, so `list()` and search never disagree.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Mapping

from doctorfinder.config.settings import Settings
from doctorfinder.core.spatial_index import GeoIndex
from doctorfinder.directory.store import DoctorStore, JsonFileStore, MemoryStore
from doctorfinder.domain.errors import InvalidCoordinates, InvalidLocation, InvalidRecordId, RecordNotFound
from doctorfinder.domain.models import (
    DoctorCreate,
    DoctorRecord,
    GeoPoint,
    is_valid_record_id,
    new_record_id,
)

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> DoctorStore:
    if settings.store.backend == "memory":
        return MemoryStore()
    return JsonFileStore(settings.store.path)


class DirectoryService:
    def __init__(self, store: DoctorStore, *, cell_size_deg: float = 0.1):
        self._store = store
        self._lock = threading.Lock()
        self._index = GeoIndex(store.load_all(), cell_size_deg=cell_size_deg)

    @classmethod
    def from_settings(cls, settings: Settings) -> "DirectoryService":
        return cls(build_store(settings), cell_size_deg=settings.index.cell_size_deg)

    @property
    def index(self) -> GeoIndex:
        return self._index

    def create(self, fields: DoctorCreate | Mapping[str, Any]) -> DoctorRecord:
        """Validate and store a new doctor; raises InvalidLocation on bad coordinates."""
        payload = fields if isinstance(fields, DoctorCreate) else DoctorCreate.model_validate(fields)
        try:
            location = GeoPoint.from_mapping(payload.coordinates)
        except InvalidCoordinates as exc:
            raise InvalidLocation(exc.lat, exc.lng) from exc

        record = DoctorRecord(
            id=new_record_id(),
            name=payload.name,
            specialty=payload.specialty,
            phone=payload.phone,
            address=payload.address,
            location=location,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._store.add(record)
            self._index.insert(record)
        logger.info("Created doctor %s (%s) at %.5f,%.5f", record.id, record.specialty, location.lat, location.lng)
        return record

    def list(self) -> list[DoctorRecord]:
        """All records in insertion order (a consistent snapshot)."""
        return self._index.records()

    def get(self, record_id: str) -> DoctorRecord:
        if not is_valid_record_id(record_id):
            raise InvalidRecordId(record_id)
        record = self._index.get(record_id)
        if record is None:
            raise RecordNotFound(record_id)
        return record

    def delete(self, record_id: str) -> bool:
        """Remove a record. Unknown ids return False; malformed ids raise InvalidRecordId."""
        if not is_valid_record_id(record_id):
            raise InvalidRecordId(record_id)
        with self._lock:
            if record_id not in self._index:
                return False
            self._store.remove(record_id)
            self._index.remove(record_id)
        logger.info("Deleted doctor %s", record_id)
        return True

    def __len__(self) -> int:
        return len(self._index)
