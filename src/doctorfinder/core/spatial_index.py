"""
Spatial indexing (lat/lng grid buckets) for doctor records.

Records are bucketed by (row, col) cells of `cell_size_deg` degrees. A query only visits
the cells overlapping its bounding box, so cost tracks local density rather than the
total number of records.

Two query shapes are supported and they are deliberately not equivalent:
- `query_near`: planar (equirectangular) distance <= radius, ordered by that distance.
- `query_within`: containment in the spherical cap of angular radius `radius_km / R`.

Concurrency: mutations are serialized by a lock and publish a new immutable snapshot.
Readers grab the current snapshot once and never lock, so they never see half a mutation.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Iterable, Iterator

from doctorfinder.core.geo import EARTH_RADIUS_KM, central_angle_rad, equirectangular_km
from doctorfinder.domain.models import DoctorRecord, GeoPoint

logger = logging.getLogger(__name__)

CellKey = tuple[int, int]


@dataclass(frozen=True)
class _Entry:
    record: DoctorRecord
    cell: CellKey


@dataclass(frozen=True)
class _Snapshot:
    # Never mutated after publication; writers build a new snapshot.
    entries: dict[str, _Entry]
    cells: dict[CellKey, tuple[_Entry, ...]]


@dataclass(frozen=True)
class _CellWindow:
    rows: range
    cols: tuple[range, ...]

    def size(self) -> int:
        return len(self.rows) * sum(len(c) for c in self.cols)

    def __contains__(self, key: CellKey) -> bool:
        row, col = key
        return row in self.rows and any(col in c for c in self.cols)

    def keys(self) -> Iterator[CellKey]:
        for row in self.rows:
            for cols in self.cols:
                for col in cols:
                    yield (row, col)


def _valid_radius(radius_km: float) -> bool:
    return isinstance(radius_km, (int, float)) and math.isfinite(radius_km) and radius_km > 0


class GeoIndex:
    """Grid-bucket index answering radius queries over `DoctorRecord` locations."""

    def __init__(self, records: Iterable[DoctorRecord] = (), *, cell_size_deg: float = 0.1):
        if not (0 < float(cell_size_deg) <= 90):
            raise ValueError("cell_size_deg must be in (0, 90]")
        self._cell = float(cell_size_deg)
        self._n_rows = int(math.ceil(180.0 / self._cell))
        self._n_cols = int(math.ceil(360.0 / self._cell))
        self._lock = threading.Lock()

        entries: dict[str, _Entry] = {}
        for record in records:
            entries[record.id] = _Entry(record=record, cell=self._cell_key(record.location))
        cells: dict[CellKey, list[_Entry]] = {}
        for e in entries.values():
            cells.setdefault(e.cell, []).append(e)
        self._snapshot = _Snapshot(entries=entries, cells={k: tuple(v) for k, v in cells.items()})

    @property
    def cell_size_deg(self) -> float:
        return self._cell

    # -- cell arithmetic ---------------------------------------------------

    def _row(self, lat: float) -> int:
        return min(self._n_rows - 1, max(0, int(math.floor((lat + 90.0) / self._cell))))

    def _col(self, lng: float) -> int:
        return min(self._n_cols - 1, max(0, int(math.floor((lng + 180.0) / self._cell))))

    def _cell_key(self, p: GeoPoint) -> CellKey:
        return (self._row(p.lat), self._col(p.lng))

    def _window(self, origin: GeoPoint, radius_km: float) -> _CellWindow:
        """Cells that may hold a point within `radius_km` under either query metric."""
        ang = radius_km / EARTH_RADIUS_KM
        d_lat = math.degrees(ang)
        lat_lo = origin.lat - d_lat
        lat_hi = origin.lat + d_lat
        rows = range(self._row(max(-90.0, lat_lo)), self._row(min(90.0, lat_hi)) + 1)
        full = (range(0, self._n_cols),)

        if lat_lo <= -90.0 or lat_hi >= 90.0:
            return _CellWindow(rows=rows, cols=full)

        # Spherical-cap half width, and the planar bound at the most poleward latitude of the band.
        cos_origin = math.cos(math.radians(origin.lat))
        ratio = math.sin(ang) / cos_origin if ang < math.pi / 2 else 1.0
        if ratio >= 1.0:
            return _CellWindow(rows=rows, cols=full)
        cos_min = math.cos(math.radians(max(abs(lat_lo), abs(lat_hi))))
        d_lng = max(math.degrees(math.asin(ratio)), math.degrees(ang / cos_min))
        if d_lng >= 180.0:
            return _CellWindow(rows=rows, cols=full)

        lng_lo = origin.lng - d_lng
        lng_hi = origin.lng + d_lng
        if lng_lo < -180.0:
            cols = (range(self._col(lng_lo + 360.0), self._n_cols), range(0, self._col(lng_hi) + 1))
        elif lng_hi > 180.0:
            cols = (range(self._col(lng_lo), self._n_cols), range(0, self._col(lng_hi - 360.0) + 1))
        else:
            cols = (range(self._col(lng_lo), self._col(lng_hi) + 1),)
        return _CellWindow(rows=rows, cols=cols)

    def _candidates(self, origin: GeoPoint, radius_km: float) -> Iterator[_Entry]:
        snap = self._snapshot
        window = self._window(origin, radius_km)
        if window.size() > len(snap.cells):
            # Sparse index: walking occupied cells is cheaper than probing the window.
            for key, bucket in snap.cells.items():
                if key in window:
                    yield from bucket
            return
        for key in window.keys():
            bucket = snap.cells.get(key)
            if bucket:
                yield from bucket

    # -- queries -------------------------------------------------------------

    def query_near(self, origin: GeoPoint, radius_km: float) -> list[DoctorRecord]:
        """Records within `radius_km` by projected distance, nearest first (index metric)."""
        if not _valid_radius(radius_km):
            return []
        r = float(radius_km)
        hits: list[tuple[float, DoctorRecord]] = []
        for e in self._candidates(origin, r):
            d = equirectangular_km(origin, e.record.location)
            if d <= r:
                hits.append((d, e.record))
        hits.sort(key=lambda h: h[0])
        return [record for _, record in hits]

    def query_within(self, origin: GeoPoint, radius_km: float) -> list[DoctorRecord]:
        """Records inside the spherical cap around `origin`; no particular order."""
        if not _valid_radius(radius_km):
            return []
        max_angle = float(radius_km) / EARTH_RADIUS_KM
        if max_angle >= math.pi:
            return self.records()
        return [
            e.record
            for e in self._candidates(origin, float(radius_km))
            if central_angle_rad(origin, e.record.location) <= max_angle
        ]

    # -- mutation ------------------------------------------------------------

    def insert(self, record: DoctorRecord) -> None:
        """Add `record`, replacing any entry with the same id."""
        entry = _Entry(record=record, cell=self._cell_key(record.location))
        with self._lock:
            snap = self._snapshot
            entries = dict(snap.entries)
            cells = dict(snap.cells)
            previous = entries.get(record.id)
            if previous is not None:
                self._drop_from_cells(cells, previous)
            entries[record.id] = entry
            cells[entry.cell] = cells.get(entry.cell, ()) + (entry,)
            self._snapshot = _Snapshot(entries=entries, cells=cells)

    def remove(self, record_id: str) -> bool:
        """Remove a record by id. Returns False (and changes nothing) if it is absent."""
        with self._lock:
            snap = self._snapshot
            previous = snap.entries.get(record_id)
            if previous is None:
                logger.debug("GeoIndex.remove: %s not indexed", record_id)
                return False
            entries = dict(snap.entries)
            del entries[record_id]
            cells = dict(snap.cells)
            self._drop_from_cells(cells, previous)
            self._snapshot = _Snapshot(entries=entries, cells=cells)
            return True

    @staticmethod
    def _drop_from_cells(cells: dict[CellKey, tuple[_Entry, ...]], entry: _Entry) -> None:
        remaining = tuple(e for e in cells.get(entry.cell, ()) if e.record.id != entry.record.id)
        if remaining:
            cells[entry.cell] = remaining
        else:
            cells.pop(entry.cell, None)

    # -- reads ---------------------------------------------------------------

    def get(self, record_id: str) -> DoctorRecord | None:
        entry = self._snapshot.entries.get(record_id)
        return entry.record if entry else None

    def records(self) -> list[DoctorRecord]:
        """All records in insertion order."""
        return [e.record for e in self._snapshot.entries.values()]

    def __len__(self) -> int:
        return len(self._snapshot.entries)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._snapshot.entries
