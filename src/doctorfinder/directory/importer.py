"""
Bulk import of doctor rows from a local CSV or JSON file (offline).

Rows are mapped through configurable column names, validated by the directory like any
other create, and de-duplicated: a row whose normalized name matches a record already
within `dedupe_radius_km` of it is skipped instead of creating a second record.
"""

from __future__ import annotations

import csv
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from doctorfinder.core.env import resolve_project_path
from doctorfinder.directory.service import DirectoryService
from doctorfinder.domain.errors import InvalidCoordinates
from doctorfinder.domain.models import GeoPoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldMap:
    name: str = "name"
    specialty: str = "specialty"
    phone: str = "phone"
    address: str = "address"
    lat: str = "lat"
    lng: str = "lng"


@dataclass
class ImportReport:
    rows: int = 0
    added: int = 0
    duplicates: int = 0
    bad: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "rows": self.rows,
            "added": self.added,
            "duplicates": self.duplicates,
            "bad": self.bad,
            "errors": list(self.errors),
        }


def _norm_name(s: str) -> str:
    t = str(s or "").strip().lower()
    t = re.sub(r"^dr\.?\s+", "", t)
    t = re.sub(r"[\s\-_/,.()]+", " ", t)
    return t.strip()


def _as_float(v: Any) -> Any:
    # Spreadsheet exports give strings; anything unparsable is handed on for the directory to reject.
    if isinstance(v, str):
        try:
            return float(v.strip())
        except ValueError:
            return v
    return v


def read_rows(path: str | Path) -> list[dict[str, Any]]:
    """Read rows from `.csv` (header row required) or `.json` (array of objects)."""
    resolved = resolve_project_path(path)
    if resolved.suffix.lower() == ".csv":
        with resolved.open("r", encoding="utf-8-sig", newline="") as f:
            return [row for row in csv.DictReader(f) if isinstance(row, dict)]
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"{resolved}: expected a JSON array of objects")
    return [r for r in payload if isinstance(r, dict)]


def import_rows(
    directory: DirectoryService,
    rows: list[dict[str, Any]],
    *,
    fields: FieldMap = FieldMap(),
    dedupe_radius_km: float = 0.05,
) -> ImportReport:
    report = ImportReport(rows=len(rows))
    for i, row in enumerate(rows, start=1):
        name = str(row.get(fields.name) or "").strip()
        coords = {"lat": _as_float(row.get(fields.lat)), "lng": _as_float(row.get(fields.lng))}

        if dedupe_radius_km > 0 and name:
            try:
                point = GeoPoint.from_mapping(coords)
            except InvalidCoordinates:
                point = None
            if point is not None:
                key = _norm_name(name)
                nearby = directory.index.query_within(point, dedupe_radius_km)
                if any(_norm_name(r.name) == key for r in nearby):
                    report.duplicates += 1
                    continue

        try:
            directory.create(
                {
                    "name": name,
                    "specialty": str(row.get(fields.specialty) or "").strip(),
                    "phone": str(row.get(fields.phone) or "").strip(),
                    "address": str(row.get(fields.address) or "").strip(),
                    "coordinates": coords,
                }
            )
        except (InvalidCoordinates, ValidationError) as exc:
            report.bad += 1
            report.errors.append(f"row {i}: {exc.__class__.__name__}")
            continue
        report.added += 1

    logger.info(
        "Imported %d rows: added=%d duplicates=%d bad=%d", report.rows, report.added, report.duplicates, report.bad
    )
    return report
