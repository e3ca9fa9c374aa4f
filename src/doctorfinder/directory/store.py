"""
Doctor record storage backends.

The directory treats the store as the owner of record identity and durability:
- `MemoryStore`: process-lifetime storage (tests, demos).
- `JsonFileStore`: a local JSON file (default: `data/doctors.json`), validated into typed
  Pydantic models on load and rewritten atomically on every mutation. The file is re-read
  whenever it changed on disk, so a second writer sharing it is not overwritten.

Any I/O failure surfaces as `BackendUnavailable`; nothing here retries.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from doctorfinder.core.env import resolve_project_path
from doctorfinder.domain.errors import BackendUnavailable
from doctorfinder.domain.models import DoctorRecord

logger = logging.getLogger(__name__)

_RECORDS_ADAPTER = TypeAdapter(list[DoctorRecord])


class DoctorStore(Protocol):
    def load_all(self) -> list[DoctorRecord]: ...

    def add(self, record: DoctorRecord) -> None: ...

    def remove(self, record_id: str) -> bool: ...


class MemoryStore:
    """Dict-backed store; insertion order is preserved."""

    def __init__(self, records: list[DoctorRecord] | None = None):
        self._records: dict[str, DoctorRecord] = {r.id: r for r in records or []}

    def load_all(self) -> list[DoctorRecord]:
        return list(self._records.values())

    def add(self, record: DoctorRecord) -> None:
        self._records[record.id] = record

    def remove(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None


class JsonFileStore:
    """A JSON array of records on disk, mirrored in memory."""

    def __init__(self, path: str | Path):
        self._path = resolve_project_path(path)
        self._records: dict[str, DoctorRecord] | None = None
        self._seen: tuple[int, int] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, DoctorRecord]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8") or "[]")
            records = _RECORDS_ADAPTER.validate_python(payload)
        except OSError as exc:
            raise BackendUnavailable("store", f"cannot read {self._path}: {exc}") from exc
        except (ValueError, ValidationError) as exc:
            raise BackendUnavailable("store", f"corrupt store file {self._path}: {exc}") from exc
        return {r.id: r for r in records}

    def _write(self, records: dict[str, DoctorRecord]) -> None:
        payload = _RECORDS_ADAPTER.dump_python(list(records.values()), mode="json")
        tmp = self._path.with_suffix(".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as exc:
            raise BackendUnavailable("store", f"cannot write {self._path}: {exc}") from exc

    def _stamp(self) -> tuple[int, int] | None:
        try:
            st = self._path.stat()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise BackendUnavailable("store", f"cannot stat {self._path}: {exc}") from exc
        return (st.st_mtime_ns, st.st_size)

    def _loaded(self) -> dict[str, DoctorRecord]:
        # Another process (e.g. the CLI next to a running API) may have rewritten the file;
        # mutations must start from what is on disk, not from a stale mirror.
        stamp = self._stamp()
        if self._records is None or stamp != self._seen:
            self._records = self._read()
            self._seen = stamp
            logger.info("Loaded %d doctor records from %s", len(self._records), self._path)
        return self._records

    def load_all(self) -> list[DoctorRecord]:
        return list(self._loaded().values())

    def add(self, record: DoctorRecord) -> None:
        updated = dict(self._loaded())
        updated[record.id] = record
        # Only adopt the new state once it is on disk.
        self._write(updated)
        self._records = updated
        self._seen = self._stamp()

    def remove(self, record_id: str) -> bool:
        current = self._loaded()
        if record_id not in current:
            return False
        updated = {k: v for k, v in current.items() if k != record_id}
        self._write(updated)
        self._records = updated
        self._seen = self._stamp()
        return True
