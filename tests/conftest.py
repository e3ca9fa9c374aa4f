import pytest

from doctorfinder.config.settings import get_settings
from doctorfinder.directory.service import DirectoryService
from doctorfinder.directory.store import MemoryStore


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch, tmp_path):
    # Keep tests off the repo's data/ and .cache/ directories.
    monkeypatch.setenv("DOCTORFINDER_STORE_BACKEND", "memory")
    monkeypatch.setenv("DOCTORFINDER_CACHE_DIR", str(tmp_path / "cache"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def directory() -> DirectoryService:
    return DirectoryService(MemoryStore())


def doctor_payload(name: str, lat: float, lng: float, specialty: str = "Cardiology") -> dict:
    return {
        "name": name,
        "specialty": specialty,
        "phone": "+91 80 5555 0101",
        "address": "",
        "coordinates": {"lat": lat, "lng": lng},
    }


@pytest.fixture()
def make_payload():
    return doctor_payload
