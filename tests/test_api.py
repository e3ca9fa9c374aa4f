import threading
import time

import pytest
from starlette.testclient import TestClient

from doctorfinder.api.app import app
from doctorfinder.directory.service import DirectoryService
from doctorfinder.directory.store import MemoryStore
from doctorfinder.domain.errors import BackendUnavailable, GeocodingFailed
from doctorfinder.domain.models import GeoPoint, new_record_id


class _StubGeocoder:
    def geocode(self, label: str) -> GeoPoint:
        if label == "offline":
            raise BackendUnavailable("geocoder", "connection refused")
        if label != "MG Road":
            raise GeocodingFailed(label)
        return GeoPoint(lat=12.97, lng=77.59)


@pytest.fixture()
def client(monkeypatch):
    # Patch the cached factories so API tests stay offline and isolated.
    import doctorfinder.api.routes as routes

    directory = DirectoryService(MemoryStore())
    monkeypatch.setattr(routes, "_directory", lambda: directory)
    monkeypatch.setattr(routes, "_geocoder", lambda: _StubGeocoder())
    with TestClient(app) as c:
        yield c


def _create(client, name, lat, lng, **extra):
    body = {"name": name, "specialty": "Cardiology", "phone": "080-5550101", "address": "", **extra}
    body["coordinates"] = {"lat": lat, "lng": lng}
    return client.post("/api/doctors", json=body)


def test_create_list_get_delete_roundtrip(client):
    resp = _create(client, "Dr. Rao", 12.97, 77.59)
    assert resp.status_code == 201
    created = resp.json()
    assert created["location"] == {"lat": 12.97, "lng": 77.59}

    listed = client.get("/api/doctors").json()
    assert [d["id"] for d in listed] == [created["id"]]
    assert client.get(f"/api/doctors/{created['id']}").json()["name"] == "Dr. Rao"

    resp = client.delete(f"/api/doctors/{created['id']}")
    assert resp.status_code == 200
    assert client.get("/api/doctors").json() == []


def test_create_with_bad_coordinates_is_400(client):
    resp = client.post("/api/doctors", json={"name": "Dr. X", "specialty": "Neurology", "coordinates": {"lat": "x"}})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_COORDINATES"

    resp = client.post("/api/doctors", json={"name": "Dr. X", "specialty": "Neurology"})
    assert resp.status_code == 400


def test_delete_status_codes(client):
    assert client.delete("/api/doctors/not-an-id").status_code == 400
    resp = client.delete(f"/api/doctors/{new_record_id()}")
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "NOT_FOUND"


@pytest.mark.parametrize("path,mode", [("/api/doctors/search", "near"), ("/api/doctors/search-within", "within")])
def test_search_endpoints(client, path, mode):
    _create(client, "Dr. Far", 13.50, 78.20)
    _create(client, "Dr. Next Door", 12.98, 77.60)
    _create(client, "Dr. Here", 12.97, 77.59)

    resp = client.post(path, json={"location": "MG Road", "coordinates": {"lat": 12.97, "lng": 77.59}, "radius": 10})
    assert resp.status_code == 200
    data = resp.json()
    assert data["mode"] == mode
    assert data["location_label"] == "MG Road"
    assert data["count"] == 2
    assert [r["name"] for r in data["results"]] == ["Dr. Here", "Dr. Next Door"]
    assert [r["distance_km"] for r in data["results"]][0] == 0.0


def test_search_defaults_and_validation(client):
    _create(client, "Dr. Here", 12.97, 77.59)

    data = client.post("/api/doctors/search", json={"coordinates": {"lat": 12.97, "lng": 77.59}}).json()
    assert data["radius_km"] == 10

    resp = client.post("/api/doctors/search", json={"coordinates": {"lat": 12.97, "lng": 77.59}, "radius_km": 0})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_RADIUS"

    resp = client.post("/api/doctors/search", json={"coordinates": {"lat": 120, "lng": 77.59}})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_COORDINATES"

    assert client.post("/api/doctors/search", json={}).status_code == 400


def test_search_by_label_uses_geocoder(client):
    _create(client, "Dr. Here", 12.97, 77.59)
    data = client.post("/api/doctors/search-within", json={"location": "MG Road", "radius": 5}).json()
    assert data["count"] == 1
    assert data["origin"] == {"lat": 12.97, "lng": 77.59}

    assert client.post("/api/doctors/search", json={"location": "Atlantis"}).status_code == 404
    resp = client.post("/api/doctors/search", json={"location": "offline"})
    assert resp.status_code == 503
    assert resp.json()["detail"]["code"] == "BACKEND_UNAVAILABLE"


def test_helpers(client):
    assert "Cardiology" in client.get("/api/specialties").json()["specialties"]
    assert client.get("/api/health").json() == {"status": "ok", "records": 0}
    assert client.get("/api/geocode", params={"q": "MG Road"}).json()["coordinates"] == {"lat": 12.97, "lng": 77.59}


@pytest.mark.parametrize("coordinates", ["12.9,77.5", [12.9, 77.5], 5])
def test_non_object_coordinates_are_400_not_422(client, coordinates):
    resp = client.post("/api/doctors", json={"name": "Dr. X", "specialty": "Neurology", "coordinates": coordinates})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_COORDINATES"

    resp = client.post("/api/doctors/search", json={"coordinates": coordinates})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "INVALID_COORDINATES"


def test_directory_is_built_once_under_concurrent_first_use(monkeypatch):
    import doctorfinder.api.routes as routes

    built: list[DirectoryService] = []

    def slow_build(settings):
        time.sleep(0.2)
        directory = DirectoryService(MemoryStore())
        built.append(directory)
        return directory

    monkeypatch.setattr(routes, "_directory_instance", None)
    monkeypatch.setattr(routes.DirectoryService, "from_settings", staticmethod(slow_build))

    barrier = threading.Barrier(4)
    seen: list[DirectoryService] = []

    def first_request():
        barrier.wait()
        seen.append(routes._directory())

    threads = [threading.Thread(target=first_request) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(built) == 1
    assert all(d is built[0] for d in seen)
