import pytest
from pydantic import ValidationError

from doctorfinder.config.settings import get_settings
from doctorfinder.directory.service import build_store
from doctorfinder.directory.store import JsonFileStore, MemoryStore


def test_packaged_defaults_load():
    settings = get_settings()
    assert settings.search.default_radius_km == 10
    assert settings.search.default_mode == "near"
    assert settings.index.cell_size_deg > 0


def test_env_overrides_are_applied(monkeypatch, tmp_path):
    monkeypatch.setenv("DOCTORFINDER_STORE_BACKEND", "json")
    monkeypatch.setenv("DOCTORFINDER_STORE_PATH", str(tmp_path / "x.json"))
    monkeypatch.setenv("DOCTORFINDER_LOG_LEVEL", "debug")
    get_settings.cache_clear()

    settings = get_settings()
    assert settings.app.log_level == "debug"
    store = build_store(settings)
    assert isinstance(store, JsonFileStore)
    assert store.path == tmp_path / "x.json"


def test_memory_backend_from_env():
    # conftest selects the memory backend for every test.
    assert isinstance(build_store(get_settings()), MemoryStore)


def test_external_config_file_replaces_defaults(monkeypatch, tmp_path):
    cfg = tmp_path / "custom.yaml"
    cfg.write_text("search:\n  default_radius_km: 25\n  max_radius_km: 100\n", encoding="utf-8")
    monkeypatch.setenv("DOCTORFINDER_CONFIG_PATH", str(cfg))
    get_settings.cache_clear()
    assert get_settings().search.default_radius_km == 25


def test_invalid_config_values_are_rejected(monkeypatch, tmp_path):
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("index:\n  cell_size_deg: 0\n", encoding="utf-8")
    monkeypatch.setenv("DOCTORFINDER_CONFIG_PATH", str(cfg))
    get_settings.cache_clear()
    with pytest.raises(ValidationError):
        get_settings()
