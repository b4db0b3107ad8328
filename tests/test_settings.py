from __future__ import annotations

from geofilter.config import settings as settings_module
from geofilter.config.settings import Settings, get_settings


def test_packaged_defaults_match_the_damascus_default():
    settings = get_settings()
    default = settings.location.default
    assert (default.name, default.latitude, default.longitude, default.radius_km) == (
        "Damascus",
        33.5138,
        36.2765,
        25,
    )
    assert settings.location.auto_detect_radius_km == 10
    assert settings.location.unbounded_radius_km == 100
    assert settings.geocoding.search_viewbox == (35.7, 32.3, 42.4, 37.3)


def test_env_overrides_are_whitelisted(monkeypatch):
    monkeypatch.setenv("GEOFILTER_STORAGE_PATH", "/tmp/geofilter-test.json")
    monkeypatch.setenv("GEOFILTER_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("GEOFILTER_GEOCODING_BASE_URL", "http://nominatim.local")

    raw = settings_module._apply_env_overrides({"geocoding": {"accept_language": "en"}})
    settings = Settings.model_validate(raw)

    assert settings.storage.path == "/tmp/geofilter-test.json"
    assert settings.app.log_level == "DEBUG"
    assert settings.geocoding.base_url == "http://nominatim.local"
    # Untouched values keep their model defaults.
    assert settings.geocoding.accept_language == "en"
    assert settings.storage.location_key == "geofilter:location_filter"


def test_external_config_file(monkeypatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "location:\n  default:\n    name: Beirut\n    latitude: 33.8938\n    longitude: 35.5018\n    radius_km: 15\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("GEOFILTER_CONFIG_PATH", str(path))
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.location.default.name == "Beirut"
        assert settings.location.default.radius_km == 15
    finally:
        monkeypatch.delenv("GEOFILTER_CONFIG_PATH")
        get_settings.cache_clear()
