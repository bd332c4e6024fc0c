"""Tests for settings loading."""

import yaml

from crudkit import Settings, get_settings, load_settings
from crudkit.core.utils import humanize, is_blank, to_camel_case, to_snake_case


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.default_per_page == 25
        assert settings.max_per_page == 200
        assert settings.truncate_length == 50
        assert not settings.is_production

    def test_audit_columns(self):
        settings = Settings()
        assert settings.is_audit_column("created_at")
        assert not settings.is_audit_column("title")

    def test_from_dict_keeps_unknown_keys(self):
        settings = Settings.from_dict({"default_per_page": 10, "audit_suffixes": "_on", "theme": "dark"})
        assert settings.default_per_page == 10
        assert settings.audit_suffixes == ("_on",)
        assert settings.extra == {"theme": "dark"}

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CRUDKIT_ENV", " Production ")
        monkeypatch.setenv("CRUDKIT_PER_PAGE", "15")
        monkeypatch.setenv("CRUDKIT_MAX_PER_PAGE", "nope")
        settings = Settings.from_env()
        assert settings.is_production
        assert settings.default_per_page == 15
        assert settings.max_per_page == 200

    def test_save_and_load(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CRUDKIT_ENV", raising=False)
        monkeypatch.delenv("CRUDKIT_PER_PAGE", raising=False)
        path = tmp_path / "crudkit.yaml"
        Settings(default_per_page=40, audit_suffixes=("_at", "_by"), extra={"theme": "dark"}).save(path)

        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert raw["default_per_page"] == 40
        assert raw["theme"] == "dark"

        loaded = load_settings(path)
        assert loaded.default_per_page == 40
        assert loaded.audit_suffixes == ("_at", "_by")
        assert loaded.extra == {"theme": "dark"}

    def test_missing_file(self, tmp_path):
        assert load_settings(tmp_path / "absent.yaml") is None

    def test_get_settings_reads_config_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("environment: production\nmax_per_page: 50\n", encoding="utf-8")
        monkeypatch.setenv("CRUDKIT_CONFIG", str(path))
        monkeypatch.delenv("CRUDKIT_ENV", raising=False)
        monkeypatch.delenv("CRUDKIT_MAX_PER_PAGE", raising=False)
        settings = get_settings()
        assert settings.is_production
        assert settings.max_per_page == 50


class TestUtils:
    def test_case_conversion(self):
        assert to_camel_case("published_on") == "publishedOn"
        assert to_snake_case("publishedOn") == "published_on"

    def test_humanize(self):
        assert humanize("published_on") == "Published on"

    def test_is_blank(self):
        assert is_blank(None)
        assert is_blank("  ")
        assert is_blank([])
        assert not is_blank(0)
        assert not is_blank(False)
