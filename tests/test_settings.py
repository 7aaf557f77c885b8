"""Tests for the JSON settings store."""

from __future__ import annotations

import json

import pytest

from wincleaner.models.item import Category
from wincleaner.settings import DEFAULTS, Settings, coerce, default_settings_path


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "WinCleaner" / "settings.json"


class TestDefaults:
    def test_missing_file_uses_defaults(self, settings_path):
        settings = Settings(settings_path)
        for key, value in DEFAULTS.items():
            assert settings.get(key) == value

    def test_explicit_default_wins_for_unknown_key(self, settings_path):
        assert Settings(settings_path).get("nope.nothing", "fallback") == "fallback"

    def test_default_path_under_appdata(self, tmp_path, monkeypatch):
        monkeypatch.setenv("APPDATA", str(tmp_path))
        assert default_settings_path() == tmp_path / "WinCleaner" / "settings.json"

    def test_default_path_off_windows(self, tmp_path, monkeypatch):
        monkeypatch.delenv("APPDATA", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert default_settings_path() == tmp_path / "wincleaner" / "settings.json"


class TestPersistence:
    def test_set_persists_and_reloads(self, settings_path):
        Settings(settings_path).set("retention.wechat_months", 6)

        assert json.loads(settings_path.read_text())["retention"]["wechat_months"] == 6
        assert Settings(settings_path).get("retention.wechat_months") == 6

    def test_set_keeps_sibling_keys(self, settings_path):
        settings = Settings(settings_path)
        settings.set("cleaning.batch_size", 10)
        settings.set("cleaning.inter_batch_delay", 0.0)

        reloaded = Settings(settings_path)
        assert reloaded.batch_size == 10
        assert reloaded.inter_batch_delay == 0.0

    def test_corrupt_file_falls_back_to_defaults(self, settings_path):
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text("{not json", encoding="utf-8")
        assert Settings(settings_path).batch_size == DEFAULTS["cleaning.batch_size"]

    def test_non_object_file_is_ignored(self, settings_path):
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text("[1, 2, 3]", encoding="utf-8")
        assert Settings(settings_path).use_real_backend is True


class TestTypedAccess:
    def _with(self, settings_path, data):
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        settings_path.write_text(json.dumps(data), encoding="utf-8")
        return Settings(settings_path)

    def test_retention_policy(self, settings_path):
        settings = self._with(settings_path, {"retention": {"wechat_months": 6, "qq_months": 0}})
        policy = settings.retention_policy()
        assert policy.months_for(Category.WECHAT) == 6
        assert policy.months_for(Category.QQ) == 0

    def test_negative_months_clamp_to_zero(self, settings_path):
        settings = self._with(settings_path, {"retention": {"wechat_months": -2}})
        assert settings.retention_policy().months_for(Category.WECHAT) == 0

    def test_batch_size_is_at_least_one(self, settings_path):
        assert self._with(settings_path, {"cleaning": {"batch_size": 0}}).batch_size == 1

    def test_negative_delay_clamps(self, settings_path):
        assert self._with(settings_path, {"cleaning": {"inter_batch_delay": -1}}).inter_batch_delay == 0.0

    def test_garbage_value_uses_default(self, settings_path):
        settings = self._with(settings_path, {"cleaning": {"batch_size": "lots"}})
        assert settings.batch_size == DEFAULTS["cleaning.batch_size"]

    def test_enrichment_config(self, settings_path):
        settings = self._with(
            settings_path,
            {"enrichment": {"provider": "local", "model": "llama3", "min_confidence": 0.9}},
        )
        config = settings.enrichment_config()
        assert config.provider == "local"
        assert config.model == "llama3"
        assert config.min_confidence == 0.9
        assert config.enabled

    def test_unknown_provider_disables_enrichment(self, settings_path):
        settings = self._with(settings_path, {"enrichment": {"provider": "skynet", "api_key": "x"}})
        config = settings.enrichment_config()
        assert config.provider == "disabled"
        assert not config.enabled


class TestCoerce:
    @pytest.mark.parametrize("raw, expected", [("true", True), ("Off", False), ("1", True), ("no", False)])
    def test_booleans(self, raw, expected):
        assert coerce("backend.use_real", raw) is expected

    def test_bad_boolean(self):
        with pytest.raises(ValueError):
            coerce("backend.use_real", "maybe")

    def test_numbers(self):
        assert coerce("cleaning.batch_size", "8") == 8
        assert coerce("cleaning.inter_batch_delay", "0.5") == 0.5

    def test_bad_number(self):
        with pytest.raises(ValueError):
            coerce("cleaning.batch_size", "eight")

    def test_provider_must_be_known(self):
        assert coerce("enrichment.provider", "openai") == "openai"
        with pytest.raises(ValueError):
            coerce("enrichment.provider", "skynet")

    def test_free_text(self):
        assert coerce("enrichment.model", "gpt-4o") == "gpt-4o"
