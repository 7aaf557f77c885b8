"""JSON-backed settings store."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from wincleaner.core.enrichment import PROVIDERS, EnrichmentConfig
from wincleaner.models.item import Category, RetentionPolicy
from wincleaner.utils import app_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "WinCleaner"
_SETTINGS_FILE = "settings.json"

DEFAULTS: dict[str, Any] = {
    "retention.wechat_months": 3,
    "retention.qq_months": 3,
    "backend.use_real": True,
    "cleaning.batch_size": 5,
    "cleaning.inter_batch_delay": 0.2,
    "enrichment.provider": "disabled",
    "enrichment.api_key": "",
    "enrichment.model": "gpt-4o-mini",
    "enrichment.base_url": "",
    "enrichment.min_confidence": 0.8,
    "enrichment.timeout": 20.0,
}


def default_settings_path() -> Path:
    """%APPDATA%\\WinCleaner\\settings.json, or ~/.config/wincleaner/settings.json off Windows."""
    name = _SETTINGS_DIR if os.environ.get("APPDATA") else _SETTINGS_DIR.lower()
    return app_config_home() / name / _SETTINGS_FILE


def coerce(key: str, raw: str) -> Any:
    """Convert a command-line string to the type of the key's default."""
    default = DEFAULTS.get(key)
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Expected a boolean for {key}, got {raw!r}")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    if key == "enrichment.provider" and raw not in PROVIDERS:
        raise ValueError(f"Provider must be one of: {', '.join(PROVIDERS)}")
    return raw


class Settings:
    """Persistent settings backed by a JSON file.

    Uses dot-notation keys for nested access:
        settings.get("retention.wechat_months")  # reads data["retention"]["wechat_months"]
        settings.set("backend.use_real", False)   # writes + saves
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or default_settings_path()
        self._data: dict[str, Any] = {}
        self._load()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key, falling back to the built-in default."""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return DEFAULTS.get(key, default) if default is None else default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot-notation key and persist to disk."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    def _typed(self, key: str, kind: type) -> Any:
        value = self.get(key)
        try:
            return kind(value)
        except (TypeError, ValueError):
            log.warning("Invalid value %r for %s, using default", value, key)
            return DEFAULTS[key]

    # ── value objects consumed by the core ───────────────────────────

    def retention_policy(self) -> RetentionPolicy:
        return RetentionPolicy(
            {
                Category.WECHAT: max(0, self._typed("retention.wechat_months", int)),
                Category.QQ: max(0, self._typed("retention.qq_months", int)),
            }
        )

    def enrichment_config(self) -> EnrichmentConfig:
        provider = self.get("enrichment.provider")
        if provider not in PROVIDERS:
            log.warning("Unknown enrichment provider %r, disabling enrichment", provider)
            provider = "disabled"
        return EnrichmentConfig(
            provider=provider,
            api_key=str(self.get("enrichment.api_key") or ""),
            model=str(self.get("enrichment.model") or DEFAULTS["enrichment.model"]),
            base_url=str(self.get("enrichment.base_url") or ""),
            timeout=self._typed("enrichment.timeout", float),
            min_confidence=self._typed("enrichment.min_confidence", float),
        )

    @property
    def use_real_backend(self) -> bool:
        return bool(self.get("backend.use_real"))

    @property
    def batch_size(self) -> int:
        return max(1, self._typed("cleaning.batch_size", int))

    @property
    def inter_batch_delay(self) -> float:
        return max(0.0, self._typed("cleaning.inter_batch_delay", float))

    def _load(self) -> None:
        """Load settings from disk, gracefully handling errors."""
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not load settings from %s: %s", self.path, e)
            return
        if isinstance(data, dict):
            self._data = data
        else:
            log.warning("Ignoring settings file %s: top level is not an object", self.path)

    def _save(self) -> None:
        """Persist settings to disk."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self.path, e)
