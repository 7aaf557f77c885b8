"""Shared test fixtures."""

from __future__ import annotations

import fnmatch
import json
from datetime import datetime, timedelta, timezone

import pytest

from wincleaner.core.backend import (
    BackendError,
    BackendUnavailable,
    DeleteResult,
    FileInfo,
    MemoryInfo,
    RegistryKey,
    SystemBackend,
)
from wincleaner.models.item import Category, CleanupItem, RawCandidate, RiskLevel
from wincleaner.models.scanner import CategoryScanner, ScanContext

NOW = datetime(2024, 12, 15, 12, 0, tzinfo=timezone.utc)

WINDOWS_ENV = {
    "USERNAME": "User",
    "USERPROFILE": r"C:\Users\User",
    "APPDATA": r"C:\Users\User\AppData\Roaming",
    "LOCALAPPDATA": r"C:\Users\User\AppData\Local",
    "PROGRAMDATA": r"C:\ProgramData",
    "SYSTEMROOT": r"C:\Windows",
}


class FakeBackend(SystemBackend):
    """Scriptable backend that records every mutating call.

    ``broken`` makes every operation raise ``BackendUnavailable`` while
    ``probe`` still passes, which is what a backend failing mid-run looks
    like. ``batch_errors`` maps the index of a ``delete_files`` call to the
    exception it should raise.
    """

    def __init__(
        self,
        *,
        files: dict[str, FileInfo] | None = None,
        listings: dict[str, list[FileInfo]] | None = None,
        registry: dict[str, RegistryKey] | None = None,
        fail_paths: set[str] | frozenset[str] = frozenset(),
        unreported: set[str] | frozenset[str] = frozenset(),
        inaccessible: set[str] | frozenset[str] = frozenset(),
        batch_errors: dict[int, Exception] | None = None,
        available: bool = True,
        broken: bool = False,
        dns_entries: int = 0,
    ) -> None:
        self.files = files or {}
        self.listings = listings or {}
        self.registry = registry or {}
        self.fail_paths = set(fail_paths)
        self.unreported = set(unreported)
        self.inaccessible = set(inaccessible)
        self.batch_errors = batch_errors or {}
        self.available = available
        self.broken = broken
        self.dns_entries = dns_entries
        self.delete_calls: list[list[str]] = []
        self.registry_deletes: list[str] = []
        self.dns_flushes = 0
        self.scanned: list[str] = []

    def _check(self, path: str = "") -> None:
        if self.broken:
            raise BackendUnavailable("backend went away")
        if path in self.inaccessible:
            raise BackendError(f"Access denied: {path}")

    def probe(self) -> None:
        if not self.available:
            raise BackendUnavailable("not on Windows")

    def scan_directory(self, path, *, recursive=False, max_depth=None, extensions=None, pattern=None):
        self._check(path)
        self.scanned.append(path)
        entries = self.listings.get(path, [])
        if pattern:
            entries = [e for e in entries if fnmatch.fnmatch(e.name.lower(), pattern.lower())]
        return list(entries)

    def get_file_info(self, path):
        self._check(path)
        return self.files.get(path)

    def delete_files(self, paths):
        index = len(self.delete_calls)
        self.delete_calls.append(list(paths))
        self._check()
        if index in self.batch_errors:
            raise self.batch_errors[index]
        result = DeleteResult()
        for path in paths:
            if path in self.unreported:
                continue
            if path in self.fail_paths:
                result.failed_files.append((path, "Access denied"))
            else:
                result.deleted_files.append(path)
        return result

    def read_registry_key(self, path):
        self._check(path)
        return self.registry.get(path)

    def delete_registry_key(self, path):
        self._check()
        self.registry_deletes.append(path)
        if path in self.fail_paths:
            raise BackendError("Access denied")

    def get_system_memory_info(self):
        self._check()
        return MemoryInfo(total_bytes=8 * 1024**3, available_bytes=2 * 1024**3)

    def get_dns_cache_info(self):
        self._check()
        return self.dns_entries

    def flush_dns_cache(self):
        self._check()
        self.dns_flushes += 1

    @property
    def deleted_paths(self) -> list[str]:
        return [p for call in self.delete_calls for p in call] + self.registry_deletes


class StubScanner(CategoryScanner):
    """Scanner that emits a fixed list of candidates, then optionally raises."""

    def __init__(self, scanner_id, candidates=(), *, order=50, error=None):
        self._id = scanner_id
        self._candidates = list(candidates)
        self._order = order
        self._error = error

    @property
    def id(self):
        return self._id

    @property
    def name(self):
        return f"Stub ({self._id})"

    @property
    def description(self):
        return "A stub scanner for testing"

    @property
    def sort_order(self):
        return self._order

    def _scan_steps(self, context):
        for index, candidate in enumerate(self._candidates, 1):
            yield candidate
            yield index * 100 // len(self._candidates)
        if self._error is not None:
            raise self._error

    def fixtures(self, now):
        return list(self._candidates)


def make_candidate(
    path: str,
    type_tag: str = "user-temp",
    size: int = 1024,
    age_days: float = 1,
    name: str | None = None,
) -> RawCandidate:
    return RawCandidate(
        name=name or path.rsplit("\\", 1)[-1],
        path=path,
        size_bytes=size,
        type_tag=type_tag,
        last_modified=NOW - timedelta(days=age_days),
    )


def make_item(
    item_id: str,
    path: str | None = None,
    size: int = 100,
    risk: RiskLevel = RiskLevel.SAFE,
    can_delete: bool | None = None,
    category: Category = Category.SYSTEM,
    retained: bool = False,
) -> CleanupItem:
    if can_delete is None:
        can_delete = risk is not RiskLevel.HIGH and not retained
    return CleanupItem(
        id=item_id,
        name=item_id,
        path=path or rf"C:\Users\User\AppData\Local\Temp\{item_id}.tmp",
        size_bytes=size,
        category=category,
        risk_level=risk,
        can_delete=can_delete,
        suggestion="",
        retained=retained,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def context_for():
    """Build a ScanContext for a backend at the fixed test time."""

    def _build(backend: SystemBackend) -> ScanContext:
        return ScanContext(backend, NOW)

    return _build


@pytest.fixture
def windows_env(monkeypatch):
    """Pin the environment variables Windows path tables expand."""
    for name, value in WINDOWS_ENV.items():
        monkeypatch.setenv(name, value)
    return WINDOWS_ENV


@pytest.fixture
def isolate_settings(tmp_path, monkeypatch):
    """Point the settings file at a temp directory with no inter-batch delay."""
    monkeypatch.setenv("APPDATA", str(tmp_path))
    settings_file = tmp_path / "WinCleaner" / "settings.json"
    settings_file.parent.mkdir()
    settings_file.write_text(json.dumps({"cleaning": {"inter_batch_delay": 0}}), encoding="utf-8")
    return settings_file
