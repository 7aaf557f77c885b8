"""Deterministic stand-in for the Windows backend.

Used when the real backend is disabled or unavailable. Scanners detect
``is_simulated`` and return their fixtures instead of touching the
backend, so the read side here only serves memory and DNS status. The
write side reports every path as deleted unless it was listed in
``fail_paths``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable

from wincleaner.core.backend import (
    DNS_CACHE_PATH,
    BackendError,
    DeleteResult,
    FileInfo,
    MemoryInfo,
    RegistryKey,
    SystemBackend,
)

log = logging.getLogger(__name__)

SIMULATED_DNS_ENTRIES = 156
SIMULATED_MEMORY = MemoryInfo(total_bytes=16 * 1024**3, available_bytes=6 * 1024**3)
SIMULATED_FAILURE = "Access denied (simulated)"


class SimulatedBackend(SystemBackend):
    """In-memory backend with fixed fixtures and optional artificial latency."""

    is_simulated = True

    def __init__(
        self,
        latency: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
        fail_paths: Iterable[str] = (),
    ) -> None:
        self.latency = latency
        self._sleep = sleep
        self._fail_paths = {p.lower() for p in fail_paths}
        self._dns_entries = SIMULATED_DNS_ENTRIES
        self.deleted: list[str] = []

    def throttle(self) -> None:
        if self.latency > 0:
            self._sleep(self.latency)

    def _fails(self, path: str) -> bool:
        return path.lower() in self._fail_paths

    def scan_directory(self, path, *, recursive=False, max_depth=None, extensions=None, pattern=None) -> list[FileInfo]:
        return []

    def get_file_info(self, path: str) -> FileInfo | None:
        return None

    def delete_files(self, paths: list[str]) -> DeleteResult:
        self.throttle()
        result = DeleteResult()
        for path in paths:
            if self._fails(path):
                result.failed_files.append((path, SIMULATED_FAILURE))
            else:
                result.deleted_files.append(path)
                self.deleted.append(path)
        log.debug("Simulated deletion of %d paths (%d failed)", len(paths), len(result.failed_files))
        return result

    def read_registry_key(self, path: str) -> RegistryKey | None:
        return None

    def delete_registry_key(self, path: str) -> None:
        self.throttle()
        if self._fails(path):
            raise BackendError(SIMULATED_FAILURE)
        self.deleted.append(path)

    def get_system_memory_info(self) -> MemoryInfo:
        return SIMULATED_MEMORY

    def get_dns_cache_info(self) -> int:
        return self._dns_entries

    def flush_dns_cache(self) -> None:
        self.throttle()
        if self._fails(DNS_CACHE_PATH):
            raise BackendError(SIMULATED_FAILURE)
        self._dns_entries = 0
