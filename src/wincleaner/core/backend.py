"""System backend interface.

Everything that touches the operating system (directories, the registry,
the recycle bin, memory and DNS state) goes through a ``SystemBackend``.
The real implementation lives in ``windows_backend``; the simulator in
``simulator`` is a drop-in replacement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

# Synthetic path for the in-memory DNS resolver cache.
DNS_CACHE_PATH = "Memory (DNS Resolver Cache)"


class BackendError(Exception):
    """A backend operation failed for a single resource."""


class BackendUnavailable(BackendError):
    """The backend capability is missing or unusable on this system."""


@dataclass(frozen=True, slots=True)
class FileInfo:
    path: str
    name: str
    size: int
    last_modified: datetime | None = None
    is_dir: bool = False


@dataclass(slots=True)
class DeleteResult:
    """Outcome of a ``delete_files`` call, keyed by path."""

    deleted_files: list[str] = field(default_factory=list)
    failed_files: list[tuple[str, str]] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RegistryKey:
    path: str
    values: dict[str, Any] = field(default_factory=dict)
    subkeys: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class MemoryInfo:
    total_bytes: int
    available_bytes: int

    @property
    def used_percent(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return round((self.total_bytes - self.available_bytes) * 100 / self.total_bytes, 1)


class SystemBackend(ABC):
    """OS-facing operations the cleanup core depends on."""

    is_simulated: bool = False

    def probe(self) -> None:
        """Raise ``BackendUnavailable`` if the backend cannot be used."""

    def throttle(self) -> None:
        """Called between simulated scan steps; real backends do nothing."""

    @abstractmethod
    def scan_directory(
        self,
        path: str,
        *,
        recursive: bool = False,
        max_depth: int | None = None,
        extensions: Iterable[str] | None = None,
        pattern: str | None = None,
    ) -> list[FileInfo]:
        """List entries under *path*. Missing directories yield an empty list."""

    @abstractmethod
    def get_file_info(self, path: str) -> FileInfo | None:
        """Return info for a file or directory, or None if it does not exist."""

    @abstractmethod
    def delete_files(self, paths: list[str]) -> DeleteResult:
        """Move the given paths to the recycle bin."""

    @abstractmethod
    def read_registry_key(self, path: str) -> RegistryKey | None:
        """Read a registry key, or None if it does not exist."""

    @abstractmethod
    def delete_registry_key(self, path: str) -> None:
        """Delete a registry key and its subkeys."""

    @abstractmethod
    def get_system_memory_info(self) -> MemoryInfo:
        """Return physical memory totals."""

    @abstractmethod
    def get_dns_cache_info(self) -> int:
        """Return the number of entries in the DNS resolver cache."""

    @abstractmethod
    def flush_dns_cache(self) -> None:
        """Flush the DNS resolver cache."""
