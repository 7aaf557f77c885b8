"""Real Windows backend.

Files go to the recycle bin through send2trash, registry access uses
``winreg`` and the DNS resolver cache is driven through ``ipconfig``.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import subprocess
import sys
from collections.abc import Iterable, Iterator

import psutil
from send2trash import send2trash

from wincleaner.core.backend import (
    BackendError,
    BackendUnavailable,
    DeleteResult,
    FileInfo,
    MemoryInfo,
    RegistryKey,
    SystemBackend,
)
from wincleaner.utils import dir_info, from_timestamp

try:
    import winreg
except ImportError:
    winreg = None  # not on Windows; probe() reports the backend unavailable

log = logging.getLogger(__name__)

_IPCONFIG_TIMEOUT = 30

_HIVE_NAMES = {
    "HKEY_CLASSES_ROOT": "HKEY_CLASSES_ROOT",
    "HKCR": "HKEY_CLASSES_ROOT",
    "HKEY_CURRENT_USER": "HKEY_CURRENT_USER",
    "HKCU": "HKEY_CURRENT_USER",
    "HKEY_LOCAL_MACHINE": "HKEY_LOCAL_MACHINE",
    "HKLM": "HKEY_LOCAL_MACHINE",
    "HKEY_USERS": "HKEY_USERS",
    "HKU": "HKEY_USERS",
}


def split_registry_path(path: str) -> tuple[str, str]:
    """Split 'HKEY_CURRENT_USER\\Software\\X' into ('HKEY_CURRENT_USER', 'Software\\X')."""
    hive, _, subkey = path.replace("/", "\\").partition("\\")
    try:
        return _HIVE_NAMES[hive.upper()], subkey.strip("\\")
    except KeyError:
        raise BackendError(f"Unknown registry hive: {hive}") from None


class WindowsBackend(SystemBackend):
    """Backend that operates on the local Windows installation."""

    def probe(self) -> None:
        if sys.platform != "win32" or winreg is None:
            raise BackendUnavailable(f"Windows backend is not available on {sys.platform}")

    # ── files ─────────────────────────────────────────────────────────

    def scan_directory(
        self,
        path: str,
        *,
        recursive: bool = False,
        max_depth: int | None = None,
        extensions: Iterable[str] | None = None,
        pattern: str | None = None,
    ) -> list[FileInfo]:
        exts = tuple(e.lower() for e in extensions) if extensions else None
        try:
            entries = list(self._walk(path, recursive, max_depth, 0))
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise BackendError(f"Cannot read {path}: {exc}") from exc

        found: list[FileInfo] = []
        for entry in entries:
            if pattern and not fnmatch.fnmatch(entry.name.lower(), pattern.lower()):
                continue
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                if exts and (is_dir or not entry.name.lower().endswith(exts)):
                    continue
                found.append(self._info_from_entry(entry, is_dir, sized=not recursive))
            except OSError:
                log.debug("Cannot access: %s", entry.path)
        return found

    def _walk(self, path: str, recursive: bool, max_depth: int | None, depth: int) -> Iterator[os.DirEntry]:
        with os.scandir(path) as it:
            entries = list(it)
        for entry in entries:
            yield entry
            if not recursive or (max_depth is not None and depth >= max_depth):
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    yield from self._walk(entry.path, recursive, max_depth, depth + 1)
            except OSError:
                log.debug("Cannot read directory: %s", entry.path)

    @staticmethod
    def _info_from_entry(entry: os.DirEntry, is_dir: bool, sized: bool) -> FileInfo:
        st = entry.stat(follow_symlinks=False)
        size, mtime = st.st_size, st.st_mtime
        if is_dir:
            size = 0
            if sized:
                size, _count, newest = dir_info(entry.path)
                mtime = max(mtime, newest)
        return FileInfo(
            path=entry.path,
            name=entry.name,
            size=size,
            last_modified=from_timestamp(mtime),
            is_dir=is_dir,
        )

    def get_file_info(self, path: str) -> FileInfo | None:
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise BackendError(f"Cannot stat {path}: {exc}") from exc

        is_dir = os.path.isdir(path)
        size, mtime = st.st_size, st.st_mtime
        if is_dir:
            size, _count, newest = dir_info(path)
            mtime = max(mtime, newest)
        return FileInfo(
            path=path,
            name=os.path.basename(path.rstrip("\\/")) or path,
            size=size,
            last_modified=from_timestamp(mtime),
            is_dir=is_dir,
        )

    def delete_files(self, paths: list[str]) -> DeleteResult:
        result = DeleteResult()
        for path in paths:
            try:
                send2trash(path)
                result.deleted_files.append(path)
            except OSError as exc:
                log.debug("Failed to recycle %s: %s", path, exc)
                result.failed_files.append((path, str(exc) or type(exc).__name__))
        return result

    # ── registry ──────────────────────────────────────────────────────

    def _hive(self, name: str):
        self.probe()
        return getattr(winreg, name)

    def read_registry_key(self, path: str) -> RegistryKey | None:
        hive_name, subkey = split_registry_path(path)
        hive = self._hive(hive_name)
        try:
            with winreg.OpenKey(hive, subkey) as key:
                n_subkeys, n_values, _modified = winreg.QueryInfoKey(key)
                values = {}
                for i in range(n_values):
                    name, data, _type = winreg.EnumValue(key, i)
                    values[name] = data
                subkeys = tuple(winreg.EnumKey(key, i) for i in range(n_subkeys))
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise BackendError(f"Cannot read {path}: {exc}") from exc
        return RegistryKey(path=path, values=values, subkeys=subkeys)

    def delete_registry_key(self, path: str) -> None:
        hive_name, subkey = split_registry_path(path)
        if not subkey:
            raise BackendError(f"Refusing to delete registry hive root: {path}")
        hive = self._hive(hive_name)
        try:
            self._delete_tree(hive, subkey)
        except FileNotFoundError as exc:
            raise BackendError(f"Registry key not found: {path}") from exc
        except OSError as exc:
            raise BackendError(f"Cannot delete {path}: {exc}") from exc

    def _delete_tree(self, hive, subkey: str) -> None:
        with winreg.OpenKey(hive, subkey, 0, winreg.KEY_READ) as key:
            children = [winreg.EnumKey(key, i) for i in range(winreg.QueryInfoKey(key)[0])]
        for child in children:
            self._delete_tree(hive, f"{subkey}\\{child}")
        winreg.DeleteKey(hive, subkey)

    # ── memory / DNS ──────────────────────────────────────────────────

    def get_system_memory_info(self) -> MemoryInfo:
        mem = psutil.virtual_memory()
        return MemoryInfo(total_bytes=mem.total, available_bytes=mem.available)

    def _ipconfig(self, flag: str) -> str:
        try:
            proc = subprocess.run(
                ["ipconfig", flag],
                capture_output=True,
                text=True,
                timeout=_IPCONFIG_TIMEOUT,
            )
        except FileNotFoundError as exc:
            raise BackendUnavailable("ipconfig not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise BackendError(f"ipconfig {flag} timed out") from exc

        if proc.returncode != 0:
            raise BackendError(f"ipconfig {flag} failed (exit {proc.returncode}): {proc.stderr.strip()}")
        return proc.stdout

    def get_dns_cache_info(self) -> int:
        output = self._ipconfig("/displaydns")
        return sum(1 for line in output.splitlines() if "Record Name" in line)

    def flush_dns_cache(self) -> None:
        self._ipconfig("/flushdns")
        log.info("DNS resolver cache flushed")
