"""Tests for the real backend's portable parts."""

from __future__ import annotations

import os
import sys

import pytest

from wincleaner.core import windows_backend
from wincleaner.core.backend import BackendError, BackendUnavailable
from wincleaner.core.windows_backend import WindowsBackend, split_registry_path


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "a.log").write_bytes(b"x" * 10)
    (tmp_path / "b.txt").write_bytes(b"x" * 20)
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "c.log").write_bytes(b"x" * 30)
    deep = sub / "deep"
    deep.mkdir()
    (deep / "d.log").write_bytes(b"x" * 40)
    return tmp_path


class TestSplitRegistryPath:
    def test_full_hive_name(self):
        assert split_registry_path(r"HKEY_CURRENT_USER\Software\X") == ("HKEY_CURRENT_USER", r"Software\X")

    def test_short_hive_name(self):
        assert split_registry_path(r"hklm\SOFTWARE\Y\\") == ("HKEY_LOCAL_MACHINE", r"SOFTWARE\Y")

    def test_root_only(self):
        assert split_registry_path("HKEY_USERS") == ("HKEY_USERS", "")

    def test_unknown_hive(self):
        with pytest.raises(BackendError):
            split_registry_path(r"HKEY_NOWHERE\X")


class TestScanDirectory:
    def test_top_level_entries_with_directory_sizes(self, tree):
        entries = {e.name: e for e in WindowsBackend().scan_directory(str(tree))}

        assert set(entries) == {"a.log", "b.txt", "sub"}
        assert entries["sub"].is_dir
        assert entries["sub"].size == 70
        assert entries["a.log"].size == 10

    def test_recursive_with_extension_filter(self, tree):
        entries = WindowsBackend().scan_directory(str(tree), recursive=True, extensions=(".LOG",))
        assert sorted(e.name for e in entries) == ["a.log", "c.log", "d.log"]

    def test_max_depth(self, tree):
        entries = WindowsBackend().scan_directory(str(tree), recursive=True, max_depth=1, extensions=(".log",))
        assert sorted(e.name for e in entries) == ["a.log", "c.log"]

    def test_pattern(self, tree):
        entries = WindowsBackend().scan_directory(str(tree), pattern="*.TXT")
        assert [e.name for e in entries] == ["b.txt"]

    def test_missing_directory_is_empty(self, tmp_path):
        assert WindowsBackend().scan_directory(str(tmp_path / "missing")) == []


class TestGetFileInfo:
    def test_file(self, tree):
        info = WindowsBackend().get_file_info(str(tree / "b.txt"))
        assert info.size == 20
        assert info.name == "b.txt"
        assert not info.is_dir
        assert info.last_modified.tzinfo is not None

    def test_directory_is_summed(self, tree):
        info = WindowsBackend().get_file_info(str(tree / "sub"))
        assert info.is_dir
        assert info.size == 70

    def test_missing(self, tmp_path):
        assert WindowsBackend().get_file_info(str(tmp_path / "nope")) is None


class TestDeleteFiles:
    def test_results_are_keyed_by_path(self, tree, monkeypatch):
        recycled = []

        def fake_send2trash(path):
            if path.endswith("b.txt"):
                raise PermissionError("in use")
            recycled.append(path)

        monkeypatch.setattr(windows_backend, "send2trash", fake_send2trash)
        a, b = str(tree / "a.log"), str(tree / "b.txt")
        result = WindowsBackend().delete_files([a, b])

        assert result.deleted_files == [a]
        assert result.failed_files == [(b, "in use")]
        assert recycled == [a]


class TestSystemInfo:
    def test_memory_comes_from_psutil(self):
        info = WindowsBackend().get_system_memory_info()
        assert info.total_bytes > 0
        assert 0 <= info.used_percent <= 100

    def test_dns_entries_are_counted_from_ipconfig(self, monkeypatch):
        output = "    Record Name . . . . . : example.com\n    Record Name . . . . . : example.org\n"
        monkeypatch.setattr(WindowsBackend, "_ipconfig", lambda self, flag: output)
        assert WindowsBackend().get_dns_cache_info() == 2

    def test_missing_ipconfig_means_unavailable(self, monkeypatch):
        def missing(*args, **kwargs):
            raise FileNotFoundError("ipconfig")

        monkeypatch.setattr(windows_backend.subprocess, "run", missing)
        with pytest.raises(BackendUnavailable):
            WindowsBackend().flush_dns_cache()


@pytest.mark.skipif(sys.platform == "win32", reason="the backend is available on Windows")
class TestOffWindows:
    def test_probe_fails(self):
        with pytest.raises(BackendUnavailable):
            WindowsBackend().probe()

    def test_registry_access_is_unavailable(self):
        with pytest.raises(BackendUnavailable):
            WindowsBackend().read_registry_key(r"HKEY_CURRENT_USER\Software")


@pytest.mark.skipif(os.name == "nt", reason="relies on POSIX permissions")
def test_unreadable_directory_raises(tmp_path):
    locked = tmp_path / "locked"
    locked.mkdir()
    locked.chmod(0)
    try:
        if os.access(locked, os.R_OK):
            pytest.skip("running with elevated privileges")
        with pytest.raises(BackendError):
            WindowsBackend().scan_directory(str(locked))
    finally:
        locked.chmod(0o755)
