"""Shared utility functions."""

from __future__ import annotations

import logging
import ntpath
import os
import re
from datetime import datetime, timezone
from pathlib import Path

log = logging.getLogger(__name__)

_ENV_VAR = re.compile(r"%([^%]+)%")


def windows_username() -> str:
    """Return the current Windows user name, defaulting to 'User'."""
    return os.environ.get("USERNAME") or "User"


def app_config_home() -> Path:
    """Return %APPDATA% on Windows, XDG_CONFIG_HOME (or ~/.config) elsewhere."""
    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata)
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def expand_windows_path(path: str) -> str:
    """Expand %VAR% references in a Windows path.

    Unset variables fall back to the usual defaults for the current user,
    so path tables stay meaningful when scanning from a service context.
    """
    user = windows_username()
    profile = os.environ.get("USERPROFILE") or rf"C:\Users\{user}"
    defaults = {
        "USERNAME": user,
        "USERPROFILE": profile,
        "APPDATA": rf"{profile}\AppData\Roaming",
        "LOCALAPPDATA": rf"{profile}\AppData\Local",
        "PROGRAMDATA": r"C:\ProgramData",
        "SYSTEMROOT": r"C:\Windows",
        "WINDIR": r"C:\Windows",
    }

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        return os.environ.get(name) or defaults.get(name.upper(), match.group(0))

    return _ENV_VAR.sub(_substitute, path)


def normalize_windows_path(path: str) -> str:
    """Lower-case a path and use backslashes, for prefix and pattern checks."""
    return path.replace("/", "\\").lower().rstrip("\\")


def is_under(path: str, prefix: str) -> bool:
    """Check whether *path* equals *prefix* or lies below it (case-insensitive)."""
    norm = normalize_windows_path(path)
    base = normalize_windows_path(prefix)
    return norm == base or norm.startswith(base + "\\")


def leaf_name(path: str) -> str:
    """Last component of a Windows file or registry path."""
    return ntpath.basename(path.rstrip("\\/")) or path


def from_timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


def dir_info(path: Path | str) -> tuple[int, int, float]:
    """Calculate total size, file count and newest mtime of a directory tree.

    Unreadable entries are skipped.

    Returns:
        (total_bytes, file_count, newest_mtime) tuple.
    """
    total = 0
    count = 0
    newest = 0.0
    stack: list[Path | str] = [path]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                for entry in it:
                    try:
                        if entry.is_file(follow_symlinks=False):
                            st = entry.stat(follow_symlinks=False)
                            total += st.st_size
                            count += 1
                            newest = max(newest, st.st_mtime)
                        elif entry.is_dir(follow_symlinks=False):
                            stack.append(entry.path)
                    except OSError:
                        log.debug("Cannot access: %s", entry.path)
        except OSError:
            log.debug("Cannot read directory: %s", current)
    return total, count, newest


def bytes_to_human(size_bytes: int) -> str:
    """Convert byte count to a human-readable string."""
    if size_bytes < 0:
        return f"-{bytes_to_human(-size_bytes)}"
    if size_bytes == 0:
        return "0 B"

    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size_bytes)
    for unit in units[:-1]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} {units[-1]}"

