"""Scanner for application data left behind by uninstalled software.

Installed applications are read from the Uninstall registry keys. Any
top-level folder under AppData or ProgramData whose name matches neither
an installed application's DisplayName nor its Publisher is reported.
"""

from __future__ import annotations

import logging
import ntpath
import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime

from wincleaner.core.backend import BackendError, BackendUnavailable, SystemBackend
from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import CategoryScanner, ScanContext, ScanStep, fixture
from wincleaner.utils import expand_windows_path

log = logging.getLogger(__name__)

_MB = 1024 * 1024

UNINSTALL_ROOTS = (
    r"HKEY_LOCAL_MACHINE\SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
    r"HKEY_LOCAL_MACHINE\SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall",
    r"HKEY_CURRENT_USER\SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
)

DATA_ROOTS = (
    r"%APPDATA%",
    r"%LOCALAPPDATA%",
    r"%PROGRAMDATA%",
)

# Folders owned by Windows itself or by drivers; never reported.
SYSTEM_FOLDERS = frozenset({
    "microsoft", "windows", "packages", "temp", "programs", "comms", "history",
    "connecteddevicesplatform", "crashdumps", "d3dscache", "package cache",
    "softwaredistribution", "usoshared", "usoprivate", "ssh", "regid.1991-06.com.microsoft",
    "nvidia", "nvidia corporation", "intel", "amd", "realtek", "windows defender",
    "tencent", "identities", "placeholdertilelogofolder", "peernetworking",
})

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_MIN_MATCH = 3


@dataclass(frozen=True, slots=True)
class InstalledApp:
    key_path: str
    name: str
    publisher: str = ""
    install_location: str = ""


def installed_applications(backend: SystemBackend) -> list[InstalledApp]:
    """Read every Uninstall entry that has a DisplayName."""
    apps: list[InstalledApp] = []
    for root in UNINSTALL_ROOTS:
        try:
            key = backend.read_registry_key(root)
        except BackendUnavailable:
            raise
        except BackendError as exc:
            log.debug("Cannot read %s: %s", root, exc)
            continue
        if key is None:
            continue
        for subkey in key.subkeys:
            path = f"{root}\\{subkey}"
            try:
                entry = backend.read_registry_key(path)
            except BackendUnavailable:
                raise
            except BackendError as exc:
                log.debug("Cannot read %s: %s", path, exc)
                continue
            if entry is None or not entry.values.get("DisplayName"):
                continue
            apps.append(
                InstalledApp(
                    key_path=path,
                    name=str(entry.values["DisplayName"]),
                    publisher=str(entry.values.get("Publisher") or ""),
                    install_location=str(entry.values.get("InstallLocation") or "").strip().strip('"'),
                )
            )
    log.debug("Found %d installed applications", len(apps))
    return apps


def _normalize(name: str) -> str:
    return _NON_ALNUM.sub("", name.lower())


def is_orphaned(folder: str, known_names: set[str]) -> bool:
    """Whether *folder* matches none of the normalized installed names."""
    key = _normalize(folder)
    if len(key) < _MIN_MATCH or folder.lower() in SYSTEM_FOLDERS:
        return False
    return not any(key in known or (len(known) >= _MIN_MATCH and known in key) for known in known_names)


class SoftwareRemnantsScanner(CategoryScanner):

    @property
    def id(self) -> str:
        return "software_remnants"

    @property
    def name(self) -> str:
        return "Software Remnants"

    @property
    def description(self) -> str:
        return "Application data folders left behind by software that is no longer installed."

    @property
    def sort_order(self) -> int:
        return 80

    def _scan_steps(self, context: ScanContext) -> Iterator[ScanStep]:
        backend = context.backend
        known: set[str] = set()
        for app in installed_applications(backend):
            known.update(n for n in (_normalize(app.name), _normalize(app.publisher)) if n)
        yield 20

        for index, pattern in enumerate(DATA_ROOTS, 1):
            root = expand_windows_path(pattern)
            try:
                entries = backend.scan_directory(root)
            except BackendUnavailable:
                raise
            except (BackendError, OSError) as exc:
                log.debug("Cannot list %s: %s", root, exc)
                entries = []
            for info in entries:
                if not info.is_dir or info.size <= 0 or not is_orphaned(info.name, known):
                    continue
                yield RawCandidate(
                    name=info.name,
                    path=info.path,
                    size_bytes=info.size,
                    type_tag="orphaned-folder",
                    last_modified=info.last_modified,
                    description=f"Data folder of {info.name}, which is no longer installed",
                    app_name=info.name,
                )
            yield 20 + index * 80 // len(DATA_ROOTS)

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        rows = (
            ("Skype", r"C:\Users\User\AppData\Roaming\Skype", 45 * _MB, 120),
            ("Adobe Reader DC", r"C:\Users\User\AppData\Local\Adobe\Acrobat\DC", 150 * _MB, 200),
            ("McAfee Antivirus", r"C:\ProgramData\McAfee", 500 * _MB, 180),
        )
        return [
            fixture(now, "orphaned-folder", path, size, days=days, name=ntpath.basename(path),
                    description=f"Data folder of {app}, which is no longer installed", app_name=app)
            for app, path, size, days in rows
        ]
