"""Scanner for Uninstall registry entries of software that is gone."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime

from wincleaner.core.backend import BackendError, BackendUnavailable
from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import CategoryScanner, ScanContext, ScanStep, fixture, registry_size
from wincleaner.scanners.software_remnants import installed_applications

log = logging.getLogger(__name__)

_KB = 1024


class RegistryRemnantsScanner(CategoryScanner):
    """Reports Uninstall entries whose InstallLocation no longer exists."""

    @property
    def id(self) -> str:
        return "registry_remnants"

    @property
    def name(self) -> str:
        return "Registry Remnants"

    @property
    def description(self) -> str:
        return "Uninstall registry entries pointing at folders that no longer exist."

    @property
    def sort_order(self) -> int:
        return 90

    def _scan_steps(self, context: ScanContext) -> Iterator[ScanStep]:
        backend = context.backend
        apps = [app for app in installed_applications(backend) if app.install_location]
        yield 10
        for index, app in enumerate(apps, 1):
            try:
                exists = backend.get_file_info(app.install_location) is not None
                key = backend.read_registry_key(app.key_path) if not exists else None
            except BackendUnavailable:
                raise
            except (BackendError, OSError) as exc:
                log.debug("Cannot check %s: %s", app.key_path, exc)
                continue
            if key is not None:
                yield RawCandidate(
                    name=app.name,
                    path=app.key_path,
                    size_bytes=max(registry_size(key), 1),
                    type_tag="orphaned-uninstall-entry",
                    description=f"Uninstall entry for {app.name}; {app.install_location} is missing",
                    app_name=app.name,
                )
            yield 10 + index * 90 // len(apps)

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        uninstall = r"Microsoft\Windows\CurrentVersion\Uninstall"
        return [
            fixture(now, "orphaned-uninstall-entry",
                    rf"HKEY_LOCAL_MACHINE\SOFTWARE\WOW6432Node\{uninstall}\{{6F2E3A1B-90C4-4D55-B1E8-3C2A7F0D9E11}}",
                    2 * _KB, days=240, name="Adobe Reader DC",
                    description=r"Uninstall entry for Adobe Reader DC; C:\Program Files (x86)\Adobe is missing",
                    app_name="Adobe Reader DC"),
            fixture(now, "orphaned-uninstall-entry",
                    rf"HKEY_CURRENT_USER\SOFTWARE\{uninstall}\Skype_is1",
                    1 * _KB, days=120, name="Skype",
                    description=r"Uninstall entry for Skype; C:\Users\User\AppData\Roaming\Skype is missing",
                    app_name="Skype"),
        ]
