"""Scanner for Windows Update leftovers."""

from __future__ import annotations

from datetime import datetime

from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import PathTableScanner, fixture

_MB = 1024 * 1024
_GB = 1024 * _MB


class WindowsUpdateScanner(PathTableScanner):
    """Update downloads, upgrade leftovers, restore points and driver packages."""

    @property
    def id(self) -> str:
        return "windows_update"

    @property
    def name(self) -> str:
        return "Windows Update"

    @property
    def description(self) -> str:
        return (
            "Downloaded update packages, the previous Windows installation, "
            "restore points, Defender definitions and the driver store."
        )

    @property
    def sort_order(self) -> int:
        return 40

    @property
    def _path_table(self) -> tuple[tuple[str, str], ...]:
        return (
            ("update-cache", r"%SYSTEMROOT%\SoftwareDistribution\Download"),
            ("update-cache", r"%SYSTEMROOT%\SoftwareDistribution\DataStore\Logs"),
            ("update-cache", r"C:\$Windows.~BT"),
            ("update-cache", r"C:\$Windows.~WS"),
            ("old-installation", r"C:\Windows.old"),
            ("restore-point", r"C:\System Volume Information\{*}"),
            ("defender-definitions", r"%PROGRAMDATA%\Microsoft\Windows Defender\Definition Updates"),
            ("driver-store", r"%SYSTEMROOT%\System32\DriverStore\FileRepository"),
        )

    @property
    def _descriptions(self) -> dict[str, str]:
        return {
            "update-cache": "Downloaded Windows Update files",
            "old-installation": "Previous Windows installation",
            "restore-point": "System restore point",
            "defender-definitions": "Microsoft Defender definition updates",
            "driver-store": "Driver package store",
        }

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        return [
            fixture(now, "old-installation", r"C:\Windows.old", 15 * _GB, days=45,
                    description="Previous Windows installation"),
            fixture(now, "update-cache", r"C:\Windows\SoftwareDistribution\Download", 3 * _GB, days=7,
                    description="Downloaded Windows Update files"),
            fixture(now, "update-cache", r"C:\$Windows.~BT", 2 * _GB, days=30,
                    description="Windows upgrade temporary files"),
            fixture(now, "restore-point", r"C:\System Volume Information\{3808876B-C176-4e48-B7AE-04046E6CC752}",
                    1 * _GB, days=20, name="Restore point", description="System restore point"),
            fixture(now, "defender-definitions",
                    r"C:\ProgramData\Microsoft\Windows Defender\Definition Updates", 500 * _MB, days=3,
                    description="Microsoft Defender definition updates"),
        ]
