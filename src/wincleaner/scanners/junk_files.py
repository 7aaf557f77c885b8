"""Scanner for temporary files, browser caches, installers and backups."""

from __future__ import annotations

from datetime import datetime

from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import PathTableScanner, fixture

_MB = 1024 * 1024


class JunkFilesScanner(PathTableScanner):
    """Finds the classic junk: temp directories, browser caches and leftovers."""

    @property
    def id(self) -> str:
        return "junk_files"

    @property
    def name(self) -> str:
        return "Junk Files"

    @property
    def description(self) -> str:
        return (
            "Temporary directories, browser caches, downloaded installers "
            "and stray backup copies."
        )

    @property
    def sort_order(self) -> int:
        return 10

    @property
    def _path_table(self) -> tuple[tuple[str, str], ...]:
        return (
            ("system-temp", r"%SYSTEMROOT%\Temp"),
            ("user-temp", r"%LOCALAPPDATA%\Temp"),
            ("browser-cache", r"%LOCALAPPDATA%\Google\Chrome\User Data\Default\Cache"),
            ("browser-cache", r"%LOCALAPPDATA%\Microsoft\Edge\User Data\Default\Cache"),
            ("browser-cache", r"%LOCALAPPDATA%\Mozilla\Firefox\Profiles\*"),
            ("download-installer", r"%USERPROFILE%\Downloads\*.exe"),
            ("download-installer", r"%USERPROFILE%\Downloads\*.msi"),
            ("backup-file", r"%USERPROFILE%\Documents\*.bak"),
            ("backup-file", r"%USERPROFILE%\Documents\*.old"),
        )

    @property
    def _descriptions(self) -> dict[str, str]:
        return {
            "system-temp": "Windows temporary files",
            "user-temp": "Temporary files of the current user",
            "browser-cache": "Browser cache, downloaded again on demand",
            "download-installer": "Installer left in the Downloads folder",
            "backup-file": "Backup copy of a document",
        }

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        return [
            fixture(now, "system-temp", r"C:\Windows\Temp", 1200 * _MB, days=1,
                    name="Windows Temp", description="Windows temporary files"),
            fixture(now, "browser-cache", r"C:\Users\User\AppData\Local\Google\Chrome\User Data\Default\Cache",
                    800 * _MB, hours=3, name="Chrome Cache", description="Browser cache"),
            fixture(now, "user-temp", r"C:\Users\User\AppData\Local\Temp", 500 * _MB, hours=5,
                    name="User Temp", description="Temporary files of the current user"),
            fixture(now, "browser-cache", r"C:\Users\User\AppData\Local\Microsoft\Edge\User Data\Default\Cache",
                    300 * _MB, hours=8, name="Edge Cache", description="Browser cache"),
            fixture(now, "download-installer", r"C:\Users\User\Downloads\ChromeSetup.exe", 95 * _MB, days=40,
                    description="Installer left in the Downloads folder"),
            fixture(now, "backup-file", r"C:\Users\User\Documents\budget.xlsx.bak", 2 * _MB, days=90,
                    description="Backup copy of a document"),
        ]
