"""Scanner for usage history and other privacy traces."""

from __future__ import annotations

from datetime import datetime

from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import PathTableScanner, fixture

_KB = 1024
_MB = 1024 * _KB


class PrivacyDataScanner(PathTableScanner):

    @property
    def id(self) -> str:
        return "privacy_data"

    @property
    def name(self) -> str:
        return "Privacy Data"

    @property
    def description(self) -> str:
        return "Recent documents, Run and search history, clipboard and activity history, jump lists."

    @property
    def sort_order(self) -> int:
        return 50

    @property
    def _path_table(self) -> tuple[tuple[str, str], ...]:
        return (
            ("recent-docs", r"%APPDATA%\Microsoft\Windows\Recent"),
            ("recent-docs", r"%APPDATA%\Microsoft\Office\Recent"),
            ("run-history", r"HKEY_CURRENT_USER\SOFTWARE\Microsoft\Windows\CurrentVersion\Explorer\RunMRU"),
            ("run-history", r"HKEY_CURRENT_USER\SOFTWARE\Microsoft\Windows\CurrentVersion\Explorer\TypedPaths"),
            ("search-history", r"HKEY_CURRENT_USER\SOFTWARE\Microsoft\Windows\CurrentVersion\Explorer\WordWheelQuery"),
            ("clipboard-history", r"%LOCALAPPDATA%\Microsoft\Windows\CloudClipboard"),
            ("activity-history", r"%LOCALAPPDATA%\ConnectedDevicesPlatform"),
            ("location-data", r"%LOCALAPPDATA%\Microsoft\Windows\LocationProvider"),
            ("jump-lists", r"%APPDATA%\Microsoft\Windows\Recent\AutomaticDestinations"),
            ("jump-lists", r"%APPDATA%\Microsoft\Windows\Recent\CustomDestinations"),
        )

    @property
    def _descriptions(self) -> dict[str, str]:
        return {
            "recent-docs": "Recently opened documents",
            "run-history": "Run dialog and address bar history",
            "search-history": "Explorer search history",
            "clipboard-history": "Cloud clipboard history",
            "activity-history": "Windows activity history",
            "location-data": "Location service data",
            "jump-lists": "Taskbar jump lists",
        }

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        return [
            fixture(now, "recent-docs", r"C:\Users\User\AppData\Roaming\Microsoft\Windows\Recent", 5 * _MB,
                    days=1, name="Recent", description="Recently opened documents"),
            fixture(now, "run-history",
                    r"HKEY_CURRENT_USER\SOFTWARE\Microsoft\Windows\CurrentVersion\Explorer\RunMRU",
                    2 * _KB, days=3, description="Run dialog history"),
            fixture(now, "search-history",
                    r"HKEY_CURRENT_USER\SOFTWARE\Microsoft\Windows\CurrentVersion\Explorer\WordWheelQuery",
                    5 * _KB, days=2, description="Explorer search history"),
            fixture(now, "clipboard-history", r"C:\Users\User\AppData\Local\Microsoft\Windows\CloudClipboard",
                    10 * _MB, hours=6, description="Cloud clipboard history"),
            fixture(now, "activity-history", r"C:\Users\User\AppData\Local\ConnectedDevicesPlatform",
                    25 * _MB, hours=12, description="Windows activity history"),
            fixture(now, "location-data", r"C:\Users\User\AppData\Local\Microsoft\Windows\LocationProvider",
                    8 * _MB, days=1, description="Location service data"),
            fixture(now, "jump-lists",
                    r"C:\Users\User\AppData\Roaming\Microsoft\Windows\Recent\AutomaticDestinations",
                    15 * _MB, days=2, description="Taskbar jump lists"),
        ]
