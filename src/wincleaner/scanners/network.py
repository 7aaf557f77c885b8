"""Scanner for network caches and connection history."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime

from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import PathTableScanner, ScanContext, ScanStep, fixture
from wincleaner.scanners.system_cache import dns_cache_candidate

_KB = 1024
_MB = 1024 * _KB


class NetworkScanner(PathTableScanner):

    _registry_value_size = 200
    _dns_entry_bytes = 512

    @property
    def id(self) -> str:
        return "network"

    @property
    def name(self) -> str:
        return "Network"

    @property
    def description(self) -> str:
        return "Wi-Fi profiles, internet cache, connection and remote desktop history, network logs."

    @property
    def sort_order(self) -> int:
        return 70

    @property
    def _path_table(self) -> tuple[tuple[str, str], ...]:
        return (
            ("wifi-profiles", r"%PROGRAMDATA%\Microsoft\Wlansvc\Profiles\Interfaces"),
            ("network-cache", r"%LOCALAPPDATA%\Microsoft\Windows\INetCache"),
            ("network-cache", r"%SYSTEMROOT%\ServiceProfiles\LocalService\AppData\Local\Microsoft\Windows\INetCache"),
            ("connection-history", r"%PROGRAMDATA%\Microsoft\Network\Connections"),
            ("connection-history", r"HKEY_LOCAL_MACHINE\SOFTWARE\Microsoft\Windows NT\CurrentVersion\NetworkList\Profiles"),
            ("remote-desktop", r"%USERPROFILE%\Documents\Default.rdp"),
            ("remote-desktop", r"HKEY_CURRENT_USER\SOFTWARE\Microsoft\Terminal Server Client\Default"),
            ("network-logs", r"%SYSTEMROOT%\System32\LogFiles\HTTPERR"),
            ("network-logs", r"%SYSTEMROOT%\System32\LogFiles\WMI\RtBackup"),
        )

    @property
    def _descriptions(self) -> dict[str, str]:
        return {
            "wifi-profiles": "Saved Wi-Fi profiles",
            "network-cache": "Internet cache",
            "connection-history": "Network connection history",
            "remote-desktop": "Remote desktop connection history",
            "network-logs": "Network service logs",
        }

    def _extra_steps(self, context: ScanContext) -> Iterator[ScanStep]:
        entries = context.backend.get_dns_cache_info()
        if entries > 0:
            yield dns_cache_candidate(entries, context.now, self._dns_entry_bytes)

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        return [
            fixture(now, "wifi-profiles", r"C:\ProgramData\Microsoft\Wlansvc\Profiles\Interfaces", 2 * _MB,
                    days=10, name="Wi-Fi profiles", description="Saved Wi-Fi profiles"),
            fixture(now, "network-cache", r"C:\Users\User\AppData\Local\Microsoft\Windows\INetCache",
                    150 * _MB, hours=2, description="Internet cache"),
            fixture(now, "connection-history",
                    r"HKEY_LOCAL_MACHINE\SOFTWARE\Microsoft\Windows NT\CurrentVersion\NetworkList\Profiles",
                    5 * _KB, days=5, description="Network connection history"),
            fixture(now, "remote-desktop",
                    r"HKEY_CURRENT_USER\SOFTWARE\Microsoft\Terminal Server Client\Default",
                    3 * _KB, days=7, description="Remote desktop connection history"),
            fixture(now, "network-logs", r"C:\Windows\System32\LogFiles\HTTPERR", 25 * _MB, days=1,
                    description="HTTP error logs"),
            dns_cache_candidate(2048, now, self._dns_entry_bytes),
        ]
