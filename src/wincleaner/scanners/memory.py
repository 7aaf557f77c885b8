"""Scanner for memory dumps and virtual memory files."""

from __future__ import annotations

from datetime import datetime

from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import PathTableScanner, fixture

_MB = 1024 * 1024
_GB = 1024 * _MB


class MemoryScanner(PathTableScanner):
    """Reports memory dumps alongside hiberfil/pagefile, which are never deletable."""

    @property
    def id(self) -> str:
        return "memory"

    @property
    def name(self) -> str:
        return "Memory Files"

    @property
    def description(self) -> str:
        return "Kernel memory dumps, minidumps, the hibernation and page files and service temp folders."

    @property
    def sort_order(self) -> int:
        return 60

    @property
    def _path_table(self) -> tuple[tuple[str, str], ...]:
        return (
            ("memory-dump", r"%SYSTEMROOT%\MEMORY.DMP"),
            ("memory-dump", r"%SYSTEMROOT%\Minidump"),
            ("hibernation-file", r"C:\hiberfil.sys"),
            ("page-file", r"C:\pagefile.sys"),
            ("page-file", r"C:\swapfile.sys"),
            ("virtual-memory", r"%SYSTEMROOT%\ServiceProfiles\LocalService\AppData\Local\Temp"),
            ("virtual-memory", r"%SYSTEMROOT%\ServiceProfiles\NetworkService\AppData\Local\Temp"),
        )

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        return [
            fixture(now, "memory-dump", r"C:\Windows\MEMORY.DMP", 2 * _GB, days=15,
                    description="Kernel memory dump"),
            fixture(now, "memory-dump", r"C:\Windows\Minidump", 150 * _MB, days=7,
                    name="Minidump", description="Small memory dumps"),
            fixture(now, "hibernation-file", r"C:\hiberfil.sys", 8 * _GB, days=2,
                    description="Hibernation file"),
            fixture(now, "page-file", r"C:\pagefile.sys", 4 * _GB, hours=1,
                    description="Page file"),
            fixture(now, "virtual-memory", r"C:\Windows\ServiceProfiles\LocalService\AppData\Local\Temp",
                    200 * _MB, hours=6, name="Service temp files", description="Local service temporary files"),
        ]
