"""Scanner for Windows system caches."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime

from wincleaner.core.backend import DNS_CACHE_PATH
from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import PathTableScanner, ScanContext, ScanStep, fixture

_MB = 1024 * 1024

# Rough footprint of one resolver cache record.
DNS_ENTRY_BYTES = 1024


class SystemCacheScanner(PathTableScanner):
    """Prefetch data, icon/thumbnail/font caches, the search index and DNS cache."""

    @property
    def id(self) -> str:
        return "system_cache"

    @property
    def name(self) -> str:
        return "System Cache"

    @property
    def description(self) -> str:
        return "Caches Windows rebuilds on its own, such as prefetch and thumbnail data."

    @property
    def sort_order(self) -> int:
        return 20

    @property
    def _path_table(self) -> tuple[tuple[str, str], ...]:
        return (
            ("prefetch", r"%SYSTEMROOT%\Prefetch"),
            ("icon-cache", r"%LOCALAPPDATA%\IconCache.db"),
            ("icon-cache", r"%LOCALAPPDATA%\Microsoft\Windows\Explorer\iconcache_*.db"),
            ("thumbnail-cache", r"%LOCALAPPDATA%\Microsoft\Windows\Explorer\thumbcache_*.db"),
            ("font-cache", r"%SYSTEMROOT%\System32\FNTCACHE.DAT"),
            ("font-cache", r"%SYSTEMROOT%\ServiceProfiles\LocalService\AppData\Local\FontCache"),
            ("search-index", r"%PROGRAMDATA%\Microsoft\Search\Data\Applications\Windows\Windows.edb"),
            ("search-index", r"%PROGRAMDATA%\Microsoft\Search\Data\Temp"),
        )

    @property
    def _descriptions(self) -> dict[str, str]:
        return {
            "prefetch": "Application prefetch data",
            "icon-cache": "Icon cache database",
            "thumbnail-cache": "Explorer thumbnail cache",
            "font-cache": "Font cache",
            "search-index": "Windows Search index",
        }

    def _extra_steps(self, context: ScanContext) -> Iterator[ScanStep]:
        entries = context.backend.get_dns_cache_info()
        if entries > 0:
            yield dns_cache_candidate(entries, context.now)

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        return [
            fixture(now, "prefetch", r"C:\Windows\Prefetch", 150 * _MB, days=2,
                    name="Prefetch", description="Application prefetch data, 1,247 files"),
            fixture(now, "icon-cache", r"C:\Users\User\AppData\Local\IconCache.db", 25 * _MB, days=5,
                    description="Icon cache database"),
            fixture(now, "thumbnail-cache",
                    r"C:\Users\User\AppData\Local\Microsoft\Windows\Explorer\thumbcache_1920.db",
                    80 * _MB, days=1, description="Thumbnail cache for 1920x1080"),
            fixture(now, "font-cache", r"C:\Windows\System32\FNTCACHE.DAT", 15 * _MB, days=10,
                    description="Font cache"),
            dns_cache_candidate(156, now),
            fixture(now, "search-index",
                    r"C:\ProgramData\Microsoft\Search\Data\Applications\Windows\Windows.edb",
                    200 * _MB, days=3, description="Windows Search index"),
        ]


def dns_cache_candidate(entries: int, now: datetime, entry_bytes: int = DNS_ENTRY_BYTES) -> RawCandidate:
    return RawCandidate(
        name="DNS Resolver Cache",
        path=DNS_CACHE_PATH,
        size_bytes=entries * entry_bytes,
        type_tag="dns-cache",
        last_modified=now,
        description=f"{entries} cached DNS records",
    )
