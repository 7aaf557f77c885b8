"""Central scanner registry."""

from __future__ import annotations

import logging
from typing import Iterator

from wincleaner.models.scanner import CategoryScanner

log = logging.getLogger(__name__)


class ScannerRegistry:
    """Stores registered category scanners, iterated in scan order."""

    def __init__(self) -> None:
        self._scanners: dict[str, CategoryScanner] = {}

    def register(self, scanner: CategoryScanner) -> None:
        """Register a scanner instance."""
        if scanner.id in self._scanners:
            log.warning("Scanner '%s' already registered, skipping duplicate", scanner.id)
            return
        self._scanners[scanner.id] = scanner
        log.debug("Registered scanner: %s (%s)", scanner.id, scanner.name)

    def get(self, scanner_id: str) -> CategoryScanner | None:
        return self._scanners.get(scanner_id)

    def get_all(self) -> list[CategoryScanner]:
        """All scanners in their fixed scan order."""
        return sorted(self._scanners.values(), key=lambda s: (s.sort_order, s.id))

    def resolve(self, scanner_ids: list[str] | None = None) -> list[CategoryScanner]:
        """Pick the requested scanners (all when None), keeping scan order."""
        if not scanner_ids:
            return self.get_all()
        wanted = set()
        for sid in scanner_ids:
            if sid in self._scanners:
                wanted.add(sid)
            else:
                log.warning("Scanner '%s' not found, skipping", sid)
        return [s for s in self.get_all() if s.id in wanted]

    def __len__(self) -> int:
        return len(self._scanners)

    def __iter__(self) -> Iterator[CategoryScanner]:
        return iter(self.get_all())

    def __contains__(self, scanner_id: str) -> bool:
        return scanner_id in self._scanners
