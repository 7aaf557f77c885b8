"""Progress reports and scan session results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from wincleaner.models.item import CleanupItem


class ScanStage(str, Enum):
    PREPARING = "preparing"
    SCANNING = "scanning"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"
    FALLBACK = "fallback"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStage.COMPLETED, ScanStage.ERROR, ScanStage.CANCELLED)


@dataclass(frozen=True, slots=True)
class ScanProgress:
    """Overall scan progress, in units out of ``total_units``."""

    stage: ScanStage
    current_units: int
    total_units: int = 100
    current_label: str = ""


@dataclass(frozen=True, slots=True)
class ScanUpdate:
    """One step of a streaming scan.

    ``results`` is the full list of items classified so far in this run;
    ``new_item`` is set when the step appended an item. The terminal
    update lists the scanners that failed in ``failed_scanners``.
    """

    progress: ScanProgress
    results: tuple[CleanupItem, ...] = ()
    new_item: CleanupItem | None = None
    failed_scanners: tuple[str, ...] = ()


@dataclass(slots=True)
class ScanSession:
    """Final outcome of a scan operation."""

    items: list[CleanupItem] = field(default_factory=list)
    progress: ScanProgress | None = None
    failed_scanners: list[str] = field(default_factory=list)
    simulated: bool = False

    @property
    def cancelled(self) -> bool:
        return self.progress is not None and self.progress.stage is ScanStage.CANCELLED

    @property
    def total_bytes(self) -> int:
        return sum(item.size_bytes for item in self.items)


@dataclass(frozen=True, slots=True)
class CleaningProgress:
    """Incremental progress of a cleaning run."""

    items_done: int
    items_total: int
    current_item_name: str = ""
    estimated_seconds_left: float = 0.0
    total_bytes: int = 0
    bytes_done: int = 0
    current_item_id: str | None = None
