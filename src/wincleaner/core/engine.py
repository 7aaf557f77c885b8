"""Scanning and cleaning entry points with backend selection."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Generator, Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime

from wincleaner.core import orchestrator
from wincleaner.core.backend import BackendError, BackendUnavailable, SystemBackend
from wincleaner.core.classifier import classify
from wincleaner.core.enrichment import AIEnricher
from wincleaner.core.executor import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_INTER_BATCH_DELAY,
    BatchCleanExecutor,
    CurrentItemCallback,
    drive,
)
from wincleaner.core.registry import ScannerRegistry
from wincleaner.core.simulator import SimulatedBackend
from wincleaner.models.clean_result import CleaningResult
from wincleaner.models.item import CleanupItem, RetentionPolicy
from wincleaner.models.progress import CleaningProgress, ScanProgress, ScanSession, ScanStage, ScanUpdate
from wincleaner.models.scanner import ScanContext

log = logging.getLogger(__name__)

ProgressCallback = Callable[[ScanProgress], None]
ResultsCallback = Callable[[list[CleanupItem]], None]
CleanProgressCallback = Callable[[CleaningProgress], None]


@dataclass(frozen=True, slots=True)
class SystemStatus:
    memory_total: int
    memory_available: int
    memory_used_percent: float
    dns_entries: int
    simulated: bool


class CleanupEngine:
    """Caller-facing facade over the orchestrator and the executor.

    Tries the real backend first. If it turns out to be unavailable, the
    whole operation switches to the simulator once: scans announce the
    switch with a ``fallback`` update and restart their result list, and
    cleans are redone from scratch as long as no item was attempted yet.
    """

    classify = staticmethod(classify)

    def __init__(
        self,
        registry: ScannerRegistry,
        backend: SystemBackend | None = None,
        *,
        simulator: SystemBackend | None = None,
        enricher: AIEnricher | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY,
        use_real_backend: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.registry = registry
        self.backend = backend
        self.simulator = simulator or SimulatedBackend()
        self.enricher = enricher
        self.batch_size = batch_size
        self.inter_batch_delay = inter_batch_delay
        self.use_real_backend = use_real_backend
        self._sleep = sleep

    @property
    def simulated(self) -> bool:
        """Whether operations go straight to the simulator."""
        return not self.use_real_backend or self.backend is None

    def _real_backend(self) -> SystemBackend | None:
        """The real backend if it is enabled and passes its probe."""
        if self.simulated:
            return None
        try:
            self.backend.probe()
        except BackendUnavailable as exc:
            log.warning("Real backend unavailable, falling back to simulation: %s", exc)
            return None
        return self.backend

    # ── scan ──────────────────────────────────────────────────────────

    def iter_scan(
        self,
        scanner_ids: list[str] | None = None,
        retention: RetentionPolicy | None = None,
        now: datetime | None = None,
        cancel: threading.Event | None = None,
    ) -> Iterator[ScanUpdate]:
        """Stream a scan of the selected categories (all when None)."""
        scanners = self.registry.resolve(scanner_ids)
        policy = retention or RetentionPolicy()
        now = now or orchestrator.default_now()

        def run(backend: SystemBackend, floor: int = 0) -> Iterator[ScanUpdate]:
            return orchestrator.run(
                scanners,
                ScanContext(backend, now),
                policy,
                enricher=self.enricher,
                cancel=cancel,
                floor=floor,
            )

        if self.simulated:
            yield from run(self.simulator)
            return

        units = 0
        backend = self._real_backend()
        if backend is not None:
            try:
                for update in run(backend):
                    units = update.progress.current_units
                    yield update
                return
            except BackendUnavailable as exc:
                log.warning("Backend failed mid-scan, restarting on simulated data: %s", exc)

        yield ScanUpdate(
            progress=ScanProgress(ScanStage.FALLBACK, units, current_label="Using simulated data"),
        )
        yield from run(self.simulator, floor=units)

    def scan(
        self,
        scanner_ids: list[str] | None = None,
        retention: RetentionPolicy | None = None,
        now: datetime | None = None,
        on_progress: ProgressCallback | None = None,
        on_results_grow: ResultsCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> ScanSession:
        """Scan and return the final session; callbacks see every step."""
        return orchestrator.drain(
            self.iter_scan(scanner_ids, retention, now, cancel),
            on_progress,
            on_results_grow,
            simulated=self.simulated,
        )

    # ── clean ─────────────────────────────────────────────────────────

    def _executor(self, backend: SystemBackend) -> BatchCleanExecutor:
        return BatchCleanExecutor(
            backend,
            batch_size=self.batch_size,
            inter_batch_delay=self.inter_batch_delay,
            sleep=self._sleep,
        )

    def iter_clean(
        self,
        items: Iterable[CleanupItem],
        cancel: threading.Event | None = None,
    ) -> Generator[CleaningProgress, None, CleaningResult]:
        """Clean *items*, yielding progress; returns the CleaningResult."""
        items = list(items)
        backend = self._real_backend()
        if backend is not None:
            try:
                return (yield from self._executor(backend).iter_clean(items, cancel))
            except BackendUnavailable as exc:
                log.warning("Backend unavailable before any item was attempted, simulating clean: %s", exc)
        return (yield from self._executor(self.simulator).iter_clean(items, cancel))

    def clean(
        self,
        items: Iterable[CleanupItem],
        on_progress: CleanProgressCallback | None = None,
        on_current_item: CurrentItemCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> CleaningResult:
        items = list(items)
        return drive(self.iter_clean(items, cancel), items, on_progress, on_current_item)

    # ── status ────────────────────────────────────────────────────────

    def system_status(self) -> SystemStatus:
        """Memory usage and DNS cache size, from the simulator if need be."""
        backend = self._real_backend()
        if backend is not None:
            try:
                return self._status(backend)
            except BackendError as exc:
                log.warning("Cannot read system status, using simulated values: %s", exc)
        return self._status(self.simulator)

    @staticmethod
    def _status(backend: SystemBackend) -> SystemStatus:
        memory = backend.get_system_memory_info()
        return SystemStatus(
            memory_total=memory.total_bytes,
            memory_available=memory.available_bytes,
            memory_used_percent=memory.used_percent,
            dns_entries=backend.get_dns_cache_info(),
            simulated=backend.is_simulated,
        )
