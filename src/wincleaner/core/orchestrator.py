"""Run category scanners in order and stream classified results.

The scan is a single-threaded generator: each step yields a
``ScanUpdate`` carrying the overall progress and a snapshot of every item
classified so far. Category *i* of *N* owns the progress window
``[floor + span*i/N, floor + span*(i+1)/N)``; 100 is only reached by the
terminal update.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from wincleaner.core.backend import BackendUnavailable
from wincleaner.core.classifier import classify
from wincleaner.models.item import CleanupItem, RetentionPolicy
from wincleaner.models.progress import ScanProgress, ScanSession, ScanStage, ScanUpdate
from wincleaner.models.scanner import CategoryScanner, ScanContext

if TYPE_CHECKING:
    from wincleaner.core.enrichment import AIEnricher

log = logging.getLogger(__name__)

ProgressCallback = Callable[[ScanProgress], None]
ResultsCallback = Callable[[list[CleanupItem]], None]

_LAST_RUNNING_UNIT = 99


class _Window:
    """Maps per-scanner percentages onto overall units, never going backwards."""

    def __init__(self, count: int, floor: int) -> None:
        self.count = max(count, 1)
        self.floor = max(0, min(floor, _LAST_RUNNING_UNIT))
        self.current = self.floor

    def advance(self, index: int, local: int) -> int:
        span = 100 - self.floor
        units = self.floor + span * (index * 100 + local) // (self.count * 100)
        self.current = max(self.current, min(units, _LAST_RUNNING_UNIT))
        return self.current


def run(
    scanners: Sequence[CategoryScanner],
    context: ScanContext,
    policy: RetentionPolicy,
    *,
    enricher: AIEnricher | None = None,
    cancel: threading.Event | None = None,
    floor: int = 0,
) -> Iterator[ScanUpdate]:
    """Scan *scanners* in the given order, yielding after every step.

    A scanner that raises is logged and skipped; ``BackendUnavailable``
    is not caught so the caller can switch backends. If *cancel* is set
    the scan stops at the next category boundary with a ``cancelled``
    update that keeps the items found so far.
    """
    window = _Window(len(scanners), floor)
    results: list[CleanupItem] = []
    failed: list[str] = []

    def update(stage: ScanStage, label: str, item: CleanupItem | None = None) -> ScanUpdate:
        return ScanUpdate(
            progress=ScanProgress(stage=stage, current_units=window.current, current_label=label),
            results=tuple(results),
            new_item=item,
        )

    yield update(ScanStage.PREPARING, "Preparing scan")

    for index, scanner in enumerate(scanners):
        if cancel is not None and cancel.is_set():
            log.info("Scan cancelled before %s", scanner.id)
            yield ScanUpdate(
                progress=ScanProgress(ScanStage.CANCELLED, window.current, current_label="Scan cancelled"),
                results=tuple(results),
                failed_scanners=tuple(failed),
            )
            return

        window.advance(index, 0)
        yield update(ScanStage.SCANNING, scanner.name)
        found = 0
        try:
            for step in scanner.steps(context):
                if isinstance(step, int):
                    before = window.current
                    if window.advance(index, step) != before:
                        yield update(ScanStage.SCANNING, scanner.name)
                    continue
                found += 1
                item = classify(
                    step,
                    policy,
                    context.now,
                    item_id=f"{scanner.id}-{found}",
                    scanner_id=scanner.id,
                    enricher=enricher,
                )
                results.append(item)
                yield update(ScanStage.ANALYZING, item.name, item)
        except BackendUnavailable:
            raise
        except Exception:
            log.exception("Scanner '%s' failed during scan", scanner.id)
            failed.append(scanner.id)
        else:
            log.debug("Scanner '%s' found %d items", scanner.id, found)
        window.advance(index + 1, 0)

    if scanners and len(failed) == len(scanners):
        stage, label = ScanStage.ERROR, "All scanners failed"
    else:
        stage, label = ScanStage.COMPLETED, "Scan complete"
    yield ScanUpdate(
        progress=ScanProgress(stage=stage, current_units=100, current_label=label),
        results=tuple(results),
        failed_scanners=tuple(failed),
    )


def drain(
    updates: Iterator[ScanUpdate],
    on_progress: ProgressCallback | None = None,
    on_results_grow: ResultsCallback | None = None,
    *,
    simulated: bool = False,
) -> ScanSession:
    """Drive a scan generator through callbacks and return the final session."""
    session = ScanSession(simulated=simulated)
    for upd in updates:
        if on_progress:
            on_progress(upd.progress)
        if upd.progress.stage is ScanStage.FALLBACK:
            # the stream restarts from an empty list on the simulator
            session.simulated = True
            if on_results_grow:
                on_results_grow([])
        elif upd.new_item is not None and on_results_grow:
            on_results_grow(list(upd.results))
        session.items = list(upd.results)
        session.progress = upd.progress
        session.failed_scanners = list(upd.failed_scanners)
    return session


def run_scan(
    scanners: Sequence[CategoryScanner],
    context: ScanContext,
    policy: RetentionPolicy,
    on_progress: ProgressCallback | None = None,
    on_results_grow: ResultsCallback | None = None,
    *,
    enricher: AIEnricher | None = None,
    cancel: threading.Event | None = None,
) -> ScanSession:
    """Callback flavour of ``run``."""
    return drain(
        run(scanners, context, policy, enricher=enricher, cancel=cancel),
        on_progress,
        on_results_grow,
        simulated=context.simulated,
    )


def default_now() -> datetime:
    return datetime.now().astimezone()
