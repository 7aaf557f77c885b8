"""Batch deletion of selected cleanup items."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Generator, Iterable
from dataclasses import dataclass, field

from wincleaner.core.backend import DNS_CACHE_PATH, BackendError, BackendUnavailable, SystemBackend
from wincleaner.models.clean_result import CleaningResult
from wincleaner.models.item import CleanupItem, RiskLevel
from wincleaner.models.progress import CleaningProgress
from wincleaner.utils import is_under, normalize_windows_path

log = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_INTER_BATCH_DELAY = 0.2
INITIAL_SECONDS_PER_ITEM = 0.5
NOT_REPORTED = "not reported by backend"

# Never touched, whatever the classifier said.
PROTECTED_PREFIXES = (
    r"C:\Windows\System32",
    r"C:\Windows\SysWOW64",
    r"C:\Windows\WinSxS",
    r"C:\Program Files",
    r"C:\Program Files (x86)",
    r"C:\Boot",
    r"C:\Recovery",
)

ProgressCallback = Callable[[CleaningProgress], None]
CurrentItemCallback = Callable[[CleanupItem | None], None]


def is_protected_path(path: str) -> bool:
    return any(is_under(path, prefix) for prefix in PROTECTED_PREFIXES)


def skip_reason(item: CleanupItem) -> str | None:
    """Why an item must not be sent to the backend, or None if it may be."""
    if item.risk_level is RiskLevel.HIGH:
        return "high risk"
    if item.retained:
        return "protected by retention policy"
    if is_protected_path(item.path):
        return "protected system location"
    if not item.can_delete:
        return "not deletable"
    return None


@dataclass
class _BatchOutcome:
    deleted: list[CleanupItem] = field(default_factory=list)
    failed: list[tuple[CleanupItem, str]] = field(default_factory=list)

    def resolved(self) -> set[str]:
        return {i.id for i in self.deleted} | {i.id for i, _ in self.failed}


class BatchCleanExecutor:
    """Deletes items in fixed-size batches, isolating failures per batch.

    Every input id ends up deleted, failed or skipped exactly once.
    """

    def __init__(
        self,
        backend: SystemBackend,
        batch_size: int = DEFAULT_BATCH_SIZE,
        inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.backend = backend
        self.batch_size = batch_size
        self.inter_batch_delay = inter_batch_delay
        self._sleep = sleep
        self._clock = clock

    def clean(
        self,
        items: Iterable[CleanupItem],
        on_progress: ProgressCallback | None = None,
        on_current_item: CurrentItemCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> CleaningResult:
        """Callback flavour of ``iter_clean``."""
        items = list(items)
        return drive(self.iter_clean(items, cancel), items, on_progress, on_current_item)

    def iter_clean(
        self,
        items: Iterable[CleanupItem],
        cancel: threading.Event | None = None,
    ) -> Generator[CleaningProgress, None, CleaningResult]:
        """Yield progress while cleaning; the generator returns the result.

        Raises ``BackendUnavailable`` only if the backend gives out before
        any item was attempted, so the caller can redo the whole run on the
        simulator.
        """
        result = CleaningResult(simulated=self.backend.is_simulated)
        eligible: list[CleanupItem] = []
        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                continue
            seen.add(item.id)
            reason = skip_reason(item)
            if reason:
                result.skip(item.id, reason)
            else:
                eligible.append(item)

        total = len(eligible)
        total_bytes = sum(item.size_bytes for item in eligible)
        batches = [eligible[i:i + self.batch_size] for i in range(0, total, self.batch_size)]
        done = 0
        elapsed = 0.0
        eta = total * INITIAL_SECONDS_PER_ITEM

        def progress(current: CleanupItem | None = None) -> CleaningProgress:
            return CleaningProgress(
                items_done=done,
                items_total=total,
                current_item_name=current.name if current else "",
                estimated_seconds_left=round(eta, 2),
                total_bytes=total_bytes,
                bytes_done=result.bytes_freed,
                current_item_id=current.id if current else None,
            )

        log.info("Cleaning %d items in %d batches (%d skipped)", total, len(batches), len(result.skipped_item_ids))
        yield progress()

        for index, batch in enumerate(batches):
            if cancel is not None and cancel.is_set():
                log.info("Cleaning cancelled after %d of %d items", done, total)
                for item in eligible[done:]:
                    result.skip(item.id, "cancelled")
                result.cancelled = True
                break

            yield progress(batch[0])
            outcome = _BatchOutcome()
            started = self._clock()
            try:
                self._run_batch(batch, outcome)
            except BackendUnavailable as exc:
                if index == 0 and not outcome.resolved():
                    raise
                log.warning("Backend became unavailable mid-clean: %s", exc)
                self._record(result, outcome)
                resolved = outcome.resolved()
                for item in eligible[done:]:
                    if item.id not in resolved:
                        result.fail(item.id, str(exc) or "backend unavailable")
                done = total
                eta = 0.0
                yield progress()
                break
            except Exception as exc:
                log.exception("Batch %d failed", index + 1)
                resolved = outcome.resolved()
                outcome.failed.extend((item, str(exc) or type(exc).__name__) for item in batch if item.id not in resolved)
            self._record(result, outcome)

            elapsed += self._clock() - started
            done += len(batch)
            eta = (total - done) * (elapsed / done) if done else 0.0
            yield progress()

            if index < len(batches) - 1 and self.inter_batch_delay > 0:
                self._sleep(self.inter_batch_delay)

        log.info(
            "Cleaning finished: %d deleted, %d failed, %d skipped",
            len(result.deleted_item_ids),
            len(result.failed_items),
            len(result.skipped_item_ids),
        )
        return result

    @staticmethod
    def _record(result: CleaningResult, outcome: _BatchOutcome) -> None:
        for item in outcome.deleted:
            result.deleted_item_ids.append(item.id)
            result.bytes_freed += item.size_bytes
        for item, reason in outcome.failed:
            result.fail(item.id, reason)

    def _run_batch(self, batch: list[CleanupItem], outcome: _BatchOutcome) -> None:
        files: list[CleanupItem] = []
        for item in batch:
            if item.is_registry:
                self._delete_single(item, outcome, self.backend.delete_registry_key, item.path)
            elif item.path == DNS_CACHE_PATH:
                self._delete_single(item, outcome, self.backend.flush_dns_cache)
            else:
                files.append(item)

        if not files:
            return

        response = self.backend.delete_files([item.path for item in files])
        deleted = {normalize_windows_path(p) for p in response.deleted_files}
        failed = {normalize_windows_path(p): reason for p, reason in response.failed_files}
        for item in files:
            key = normalize_windows_path(item.path)
            if key in failed:
                outcome.failed.append((item, failed[key] or "deletion failed"))
            elif key in deleted:
                outcome.deleted.append(item)
            else:
                outcome.failed.append((item, NOT_REPORTED))

    @staticmethod
    def _delete_single(item: CleanupItem, outcome: _BatchOutcome, action: Callable[..., None], *args: str) -> None:
        try:
            action(*args)
        except BackendUnavailable:
            raise
        except BackendError as exc:
            log.debug("Failed to delete %s: %s", item.path, exc)
            outcome.failed.append((item, str(exc) or "deletion failed"))
        else:
            outcome.deleted.append(item)


def drive(
    steps: Generator[CleaningProgress, None, CleaningResult],
    items: list[CleanupItem],
    on_progress: ProgressCallback | None = None,
    on_current_item: CurrentItemCallback | None = None,
) -> CleaningResult:
    """Run a cleaning generator to completion through callbacks.

    ``on_current_item`` gets the first item of each batch as it starts,
    and None once the run is over.
    """
    by_id = {item.id: item for item in items}
    current: str | None = None
    while True:
        try:
            progress = next(steps)
        except StopIteration as stop:
            result = stop.value
            break
        if on_current_item and progress.current_item_id and progress.current_item_id != current:
            current = progress.current_item_id
            on_current_item(by_id[current])
        if on_progress:
            on_progress(progress)
    if on_current_item:
        on_current_item(None)
    return result
