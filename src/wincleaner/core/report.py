"""Statistics and human-readable reports for scans and cleaning runs."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from wincleaner.models.clean_result import CleaningResult
from wincleaner.models.item import Category, CleanupItem, RiskLevel
from wincleaner.utils import bytes_to_human

log = logging.getLogger(__name__)

# Categories whose cleanup noticeably speeds the system up.
_PERFORMANCE_CATEGORIES = frozenset({Category.SYSTEM_CACHE, Category.MEMORY})
_SECONDARY_CATEGORIES = frozenset({Category.WINDOWS_UPDATE, Category.NETWORK})


def cleaning_stats(result: CleaningResult) -> dict[str, Any]:
    """Counts and success rate of a cleaning run.

    The success rate is the percentage of processed items that were
    deleted, rounded to two decimals (0 when nothing was processed).
    """
    success = len(result.deleted_item_ids)
    failed = len(result.failed_items)
    skipped = len(result.skipped_item_ids)
    total = success + failed + skipped
    return {
        "success": success,
        "failed": failed,
        "skipped": skipped,
        "total": total,
        "success_rate": round(success * 100 / total, 2) if total else 0.0,
        "bytes_freed": result.bytes_freed,
    }


def performance_gain(items: Iterable[CleanupItem]) -> str:
    """Rough estimate of how much faster the system gets: low, medium or high."""
    deletable = [item for item in items if item.can_delete]
    primary = sum(1 for item in deletable if item.category in _PERFORMANCE_CATEGORIES)
    secondary = sum(1 for item in deletable if item.category in _SECONDARY_CATEGORIES)
    if primary > 5:
        return "high"
    if primary > 2 or secondary > 5:
        return "medium"
    return "low"


def summarize_items(items: Iterable[CleanupItem]) -> dict[str, Any]:
    """Aggregate a scan's items by risk and category."""
    items = list(items)
    risk = {level.value: 0 for level in RiskLevel}
    per_category: dict[str, dict[str, int]] = {}
    for item in items:
        risk[item.risk_level.value] += 1
        entry = per_category.setdefault(item.category.value, {"count": 0, "bytes": 0})
        entry["count"] += 1
        entry["bytes"] += item.size_bytes

    return {
        "total_items": len(items),
        "total_bytes": sum(item.size_bytes for item in items),
        "reclaimable_bytes": sum(item.size_bytes for item in items if item.can_delete),
        "deletable_items": sum(1 for item in items if item.can_delete),
        "risk_distribution": risk,
        "per_category": per_category,
        "performance_gain": performance_gain(items),
    }


def format_cleaning_report(result: CleaningResult, items: Iterable[CleanupItem] = ()) -> str:
    """Render a cleaning run as plain text.

    *items* are used to show names instead of ids for failed and skipped
    entries; unknown ids are printed as-is.
    """
    by_id = {item.id: item for item in items}
    stats = cleaning_stats(result)

    def label(item_id: str) -> str:
        item = by_id.get(item_id)
        return f"{item.name} ({item.path})" if item else item_id

    lines = [
        "Cleaning report" + (" (simulated)" if result.simulated else ""),
        "",
        f"  Deleted:      {stats['success']}",
        f"  Failed:       {stats['failed']}",
        f"  Skipped:      {stats['skipped']}",
        f"  Success rate: {stats['success_rate']:.2f}%",
        f"  Space freed:  {bytes_to_human(result.bytes_freed)}",
    ]
    if result.cancelled:
        lines.append("  Cancelled before all items were processed.")

    if result.failed_items:
        lines += ["", "Failed:"]
        lines += [f"  - {label(f.id)}: {f.error_reason}" for f in result.failed_items]

    if result.skipped_item_ids:
        lines += ["", "Skipped:"]
        lines += [
            f"  - {label(item_id)}: {result.skip_reasons.get(item_id, 'skipped')}"
            for item_id in result.skipped_item_ids
        ]

    return "\n".join(lines)
