"""Cleaning result dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class FailedItem:
    id: str
    error_reason: str


@dataclass(slots=True)
class CleaningResult:
    """Result of a cleaning run.

    Every input item id ends up in exactly one of ``deleted_item_ids``,
    ``failed_items`` or ``skipped_item_ids``.
    """

    deleted_item_ids: list[str] = field(default_factory=list)
    failed_items: list[FailedItem] = field(default_factory=list)
    skipped_item_ids: list[str] = field(default_factory=list)
    bytes_freed: int = 0
    skip_reasons: dict[str, str] = field(default_factory=dict)
    simulated: bool = False
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.failed_items

    @property
    def failed_item_ids(self) -> list[str]:
        return [f.id for f in self.failed_items]

    def skip(self, item_id: str, reason: str) -> None:
        self.skipped_item_ids.append(item_id)
        self.skip_reasons[item_id] = reason

    def fail(self, item_id: str, reason: str) -> None:
        self.failed_items.append(FailedItem(id=item_id, error_reason=reason))
