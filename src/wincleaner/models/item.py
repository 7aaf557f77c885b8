"""Cleanup item, raw candidate and retention policy models."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class RiskLevel(str, Enum):
    """How dangerous it is to delete an item."""

    SAFE = "safe"
    CAUTION = "caution"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    @classmethod
    def max(cls, *levels: RiskLevel) -> RiskLevel:
        """Return the most severe of the given levels."""
        return max(levels, key=lambda level: level.rank)


_RISK_RANK = {RiskLevel.SAFE: 0, RiskLevel.CAUTION: 1, RiskLevel.HIGH: 2}


class Category(str, Enum):
    """Final category of a classified item."""

    SYSTEM = "system"
    BROWSER = "browser"
    USER = "user"
    REGISTRY = "registry"
    BACKUP = "backup"
    DOWNLOADS = "downloads"
    WECHAT = "wechat"
    QQ = "qq"
    APPLICATION = "application"
    SOFTWARE_REMNANT = "software_remnant"
    REGISTRY_REMNANT = "registry_remnant"
    PRIVACY_DATA = "privacy_data"
    SYSTEM_CACHE = "system_cache"
    SYSTEM_LOGS = "system_logs"
    WINDOWS_UPDATE = "windows_update"
    MEMORY = "memory"
    NETWORK = "network"

    @property
    def is_chat(self) -> bool:
        return self in CHAT_CATEGORIES


CHAT_CATEGORIES = frozenset({Category.WECHAT, Category.QQ})


@dataclass(slots=True)
class RawCandidate:
    """Something a scanner found, before classification.

    ``type_tag`` is the scanner's provisional type (e.g. ``"prefetch"`` or
    ``"wechat-image"``); the classifier turns it into a category and risk.
    """

    name: str
    path: str
    size_bytes: int
    type_tag: str
    last_modified: datetime | None = None
    description: str = ""
    app_name: str = ""


@dataclass(frozen=True, slots=True)
class CleanupItem:
    """A classified, addressable candidate for deletion."""

    id: str
    name: str
    path: str
    size_bytes: int
    category: Category
    risk_level: RiskLevel
    can_delete: bool
    suggestion: str
    last_modified: datetime | None = None
    type_tag: str = ""
    subtype: str = ""
    retained: bool = False
    scanner_id: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if self.risk_level is RiskLevel.HIGH and self.can_delete:
            raise ValueError(f"High-risk item {self.id!r} cannot be deletable")
        if self.size_bytes < 0:
            raise ValueError(f"Item {self.id!r} has negative size")

    @property
    def is_registry(self) -> bool:
        return self.path.upper().startswith("HKEY_")

    @property
    def is_chat(self) -> bool:
        return self.category.is_chat


def shift_months(moment: datetime, months: int) -> datetime:
    """Move *moment* back by *months* calendar months.

    The day is clamped to the length of the target month, so
    March 31 minus one month is the last day of February.
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass(frozen=True, slots=True)
class RetentionPolicy:
    """Months of chat history to keep, per chat application.

    ``0`` means no retention: everything is eligible regardless of age.
    """

    months_to_keep: dict[Category, int] = field(
        default_factory=lambda: {Category.WECHAT: 3, Category.QQ: 3}
    )

    @classmethod
    def keep_nothing(cls) -> RetentionPolicy:
        return cls({category: 0 for category in CHAT_CATEGORIES})

    def months_for(self, category: Category) -> int:
        if not category.is_chat:
            return 0
        return max(0, int(self.months_to_keep.get(category, 0)))

    def cutoff(self, category: Category, now: datetime) -> datetime | None:
        """Return the retention cutoff, or None when nothing is retained."""
        months = self.months_for(category)
        if months <= 0:
            return None
        return shift_months(now, months)
