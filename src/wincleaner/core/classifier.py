"""Turn raw scanner candidates into classified cleanup items.

Classification is table driven:

1. ``TYPE_TABLE`` maps the scanner's type tag to a final category and a
   subtype.
2. ``RISK_RULES`` is an ordered list of path patterns; the first rule that
   matches decides the risk level.
3. Chat-application retention can only downgrade deletability.
4. Optional AI enrichment can only tighten the verdict.

``classify`` never raises: anything unexpected yields a conservative
verdict instead.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from wincleaner.models.item import Category, CleanupItem, RawCandidate, RetentionPolicy, RiskLevel
from wincleaner.utils import normalize_windows_path

if TYPE_CHECKING:
    from wincleaner.core.enrichment import AIEnricher

log = logging.getLogger(__name__)

CHAT_SUBTYPES = ("cache", "temp", "log", "image", "video", "audio", "file", "emoji", "applet")

# Subtypes that are always eligible regardless of retention.
TRANSIENT_SUBTYPES = frozenset({"temp", "log", "cache"})

# Categories considered harmless enough to delete when classification fails.
KNOWN_SAFE_CATEGORIES = frozenset({Category.BROWSER, Category.SYSTEM_CACHE, Category.SYSTEM_LOGS})

TYPE_TABLE: dict[str, tuple[Category, str]] = {
    # junk files
    "system-temp": (Category.SYSTEM, "temp"),
    "user-temp": (Category.USER, "temp"),
    "browser-cache": (Category.BROWSER, "cache"),
    "download-installer": (Category.DOWNLOADS, "installer"),
    "backup-file": (Category.BACKUP, "backup"),
    "application-cache": (Category.APPLICATION, "cache"),
    "registry-entry": (Category.REGISTRY, "registry"),
    # system cache
    "prefetch": (Category.SYSTEM_CACHE, "cache"),
    "icon-cache": (Category.SYSTEM_CACHE, "cache"),
    "thumbnail-cache": (Category.SYSTEM_CACHE, "cache"),
    "font-cache": (Category.SYSTEM_CACHE, "cache"),
    "search-index": (Category.SYSTEM_CACHE, "index"),
    "dns-cache": (Category.SYSTEM_CACHE, "cache"),
    # system logs
    "event-log": (Category.SYSTEM_LOGS, "log"),
    "error-report": (Category.SYSTEM_LOGS, "log"),
    "crash-dump": (Category.SYSTEM_LOGS, "dump"),
    "install-log": (Category.SYSTEM_LOGS, "log"),
    "update-log": (Category.SYSTEM_LOGS, "log"),
    # windows update
    "update-cache": (Category.WINDOWS_UPDATE, "cache"),
    "old-installation": (Category.WINDOWS_UPDATE, "backup"),
    "restore-point": (Category.WINDOWS_UPDATE, "backup"),
    "defender-definitions": (Category.WINDOWS_UPDATE, "definitions"),
    "driver-store": (Category.WINDOWS_UPDATE, "driver"),
    # privacy
    "recent-docs": (Category.PRIVACY_DATA, "history"),
    "run-history": (Category.PRIVACY_DATA, "history"),
    "search-history": (Category.PRIVACY_DATA, "history"),
    "clipboard-history": (Category.PRIVACY_DATA, "history"),
    "activity-history": (Category.PRIVACY_DATA, "history"),
    "location-data": (Category.PRIVACY_DATA, "history"),
    "jump-lists": (Category.PRIVACY_DATA, "history"),
    # memory
    "memory-dump": (Category.MEMORY, "dump"),
    "hibernation-file": (Category.MEMORY, "system-file"),
    "page-file": (Category.MEMORY, "system-file"),
    "virtual-memory": (Category.MEMORY, "temp"),
    # network
    "wifi-profiles": (Category.NETWORK, "profile"),
    "network-cache": (Category.NETWORK, "cache"),
    "connection-history": (Category.NETWORK, "history"),
    "remote-desktop": (Category.NETWORK, "history"),
    "network-logs": (Category.NETWORK, "log"),
    # remnants
    "orphaned-folder": (Category.SOFTWARE_REMNANT, "remnant"),
    "orphaned-uninstall-entry": (Category.REGISTRY_REMNANT, "registry"),
}
for _app, _category in (("wechat", Category.WECHAT), ("qq", Category.QQ)):
    for _subtype in CHAT_SUBTYPES:
        TYPE_TABLE[f"{_app}-{_subtype}"] = (_category, _subtype)

# Tags shared by several scanners resolve by scanner first.
SCANNER_TYPE_OVERRIDES: dict[tuple[str, str], tuple[Category, str]] = {
    ("network", "dns-cache"): (Category.NETWORK, "cache"),
}


@dataclass(frozen=True)
class RiskRule:
    """Path pattern that assigns a risk level.

    ``categories`` restricts the rule to items of those categories; an
    empty set applies it to every category.
    """

    pattern: str
    risk: RiskLevel
    reason: str
    categories: frozenset[Category] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", re.compile(self.pattern, re.IGNORECASE))

    def matches(self, normalized_path: str, category: Category) -> bool:
        if self.categories and category not in self.categories:
            return False
        return self._regex.search(normalized_path) is not None


_CHAT = frozenset({Category.WECHAT, Category.QQ})
_REGISTRY = frozenset({Category.REGISTRY, Category.REGISTRY_REMNANT})
_H, _C, _S = RiskLevel.HIGH, RiskLevel.CAUTION, RiskLevel.SAFE

RISK_RULES: tuple[RiskRule, ...] = (
    # Critical system files and keys.
    RiskRule(r"(^|\\)hiberfil\.sys$", _H, "hibernation file is managed by Windows (disable it with powercfg)"),
    RiskRule(r"(^|\\)(pagefile|swapfile)\.sys$", _H, "virtual memory file is in use by Windows"),
    RiskRule(r"(^|\\)system volume information(\\|$)", _H, "restore points are managed by System Restore"),
    RiskRule(r"\\system32\\config(\\|$)", _H, "registry hive files"),
    RiskRule(r"\\system32\\drivers(\\|$)|\\driverstore(\\|$)", _H, "device drivers"),
    RiskRule(r"^[a-z]:\\(boot|recovery)(\\|$)", _H, "boot and recovery files"),
    RiskRule(r"^hkey_local_machine\\system\\.*\\control(\\|$)", _H, "core system configuration key"),
    RiskRule(r"^hkey_local_machine\\software\\microsoft\\windows nt\\currentversion", _H, "core Windows configuration key"),
    RiskRule(r"^hkey_local_machine\\software\\classes\\clsid", _H, "COM class registration"),
    RiskRule(r"\\shell\\.*\\command(\\|$)", _H, "shell command registration"),
    # Chat caches and temporaries are disposable; the rest of the chat data is user content.
    RiskRule(r"\\(cache|temp|logs?|applet|customface|emoji)(\\|$)", _S, "chat cache data", _CHAT),
    RiskRule(r".", _C, "chat history the user may want to keep", _CHAT),
    # Registry keys outside the privacy histories need a second look.
    RiskRule(r"^hkey_", _C, "registry entries can affect installed software", _REGISTRY),
    RiskRule(r".", _C, "leftover application data; confirm the application is gone",
             frozenset({Category.SOFTWARE_REMNANT})),
    # User data and locations that are expensive to rebuild.
    RiskRule(r"^[a-z]:\\users\\[^\\]+\\(documents|desktop|pictures|videos|music)(\\|$)", _C, "user documents"),
    RiskRule(r"\\downloads(\\|$)", _C, "downloaded files may still be needed"),
    RiskRule(r"^[a-z]:\\program files( \(x86\))?(\\|$)", _C, "installed program files"),
    RiskRule(r"^[a-z]:\\(windows\.old|\$windows\.~bt|\$windows\.~ws)(\\|$)", _C,
             "previous Windows installation; removing it prevents rollback"),
    RiskRule(r"\\wlansvc\\", _C, "saved Wi-Fi networks and passwords"),
    RiskRule(r"\\microsoft\\search\\data(\\|$)", _C, "search index has to be rebuilt"),
    RiskRule(r"fntcache\.dat$|\\fontcache(\\|$)", _C, "font cache has to be rebuilt"),
    RiskRule(r"\\logs\\cbs(\\|$)", _C, "component servicing logs are used for repairs"),
    RiskRule(r"\\winevt\\logs(\\|$)", _C, "event logs are used for troubleshooting"),
    RiskRule(r"\\windows defender(\\|$)", _C, "antivirus definitions are downloaded again"),
    RiskRule(r"\\locationprovider(\\|$)", _C, "location service data"),
    # Caches, logs and temporary data.
    RiskRule(r"\\(temp|tmp)(\\|$)", _S, "temporary files"),
    RiskRule(r"\\prefetch(\\|$)", _S, "prefetch data is regenerated"),
    RiskRule(r"(^|\\)(thumbcache_[^\\]*|iconcache[^\\]*)\.db$", _S, "thumbnail and icon caches are regenerated"),
    RiskRule(r"\\softwaredistribution\\download(\\|$)", _S, "downloaded update packages"),
    RiskRule(r"\\(minidump|crashdumps)(\\|$)|(^|\\)memory\.dmp$|\.dmp$", _S, "crash dumps"),
    RiskRule(r"\\wer\\|\.wer$", _S, "error reports"),
    RiskRule(r"\\(inetcache|cache|code cache|gpucache)(\\|$)", _S, "cached data is downloaded again"),
    RiskRule(r"\\recent(\\|$)|\\cloudclipboard(\\|$)|\\connecteddevicesplatform(\\|$)", _S, "activity history"),
    RiskRule(r"\\logfiles\\|\.(log|etl)$", _S, "log files"),
    RiskRule(r"^memory \(", _S, "in-memory cache"),
    RiskRule(r"^hkey_current_user\\.*\\(runmru|wordwheelquery|terminal server client\\default)$", _S,
             "usage history"),
    RiskRule(r"\.(bak|old|tmp)$", _S, "backup or temporary file"),
)

DEFAULT_RISK_REASON = "unrecognized location"


def resolve_type(type_tag: str, scanner_id: str = "") -> tuple[Category, str] | None:
    """Look up the category and subtype for a type tag."""
    return SCANNER_TYPE_OVERRIDES.get((scanner_id, type_tag)) or TYPE_TABLE.get(type_tag)


def assess_risk(path: str, category: Category) -> tuple[RiskLevel, str]:
    """Apply the risk rules to a path; the first matching rule wins."""
    normalized = normalize_windows_path(path)
    for rule in RISK_RULES:
        if rule.matches(normalized, category):
            return rule.risk, rule.reason
    return RiskLevel.CAUTION, DEFAULT_RISK_REASON


def suggestion_for(risk: RiskLevel, reason: str) -> str:
    match risk:
        case RiskLevel.SAFE:
            return f"Safe to clean ({reason})"
        case RiskLevel.CAUTION:
            return f"Review before cleaning: {reason}"
        case _:
            return f"Do not delete: {reason}"


def _aware_like(value: datetime, reference: datetime) -> datetime:
    if value.tzinfo is None and reference.tzinfo is not None:
        return value.replace(tzinfo=reference.tzinfo)
    if value.tzinfo is not None and reference.tzinfo is None:
        return value.replace(tzinfo=None)
    return value


def is_retained(
    category: Category,
    subtype: str,
    last_modified: datetime | None,
    policy: RetentionPolicy,
    now: datetime,
) -> bool:
    """Whether a chat item falls inside the retention window."""
    if not category.is_chat or subtype in TRANSIENT_SUBTYPES or last_modified is None:
        return False
    cutoff = policy.cutoff(category, now)
    if cutoff is None:
        return False
    return _aware_like(last_modified, cutoff) > cutoff


def classify(
    candidate: RawCandidate,
    policy: RetentionPolicy,
    now: datetime,
    *,
    item_id: str = "",
    scanner_id: str = "",
    enricher: AIEnricher | None = None,
) -> CleanupItem:
    """Classify a single candidate. Never raises."""
    item_id = item_id or candidate_id(candidate)
    try:
        return _classify(candidate, policy, now, item_id, scanner_id, enricher)
    except Exception:
        log.exception("Classification failed for %r, using conservative verdict", getattr(candidate, "path", None))
        return conservative_item(candidate, item_id, scanner_id)


def candidate_id(candidate: RawCandidate) -> str:
    return str(getattr(candidate, "path", "") or getattr(candidate, "name", "") or "unknown")


def _is_malformed(candidate: RawCandidate) -> bool:
    return (
        not isinstance(candidate.path, str)
        or not candidate.path
        or not isinstance(candidate.size_bytes, int)
        or isinstance(candidate.size_bytes, bool)
        or candidate.size_bytes < 0
    )


def _classify(
    candidate: RawCandidate,
    policy: RetentionPolicy,
    now: datetime,
    item_id: str,
    scanner_id: str,
    enricher: AIEnricher | None,
) -> CleanupItem:
    resolved = resolve_type(candidate.type_tag, scanner_id)
    if resolved is None or _is_malformed(candidate):
        log.debug("Unknown type or malformed candidate: %s (%s)", candidate.path, candidate.type_tag)
        return conservative_item(candidate, item_id, scanner_id)

    category, subtype = resolved
    risk, reason = assess_risk(candidate.path, category)
    can_delete = risk is not RiskLevel.HIGH
    suggestion = suggestion_for(risk, reason)

    retained = is_retained(category, subtype, candidate.last_modified, policy, now)
    if retained:
        risk = RiskLevel.SAFE
        can_delete = False
        suggestion = (
            f"Protected by retention policy (keeping the last {policy.months_for(category)} months)"
        )
    elif can_delete and enricher is not None:
        risk, can_delete, suggestion = _tighten(candidate, enricher, risk, can_delete, suggestion)

    return CleanupItem(
        id=item_id,
        name=candidate.name or candidate.path,
        path=candidate.path,
        size_bytes=candidate.size_bytes,
        category=category,
        risk_level=risk,
        can_delete=can_delete,
        suggestion=suggestion,
        last_modified=candidate.last_modified,
        type_tag=candidate.type_tag,
        subtype=subtype,
        retained=retained,
        scanner_id=scanner_id,
        description=candidate.description,
    )


def _tighten(
    candidate: RawCandidate,
    enricher: AIEnricher,
    risk: RiskLevel,
    can_delete: bool,
    suggestion: str,
) -> tuple[RiskLevel, bool, str]:
    try:
        assessment = enricher.assess(candidate)
    except Exception as e:
        log.warning("Enrichment failed for %s, keeping rule verdict: %s", candidate.path, e)
        return risk, can_delete, suggestion
    if assessment is None:
        return risk, can_delete, suggestion

    tightened = RiskLevel.max(risk, assessment.risk)
    allowed = can_delete and assessment.can_delete and tightened is not RiskLevel.HIGH
    if tightened is risk and allowed == can_delete:
        return risk, can_delete, suggestion
    return tightened, allowed, f"{suggestion_for(tightened, assessment.reason)} (AI analysis)"


def conservative_item(candidate: RawCandidate, item_id: str, scanner_id: str = "") -> CleanupItem:
    """Build the fallback verdict for input that could not be classified."""
    type_tag = str(getattr(candidate, "type_tag", "") or "")
    category, subtype = resolve_type(type_tag, scanner_id) or (Category.USER, "")
    try:
        size = max(0, int(getattr(candidate, "size_bytes", 0)))
    except (TypeError, ValueError):
        size = 0
    path = str(getattr(candidate, "path", "") or "")
    last_modified = getattr(candidate, "last_modified", None)
    return CleanupItem(
        id=item_id,
        name=str(getattr(candidate, "name", "") or path or item_id),
        path=path,
        size_bytes=size,
        category=category,
        risk_level=RiskLevel.CAUTION,
        can_delete=category in KNOWN_SAFE_CATEGORIES,
        suggestion=suggestion_for(RiskLevel.CAUTION, "could not be classified"),
        last_modified=last_modified if isinstance(last_modified, datetime) else None,
        type_tag=type_tag,
        subtype=subtype,
        scanner_id=scanner_id,
        description=str(getattr(candidate, "description", "") or ""),
    )
