"""WinCleaner data models."""

from wincleaner.models.item import Category, CleanupItem, RawCandidate, RetentionPolicy, RiskLevel
from wincleaner.models.progress import CleaningProgress, ScanProgress, ScanSession, ScanStage, ScanUpdate
from wincleaner.models.clean_result import CleaningResult, FailedItem

__all__ = [
    "Category",
    "CleaningProgress",
    "CleaningResult",
    "CleanupItem",
    "FailedItem",
    "RawCandidate",
    "RetentionPolicy",
    "RiskLevel",
    "ScanProgress",
    "ScanSession",
    "ScanStage",
    "ScanUpdate",
]
