"""Built-in scanner discovery."""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from types import ModuleType

from wincleaner.core.registry import ScannerRegistry
from wincleaner.models.scanner import CategoryScanner, ChatAppScanner, PathTableScanner

log = logging.getLogger(__name__)

# Abstract base classes that should not be instantiated
_ABSTRACT_BASES = {CategoryScanner, ChatAppScanner, PathTableScanner}


def _find_scanners_in_module(module: ModuleType) -> list[type[CategoryScanner]]:
    """Find all concrete CategoryScanner subclasses defined in a module."""
    found: list[type[CategoryScanner]] = []
    for _, obj in inspect.getmembers(module, inspect.isclass):
        if (
            issubclass(obj, CategoryScanner)
            and obj not in _ABSTRACT_BASES
            and not inspect.isabstract(obj)
            and obj.__module__ == module.__name__
        ):
            found.append(obj)
    return found


def _load_builtin_scanners() -> list[type[CategoryScanner]]:
    """Load scanners from the wincleaner.scanners package."""
    import wincleaner.scanners as scanners_pkg

    found: list[type[CategoryScanner]] = []
    for _importer, modname, _ispkg in pkgutil.iter_modules(scanners_pkg.__path__):
        try:
            module = importlib.import_module(f"wincleaner.scanners.{modname}")
            found.extend(_find_scanners_in_module(module))
        except Exception:
            log.exception("Failed to load built-in scanner module: %s", modname)
    return found


def load_scanners(registry: ScannerRegistry) -> None:
    """Discover and register every built-in scanner."""
    for cls in _load_builtin_scanners():
        try:
            registry.register(cls())
        except Exception:
            log.exception("Failed to instantiate scanner: %s", cls.__name__)

    log.info("Loaded %d scanners", len(registry))
