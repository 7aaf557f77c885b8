"""Base scanner interface."""

from __future__ import annotations

import logging
import ntpath
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta

from wincleaner.core.backend import BackendError, BackendUnavailable, FileInfo, RegistryKey, SystemBackend
from wincleaner.models.item import RawCandidate
from wincleaner.utils import expand_windows_path, leaf_name

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
ScanStep = RawCandidate | int


@dataclass(frozen=True)
class ScanContext:
    """What a scanner needs to run: the backend and the reference time."""

    backend: SystemBackend
    now: datetime

    @property
    def simulated(self) -> bool:
        return self.backend.is_simulated


def fixture(
    now: datetime,
    type_tag: str,
    path: str,
    size_bytes: int,
    *,
    days: float = 0,
    hours: float = 0,
    name: str | None = None,
    description: str = "",
    app_name: str = "",
) -> RawCandidate:
    """Build a deterministic simulated candidate aged relative to *now*."""
    return RawCandidate(
        name=name or leaf_name(path),
        path=path,
        size_bytes=size_bytes,
        type_tag=type_tag,
        last_modified=now - timedelta(days=days, hours=hours),
        description=description,
        app_name=app_name,
    )


def registry_size(key: RegistryKey, per_value: int = 100) -> int:
    """Estimate the on-disk footprint of a registry key from its value count."""
    return len(key.values) * per_value


class CategoryScanner(ABC):
    """Base class for all category scanners.

    A scanner only discovers candidates; it never deletes anything and
    never decides risk. Subclasses implement ``_scan_steps`` for the real
    backend and ``fixtures`` for the simulator.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Unique identifier, e.g. 'system_cache'."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name, e.g. 'System Cache'."""

    @property
    @abstractmethod
    def description(self) -> str:
        """What this scanner looks for."""

    @property
    def sort_order(self) -> int:
        """Position in the scan order (lower = first). Default 50."""
        return 50

    def scan(self, context: ScanContext, on_progress: ProgressCallback | None = None) -> list[RawCandidate]:
        """Collect every candidate, reporting 0..100 progress along the way."""
        found: list[RawCandidate] = []
        for step in self.steps(context):
            if isinstance(step, int):
                if on_progress:
                    on_progress(step)
            else:
                found.append(step)
        return found

    def steps(self, context: ScanContext) -> Iterator[ScanStep]:
        """Yield candidates interleaved with percent-complete integers.

        Percentages never decrease and the last one is always 100.
        """
        source = self._fixture_steps(context) if context.simulated else self._scan_steps(context)
        last = 0
        yield 0
        for step in source:
            if isinstance(step, int):
                step = min(100, max(last, step))
                if step == last:
                    continue
                last = step
            yield step
        if last < 100:
            yield 100

    @abstractmethod
    def _scan_steps(self, context: ScanContext) -> Iterator[ScanStep]:
        """Scan the real system."""

    @abstractmethod
    def fixtures(self, now: datetime) -> list[RawCandidate]:
        """Fixed candidate set returned when the backend is simulated."""

    def _fixture_steps(self, context: ScanContext) -> Iterator[ScanStep]:
        items = self.fixtures(context.now)
        for index, candidate in enumerate(items, 1):
            context.backend.throttle()
            yield candidate
            yield index * 100 // len(items)


class PathTableScanner(CategoryScanner, ABC):
    """Base class for scanners driven by a table of Windows paths.

    Each table row is ``(type_tag, pattern)``. A pattern may reference
    environment variables (``%USERPROFILE%``), end in a wildcard component
    (``thumbcache_*.db``) or name a registry key (``HKEY_...``).
    Directories are reported as one aggregated candidate unless
    ``_list_contents`` is set, in which case each file inside is reported.
    """

    _list_contents: bool = False
    _max_depth: int | None = None
    _extensions: tuple[str, ...] | None = None
    _registry_value_size: int = 100

    @property
    @abstractmethod
    def _path_table(self) -> tuple[tuple[str, str], ...]:
        """Rows of (type_tag, Windows path pattern)."""

    @property
    def _descriptions(self) -> dict[str, str]:
        """Human-readable description per type tag."""
        return {}

    def _extra_steps(self, context: ScanContext) -> Iterator[ScanStep]:
        """Candidates that do not come from the path table (e.g. DNS cache)."""
        return iter(())

    def _scan_steps(self, context: ScanContext) -> Iterator[ScanStep]:
        yield from self._guarded(self._extra_steps(context), "extra sources")
        table = self._path_table
        for index, (type_tag, pattern) in enumerate(table, 1):
            path = expand_windows_path(pattern)
            yield from self._guarded(self._scan_entry(context.backend, type_tag, path), path)
            yield index * 100 // len(table)

    def _guarded(self, steps: Iterable[ScanStep], label: str) -> Iterator[ScanStep]:
        try:
            yield from steps
        except BackendUnavailable:
            raise
        except (BackendError, OSError) as exc:
            log.debug("Cannot scan %s: %s", label, exc)

    def _scan_entry(self, backend: SystemBackend, type_tag: str, path: str) -> Iterator[RawCandidate]:
        if path.upper().startswith("HKEY_"):
            key = backend.read_registry_key(path)
            if key is not None:
                yield self._candidate_from_key(key, type_tag)
            return

        parent, leaf = ntpath.split(path)
        if "*" in leaf or "?" in leaf:
            for info in backend.scan_directory(parent, pattern=leaf):
                if not info.is_dir or not self._list_contents:
                    yield from self._candidates_from_info(info, type_tag)
            return

        info = backend.get_file_info(path)
        if info is None:
            return
        if info.is_dir and self._list_contents:
            for entry in backend.scan_directory(
                path, recursive=True, max_depth=self._max_depth, extensions=self._extensions
            ):
                if not entry.is_dir:
                    yield from self._candidates_from_info(entry, type_tag)
        else:
            yield from self._candidates_from_info(info, type_tag)

    def _candidates_from_info(self, info: FileInfo, type_tag: str) -> Iterator[RawCandidate]:
        if info.size <= 0:
            return
        if self._extensions and not info.is_dir and not info.name.lower().endswith(self._extensions):
            return
        yield RawCandidate(
            name=info.name,
            path=info.path,
            size_bytes=info.size,
            type_tag=type_tag,
            last_modified=info.last_modified,
            description=self._descriptions.get(type_tag, self.description),
        )

    def _candidate_from_key(self, key: RegistryKey, type_tag: str) -> RawCandidate:
        return RawCandidate(
            name=leaf_name(key.path),
            path=key.path,
            size_bytes=registry_size(key, self._registry_value_size),
            type_tag=type_tag,
            description=self._descriptions.get(type_tag, self.description),
        )


class ChatAppScanner(CategoryScanner, ABC):
    """Base class for chat-application scanners.

    Chat data is organised per account under a common root, e.g.
    ``Documents\\WeChat Files\\<account>\\FileStorage\\Image``. Every file
    is reported on its own so that retention can judge it by age.
    """

    _skip_accounts: frozenset[str] = frozenset({"all users", "applet", "wmpf"})

    @property
    @abstractmethod
    def _app(self) -> str:
        """Type tag prefix, e.g. 'wechat'."""

    @property
    @abstractmethod
    def _account_root(self) -> str:
        """Directory that holds one subdirectory per account."""

    @property
    @abstractmethod
    def _account_dirs(self) -> tuple[tuple[str, str], ...]:
        """Rows of (subtype, path relative to an account directory)."""

    @property
    def _shared_dirs(self) -> tuple[tuple[str, str], ...]:
        """Rows of (subtype, absolute path pattern) not tied to an account."""
        return ()

    def _scan_steps(self, context: ScanContext) -> Iterator[ScanStep]:
        backend = context.backend
        targets = [(subtype, expand_windows_path(pattern)) for subtype, pattern in self._shared_dirs]
        root = expand_windows_path(self._account_root)
        try:
            accounts = [
                entry.path
                for entry in backend.scan_directory(root)
                if entry.is_dir and entry.name.lower() not in self._skip_accounts
            ]
        except BackendUnavailable:
            raise
        except (BackendError, OSError) as exc:
            log.debug("Cannot list %s accounts in %s: %s", self.name, root, exc)
            accounts = []

        for account in accounts:
            targets.extend((subtype, ntpath.join(account, rel)) for subtype, rel in self._account_dirs)

        for index, (subtype, directory) in enumerate(targets, 1):
            try:
                for info in backend.scan_directory(directory, recursive=True):
                    if info.is_dir or info.size <= 0:
                        continue
                    yield RawCandidate(
                        name=info.name,
                        path=info.path,
                        size_bytes=info.size,
                        type_tag=f"{self._app}-{subtype}",
                        last_modified=info.last_modified,
                        description=f"{self.name} {subtype} file",
                    )
            except BackendUnavailable:
                raise
            except (BackendError, OSError) as exc:
                log.debug("Cannot scan %s: %s", directory, exc)
            yield index * 100 // len(targets)
