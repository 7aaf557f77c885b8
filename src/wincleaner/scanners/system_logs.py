"""Scanner for Windows log files, error reports and crash dumps."""

from __future__ import annotations

from datetime import datetime

from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import PathTableScanner, fixture

_MB = 1024 * 1024


class SystemLogsScanner(PathTableScanner):

    _list_contents = True
    _max_depth = 2
    _extensions = (".evtx", ".log", ".etl", ".wer", ".dmp", ".txt")

    @property
    def id(self) -> str:
        return "system_logs"

    @property
    def name(self) -> str:
        return "System Logs"

    @property
    def description(self) -> str:
        return "Event logs, Windows Error Reporting data, crash dumps and setup logs."

    @property
    def sort_order(self) -> int:
        return 30

    @property
    def _path_table(self) -> tuple[tuple[str, str], ...]:
        return (
            ("event-log", r"%SYSTEMROOT%\System32\winevt\Logs"),
            ("event-log", r"%SYSTEMROOT%\System32\LogFiles"),
            ("error-report", r"%PROGRAMDATA%\Microsoft\Windows\WER\ReportQueue"),
            ("error-report", r"%PROGRAMDATA%\Microsoft\Windows\WER\ReportArchive"),
            ("error-report", r"%LOCALAPPDATA%\Microsoft\Windows\WER\ReportQueue"),
            ("error-report", r"%LOCALAPPDATA%\Microsoft\Windows\WER\ReportArchive"),
            ("crash-dump", r"%LOCALAPPDATA%\CrashDumps"),
            ("install-log", r"%SYSTEMROOT%\Logs\CBS"),
            ("install-log", r"%SYSTEMROOT%\Logs\DISM"),
            ("install-log", r"%SYSTEMROOT%\Logs\MoSetup"),
            ("install-log", r"%SYSTEMROOT%\Panther"),
            ("update-log", r"%SYSTEMROOT%\Logs\WindowsUpdate"),
            ("update-log", r"%SYSTEMROOT%\SoftwareDistribution\ReportingEvents.log"),
            ("update-log", r"%SYSTEMROOT%\WindowsUpdate.log"),
        )

    @property
    def _descriptions(self) -> dict[str, str]:
        return {
            "event-log": "Windows event log",
            "error-report": "Windows Error Reporting data",
            "crash-dump": "Application crash dump",
            "install-log": "Setup and servicing log",
            "update-log": "Windows Update log",
        }

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        return [
            fixture(now, "event-log", r"C:\Windows\System32\winevt\Logs\Application.evtx", 20 * _MB, days=7,
                    description="Application event log"),
            fixture(now, "event-log", r"C:\Windows\System32\winevt\Logs\System.evtx", 15 * _MB, days=5,
                    description="System event log"),
            fixture(now, "error-report", r"C:\ProgramData\Microsoft\Windows\WER\ReportQueue\Report.wer",
                    2 * _MB, days=3, description="Windows Error Reporting data"),
            fixture(now, "crash-dump", r"C:\Users\User\AppData\Local\CrashDumps\chrome.dmp", 50 * _MB, days=10,
                    description="Application crash dump"),
            fixture(now, "install-log", r"C:\Windows\Logs\CBS\CBS.log", 8 * _MB, days=15,
                    description="Component servicing log"),
            fixture(now, "update-log", r"C:\Windows\Logs\WindowsUpdate\WindowsUpdate.log", 12 * _MB, days=2,
                    description="Windows Update log"),
        ]
