"""Scanner for QQ desktop data."""

from __future__ import annotations

from datetime import datetime

from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import ChatAppScanner, fixture

_MB = 1024 * 1024

_ACCOUNT = r"C:\Users\User\Documents\Tencent Files\123456789"


class QQScanner(ChatAppScanner):

    @property
    def id(self) -> str:
        return "qq"

    @property
    def name(self) -> str:
        return "QQ"

    @property
    def description(self) -> str:
        return "QQ received files, images, custom emoji, voice messages and temporary files."

    @property
    def sort_order(self) -> int:
        return 110

    @property
    def _app(self) -> str:
        return "qq"

    @property
    def _account_root(self) -> str:
        return r"%USERPROFILE%\Documents\Tencent Files"

    @property
    def _account_dirs(self) -> tuple[tuple[str, str], ...]:
        return (
            ("file", "FileRecv"),
            ("image", "Image"),
            ("emoji", "CustomFace"),
            ("audio", "Audio"),
        )

    @property
    def _shared_dirs(self) -> tuple[tuple[str, str], ...]:
        return (("temp", r"%APPDATA%\Tencent\QQ\Temp"),)

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        return [
            fixture(now, "qq-file", rf"{_ACCOUNT}\FileRecv\contract_v2.docx", 2 * _MB, days=15,
                    description="File received in QQ"),
            fixture(now, "qq-file", rf"{_ACCOUNT}\FileRecv\holiday_photos.zip", 310 * _MB, days=220,
                    description="File received in QQ"),
            fixture(now, "qq-image", rf"{_ACCOUNT}\Image\Group2\A1\B7\3f9c.jpg", 1 * _MB, days=45,
                    description="QQ image"),
            fixture(now, "qq-image", rf"{_ACCOUNT}\Image\C2C\2d44.png", 2 * _MB, days=400,
                    description="QQ image"),
            fixture(now, "qq-emoji", rf"{_ACCOUNT}\CustomFace\f3e1.gif", 512 * 1024, days=150,
                    description="QQ custom emoji"),
            fixture(now, "qq-audio", rf"{_ACCOUNT}\Audio\voice_0912.amr", 300 * 1024, days=60,
                    description="QQ voice message"),
            fixture(now, "qq-temp", r"C:\Users\User\AppData\Roaming\Tencent\QQ\Temp\tmp_5c21.dat", 18 * _MB,
                    days=3, description="QQ temporary file"),
        ]
