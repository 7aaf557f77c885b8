"""Scanner for WeChat desktop data."""

from __future__ import annotations

from datetime import datetime

from wincleaner.models.item import RawCandidate
from wincleaner.models.scanner import ChatAppScanner, fixture

_MB = 1024 * 1024

_ACCOUNT = r"C:\Users\User\Documents\WeChat Files\wxid_demo123"


class WeChatScanner(ChatAppScanner):
    """Reports each WeChat cache, media and log file separately."""

    @property
    def id(self) -> str:
        return "wechat"

    @property
    def name(self) -> str:
        return "WeChat"

    @property
    def description(self) -> str:
        return "WeChat caches, received images, videos and files, logs and mini-program data."

    @property
    def sort_order(self) -> int:
        return 100

    @property
    def _app(self) -> str:
        return "wechat"

    @property
    def _account_root(self) -> str:
        return r"%USERPROFILE%\Documents\WeChat Files"

    @property
    def _account_dirs(self) -> tuple[tuple[str, str], ...]:
        return (
            ("cache", r"FileStorage\Cache"),
            ("image", r"FileStorage\Image"),
            ("video", r"FileStorage\Video"),
            ("file", r"FileStorage\File"),
            ("log", "Logs"),
        )

    @property
    def _shared_dirs(self) -> tuple[tuple[str, str], ...]:
        return (
            ("temp", r"%APPDATA%\Tencent\WeChat\Temp"),
            ("applet", r"%USERPROFILE%\Documents\WeChat Files\Applet"),
        )

    def fixtures(self, now: datetime) -> list[RawCandidate]:
        return [
            fixture(now, "wechat-cache", rf"{_ACCOUNT}\FileStorage\Cache\2024-05\c0f1.dat", 120 * _MB, days=200,
                    description="WeChat cache file"),
            fixture(now, "wechat-image", rf"{_ACCOUNT}\FileStorage\Image\2024-11\e4a7.dat", 3 * _MB, days=10,
                    description="WeChat image"),
            fixture(now, "wechat-image", rf"{_ACCOUNT}\FileStorage\Image\2024-03\9b2d.dat", 4 * _MB, days=200,
                    description="WeChat image"),
            fixture(now, "wechat-video", rf"{_ACCOUNT}\FileStorage\Video\2024-10\clip_0311.mp4", 85 * _MB, days=30,
                    description="WeChat video"),
            fixture(now, "wechat-video", rf"{_ACCOUNT}\FileStorage\Video\2023-12\clip_1207.mp4", 140 * _MB,
                    days=300, description="WeChat video"),
            fixture(now, "wechat-file", rf"{_ACCOUNT}\FileStorage\File\2024-02\report.pdf", 6 * _MB, days=250,
                    description="File received in WeChat"),
            fixture(now, "wechat-log", rf"{_ACCOUNT}\Logs\wechat_20241101.xlog", 9 * _MB, days=5,
                    description="WeChat log"),
            fixture(now, "wechat-temp", r"C:\Users\User\AppData\Roaming\Tencent\WeChat\Temp\upload_7f3.tmp",
                    30 * _MB, days=2, description="WeChat temporary file"),
            fixture(now, "wechat-applet", r"C:\Users\User\Documents\WeChat Files\Applet\wx3c1d\pkg.wxapkg",
                    12 * _MB, days=40, description="WeChat mini-program package"),
        ]
