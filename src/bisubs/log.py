"""
统一的日志工具模块

提供带前缀的简单日志接口，替代直接使用 print。
调试日志只在 BISUBS_DEBUG=1 时输出，并同时追加写入 UTF-8 日志文件。
"""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional


def _debug_enabled() -> bool:
    return os.getenv("BISUBS_DEBUG", "").strip() == "1"


def _debug_log_path() -> Path:
    custom = os.getenv("BISUBS_DEBUG_LOG", "").strip()
    if custom:
        return Path(custom).expanduser()
    return Path.cwd() / "logs" / "bisubs_debug.log"


class Logger:
    """简单的日志记录器，不依赖 logging 模块"""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def _format(self, level: str, message: str) -> str:
        if self.prefix:
            return f"[{level}] {self.prefix}: {message}"
        return f"[{level}] {message}"

    def info(self, message: str) -> None:
        print(self._format("INFO", message), file=sys.stdout)

    def warning(self, message: str) -> None:
        print(self._format("WARN", message), file=sys.stderr)

    def error(self, message: str) -> None:
        print(self._format("ERROR", message), file=sys.stderr)

    def debug(self, message: str, log_path: Optional[Path] = None) -> None:
        """调试级别日志：控制台输出 + 追加写入日志文件。"""
        if not _debug_enabled():
            return
        line = self._format("DEBUG", message)
        print(line, file=sys.stdout)

        path = log_path or _debug_log_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as write_err:
            print(self._format("WARN", f"写入调试日志失败: {write_err!r}"), file=sys.stderr)


def get_logger(prefix: str = "") -> Logger:
    """获取带前缀的日志记录器"""
    return Logger(prefix=prefix)
