from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional


DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_MIME_TYPE = "video/mp4"
# 4 GiB，与浏览器端上传限制一致
DEFAULT_MAX_FILE_SIZE = 4 * 1024 * 1024 * 1024


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class BisubsConfig:
    """
    核心配置对象。

    所有字段都有默认值；``from_env`` 会在默认值之上叠加环境变量（或 .env）中的配置，
    显式传入的参数优先级最高。
    """

    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    poll_interval: float = 2.0
    # 轮询上限：默认 300 次 * 2 秒 = 10 分钟
    max_poll_attempts: int = 300
    temperature: float = 0.1
    default_mime_type: str = DEFAULT_MIME_TYPE
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    seek_tolerance: float = 0.5
    debug: bool = False
    web_jobs_dir: Optional[Path] = None
    web_jobs_ttl_hours: float = 12.0

    @classmethod
    def from_env(
        cls,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_poll_attempts: Optional[int] = None,
        web_jobs_dir: Optional[str | Path] = None,
    ) -> "BisubsConfig":
        if api_key is None:
            api_key = (
                os.getenv("GEMINI_API_KEY")
                or os.getenv("GOOGLE_API_KEY")
                or os.getenv("API_KEY")
                or None
            )

        if model is None:
            model = os.getenv("BISUBS_MODEL", "").strip() or DEFAULT_MODEL

        if poll_interval is None:
            poll_interval = _env_float("BISUBS_POLL_INTERVAL", 2.0)

        if max_poll_attempts is None:
            max_poll_attempts = _env_int("BISUBS_MAX_POLL_ATTEMPTS", 300)

        # 文件大小上限以 MB 配置，未设置时使用 4 GiB
        max_mb = _env_int("BISUBS_MAX_FILE_SIZE_MB", 0)
        max_file_size = max_mb * 1024 * 1024 if max_mb > 0 else DEFAULT_MAX_FILE_SIZE

        if web_jobs_dir is not None:
            jobs_dir: Optional[Path] = Path(web_jobs_dir).expanduser().resolve()
        else:
            env_dir = os.getenv("BISUBS_WEB_JOBS_DIR", "").strip()
            jobs_dir = Path(env_dir).expanduser().resolve() if env_dir else None

        return cls(
            api_key=api_key,
            model=model,
            poll_interval=poll_interval,
            max_poll_attempts=max(1, max_poll_attempts),
            temperature=_env_float("BISUBS_TEMPERATURE", 0.1),
            default_mime_type=os.getenv("BISUBS_DEFAULT_MIME_TYPE", "").strip()
            or DEFAULT_MIME_TYPE,
            max_file_size=max_file_size,
            seek_tolerance=_env_float("BISUBS_SEEK_TOLERANCE", 0.5),
            debug=os.getenv("BISUBS_DEBUG", "").strip() == "1",
            web_jobs_dir=jobs_dir,
            web_jobs_ttl_hours=_env_float("BISUBS_WEB_JOBS_TTL_HOURS", 12.0),
        )
