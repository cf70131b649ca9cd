from __future__ import annotations

from bisubs.config import BisubsConfig

from .provider import MediaProvider


def get_media_provider(config: BisubsConfig, name: str = "gemini") -> MediaProvider:
    """
    根据名称返回对应的 MediaProvider 实例。

    当前仅支持 "gemini"。
    """
    key = name.lower()
    if key == "gemini":
        from .gemini_provider import GeminiProvider

        return GeminiProvider.from_config(config)
    raise ValueError(f"Unknown media provider: {name}")
