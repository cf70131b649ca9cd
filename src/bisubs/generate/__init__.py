from __future__ import annotations

from .provider import MediaProvider
from .workflow import (
    SUBTITLE_SCHEMA,
    SubtitleGenerator,
    build_prompt,
    parse_generated_subtitles,
)

__all__ = [
    "MediaProvider",
    "SUBTITLE_SCHEMA",
    "SubtitleGenerator",
    "build_prompt",
    "parse_generated_subtitles",
]
