from __future__ import annotations

from .types import SubtitleItem
from .timecode import parse_timestamp
from .srt_writer import DEFAULT_SRT_NAME, subtitle_items_to_srt, write_json, write_srt

__all__ = [
    "SubtitleItem",
    "parse_timestamp",
    "DEFAULT_SRT_NAME",
    "subtitle_items_to_srt",
    "write_json",
    "write_srt",
]
