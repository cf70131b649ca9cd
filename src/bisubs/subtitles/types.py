from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .timecode import parse_timestamp


FIELD_NAMES = ("startTime", "endTime", "originalText", "translatedText")


@dataclass(frozen=True)
class SubtitleItem:
    """
    单条双语字幕。

    - original_text：音频实际语言的转写；
    - translated_text：另一种语言（英 <-> 中）的译文。
    时间戳保持生成结果中的文本格式 HH:MM:SS,mmm，不做转换。
    """

    start_time: str
    end_time: str
    original_text: str
    translated_text: str

    @property
    def start_seconds(self) -> float:
        return parse_timestamp(self.start_time)

    @property
    def end_seconds(self) -> float:
        return parse_timestamp(self.end_time)

    @classmethod
    def from_dict(cls, data: Any) -> "SubtitleItem":
        if not isinstance(data, dict):
            raise ValueError(f"subtitle entry must be an object, got {type(data).__name__}")
        values: Dict[str, str] = {}
        for key in FIELD_NAMES:
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"subtitle field {key!r} missing or not a string")
            values[key] = value
        return cls(
            start_time=values["startTime"],
            end_time=values["endTime"],
            original_text=values["originalText"],
            translated_text=values["translatedText"],
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "startTime": self.start_time,
            "endTime": self.end_time,
            "originalText": self.original_text,
            "translatedText": self.translated_text,
        }
