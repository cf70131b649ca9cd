from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from .types import SubtitleItem

DEFAULT_SRT_NAME = "subtitles.srt"


def subtitle_items_to_srt(items: Iterable[SubtitleItem]) -> str:
    """
    生成双语 SRT 文本：每块依次为序号、时间轴、译文、原文。

    时间戳原样输出（已是 SRT 的逗号毫秒格式）；块与块之间以空行分隔。
    """
    blocks: list[str] = []
    for idx, item in enumerate(items, start=1):
        blocks.append(
            f"{idx}\n"
            f"{item.start_time} --> {item.end_time}\n"
            f"{item.translated_text}\n"
            f"{item.original_text}\n"
        )
    return "\n".join(blocks)


def write_srt(items: Iterable[SubtitleItem], path: str | Path) -> Path:
    srt_text = subtitle_items_to_srt(items)
    out_path = Path(path).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(srt_text, encoding="utf-8")
    return out_path


def write_json(items: Iterable[SubtitleItem], path: str | Path) -> Path:
    """将字幕列表以 camelCase 字段写为 JSON，便于前端或后续工具重新加载。"""
    payload = [item.to_dict() for item in items]
    out_path = Path(path).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return out_path
