from __future__ import annotations

"""
应用状态模型。

所有状态集中在不可变的 AppState 中，通过下面的纯函数进行更新，
便于独立测试生成流程的每一次状态迁移。
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from .errors import GenerationInProgressError
from .subtitles import SubtitleItem


class Language(str, Enum):
    """目标语言偏好，只影响提示词中的优先级，不决定原文/译文字段。"""

    ENGLISH = "English"
    CHINESE = "Chinese"

    @classmethod
    def parse(cls, value: "str | Language") -> "Language":
        if isinstance(value, Language):
            return value
        key = value.strip().lower()
        if key in {"english", "en"}:
            return cls.ENGLISH
        if key in {"chinese", "zh", "zh-cn", "cn"}:
            return cls.CHINESE
        raise ValueError(f"Unknown target language: {value}")


class ProcessingStatus(str, Enum):
    IDLE = "idle"
    READING = "reading"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


BUSY_STATUSES = frozenset(
    {ProcessingStatus.READING, ProcessingStatus.UPLOADING, ProcessingStatus.PROCESSING}
)


@dataclass(frozen=True)
class ProcessingState:
    status: ProcessingStatus = ProcessingStatus.IDLE
    message: Optional[str] = None

    @property
    def is_busy(self) -> bool:
        return self.status in BUSY_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "message": self.message}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessingState":
        return cls(
            status=ProcessingStatus(data.get("status", "idle")),
            message=data.get("message"),
        )


class Phase(str, Enum):
    """生成流程直接上报的阶段标签。"""

    UPLOADING = "uploading"
    PROCESSING = "processing"
    GENERATING = "generating"

    @property
    def status(self) -> ProcessingStatus:
        if self is Phase.UPLOADING:
            return ProcessingStatus.UPLOADING
        return ProcessingStatus.PROCESSING


@dataclass(frozen=True)
class MediaSelection:
    path: Path
    display_name: str
    size: int
    mime_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "display_name": self.display_name,
            "size": self.size,
            "mime_type": self.mime_type,
        }


@dataclass(frozen=True)
class AppState:
    media: Optional[MediaSelection] = None
    subtitles: Tuple[SubtitleItem, ...] = ()
    processing: ProcessingState = field(default_factory=ProcessingState)
    target_language: Language = Language.ENGLISH
    current_time: float = 0.0
    # 每次选择文件 / 重置 / 发起生成都会递增，过期的结果据此被丢弃
    generation_token: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "media": self.media.to_dict() if self.media else None,
            "subtitles": [item.to_dict() for item in self.subtitles],
            "processing": self.processing.to_dict(),
            "target_language": self.target_language.value,
            "current_time": self.current_time,
            "generation_token": self.generation_token,
        }


def select_media(state: AppState, media: MediaSelection) -> AppState:
    return replace(
        state,
        media=media,
        subtitles=(),
        processing=ProcessingState(),
        current_time=0.0,
        generation_token=state.generation_token + 1,
    )


def reset(state: AppState) -> AppState:
    return replace(
        state,
        media=None,
        subtitles=(),
        processing=ProcessingState(),
        current_time=0.0,
        generation_token=state.generation_token + 1,
    )


def set_target_language(state: AppState, language: Language) -> AppState:
    return replace(state, target_language=language)


def begin_generation(state: AppState) -> Tuple[AppState, int]:
    if state.media is None:
        raise ValueError("No media selected")
    if state.processing.is_busy:
        raise GenerationInProgressError("A generation is already in progress")
    token = state.generation_token + 1
    new_state = replace(
        state,
        processing=ProcessingState(ProcessingStatus.UPLOADING, "Starting upload..."),
        generation_token=token,
    )
    return new_state, token


def apply_phase(
    state: AppState, token: int, phase: Phase, detail: Optional[str] = None
) -> AppState:
    if token != state.generation_token:
        return state
    return replace(state, processing=ProcessingState(phase.status, detail))


def complete_generation(
    state: AppState, token: int, items: Iterable[SubtitleItem]
) -> AppState:
    if token != state.generation_token:
        return state
    return replace(
        state,
        subtitles=tuple(items),
        processing=ProcessingState(ProcessingStatus.COMPLETED),
    )


def fail_generation(state: AppState, token: int, message: str) -> AppState:
    if token != state.generation_token:
        return state
    return replace(state, processing=ProcessingState(ProcessingStatus.ERROR, message))


def update_time(state: AppState, seconds: float) -> AppState:
    return replace(state, current_time=seconds)
