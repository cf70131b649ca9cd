from __future__ import annotations

import json
import mimetypes
import time
from pathlib import Path
from typing import Any, Callable, List, Optional

from bisubs.config import BisubsConfig
from bisubs.errors import (
    GenerationError,
    ProcessingTimeoutError,
    RemoteProcessingError,
    SubtitleParseError,
    UploadResponseError,
)
from bisubs.log import get_logger
from bisubs.state import Language, Phase
from bisubs.subtitles import SubtitleItem

from .provider import MediaProvider

logger = get_logger("workflow")

PhaseCallback = Callable[[Phase, Optional[str]], None]

STATE_PROCESSING = "PROCESSING"
STATE_FAILED = "FAILED"

# 严格的输出结构：对象数组，四个字段均为必填字符串
SUBTITLE_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "startTime": {
                "type": "STRING",
                "description": "Start time in HH:MM:SS,mmm format",
            },
            "endTime": {
                "type": "STRING",
                "description": "End time in HH:MM:SS,mmm format",
            },
            "originalText": {
                "type": "STRING",
                "description": "The transcribed text from the audio",
            },
            "translatedText": {
                "type": "STRING",
                "description": "The translated text",
            },
        },
        "required": ["startTime", "endTime", "originalText", "translatedText"],
    },
}


def _load_prompt(name: str) -> str:
    """
    从包内 prompts/ 目录加载提示词模板。
    """
    prompt_path = Path(__file__).resolve().parent / "prompts" / name
    if not prompt_path.is_file():
        raise FileNotFoundError(f"Prompt file not found: {prompt_path}")
    return prompt_path.read_text(encoding="utf-8")


def build_prompt(target_language: Language) -> str:
    template = _load_prompt("bilingual_subtitles.txt")
    return template.format(target_language=target_language.value)


def _field(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _unwrap_file(result: Any) -> Any:
    # SDK 返回结构不固定：有时包在 {file: ...} 中，有时直接就是资源本身
    wrapped = _field(result, "file")
    return wrapped if wrapped is not None else result


def _state_name(state: Any) -> str:
    """将 FileState 枚举或字符串统一为大写名称（如 "PROCESSING"）。"""
    if state is None:
        return ""
    name = getattr(state, "name", None)
    if isinstance(name, str):
        return name.upper()
    text = str(state)
    # 兼容 "FileState.PROCESSING" 形式
    return text.rsplit(".", 1)[-1].upper()


def parse_generated_subtitles(raw_text: str) -> List[SubtitleItem]:
    """
    将模型返回的 JSON 文本解析为字幕列表。

    JSON 非法或结构不符合 SUBTITLE_SCHEMA 时抛出 SubtitleParseError，
    其中保留原始文本以便排查。
    """
    try:
        data = json.loads(raw_text)
    except ValueError as json_err:
        raise SubtitleParseError(str(json_err), raw_text) from json_err

    if not isinstance(data, list):
        raise SubtitleParseError(
            f"expected a JSON array, got {type(data).__name__}", raw_text
        )

    items: List[SubtitleItem] = []
    for idx, entry in enumerate(data):
        try:
            item = SubtitleItem.from_dict(entry)
        except ValueError as item_err:
            raise SubtitleParseError(f"entry {idx}: {item_err}", raw_text) from item_err
        try:
            inverted = item.start_seconds > item.end_seconds
        except ValueError as ts_err:
            raise SubtitleParseError(f"entry {idx}: {ts_err}", raw_text) from ts_err
        if inverted:
            logger.warning(
                f"entry {idx} ends before it starts: {item.start_time} --> {item.end_time}"
            )
        items.append(item)
    return items


class SubtitleGenerator:
    """
    上传 -> 轮询 -> 生成 三阶段工作流。

    每个阶段开始时通过 on_phase(phase, detail) 上报；任意阶段失败都会抛出
    对应的 BisubsError 子类，由调用方决定如何展示。不做自动重试。
    """

    def __init__(
        self,
        provider: MediaProvider,
        config: Optional[BisubsConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.config = config or BisubsConfig()
        self.sleep = sleep

    def _resolve_mime_type(self, path: Path, mime_type: Optional[str]) -> str:
        if mime_type:
            return mime_type
        guessed, _ = mimetypes.guess_type(path.name)
        return guessed or self.config.default_mime_type

    def generate(
        self,
        media_path: str | Path,
        target_language: Language = Language.ENGLISH,
        mime_type: Optional[str] = None,
        display_name: Optional[str] = None,
        on_phase: Optional[PhaseCallback] = None,
    ) -> List[SubtitleItem]:
        def notify(phase: Phase, detail: Optional[str]) -> None:
            logger.info(detail or phase.value)
            if on_phase is not None:
                on_phase(phase, detail)

        path = Path(media_path)
        if not path.is_file():
            raise FileNotFoundError(f"Media file not found: {path}")
        mime = self._resolve_mime_type(path, mime_type)

        # 1. 上传
        notify(Phase.UPLOADING, "Uploading video to Gemini...")
        upload_result = self.provider.upload(path, mime, display_name or path.name)
        uploaded = _unwrap_file(upload_result)
        file_uri = _field(uploaded, "uri") if uploaded is not None else None
        if not file_uri:
            logger.error(f"Unexpected upload result: {upload_result!r}")
            raise UploadResponseError("Failed to upload file: URI is missing from response.")
        file_name = _field(uploaded, "name")

        # 2. 轮询处理状态
        notify(Phase.PROCESSING, "Processing video...")
        state = _state_name(_field(uploaded, "state"))
        attempts = 0
        while state == STATE_PROCESSING:
            if attempts >= self.config.max_poll_attempts:
                raise ProcessingTimeoutError(attempts, self.config.poll_interval)
            self.sleep(self.config.poll_interval)
            attempts += 1
            current = _unwrap_file(self.provider.get(file_name))
            state = _state_name(_field(current, "state"))
            logger.debug(f"poll #{attempts}: {file_name} state={state}")
            if state == STATE_FAILED:
                raise RemoteProcessingError("Video processing failed on Gemini servers.")
        if state == STATE_FAILED:
            raise RemoteProcessingError("Video processing failed on Gemini servers.")

        # 3. 生成字幕
        notify(Phase.GENERATING, "Generating subtitles...")
        raw_text = self.provider.generate(
            model=self.config.model,
            file_uri=file_uri,
            mime_type=mime,
            prompt=build_prompt(target_language),
            schema=SUBTITLE_SCHEMA,
            temperature=self.config.temperature,
        )
        if not raw_text:
            raise GenerationError("No content generated.")

        try:
            items = parse_generated_subtitles(raw_text)
        except SubtitleParseError as parse_err:
            logger.error(f"JSON Parse Error: {parse_err.reason}")
            logger.error(f"Raw Response: {parse_err.raw_text}")
            raise
        logger.info(f"generated {len(items)} subtitles")
        return items
