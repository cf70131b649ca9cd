from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Callable, Optional

from . import state as st
from .config import BisubsConfig
from .errors import FileTooLargeError, describe_error
from .generate import SubtitleGenerator
from .log import get_logger
from .playback import PlaybackClock, find_active_subtitle
from .subtitles import SubtitleItem, write_srt

logger = get_logger("session")


class SubtitleSession:
    """
    一次交互会话：选择文件 -> 生成字幕 -> 同步播放 / 导出。

    所有状态保存在不可变的 AppState 中，只能通过 state 模块的更新函数修改；
    播放器位置与跳转请求由 PlaybackClock 协调。
    """

    def __init__(
        self,
        generator: SubtitleGenerator,
        config: Optional[BisubsConfig] = None,
        on_change: Optional[Callable[[st.AppState], None]] = None,
    ) -> None:
        self.config = config or generator.config
        self.generator = generator
        self.on_change = on_change
        self.state = st.AppState()
        self.clock = PlaybackClock(tolerance=self.config.seek_tolerance)

    def _set_state(self, new_state: st.AppState) -> None:
        changed = new_state is not self.state
        self.state = new_state
        if changed and self.on_change is not None:
            self.on_change(new_state)

    def select_file(self, path: str | Path, mime_type: Optional[str] = None) -> st.AppState:
        """
        选择新的媒体文件。

        超过大小上限时直接抛出 FileTooLargeError，不做任何远程调用、不改变状态。
        """
        media_path = Path(path).expanduser().resolve()
        if not media_path.is_file():
            raise FileNotFoundError(f"Media file not found: {media_path}")
        size = media_path.stat().st_size
        if size > self.config.max_file_size:
            raise FileTooLargeError(size, self.config.max_file_size)

        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(media_path.name)
        media = st.MediaSelection(
            path=media_path,
            display_name=media_path.name,
            size=size,
            mime_type=mime_type,
        )
        self._set_state(st.select_media(self.state, media))
        self.clock = PlaybackClock(tolerance=self.config.seek_tolerance)
        return self.state

    def reset(self) -> st.AppState:
        self._set_state(st.reset(self.state))
        self.clock = PlaybackClock(tolerance=self.config.seek_tolerance)
        return self.state

    def set_target_language(self, language: "str | st.Language") -> st.AppState:
        self._set_state(st.set_target_language(self.state, st.Language.parse(language)))
        return self.state

    def generate(self) -> st.ProcessingState:
        """
        执行完整生成流程并返回最终的处理状态。

        远程错误不会向外抛出，而是转换为 error 状态与用户可读的提示。
        """
        started, token = st.begin_generation(self.state)
        self._set_state(started)
        media = self.state.media
        assert media is not None

        def on_phase(phase: st.Phase, detail: Optional[str]) -> None:
            self._set_state(st.apply_phase(self.state, token, phase, detail))

        try:
            items = self.generator.generate(
                media.path,
                target_language=self.state.target_language,
                mime_type=media.mime_type,
                display_name=media.display_name,
                on_phase=on_phase,
            )
        except Exception as exc:
            logger.error(f"generation failed: {exc!r}")
            self._set_state(st.fail_generation(self.state, token, describe_error(exc)))
        else:
            self._set_state(st.complete_generation(self.state, token, items))
        return self.state.processing

    def tick(self, seconds: float) -> Optional[SubtitleItem]:
        """播放器上报当前位置，返回此刻的字幕。"""
        self.clock.report_position(seconds)
        self._set_state(st.update_time(self.state, seconds))
        return self.active_subtitle()

    def seek(self, seconds: float) -> bool:
        """用户请求跳转，返回是否需要真正移动播放器。"""
        should_seek = self.clock.request_seek(seconds)
        self._set_state(st.update_time(self.state, seconds))
        return should_seek

    def active_subtitle(self) -> Optional[SubtitleItem]:
        return find_active_subtitle(self.state.subtitles, self.state.current_time)

    def export_srt(self, path: str | Path) -> Path:
        if not self.state.subtitles:
            raise ValueError("No subtitles to export")
        return write_srt(self.state.subtitles, path)
