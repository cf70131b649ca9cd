from __future__ import annotations

from typing import Optional, Sequence

from .subtitles import SubtitleItem


def find_active_index(items: Sequence[SubtitleItem], current_time: float) -> Optional[int]:
    """
    返回包含 current_time 的第一条字幕下标（起止时间均为闭区间），没有则返回 None。

    字幕列表通常只有几百条，线性扫描即可；区间重叠时按列表顺序取第一条。
    """
    for idx, item in enumerate(items):
        if item.start_seconds <= current_time <= item.end_seconds:
            return idx
    return None


def find_active_subtitle(
    items: Sequence[SubtitleItem], current_time: float
) -> Optional[SubtitleItem]:
    idx = find_active_index(items, current_time)
    return items[idx] if idx is not None else None


class PlaybackClock:
    """
    播放器位置与用户跳转请求之间的时间桥接。

    - 播放器持续通过 ``report_position`` 上报当前位置；
    - 用户点击字幕等操作通过 ``request_seek`` 请求跳转；
    只有当请求时间与播放器位置相差超过 tolerance 时才真正推送跳转，
    避免刚完成的跳转被下一次位置上报来回拉扯。
    """

    def __init__(self, tolerance: float = 0.5) -> None:
        self.tolerance = tolerance
        self.current_time = 0.0
        self.player_position = 0.0

    def report_position(self, seconds: float) -> None:
        self.player_position = seconds
        self.current_time = seconds

    def request_seek(self, seconds: float) -> bool:
        """返回 True 表示需要把播放器跳转到 seconds。"""
        self.current_time = seconds
        if abs(self.player_position - seconds) > self.tolerance:
            self.player_position = seconds
            return True
        return False
