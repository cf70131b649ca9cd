from __future__ import annotations


def parse_timestamp(text: str) -> float:
    """
    将 SRT 风格时间戳 ``HH:MM:SS,mmm`` 转换为秒数。

    毫秒部分缺失或为空时按 0 处理（如 ``"00:00:01,"``、``"00:00:01"``）。
    时、分、秒按浮点数解析，所以 ``"00:00:01.500"`` 也能得到 1.5。
    非数字分量会抛出 ValueError，这属于调用方错误。
    """
    hms, _, ms = text.strip().partition(",")
    parts = hms.split(":")
    if len(parts) != 3:
        raise ValueError(f"Invalid timestamp (expected HH:MM:SS,mmm): {text!r}")
    h, m, s = (float(p) for p in parts)
    millis = int(ms) if ms.strip() else 0
    return h * 3600 + m * 60 + s + millis / 1000
