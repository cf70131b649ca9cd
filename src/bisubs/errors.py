from __future__ import annotations

"""
bisubs 的异常体系。

异常在检测到问题的位置抛出，只在会话 / Web / CLI 边界统一捕获，
并通过 ``describe_error`` 转换为面向用户的提示文本。
"""

from typing import Optional


class BisubsError(Exception):
    """所有 bisubs 异常的基类。"""


class ConfigurationError(BisubsError):
    """缺少 API Key 等配置问题。"""


class FileTooLargeError(BisubsError):
    """输入文件超过本地大小上限，在任何远程调用之前拒绝。"""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__("File size exceeds the 4GB limit.")
        self.size = size
        self.limit = limit


class UploadResponseError(BisubsError):
    """上传接口返回的资源缺少 uri。"""


class RemoteProcessingError(BisubsError):
    """远端明确报告文件处理失败（FAILED）。"""


class ProcessingTimeoutError(BisubsError):
    """轮询次数耗尽，远端仍处于 PROCESSING。"""

    def __init__(self, attempts: int, interval: float) -> None:
        super().__init__(
            f"Video processing did not finish after {attempts} status checks "
            f"({attempts * interval:.0f}s)."
        )
        self.attempts = attempts
        self.interval = interval


class GenerationError(BisubsError):
    """生成请求没有返回任何文本。"""


class SubtitleParseError(BisubsError):
    """生成结果无法解析为字幕数组，保留原始文本便于排查。"""

    def __init__(self, reason: str, raw_text: str) -> None:
        super().__init__(f"Failed to parse generated subtitles: {reason}")
        self.reason = reason
        self.raw_text = raw_text


class GenerationInProgressError(BisubsError):
    """上一次生成尚未结束时再次发起生成。"""


GENERIC_FAILURE_MESSAGE = "Failed to generate subtitles. Please try again."
AUTH_FAILURE_MESSAGE = "API Key Invalid or Quota Exceeded."
PAYLOAD_TOO_LARGE_MESSAGE = "File is too large for the current API tier or connection."


def _error_code(exc: BaseException) -> Optional[int]:
    # google.genai.errors.APIError 携带 HTTP 状态码
    code = getattr(exc, "code", None)
    return code if isinstance(code, int) else None


def describe_error(exc: BaseException) -> str:
    """
    将任意异常映射为面向用户的错误信息。

    - 默认给出通用提示；
    - 包含 "Project not found" 时提示 API Key / 配额问题；
    - 包含 413（或状态码为 413）时提示文件过大；
    - 末尾附带原始错误信息，便于排查。
    """
    detail = str(exc) or exc.__class__.__name__
    message = GENERIC_FAILURE_MESSAGE
    if "Project not found" in detail:
        message = AUTH_FAILURE_MESSAGE
    if "413" in detail or _error_code(exc) == 413:
        message = PAYLOAD_TOO_LARGE_MESSAGE
    return f"{message} ({detail})"
