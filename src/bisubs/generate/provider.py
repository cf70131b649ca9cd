from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional


class MediaProvider(ABC):
    """
    远端生成式模型服务的抽象接口。

    具体实现（当前为 Gemini）负责文件上传、状态查询与结构化生成，
    以便 SubtitleGenerator 统一调度，测试中也可以替换为假实现。
    """

    @abstractmethod
    def upload(self, path: Path, mime_type: str, display_name: str) -> Any:
        """
        上传媒体文件，返回远端资源（需带 uri / name / state，可能包在 file 字段中）。
        """

    @abstractmethod
    def get(self, name: str) -> Any:
        """
        根据资源名查询最新状态。
        """

    @abstractmethod
    def generate(
        self,
        model: str,
        file_uri: str,
        mime_type: str,
        prompt: str,
        schema: Any,
        temperature: float,
    ) -> Optional[str]:
        """
        发起一次结构化输出请求，返回模型生成的原始文本。
        """
