"""
Gemini 客户端封装（google-genai SDK）

严格按照官方 SDK 的调用方式：
  client.files.upload / client.files.get / client.models.generate_content
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from google import genai
from google.genai import types

from bisubs.config import BisubsConfig
from bisubs.errors import ConfigurationError
from bisubs.log import get_logger

from .provider import MediaProvider

logger = get_logger("gemini")


class GeminiProvider(MediaProvider):
    """
    基于 Google GenAI SDK 的 MediaProvider 实现。

    API Key 读取顺序（见 BisubsConfig.from_env）：
      - GEMINI_API_KEY
      - GOOGLE_API_KEY
      - API_KEY
    """

    def __init__(self, api_key: Optional[str] = None, client: Any = None) -> None:
        if client is None:
            if not api_key:
                raise ConfigurationError(
                    "GEMINI_API_KEY (or GOOGLE_API_KEY / API_KEY) environment variable not set"
                )
            # 每次构造都使用当前的 API Key
            client = genai.Client(api_key=api_key)
        self.client = client

    @classmethod
    def from_config(cls, config: BisubsConfig) -> "GeminiProvider":
        return cls(api_key=config.api_key)

    def upload(self, path: Path, mime_type: str, display_name: str) -> Any:
        logger.debug(f"upload {path} ({mime_type})")
        return self.client.files.upload(
            file=str(path),
            config=types.UploadFileConfig(
                display_name=display_name,
                mime_type=mime_type,
            ),
        )

    def get(self, name: str) -> Any:
        return self.client.files.get(name=name)

    def generate(
        self,
        model: str,
        file_uri: str,
        mime_type: str,
        prompt: str,
        schema: Any,
        temperature: float,
    ) -> Optional[str]:
        if isinstance(schema, dict):
            schema = types.Schema.model_validate(schema)
        response = self.client.models.generate_content(
            model=model,
            contents=[
                types.Part.from_uri(file_uri=file_uri, mime_type=mime_type),
                prompt,
            ],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=schema,
                temperature=temperature,
            ),
        )
        return response.text
