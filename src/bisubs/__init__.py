from __future__ import annotations

from .config import BisubsConfig
from .generate import SubtitleGenerator
from .session import SubtitleSession

__all__ = ["BisubsConfig", "SubtitleGenerator", "SubtitleSession"]

__version__ = "0.1.0"
