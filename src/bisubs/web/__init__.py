from __future__ import annotations

"""
bisubs Web 子模块

提供基于 FastAPI 的轻量 Web 界面与 API。
"""

from .app import create_app, main

__all__ = ["create_app", "main"]
