from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from bisubs.env import load_dotenv_if_present
from bisubs.config import BisubsConfig
from bisubs.errors import FileTooLargeError
from bisubs.generate.factory import get_media_provider
from bisubs.state import Language
from bisubs.subtitles import DEFAULT_SRT_NAME
from .dependencies import (
    JobStore,
    ProviderFactory,
    active_subtitle_payload,
    run_generation_job,
    subtitles_payload,
)

ALLOWED_EXTENSIONS = {
    ".wav",
    ".mp3",
    ".flac",
    ".m4a",
    ".ogg",
    ".opus",
    ".mp4",
    ".mkv",
    ".mov",
    ".avi",
    ".webm",
    ".m4v",
}


def create_app(
    config: Optional[BisubsConfig] = None,
    provider_factory: Optional[ProviderFactory] = None,
) -> FastAPI:
    """
    创建并配置 FastAPI 应用。

    - 加载 .env 环境变量；
    - 挂载模板与静态资源目录；
    - 注册页面、任务 API 与下载路由。
    """
    load_dotenv_if_present()
    if config is None:
        config = BisubsConfig.from_env()
    if provider_factory is None:
        provider_factory = get_media_provider

    app = FastAPI(
        title="bisubs Web",
        description="Web UI for bisubs: 上传视频/音频并生成中英双语字幕。",
    )
    store = JobStore.from_config(config)
    app.state.config = config
    app.state.jobs = store

    # 启动时尝试清理一次过期任务目录
    store.purge_expired()

    base_dir = Path(__file__).resolve().parent
    templates = Jinja2Templates(directory=str(base_dir / "templates"))

    static_dir = base_dir / "static"
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    def require_job_dir(job_id: str) -> Path:
        job_dir = store.find(job_id)
        if job_dir is None:
            raise HTTPException(status_code=404, detail="Job not found or already cleaned up.")
        return job_dir

    @app.get("/health", response_class=JSONResponse)
    async def health() -> dict[str, str]:
        """
        简单健康检查，用于部署与监控。
        """
        return {"status": "ok"}

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        """
        首页：上传、播放器、字幕列表 + 最近任务。
        """
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "title": "Bilingual Subtitle Gen",
                "jobs": store.recent(limit=20),
                "seek_tolerance": config.seek_tolerance,
                "max_file_size": config.max_file_size,
            },
        )

    @app.post("/api/jobs", response_class=JSONResponse)
    def create_job_api(
        background_tasks: BackgroundTasks,
        file: UploadFile = File(...),
        target_language: str = Form("English"),
    ) -> JSONResponse:
        """
        创建一个新的字幕生成任务。

        - 落地上传文件（超过大小上限直接 413，不发起任何远程调用）；
        - 在后台执行上传 -> 轮询 -> 生成；
        - 立即返回 job_id，前端轮询 /api/jobs/{job_id} 获取状态。
        """
        if not file.filename:
            raise HTTPException(status_code=400, detail="No file selected.")
        try:
            language = Language.parse(target_language)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        content_type = file.content_type or ""
        input_name = Path(file.filename).name
        ext = Path(input_name).suffix.lower()
        if not (
            content_type.startswith("audio/")
            or content_type.startswith("video/")
            or ext in ALLOWED_EXTENSIONS
        ):
            raise HTTPException(
                status_code=400,
                detail="Unsupported file type. Please upload a video or audio file.",
            )

        # 每次新建任务前尝试清理过期任务
        store.purge_expired()
        mime_type = content_type if content_type.startswith(("audio/", "video/")) else None
        _, job_dir = store.create(input_name, ext, mime_type, language)
        media_path = store.media_path(job_dir, store.read_meta(job_dir) or {})

        try:
            with media_path.open("wb") as f_out:
                copied = 0
                chunk_size = 1024 * 1024
                while True:
                    chunk = file.file.read(chunk_size)
                    if not chunk:
                        break
                    copied += len(chunk)
                    if copied > config.max_file_size:
                        raise FileTooLargeError(copied, config.max_file_size)
                    f_out.write(chunk)
        except FileTooLargeError as exc:
            store.discard(job_dir)
            raise HTTPException(status_code=413, detail=str(exc)) from exc

        background_tasks.add_task(
            run_generation_job, store, config, provider_factory, job_dir, language
        )
        return JSONResponse(store.read_meta(job_dir), status_code=202)

    @app.get("/api/jobs", response_class=JSONResponse)
    async def list_jobs_api() -> JSONResponse:
        return JSONResponse({"jobs": store.recent(limit=20)})

    @app.get("/api/jobs/{job_id}", response_class=JSONResponse)
    async def get_job_api(request: Request, job_id: str) -> JSONResponse:
        """
        获取任务状态；完成后附带完整字幕列表与下载链接。
        """
        job_dir = require_job_dir(job_id)
        meta = store.read_meta(job_dir)
        if meta is None:
            raise HTTPException(status_code=404, detail="Job metadata is missing.")

        subtitles = store.subtitles(job_dir)
        download_url = None
        if store.srt_path(job_dir) is not None:
            download_url = str(request.url_for("download_file", job_id=job_id, kind="srt"))

        payload = dict(meta)
        payload["media_url"] = str(request.url_for("job_media", job_id=job_id))
        payload["download_url"] = download_url
        payload["subtitles"] = subtitles_payload(subtitles)
        payload["total_count"] = len(subtitles)
        return JSONResponse(payload)

    @app.get("/api/jobs/{job_id}/active", response_class=JSONResponse)
    async def get_active_subtitle_api(job_id: str, t: float) -> JSONResponse:
        """
        返回播放时间 t（秒）处的字幕。
        """
        job_dir = require_job_dir(job_id)
        return JSONResponse(active_subtitle_payload(store.subtitles(job_dir), t))

    @app.get("/api/jobs/{job_id}/media", name="job_media")
    async def job_media(job_id: str) -> FileResponse:
        job_dir = require_job_dir(job_id)
        meta = store.read_meta(job_dir) or {}
        path = store.media_path(job_dir, meta)
        if not path.is_file():
            raise HTTPException(status_code=404, detail="Media file not found.")
        return FileResponse(path, media_type=meta.get("mime_type") or config.default_mime_type)

    @app.get("/download/{job_id}/{kind}", name="download_file")
    async def download_file(job_id: str, kind: str) -> FileResponse:
        """
        下载生成的双语字幕文件。

        当前仅支持 kind="srt"。
        """
        job_dir = require_job_dir(job_id)
        if kind != "srt":
            raise HTTPException(status_code=404, detail="Unsupported download type.")

        path = store.srt_path(job_dir)
        if path is None:
            raise HTTPException(status_code=404, detail="Subtitles are not ready yet.")

        return FileResponse(
            path,
            media_type="text/plain; charset=utf-8",
            filename=DEFAULT_SRT_NAME,
        )

    return app


def main() -> None:
    """
    本地启动 Web 服务的入口。

    可通过环境变量控制监听地址与端口：
      - BISUBS_WEB_HOST（默认 127.0.0.1）
      - BISUBS_WEB_PORT（默认 8000）
    """
    import uvicorn

    host = os.getenv("BISUBS_WEB_HOST", "127.0.0.1")
    port_str = os.getenv("BISUBS_WEB_PORT", "8000")
    try:
        port = int(port_str)
    except ValueError:
        port = 8000

    # 由 uvicorn 在启动时调用工厂创建应用，导入本模块不会产生副作用
    uvicorn.run("bisubs.web.app:create_app", factory=True, host=host, port=port, reload=False)
