from __future__ import annotations

"""
Web 层与核心会话之间的集成点。

JobStore 负责任务目录（上传的媒体、job.json、字幕结果）的读写与过期清理，
run_generation_job 在后台驱动一次完整的生成流程并把每次状态变化写回 job.json。
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from pathlib import Path
import json
import re
import shutil
import time
import uuid
from datetime import datetime

from bisubs.config import BisubsConfig
from bisubs.errors import BisubsError, describe_error
from bisubs.generate import MediaProvider, SubtitleGenerator
from bisubs.log import get_logger
from bisubs.playback import find_active_index
from bisubs.session import SubtitleSession
from bisubs.state import AppState, Language, ProcessingState, ProcessingStatus
from bisubs.subtitles import DEFAULT_SRT_NAME, SubtitleItem, write_json, write_srt

logger = get_logger("web")

ProviderFactory = Callable[[BisubsConfig], MediaProvider]

SUBTITLES_JSON_NAME = "subtitles.json"
META_NAME = "job.json"


class JobStore:
    """
    以目录为单位的任务存储，每个任务对应 root 下的一个子目录：

      <root>/<job_id>/media.<ext>       上传的媒体
      <root>/<job_id>/job.json          元数据与处理状态
      <root>/<job_id>/subtitles.json    生成结果（完成后）
      <root>/<job_id>/subtitles.srt     双语 SRT（完成后）

    根目录在第一次创建任务时才建立。
    """

    _id_pattern = re.compile(r"^[0-9a-f]{8,32}$")

    def __init__(self, root: str | Path, ttl_hours: float = 12.0) -> None:
        self.root = Path(root)
        self.ttl_hours = ttl_hours

    @classmethod
    def from_config(cls, config: BisubsConfig) -> "JobStore":
        # 未配置时落在当前工作目录的 exports/web_jobs
        root = config.web_jobs_dir or Path.cwd() / "exports" / "web_jobs"
        return cls(root, config.web_jobs_ttl_hours)

    # 任务目录

    def create(
        self,
        input_name: str,
        media_suffix: str,
        mime_type: Optional[str],
        target_language: Language,
    ) -> Tuple[str, Path]:
        """新建任务目录并写入初始元数据，返回 (job_id, job_dir)。"""
        self.root.mkdir(parents=True, exist_ok=True)
        while True:
            job_id = uuid.uuid4().hex[:8]
            job_dir = self.root / job_id
            try:
                job_dir.mkdir()
            except FileExistsError:
                continue
            break

        self.write_meta(
            job_dir,
            {
                "job_id": job_id,
                "input_name": input_name,
                "media_name": "media" + media_suffix,
                "mime_type": mime_type,
                "created_at": datetime.now().isoformat(timespec="seconds"),
                "created_ts": time.time(),
                "target_language": target_language.value,
                "processing": ProcessingState(
                    ProcessingStatus.UPLOADING, "Starting upload..."
                ).to_dict(),
                "total_count": 0,
            },
        )
        return job_id, job_dir

    def find(self, job_id: str) -> Optional[Path]:
        """job_id 非法或任务已被清理时返回 None。"""
        if not self._id_pattern.match(job_id):
            return None
        job_dir = self.root / job_id
        return job_dir if (job_dir / META_NAME).is_file() else None

    def discard(self, job_dir: Path) -> None:
        shutil.rmtree(job_dir, ignore_errors=True)

    def media_path(self, job_dir: Path, meta: Dict[str, Any]) -> Path:
        return job_dir / str(meta.get("media_name") or "")

    def purge_expired(self, ttl_hours: float | None = None) -> int:
        """
        删除创建时间早于 TTL 的任务（包括上传的媒体文件），返回删除数量。

        TTL 为 0 或负数时不做任何清理。
        """
        ttl = self.ttl_hours if ttl_hours is None else ttl_hours
        if ttl <= 0 or not self.root.is_dir():
            return 0

        cutoff = time.time() - ttl * 3600.0
        removed = 0
        for job_dir in self._job_dirs():
            if self._created_ts(job_dir) < cutoff:
                self.discard(job_dir)
                removed += 1
        if removed:
            logger.info(f"removed {removed} expired job(s)")
        return removed

    def _job_dirs(self) -> Iterable[Path]:
        if not self.root.is_dir():
            return []
        return [p for p in self.root.iterdir() if p.is_dir() and self._id_pattern.match(p.name)]

    def _created_ts(self, job_dir: Path) -> float:
        meta = self.read_meta(job_dir) or {}
        created = meta.get("created_ts")
        if isinstance(created, (int, float)):
            return float(created)
        # 元数据缺失（例如上传中途失败）时退回目录修改时间
        try:
            return job_dir.stat().st_mtime
        except OSError:
            return time.time()

    # 元数据

    def read_meta(self, job_dir: Path) -> Optional[Dict[str, Any]]:
        try:
            return json.loads((job_dir / META_NAME).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None

    def write_meta(self, job_dir: Path, meta: Dict[str, Any]) -> None:
        # 先写临时文件再替换，轮询方不会读到半个 JSON
        tmp_path = job_dir / (META_NAME + ".tmp")
        tmp_path.write_text(json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(job_dir / META_NAME)

    def set_processing(self, job_dir: Path, processing: ProcessingState, **extra: Any) -> None:
        meta = self.read_meta(job_dir) or {}
        meta["processing"] = processing.to_dict()
        meta.update(extra)
        self.write_meta(job_dir, meta)

    def recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        """最近的任务摘要，按创建时间倒序。"""
        summaries = []
        for job_dir in self._job_dirs():
            meta = self.read_meta(job_dir)
            if not meta:
                continue
            summaries.append(
                {
                    "job_id": job_dir.name,
                    "input_name": meta.get("input_name") or "",
                    "created_at": meta.get("created_at") or "",
                    "target_language": meta.get("target_language"),
                    "status": (meta.get("processing") or {}).get("status", "idle"),
                    "_ts": self._created_ts(job_dir),
                }
            )
        summaries.sort(key=lambda s: s["_ts"], reverse=True)
        for summary in summaries:
            del summary["_ts"]
        return summaries[:limit] if limit > 0 else summaries

    # 结果

    def subtitles(self, job_dir: Path) -> List[SubtitleItem]:
        path = job_dir / SUBTITLES_JSON_NAME
        if not path.is_file():
            return []
        data = json.loads(path.read_text(encoding="utf-8"))
        return [SubtitleItem.from_dict(entry) for entry in data]

    def srt_path(self, job_dir: Path) -> Optional[Path]:
        path = job_dir / DEFAULT_SRT_NAME
        return path if path.is_file() else None

    def save_results(self, job_dir: Path, items: List[SubtitleItem]) -> None:
        """
        写出字幕结果并把任务标记为 completed。

        任一文件写入失败都会删除已写出的部分再抛出 OSError，
        不会留下“有字幕却不是 completed”的中间状态。
        """
        outputs = [job_dir / SUBTITLES_JSON_NAME, job_dir / DEFAULT_SRT_NAME]
        try:
            write_json(items, outputs[0])
            write_srt(items, outputs[1])
        except OSError:
            for path in outputs:
                path.unlink(missing_ok=True)
            raise
        self.set_processing(
            job_dir,
            ProcessingState(ProcessingStatus.COMPLETED),
            total_count=len(items),
        )


def subtitles_payload(items: List[SubtitleItem]) -> List[Dict[str, Any]]:
    """字幕列表的 JSON 表示：camelCase 字段 + 以秒为单位的 start/end，供前端同步播放。"""
    payload = []
    for idx, item in enumerate(items):
        data: Dict[str, Any] = {"index": idx + 1}
        data.update(item.to_dict())
        data["start"] = item.start_seconds
        data["end"] = item.end_seconds
        payload.append(data)
    return payload


def active_subtitle_payload(items: List[SubtitleItem], current_time: float) -> Dict[str, Any]:
    idx = find_active_index(items, current_time)
    if idx is None:
        return {"time": current_time, "index": None, "subtitle": None}
    return {
        "time": current_time,
        "index": idx + 1,
        "subtitle": subtitles_payload(items)[idx],
    }


def run_generation_job(
    store: JobStore,
    config: BisubsConfig,
    provider_factory: ProviderFactory,
    job_dir: Path,
    target_language: Language,
) -> AppState:
    """
    后台执行一次生成任务。

    每次状态迁移都写回 job.json，前端轮询 /api/jobs/{job_id} 即可看到
    uploading / processing / completed / error 的变化。completed 状态只在
    字幕文件全部写出之后才落盘；写出失败同样以 error 结束。
    """
    meta = store.read_meta(job_dir) or {}

    def persist(state: AppState) -> None:
        if state.processing.status in {ProcessingStatus.IDLE, ProcessingStatus.COMPLETED}:
            return
        store.set_processing(job_dir, state.processing)

    def fail(stage: str, exc: Exception) -> AppState:
        logger.error(f"job {job_dir.name} {stage} failed: {exc!r}")
        failed = ProcessingState(ProcessingStatus.ERROR, describe_error(exc))
        store.set_processing(job_dir, failed)
        return AppState(processing=failed)

    try:
        provider = provider_factory(config)
        session = SubtitleSession(
            SubtitleGenerator(provider, config), config, on_change=persist
        )
        session.select_file(store.media_path(job_dir, meta), mime_type=meta.get("mime_type"))
        session.set_target_language(target_language)
    except (BisubsError, OSError, ValueError) as exc:
        return fail("setup", exc)

    session.generate()

    if session.state.processing.status is ProcessingStatus.COMPLETED:
        try:
            store.save_results(job_dir, list(session.state.subtitles))
        except OSError as exc:
            return fail("export", exc)
    return session.state
