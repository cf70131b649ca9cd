"""
Tests for the FastAPI web layer
"""

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from bisubs.state import Language
from bisubs.subtitles import SubtitleItem
from bisubs.web import dependencies
from bisubs.web.app import create_app
from bisubs.web.dependencies import JobStore

MEDIA_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64


@pytest.fixture
def web_config(config):
    return replace(config, poll_interval=0.0)


@pytest.fixture
def providers():
    """Every provider handed out by the factory, for call inspection"""
    return []


@pytest.fixture
def make_client(web_config, make_provider, providers):
    def factory(cfg=None, **provider_kwargs):
        def provider_factory(_config):
            provider = make_provider(**provider_kwargs)
            providers.append(provider)
            return provider

        app = create_app(cfg or web_config, provider_factory=provider_factory)
        return TestClient(app)

    return factory


def upload(client, name="clip.mp4", content=MEDIA_BYTES, content_type="video/mp4", language="Chinese"):
    return client.post(
        "/api/jobs",
        files={"file": (name, content, content_type)},
        data={"target_language": language},
    )


class TestPages:
    def test_health(self, make_client):
        with make_client() as client:
            assert client.get("/health").json() == {"status": "ok"}

    def test_index(self, make_client):
        with make_client() as client:
            resp = client.get("/")
            assert resp.status_code == 200
            assert "Bilingual Subtitle Gen" in resp.text
            assert 'data-seek-tolerance="0.5"' in resp.text

    def test_static_script(self, make_client):
        with make_client() as client:
            resp = client.get("/static/app.js")
            assert resp.status_code == 200
            assert "SEEK_TOLERANCE" in resp.text

    def test_static_script_drops_stale_upload_responses(self, make_client):
        with make_client() as client:
            script = client.get("/static/app.js").text
            # an upload answered after the file changed or was cleared must not take over the view
            assert "const token = ++state.requestSeq;" in script
            assert "if (!isCurrent()) return;" in script
            assert "state.requestSeq++;" in script


class TestJobs:
    def test_completed_job(self, make_client, providers):
        with make_client(states=["PROCESSING", "ACTIVE"]) as client:
            resp = upload(client)
            assert resp.status_code == 202
            created = resp.json()
            assert created["processing"] == {"status": "uploading", "message": "Starting upload..."}
            assert created["target_language"] == "Chinese"
            job_id = created["job_id"]

            job = client.get(f"/api/jobs/{job_id}").json()
            assert job["processing"]["status"] == "completed"
            assert job["total_count"] == 2
            assert job["subtitles"][0]["translatedText"] == "你好"
            assert job["subtitles"][0]["start"] == pytest.approx(1.0)
            assert job["subtitles"][1]["end"] == pytest.approx(6.0)
            assert job["download_url"].endswith(f"/download/{job_id}/srt")

        assert providers[0].call_names() == ["upload", "get", "get", "generate"]
        assert "target language preference: Chinese" in providers[0].last_prompt

    def test_download_srt(self, make_client):
        with make_client(upload_state="ACTIVE") as client:
            job_id = upload(client).json()["job_id"]
            resp = client.get(f"/download/{job_id}/srt")
            assert resp.status_code == 200
            assert "subtitles.srt" in resp.headers["content-disposition"]
            assert resp.text.startswith("1\n00:00:01,000 --> 00:00:03,000\n你好\nHello there\n")

            assert client.get(f"/download/{job_id}/ass").status_code == 404

    def test_active_subtitle(self, make_client):
        with make_client(upload_state="ACTIVE") as client:
            job_id = upload(client).json()["job_id"]

            active = client.get(f"/api/jobs/{job_id}/active", params={"t": 2.0}).json()
            assert active["index"] == 1
            assert active["subtitle"]["originalText"] == "Hello there"

            gap = client.get(f"/api/jobs/{job_id}/active", params={"t": 3.5}).json()
            assert gap["subtitle"] is None

            edge = client.get(f"/api/jobs/{job_id}/active", params={"t": 6.0}).json()
            assert edge["index"] == 2

    def test_media_is_served_for_playback(self, make_client):
        with make_client(upload_state="ACTIVE") as client:
            job_id = upload(client).json()["job_id"]
            resp = client.get(f"/api/jobs/{job_id}/media")
            assert resp.status_code == 200
            assert resp.content == MEDIA_BYTES
            assert resp.headers["content-type"].startswith("video/mp4")

    def test_failed_processing_is_reported(self, make_client, providers):
        with make_client(states=["FAILED"]) as client:
            job_id = upload(client).json()["job_id"]
            job = client.get(f"/api/jobs/{job_id}").json()
            assert job["processing"]["status"] == "error"
            assert "Video processing failed on Gemini servers." in job["processing"]["message"]
            assert job["subtitles"] == []
            assert job["download_url"] is None
        assert "generate" not in providers[0].call_names()

    def test_missing_api_key_is_reported(self, web_config):
        # default provider factory with no API key configured
        app = create_app(replace(web_config, api_key=None))
        with TestClient(app) as client:
            job_id = upload(client).json()["job_id"]
            job = client.get(f"/api/jobs/{job_id}").json()
            assert job["processing"]["status"] == "error"
            assert "GEMINI_API_KEY" in job["processing"]["message"]

    def test_oversized_upload_is_rejected_before_remote_calls(self, make_client, web_config, providers):
        small = replace(web_config, max_file_size=16)
        with make_client(cfg=small) as client:
            resp = upload(client)
            assert resp.status_code == 413
            assert resp.json()["detail"] == "File size exceeds the 4GB limit."
        assert providers == []
        assert list(JobStore.from_config(small).root.iterdir()) == []

    def test_unsupported_type(self, make_client, providers):
        with make_client() as client:
            resp = upload(client, name="notes.txt", content=b"hello", content_type="text/plain")
            assert resp.status_code == 400
        assert providers == []

    def test_unknown_language(self, make_client):
        with make_client() as client:
            assert upload(client, language="French").status_code == 400

    def test_unknown_job(self, make_client):
        with make_client() as client:
            assert client.get("/api/jobs/deadbeef").status_code == 404
            assert client.get("/api/jobs/..%2F..%2Fetc").status_code == 404

    def test_job_listing(self, make_client, web_config):
        with make_client(upload_state="ACTIVE") as client:
            upload(client, name="first.mp4")
            jobs = client.get("/api/jobs").json()["jobs"]
            assert [job["input_name"] for job in jobs] == ["first.mp4"]
            assert jobs[0]["status"] == "completed"
        assert JobStore.from_config(web_config).recent()[0]["target_language"] == "Chinese"

    def test_failed_export_ends_in_error(self, make_client, monkeypatch):
        def disk_full(items, path):
            raise OSError("disk full")

        monkeypatch.setattr(dependencies, "write_srt", disk_full)
        with make_client(upload_state="ACTIVE") as client:
            job_id = upload(client).json()["job_id"]
            job = client.get(f"/api/jobs/{job_id}").json()
            assert job["processing"]["status"] == "error"
            assert "disk full" in job["processing"]["message"]
            assert job["subtitles"] == []
            assert job["download_url"] is None

    def test_app_creation_has_no_filesystem_side_effects(self, web_config, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        create_app(replace(web_config, web_jobs_dir=None), provider_factory=lambda cfg: None)
        assert not (tmp_path / "exports").exists()


class TestJobStore:
    @pytest.fixture
    def store(self, tmp_path):
        return JobStore(tmp_path / "jobs", ttl_hours=12.0)

    def backdate(self, store, job_dir, seconds):
        meta = store.read_meta(job_dir)
        meta["created_ts"] -= seconds
        store.write_meta(job_dir, meta)

    def test_create_and_find(self, store):
        job_id, job_dir = store.create("clip.mp4", ".mp4", "video/mp4", Language.CHINESE)
        assert store.find(job_id) == job_dir
        meta = store.read_meta(job_dir)
        assert meta["media_name"] == "media.mp4"
        assert meta["processing"] == {"status": "uploading", "message": "Starting upload..."}
        assert store.find("not-a-job") is None
        assert store.find("deadbeef") is None

    def test_purge_expired(self, store):
        old_id, old_dir = store.create("old.mp4", ".mp4", None, Language.ENGLISH)
        self.backdate(store, old_dir, 3600)
        new_id, new_dir = store.create("new.mp4", ".mp4", None, Language.ENGLISH)

        assert store.purge_expired(ttl_hours=0) == 0
        assert store.purge_expired(ttl_hours=-1.0) == 0
        assert store.purge_expired(ttl_hours=0.5) == 1
        assert store.find(old_id) is None
        assert not old_dir.exists()
        assert store.find(new_id) == new_dir

    def test_purge_without_root_creates_nothing(self, store):
        assert store.purge_expired(ttl_hours=0.5) == 0
        assert not store.root.exists()

    def test_recent_is_newest_first(self, store):
        _, first = store.create("first.mp4", ".mp4", None, Language.ENGLISH)
        self.backdate(store, first, 60)
        store.create("second.mp4", ".mp4", None, Language.CHINESE)

        recent = store.recent()
        assert [job["input_name"] for job in recent] == ["second.mp4", "first.mp4"]
        assert recent[0]["status"] == "uploading"
        assert store.recent(limit=1)[0]["input_name"] == "second.mp4"

    def test_failed_save_leaves_no_partial_results(self, store, sample_subtitles, monkeypatch):
        def disk_full(items, path):
            raise OSError("disk full")

        monkeypatch.setattr(dependencies, "write_srt", disk_full)
        _, job_dir = store.create("clip.mp4", ".mp4", None, Language.ENGLISH)
        items = [SubtitleItem.from_dict(d) for d in sample_subtitles]

        with pytest.raises(OSError):
            store.save_results(job_dir, items)
        assert store.subtitles(job_dir) == []
        assert store.srt_path(job_dir) is None
        assert store.read_meta(job_dir)["processing"]["status"] == "uploading"
