"""
Shared fixtures for bisubs tests
"""

import json
from pathlib import Path

import pytest

from bisubs.config import BisubsConfig
from bisubs.generate import MediaProvider


SAMPLE_SUBTITLES = [
    {
        "startTime": "00:00:01,000",
        "endTime": "00:00:03,000",
        "originalText": "Hello there",
        "translatedText": "你好",
    },
    {
        "startTime": "00:00:04,000",
        "endTime": "00:00:06,000",
        "originalText": "How are you?",
        "translatedText": "你好吗？",
    },
]


class FakeProvider(MediaProvider):
    """Scripted provider: upload returns a resource, get() pops the next state."""

    def __init__(
        self,
        upload_result=None,
        upload_state="PROCESSING",
        states=("ACTIVE",),
        text=None,
        generate_error=None,
    ):
        self.upload_result = upload_result
        self.upload_state = upload_state
        self.states = list(states)
        self.text = json.dumps(SAMPLE_SUBTITLES, ensure_ascii=False) if text is None else text
        self.generate_error = generate_error
        self.calls = []

    def upload(self, path, mime_type, display_name):
        self.calls.append(("upload", Path(path).name, mime_type, display_name))
        if self.upload_result is not None:
            return self.upload_result
        return {
            "uri": "https://generativelanguage.googleapis.com/v1beta/files/abc123",
            "name": "files/abc123",
            "state": self.upload_state,
        }

    def get(self, name):
        self.calls.append(("get", name))
        state = self.states.pop(0)
        return {"file": {"name": name, "uri": "https://example/files/abc123", "state": state}}

    def generate(self, model, file_uri, mime_type, prompt, schema, temperature):
        self.calls.append(("generate", model, file_uri, mime_type, temperature))
        self.last_prompt = prompt
        self.last_schema = schema
        if self.generate_error is not None:
            raise self.generate_error
        return self.text

    def call_names(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def make_provider():
    """Factory for scripted providers"""
    return FakeProvider


@pytest.fixture
def sleeps():
    """Records every polling delay instead of sleeping"""
    return []


@pytest.fixture
def config(tmp_path):
    return BisubsConfig(
        api_key="test-key",
        poll_interval=2.0,
        max_poll_attempts=5,
        web_jobs_dir=tmp_path / "jobs",
    )


@pytest.fixture
def media_file(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64)
    return path


@pytest.fixture
def sample_subtitles():
    return [dict(item) for item in SAMPLE_SUBTITLES]
