import os

import pytest

from omnigen_studio.api_handler import MissingCredentialError, UpstreamRequestError
from omnigen_studio.key_gate import CredentialSelector
from omnigen_studio.media_types import ReferenceImage, VideoGenerationRequest
from omnigen_studio.task_query import VideoJobPoller
from omnigen_studio.video_models import (
    build_video_payload,
    generate_video,
    is_key_error,
    iter_video_generation,
)

from conftest import FakeResponse


class FakeVeo:
    def __init__(self, pending=2, submit=None):
        self.posts = []
        self.checks = 0
        self.downloads = 0
        self.pending = pending
        self.submit = submit or FakeResponse(200, {"name": "operations/veo-1"})

    def post(self, url, headers=None, json=None, timeout=None):
        self.posts.append((url, headers, json))
        return self.submit

    def get(self, url, headers=None, timeout=None):
        if "/operations/" in url:
            self.checks += 1
            if self.checks <= self.pending:
                return FakeResponse(200, {"name": "operations/veo-1", "done": False})
            return FakeResponse(200, {
                "name": "operations/veo-1",
                "done": True,
                "response": {"generateVideoResponse": {"generatedSamples": [
                    {"video": {"uri": "https://files.test/video:download?alt=media"}}
                ]}},
            })
        self.downloads += 1
        return FakeResponse(200, content=b"\x00\x00\x00\x18ftypmp42")


@pytest.fixture
def veo(monkeypatch):
    api = FakeVeo()
    monkeypatch.setattr("requests.post", api.post)
    monkeypatch.setattr("requests.get", api.get)
    return api


def test_payload_with_start_frame():
    request = VideoGenerationRequest(
        "a cat surfing", "1080p", "9:16", ReferenceImage(data="aW1n", mime_type="image/png")
    )
    payload = build_video_payload(request)
    assert payload["instances"] == [{
        "prompt": "a cat surfing",
        "image": {"bytesBase64Encoded": "aW1n", "mimeType": "image/png"},
    }]
    assert payload["parameters"] == {"sampleCount": 1, "resolution": "1080p", "aspectRatio": "9:16"}


def test_payload_without_image():
    payload = build_video_payload(VideoGenerationRequest("waves"))
    assert payload["instances"] == [{"prompt": "waves"}]


def test_invalid_options_rejected():
    with pytest.raises(ValueError):
        VideoGenerationRequest("x", resolution="4k")
    with pytest.raises(ValueError):
        VideoGenerationRequest("x", aspect_ratio="1:1")


def test_generate_video_end_to_end(veo, config):
    poller = VideoJobPoller(config, sleep=lambda s: None)
    result = generate_video(config, VideoGenerationRequest("waves"), poller=poller)

    url, headers, _ = veo.posts[0]
    assert url == "https://api.test/v1beta/models/veo-3.1-fast-generate-preview:predictLongRunning"
    assert headers["x-goog-api-key"] == "test-key"
    assert veo.checks == 3
    assert veo.downloads == 1
    assert result.mime_type == "video/mp4"
    assert result.path.endswith(".mp4")
    assert os.path.exists(result.path)
    with open(result.path, "rb") as f:
        assert f.read() == b"\x00\x00\x00\x18ftypmp42"


def test_progress_messages(veo, config):
    poller = VideoJobPoller(config, sleep=lambda s: None)
    steps = list(iter_video_generation(config, VideoGenerationRequest("waves"), poller=poller))

    assert "operations/veo-1" in steps[0][0]
    assert [result for _, result in steps[:-1]] == [None] * (len(steps) - 1)
    assert steps[-1][1] is not None
    assert len(steps) == 1 + 3 + 1


def test_missing_key_fails_before_request(veo, config):
    config.api_key = ""
    with pytest.raises(MissingCredentialError):
        generate_video(config, VideoGenerationRequest("waves"))
    assert veo.posts == []


class BrokenSelector(CredentialSelector):
    def has_selected_key(self):
        raise RuntimeError("host unavailable")


def test_failed_key_selection_stops_submission(veo, config):
    with pytest.raises(MissingCredentialError):
        generate_video(config, VideoGenerationRequest("waves"), selector=BrokenSelector())
    assert veo.posts == []


def test_submit_error_is_upstream_failure(monkeypatch, config):
    api = FakeVeo(submit=FakeResponse(404, {"error": {"message": "Requested entity was not found."}}))
    monkeypatch.setattr("requests.post", api.post)

    with pytest.raises(UpstreamRequestError) as excinfo:
        generate_video(config, VideoGenerationRequest("waves"))
    assert excinfo.value.status_code == 404
    assert is_key_error(excinfo.value)
