import json

import pytest

from omnigen_studio.shared import StudioConfig


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b""):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        self.text = json.dumps(payload) if payload is not None else content.decode("utf-8", "ignore")

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def config(tmp_path):
    return StudioConfig(
        api_key="test-key",
        base_url="https://api.test/v1beta",
        data_path=str(tmp_path),
        poll_interval=0,
    )
