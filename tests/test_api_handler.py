import base64

import pytest
import requests
from PIL import Image

from omnigen_studio.api_handler import (
    MissingCredentialError,
    UpstreamRequestError,
    check_response,
    extract_inline_data,
    extract_text,
    get_json,
    handle_file_input,
    model_url,
    post_json,
)

from conftest import FakeResponse


def test_model_url():
    assert model_url("gemini-2.5-flash", "generateContent", "https://b/v1beta") == \
        "https://b/v1beta/models/gemini-2.5-flash:generateContent"


def test_missing_key_fails_fast(monkeypatch):
    calls = []
    monkeypatch.setattr("requests.post", lambda *a, **k: calls.append(a))
    with pytest.raises(MissingCredentialError):
        post_json("https://b/x", {}, "")
    assert calls == []


@pytest.mark.parametrize("status", [400, 401, 403, 404, 429, 500, 503])
def test_error_statuses_raise_upstream_error(status):
    response = FakeResponse(status, {"error": {"message": "boom"}})
    with pytest.raises(UpstreamRequestError) as excinfo:
        check_response(response)
    assert excinfo.value.status_code == status


def test_error_message_includes_api_detail():
    with pytest.raises(UpstreamRequestError, match="API key not valid"):
        check_response(FakeResponse(400, {"error": {"message": "API key not valid"}}))


def test_non_json_body():
    with pytest.raises(UpstreamRequestError):
        check_response(FakeResponse(200, content=b"<html>"))


def test_network_error_is_wrapped(monkeypatch):
    def fail(*args, **kwargs):
        raise requests.exceptions.ConnectionError("offline")

    monkeypatch.setattr("requests.get", fail)
    with pytest.raises(UpstreamRequestError, match="offline"):
        get_json("https://b/x", "k")


def test_post_json_sends_key_header(monkeypatch):
    seen = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        seen.update(url=url, headers=headers, json=json)
        return FakeResponse(200, {"ok": True})

    monkeypatch.setattr("requests.post", fake_post)
    assert post_json("https://b/x", {"a": 1}, "secret") == {"ok": True}
    assert seen["headers"]["x-goog-api-key"] == "secret"
    assert seen["json"] == {"a": 1}


def test_extract_helpers():
    result = {"candidates": [{"content": {"parts": [
        {"text": "Here you go. "},
        {"inlineData": {"mimeType": "image/png", "data": "QUJD"}},
        {"text": "Enjoy"},
    ]}}]}
    assert extract_text(result) == "Here you go. Enjoy"
    assert extract_inline_data(result) == {"mimeType": "image/png", "data": "QUJD"}
    assert extract_text({}) == ""
    assert extract_inline_data({"candidates": [{"content": {}}]}) is None


def test_handle_file_input_encodes_image(tmp_path):
    path = tmp_path / "pic.png"
    Image.new("RGB", (4, 4), (255, 0, 0)).save(path)

    result = handle_file_input(str(path), "image")

    assert result["success"] is True
    assert result["mime_type"] == "image/png"
    assert base64.b64decode(result["data"]) == path.read_bytes()


def test_handle_file_input_flattens_transparency(tmp_path):
    path = tmp_path / "alpha.png"
    Image.new("RGBA", (4, 4), (0, 0, 0, 0)).save(path)

    result = handle_file_input(str(path), "image", flatten_alpha=True)

    assert result["success"] is True
    assert result["mime_type"] == "image/jpeg"
    assert base64.b64decode(result["data"])[:2] == b"\xff\xd8"


def test_handle_file_input_errors(tmp_path):
    assert handle_file_input("", "image")["success"] is False
    assert handle_file_input(str(tmp_path / "missing.png"), "image")["success"] is False
    text_file = tmp_path / "notes.txt"
    text_file.write_text("hi")
    assert handle_file_input(str(text_file), "image")["success"] is False
