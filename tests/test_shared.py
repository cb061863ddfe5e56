import os

from omnigen_studio.shared import StudioConfig, load_config, output_dir, reload_api_key


def test_load_config_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("OMNIGEN_BASE_URL", "https://proxy.test/v1beta/")
    monkeypatch.setenv("OMNIGEN_DATA_PATH", str(tmp_path))
    monkeypatch.setenv("OMNIGEN_POLL_INTERVAL", "2.5")
    monkeypatch.setenv("OMNIGEN_MAX_POLLS", "40")

    config = load_config(dotenv_path=str(tmp_path / "missing.env"))

    assert config.api_key == "abc"
    assert config.base_url == "https://proxy.test/v1beta"
    assert config.data_path == str(tmp_path)
    assert config.poll_interval == 2.5
    assert config.max_polls == 40


def test_api_key_fallback(monkeypatch, tmp_path):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "fallback")
    monkeypatch.delenv("OMNIGEN_MAX_POLLS", raising=False)
    config = load_config(dotenv_path=str(tmp_path / "missing.env"))
    assert config.api_key == "fallback"
    assert config.max_polls is None
    assert config.poll_interval == 5.0


def test_set_api_key_updates_config_only(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    config = StudioConfig()
    assert config.set_api_key("  ") == "请输入有效的API Key"
    assert config.set_api_key(" new-key ") == "API Key已设置成功！"
    assert config.api_key == "new-key"
    assert "GEMINI_API_KEY" not in os.environ


def test_output_dir_is_created(config):
    path = output_dir(config, "audio")
    assert os.path.isdir(path)
    assert path.endswith(os.path.join("outputs", "omnigen", "audio"))


def test_dotenv_found_from_working_directory(monkeypatch, tmp_path):
    # isolated environ so values loaded from .env don't leak into other tests
    monkeypatch.setattr(os, "environ", os.environ.copy())
    os.environ.pop("GEMINI_API_KEY", None)
    os.environ.pop("API_KEY", None)
    (tmp_path / ".env").write_text("GEMINI_API_KEY=from-cwd-dotenv\n")
    monkeypatch.chdir(tmp_path)

    config = load_config()

    assert config.api_key == "from-cwd-dotenv"


def test_reload_api_key_uses_working_directory(monkeypatch, tmp_path):
    monkeypatch.setattr(os, "environ", os.environ.copy())
    os.environ.pop("GEMINI_API_KEY", None)
    os.environ.pop("API_KEY", None)
    monkeypatch.chdir(tmp_path)
    config = StudioConfig()

    (tmp_path / ".env").write_text("GEMINI_API_KEY=selected-later\n")

    assert reload_api_key(config) is True
    assert config.api_key == "selected-later"
