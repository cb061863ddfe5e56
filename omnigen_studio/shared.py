"""
OmniGen Studio 共享配置模块
负责读取API Key、输出目录和轮询参数
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv


# Gemini API基础URL
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_REQUEST_TIMEOUT = 300.0


@dataclass
class StudioConfig:
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    data_path: str = "."
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_polls: Optional[int] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def set_api_key(self, api_key: str) -> str:
        """
        设置API Key到当前配置（不写入进程环境变量）
        """
        if api_key and api_key.strip():
            self.api_key = api_key.strip()
            return "API Key已设置成功！"
        else:
            return "请输入有效的API Key"

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


def _read_api_key() -> str:
    return os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or ""


def _dotenv_path(dotenv_path: Optional[str]) -> str:
    # 安装后从当前工作目录向上查找 .env，而不是从包目录查找
    return dotenv_path or find_dotenv(usecwd=True)


def load_config(dotenv_path: Optional[str] = None) -> StudioConfig:
    """
    从环境变量（以及.env文件）读取配置
    """
    load_dotenv(_dotenv_path(dotenv_path))

    max_polls = os.getenv("OMNIGEN_MAX_POLLS")
    return StudioConfig(
        api_key=_read_api_key(),
        base_url=os.getenv("OMNIGEN_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
        data_path=os.getenv("OMNIGEN_DATA_PATH", "."),
        poll_interval=float(os.getenv("OMNIGEN_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)),
        max_polls=int(max_polls) if max_polls else None,
        request_timeout=float(os.getenv("OMNIGEN_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)),
    )


def reload_api_key(config: StudioConfig, dotenv_path: Optional[str] = None) -> bool:
    """
    重新读取环境变量中的API Key，用于凭证选择流程
    """
    load_dotenv(_dotenv_path(dotenv_path), override=True)
    api_key = _read_api_key()
    if api_key:
        config.api_key = api_key
    return config.has_api_key


def output_dir(config: StudioConfig, kind: str) -> str:
    """
    获取（并创建）某种媒体的输出目录
    """
    save_dir = os.path.join(config.data_path, "outputs", "omnigen", kind)
    os.makedirs(save_dir, exist_ok=True)
    return save_dir
