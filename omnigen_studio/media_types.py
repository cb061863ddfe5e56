"""
数据模型定义
聊天消息、各模式的生成请求、生成结果、视频任务句柄和音频缓冲
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


ROLE_USER = "user"
ROLE_MODEL = "model"

IMAGE_ASPECT_RATIOS = ["1:1", "3:4", "4:3", "16:9", "9:16"]
VIDEO_RESOLUTIONS = ["720p", "1080p"]
VIDEO_ASPECT_RATIOS = ["16:9", "9:16"]
VOICE_NAMES = ["Kore", "Puck", "Charon", "Fenrir", "Zephyr"]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _check_choice(name: str, value: str, choices: List[str]) -> None:
    if value not in choices:
        raise ValueError(f"不支持的{name}: {value}，可选值: {', '.join(choices)}")


@dataclass(frozen=True)
class ChatMessage:
    role: str
    text: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: int = field(default_factory=_now_ms)
    is_error: bool = False

    def __post_init__(self):
        _check_choice("消息角色", self.role, [ROLE_USER, ROLE_MODEL])

    def to_content(self) -> Dict[str, Any]:
        """
        转换为API请求中的历史记录格式
        """
        return {"role": self.role, "parts": [{"text": self.text}]}


@dataclass(frozen=True)
class ReferenceImage:
    data: str  # base64，不含 data: 前缀
    mime_type: str


@dataclass
class ImageGenerationRequest:
    prompt: str
    aspect_ratio: str = "1:1"
    base_image: Optional[ReferenceImage] = None

    def __post_init__(self):
        _check_choice("宽高比", self.aspect_ratio, IMAGE_ASPECT_RATIOS)


@dataclass
class VideoGenerationRequest:
    prompt: str
    resolution: str = "720p"
    aspect_ratio: str = "16:9"
    image: Optional[ReferenceImage] = None

    def __post_init__(self):
        _check_choice("分辨率", self.resolution, VIDEO_RESOLUTIONS)
        _check_choice("宽高比", self.aspect_ratio, VIDEO_ASPECT_RATIOS)


@dataclass
class SpeechRequest:
    text: str
    voice_name: str = "Kore"

    def __post_init__(self):
        _check_choice("音色", self.voice_name, VOICE_NAMES)


@dataclass
class GenerationResult:
    url: str
    prompt: str
    mime_type: str
    path: Optional[str] = None
    timestamp: int = field(default_factory=_now_ms)


@dataclass
class JobHandle:
    """
    长时间运行的视频生成任务
    name 为服务端返回的操作名，done 为完成标志
    """
    name: str
    done: bool = False
    response: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None

    @classmethod
    def from_operation(cls, operation: Dict[str, Any]) -> "JobHandle":
        return cls(
            name=operation.get("name", ""),
            done=bool(operation.get("done", False)),
            response=operation.get("response"),
            error=operation.get("error"),
        )


@dataclass
class AudioBuffer:
    sample_rate: int
    channels: List[List[float]]

    @property
    def number_of_channels(self) -> int:
        return len(self.channels)

    @property
    def length(self) -> int:
        return len(self.channels[0]) if self.channels else 0

    @property
    def duration(self) -> float:
        return self.length / self.sample_rate if self.sample_rate else 0.0
