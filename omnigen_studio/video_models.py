"""
Veo视频生成模块
负责提交视频生成任务、轮询结果并保存视频
"""

import threading
from typing import Any, Dict, Iterator, Optional, Tuple

from .api_handler import VIDEO_MODEL, JobFailedError, MissingCredentialError, model_url, post_json
from .key_gate import CredentialSelector, check_and_select_key
from .media_types import GenerationResult, JobHandle, VideoGenerationRequest
from .shared import StudioConfig
from .task_query import VideoJobPoller, describe_job, resolve_video_uri
from .utils import save_media_bytes


def build_video_payload(request: VideoGenerationRequest) -> Dict[str, Any]:
    instance: Dict[str, Any] = {"prompt": request.prompt}
    if request.image is not None:
        instance["image"] = {
            "bytesBase64Encoded": request.image.data,
            "mimeType": request.image.mime_type
        }

    return {
        "instances": [instance],
        "parameters": {
            "sampleCount": 1,
            "resolution": request.resolution,
            "aspectRatio": request.aspect_ratio
        }
    }


def submit_video_job(config: StudioConfig, request: VideoGenerationRequest) -> JobHandle:
    """
    提交视频生成任务，返回任务句柄
    """
    url = model_url(VIDEO_MODEL, "predictLongRunning", config.base_url)
    operation = post_json(url, build_video_payload(request), config.api_key, timeout=config.request_timeout)
    handle = JobHandle.from_operation(operation)
    if not handle.name and not handle.done:
        raise JobFailedError(f"API响应中未找到任务ID: {operation}")
    print(f"视频生成任务已提交: {handle.name}")
    return handle


def iter_video_generation(
    config: StudioConfig,
    request: VideoGenerationRequest,
    selector: Optional[CredentialSelector] = None,
    cancel_event: Optional[threading.Event] = None,
    poller: Optional[VideoJobPoller] = None,
) -> Iterator[Tuple[str, Optional[GenerationResult]]]:
    """
    完整的视频生成流程：检查密钥 -> 提交任务 -> 轮询 -> 下载视频
    每一步产出 (进度信息, 结果)，结果只在最后一步不为None
    """
    if not check_and_select_key(selector):
        raise MissingCredentialError("API Key选择失败，请重试")

    handle = submit_video_job(config, request)
    yield f"✅ 视频生成任务已成功提交！\n📋 任务ID: {handle.name}", None

    if poller is None:
        poller = VideoJobPoller(config, cancel_event=cancel_event)
    for polls, handle in poller.iter_status(handle):
        yield describe_job(handle, polls, poller.interval), None

    uri = resolve_video_uri(handle)
    video_bytes = poller.fetch_video(uri)

    local_path = save_media_bytes(config, "video", video_bytes, "video/mp4")
    result = GenerationResult(url=local_path, prompt=request.prompt, mime_type="video/mp4", path=local_path)
    yield "✅ 视频生成完成！", result


def generate_video(
    config: StudioConfig,
    request: VideoGenerationRequest,
    selector: Optional[CredentialSelector] = None,
    cancel_event: Optional[threading.Event] = None,
    poller: Optional[VideoJobPoller] = None,
) -> GenerationResult:
    result = None
    for _, result in iter_video_generation(config, request, selector, cancel_event, poller):
        pass
    return result


def is_key_error(error: Exception) -> bool:
    """
    "Requested entity was not found" 表示所选密钥无权访问该模型
    """
    return "Requested entity was not found" in str(error)
