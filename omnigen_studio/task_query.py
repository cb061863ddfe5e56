"""
视频生成任务轮询模块
负责查询长时间运行任务的状态并下载生成结果
"""

import threading
import time
from typing import Callable, Iterator, Optional, Tuple

import requests

from .api_handler import (
    JobCancelledError,
    JobFailedError,
    JobTimeoutError,
    MissingCredentialError,
    ResourceFetchError,
    get_json,
)
from .media_types import JobHandle
from .shared import StudioConfig


def append_key(uri: str, api_key: str) -> str:
    """
    在下载地址后追加 key 参数
    """
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}key={api_key}"


def resolve_video_uri(handle: JobHandle) -> str:
    """
    从已完成的任务中取出视频地址，没有地址视为任务失败
    """
    if handle.error:
        message = handle.error.get("message", "未知错误")
        raise JobFailedError(f"视频生成失败: {message}")

    response = handle.response or {}
    # REST 接口返回 generateVideoResponse.generatedSamples，SDK 风格为 generatedVideos
    samples = (response.get("generateVideoResponse") or {}).get("generatedSamples") \
        or response.get("generatedVideos") or []
    uri = None
    if samples:
        uri = (samples[0].get("video") or {}).get("uri")
    if not uri:
        raise JobFailedError("视频生成失败或未返回URI")
    return uri


def describe_job(handle: JobHandle, polls: int, interval: float) -> str:
    if handle.done:
        if handle.error:
            return f"❌ 任务执行失败 (已查询 {polls} 次)"
        return f"✅ 任务执行成功 (已查询 {polls} 次)，正在下载视频..."
    return (
        f"🔄 任务处理中，已查询 {polls} 次 (约 {int(polls * interval)} 秒)\n"
        f"📋 任务ID: {handle.name}\n"
        "⏱️ 视频生成通常需要几分钟时间，请耐心等待。"
    )


class VideoJobPoller:
    """
    按固定间隔顺序查询任务状态，同一时间最多只有一个查询请求
    """

    def __init__(
        self,
        config: StudioConfig,
        cancel_event: Optional[threading.Event] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.interval = config.poll_interval
        self.max_polls = config.max_polls
        self.cancel_event = cancel_event
        self.sleep = sleep
        self.status_checks = 0

    def _raise_if_cancelled(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise JobCancelledError("视频生成已取消")

    def _wait(self):
        self._raise_if_cancelled()
        if self.cancel_event is not None:
            if self.cancel_event.wait(self.interval):
                raise JobCancelledError("视频生成已取消")
        else:
            self.sleep(self.interval)

    def check_status(self, handle: JobHandle) -> JobHandle:
        url = f"{self.config.base_url}/{handle.name}"
        operation = get_json(url, self.config.api_key, timeout=self.config.request_timeout)
        self.status_checks += 1
        checked = JobHandle.from_operation(operation)
        if not checked.name:
            checked.name = handle.name
        return checked

    def iter_status(self, handle: JobHandle) -> Iterator[Tuple[int, JobHandle]]:
        """
        先等待再查询，每次查询后产出 (查询次数, 最新句柄)，直到任务完成
        """
        polls = 0
        while not handle.done:
            self._wait()
            handle = self.check_status(handle)
            polls += 1
            yield polls, handle
            if not handle.done and self.max_polls and polls >= self.max_polls:
                raise JobTimeoutError(f"视频生成超时：已查询 {polls} 次仍未完成")

    def wait_until_done(self, handle: JobHandle, on_progress: Optional[Callable[[int, JobHandle], None]] = None) -> JobHandle:
        for polls, handle in self.iter_status(handle):
            if on_progress is not None:
                on_progress(polls, handle)
        return handle

    def poll(self, handle: JobHandle, on_progress: Optional[Callable[[int, JobHandle], None]] = None) -> str:
        """
        等待任务完成并返回视频地址
        对已完成的任务不会再发起查询
        """
        handle = self.wait_until_done(handle, on_progress)
        return resolve_video_uri(handle)

    def fetch_video(self, uri: str) -> bytes:
        """
        携带API Key下载视频，下载失败与任务失败分开报告
        """
        api_key = self.config.api_key
        if not api_key:
            raise MissingCredentialError("下载视频需要API Key")

        print(f"Debug: 下载视频 {uri}")
        try:
            response = requests.get(append_key(uri, api_key), timeout=self.config.request_timeout)
        except requests.exceptions.RequestException as e:
            raise ResourceFetchError(f"视频下载失败: {e}") from e

        if not response.ok:
            raise ResourceFetchError(f"视频下载失败，HTTP状态码: {response.status_code}")
        return response.content
