"""
Gemini API处理模块
负责处理与API相关的所有请求、错误类型和文件输入
"""

import base64
import io
import mimetypes
import os
from typing import Any, Dict, Optional

import requests
from PIL import Image


TEXT_MODEL = "gemini-2.5-flash"
IMAGE_MODEL = "gemini-2.5-flash-image"
VIDEO_MODEL = "veo-3.1-fast-generate-preview"
TTS_MODEL = "gemini-2.5-flash-preview-tts"


class StudioError(Exception):
    """可直接展示给用户的生成错误"""


class MissingCredentialError(StudioError):
    pass


class UpstreamRequestError(StudioError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class JobFailedError(StudioError):
    pass


class JobTimeoutError(JobFailedError):
    pass


class JobCancelledError(StudioError):
    pass


class ResourceFetchError(StudioError):
    pass


def model_url(model: str, method: str, base_url: str) -> str:
    return f"{base_url}/models/{model}:{method}"


def build_headers(api_key: str) -> Dict[str, str]:
    if not api_key:
        raise MissingCredentialError("未找到API Key，请先设置GEMINI_API_KEY或在页面中输入API Key")
    return {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json"
    }


def _error_detail(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message") or response.text
    return response.text


def check_response(response) -> Dict[Any, Any]:
    """
    检查HTTP状态码并解析JSON响应
    """
    status = response.status_code
    if status >= 400:
        detail = _error_detail(response)
        if status == 400:
            message = f"请求错误 (400): 请检查输入参数是否正确。{detail}"
        elif status in (401, 403):
            message = f"API密钥无效或无权限 ({status}): {detail}"
        elif status == 404:
            message = f"请求的资源不存在 (404): {detail}"
        elif status == 429:
            message = "请求过于频繁或额度不足，请稍后再试"
        else:
            message = f"请求失败，HTTP状态码: {status}, 详情: {detail}"
        raise UpstreamRequestError(message, status)

    try:
        return response.json()
    except ValueError as e:
        raise UpstreamRequestError(f"响应不是有效的JSON: {e}", status) from e


def post_json(url: str, payload: Dict[str, Any], api_key: str, timeout: float = 300) -> Dict[Any, Any]:
    headers = build_headers(api_key)
    try:
        response = requests.post(url, headers=headers, json=payload, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise UpstreamRequestError(f"请求失败: {e}") from e
    print(f"Debug: POST {url}, Status Code: {response.status_code}")
    return check_response(response)


def get_json(url: str, api_key: str, timeout: float = 60) -> Dict[Any, Any]:
    headers = build_headers(api_key)
    try:
        response = requests.get(url, headers=headers, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise UpstreamRequestError(f"查询失败: {e}") from e
    print(f"Debug: GET {url}, Status Code: {response.status_code}")
    return check_response(response)


def _first_parts(result: Dict[Any, Any]) -> list:
    candidates = result.get("candidates") or []
    if not candidates:
        return []
    return (candidates[0].get("content") or {}).get("parts") or []


def extract_text(result: Dict[Any, Any]) -> str:
    """
    拼接第一个候选结果中的所有文本片段
    """
    return "".join(part.get("text", "") for part in _first_parts(result))


def extract_inline_data(result: Dict[Any, Any]) -> Optional[Dict[str, str]]:
    """
    返回第一个包含数据的 inlineData 片段，格式: {"data": str, "mimeType": str}
    """
    for part in _first_parts(result):
        inline = part.get("inlineData")
        if inline and inline.get("data"):
            return inline
    return None


def flatten_image_transparency(file_path: str) -> Optional[bytes]:
    """
    处理图像透明通道，将带透明通道的PNG合成到白色背景并转为JPEG
    没有透明通道时返回None
    """
    with Image.open(file_path) as img:
        img_format = img.format.upper() if img.format else 'JPEG'
        if img.mode not in ('RGBA', 'LA', 'P') or img_format != 'PNG':
            return None

        background = Image.new('RGB', img.size, (255, 255, 255))
        if img.mode == 'RGBA':
            background.paste(img, mask=img.split()[-1])  # 使用alpha通道作为掩码
        else:
            background.paste(img.convert('RGBA'), mask=img.convert('RGBA').split()[-1])

        out = io.BytesIO()
        background.save(out, format='JPEG')
        return out.getvalue()


def handle_file_input(file_path, filetype: str, flatten_alpha: bool = False) -> dict:
    """
    处理文件输入：读取本地文件并进行Base64编码
    返回格式: {"success": bool, "data": str, "mime_type": str, "error": str}
    """
    if not file_path:
        return {"success": False, "data": "", "mime_type": "", "error": "文件路径为空"}

    # 可能是gradio组件或其他对象，尝试提取路径
    if not isinstance(file_path, str):
        if hasattr(file_path, 'name'):
            file_path = file_path.name
        else:
            return {"success": False, "data": "", "mime_type": "", "error": f"无法处理的文件类型: {type(file_path)}"}

    if not os.path.exists(file_path):
        return {"success": False, "data": "", "mime_type": "", "error": f"文件不存在: {file_path}"}

    mime_type, _ = mimetypes.guess_type(file_path)
    if not mime_type or not mime_type.startswith(f"{filetype}/"):
        return {"success": False, "data": "", "mime_type": "", "error": f"不支持或无法识别的{filetype}格式"}

    try:
        raw = None
        if filetype == 'image' and flatten_alpha:
            raw = flatten_image_transparency(file_path)
            if raw is not None:
                mime_type = 'image/jpeg'
        if raw is None:
            with open(file_path, "rb") as file:
                raw = file.read()
    except OSError as e:
        print(f"文件读取失败: {str(e)}")
        return {"success": False, "data": "", "mime_type": "", "error": f"文件读取失败: {e}"}

    encoded = base64.b64encode(raw).decode('utf-8')
    return {"success": True, "data": encoded, "mime_type": mime_type, "error": ""}
