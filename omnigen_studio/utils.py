"""
工具函数模块
包含输出文件保存、目录操作等通用功能
"""

import base64
import mimetypes
import os
import subprocess
import time
import uuid

from .shared import StudioConfig, output_dir


MEDIA_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
    "audio/wav": ".wav",
}


def to_data_url(data: str, mime_type: str) -> str:
    return f"data:{mime_type};base64,{data}"


def save_media_bytes(config: StudioConfig, kind: str, data: bytes, mime_type: str) -> str:
    """
    将生成的媒体保存到输出目录并返回本地路径
    """
    save_dir = output_dir(config, kind)
    ext = MEDIA_EXTENSIONS.get(mime_type) or mimetypes.guess_extension(mime_type) or ".bin"
    filename = f"{kind}_{int(time.time())}_{uuid.uuid4().hex[:8]}{ext}"
    local_path = os.path.join(save_dir, filename)
    with open(local_path, 'wb') as f:
        f.write(data)
    print(f"媒体文件已保存: {local_path} ({len(data)} 字节)")
    return local_path


def save_media_base64(config: StudioConfig, kind: str, data: str, mime_type: str) -> str:
    return save_media_bytes(config, kind, base64.b64decode(data), mime_type)


def open_output_dir(config: StudioConfig):
    """
    打开输出目录
    """
    save_dir = os.path.join(config.data_path, "outputs", "omnigen")
    os.makedirs(save_dir, exist_ok=True)

    print(f"输出目录路径: {save_dir}")

    try:
        if os.name == 'nt':  # Windows
            os.startfile(save_dir)
        elif os.name == 'posix':  # Linux/Mac
            subprocess.run(['open' if os.uname().sysname == 'Darwin' else 'xdg-open', save_dir])
    except OSError as e:
        print(f"打开目录失败: {str(e)}")
