"""
图像生成与编辑模块
"""

from typing import Any, Dict, List

from .api_handler import IMAGE_MODEL, UpstreamRequestError, extract_inline_data, model_url, post_json
from .media_types import GenerationResult, ImageGenerationRequest
from .shared import StudioConfig
from .utils import save_media_base64, to_data_url


def build_image_payload(request: ImageGenerationRequest) -> Dict[str, Any]:
    parts: List[Dict[str, Any]] = []

    # 编辑模式：先放入参考图像，再放入编辑指令
    if request.base_image is not None:
        parts.append({
            "inlineData": {
                "data": request.base_image.data,
                "mimeType": request.base_image.mime_type
            }
        })
        parts.append({"text": f"Edit this image: {request.prompt}"})
    else:
        parts.append({"text": request.prompt})

    return {
        "contents": [{"parts": parts}],
        "generationConfig": {
            "imageConfig": {"aspectRatio": request.aspect_ratio}
        }
    }


def generate_image(config: StudioConfig, request: ImageGenerationRequest) -> GenerationResult:
    url = model_url(IMAGE_MODEL, "generateContent", config.base_url)
    result = post_json(url, build_image_payload(request), config.api_key, timeout=config.request_timeout)

    inline = extract_inline_data(result)
    if inline is None:
        raise UpstreamRequestError("响应中未找到图像数据")

    mime_type = inline.get("mimeType") or "image/png"
    local_path = save_media_base64(config, "image", inline["data"], mime_type)
    return GenerationResult(
        url=to_data_url(inline["data"], mime_type),
        prompt=request.prompt,
        mime_type=mime_type,
        path=local_path
    )
