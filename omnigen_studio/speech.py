"""
语音合成模块
调用TTS模型获取原始PCM，并封装为WAV文件
"""

from typing import Any, Dict

from .api_handler import TTS_MODEL, UpstreamRequestError, extract_inline_data, model_url, post_json
from .audio_codec import decode_base64_pcm, encode_wav, wav_duration
from .media_types import AudioBuffer, GenerationResult, SpeechRequest
from .shared import StudioConfig
from .utils import save_media_bytes


def build_speech_payload(request: SpeechRequest) -> Dict[str, Any]:
    return {
        "contents": [{"parts": [{"text": request.text}]}],
        "generationConfig": {
            "responseModalities": ["AUDIO"],
            "speechConfig": {
                "voiceConfig": {
                    "prebuiltVoiceConfig": {"voiceName": request.voice_name}
                }
            }
        }
    }


def synthesize_speech(config: StudioConfig, request: SpeechRequest) -> AudioBuffer:
    """
    返回解码后的音频缓冲（单声道，24000Hz）
    """
    url = model_url(TTS_MODEL, "generateContent", config.base_url)
    result = post_json(url, build_speech_payload(request), config.api_key, timeout=config.request_timeout)

    inline = extract_inline_data(result)
    if inline is None:
        raise UpstreamRequestError("未返回音频数据")
    return decode_base64_pcm(inline["data"])


def generate_speech(config: StudioConfig, request: SpeechRequest) -> GenerationResult:
    buffer = synthesize_speech(config, request)
    if buffer.length == 0:
        raise UpstreamRequestError("返回的音频数据为空")

    wav_bytes = encode_wav(buffer)
    local_path = save_media_bytes(config, "audio", wav_bytes, "audio/wav")
    print(f"语音合成完成，时长 {wav_duration(wav_bytes):.2f} 秒")
    return GenerationResult(url=local_path, prompt=request.text, mime_type="audio/wav", path=local_path)
