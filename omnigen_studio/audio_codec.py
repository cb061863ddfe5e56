"""
音频编解码模块
将语音接口返回的原始PCM解码为浮点缓冲，并封装为可播放的WAV文件
"""

import base64
import struct

from .media_types import AudioBuffer


WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
TTS_SAMPLE_RATE = 24000
TTS_CHANNELS = 1


def _write_tag(buf: bytearray, offset: int, tag: bytes) -> int:
    buf[offset:offset + 4] = tag
    return offset + 4


def _write_uint16(buf: bytearray, offset: int, value: int) -> int:
    struct.pack_into("<H", buf, offset, value)
    return offset + 2


def _write_uint32(buf: bytearray, offset: int, value: int) -> int:
    struct.pack_into("<I", buf, offset, value)
    return offset + 4


def float_to_int16(sample: float) -> int:
    """
    浮点采样转16位有符号整数：先限幅到[-1, 1]，负数乘32768，非负数乘32767
    """
    sample = max(-1.0, min(1.0, float(sample)))
    if sample < 0:
        return int(sample * 32768)
    return int(sample * 32767)


def encode_wav(buffer: AudioBuffer) -> bytes:
    """
    将音频缓冲编码为16位PCM WAV字节流
    输出长度固定为 44 + 帧数 * 声道数 * 2
    """
    num_channels = buffer.number_of_channels
    frames = buffer.length
    if num_channels == 0 or frames == 0:
        raise ValueError("音频缓冲为空，无法编码")
    if any(len(channel) != frames for channel in buffer.channels):
        raise ValueError("各声道长度不一致")

    data_length = frames * num_channels * 2
    total_length = WAV_HEADER_SIZE + data_length
    out = bytearray(total_length)

    pos = _write_tag(out, 0, b"RIFF")
    pos = _write_uint32(out, pos, total_length - 8)
    pos = _write_tag(out, pos, b"WAVE")
    pos = _write_tag(out, pos, b"fmt ")
    pos = _write_uint32(out, pos, 16)
    pos = _write_uint16(out, pos, 1)  # PCM
    pos = _write_uint16(out, pos, num_channels)
    pos = _write_uint32(out, pos, buffer.sample_rate)
    pos = _write_uint32(out, pos, buffer.sample_rate * 2 * num_channels)
    pos = _write_uint16(out, pos, num_channels * 2)
    pos = _write_uint16(out, pos, BITS_PER_SAMPLE)
    pos = _write_tag(out, pos, b"data")
    pos = _write_uint32(out, pos, data_length)

    # 按帧交错写入各声道
    for i in range(frames):
        for channel in buffer.channels:
            struct.pack_into("<h", out, pos, float_to_int16(channel[i]))
            pos += 2

    return bytes(out)


def decode_pcm(data: bytes, sample_rate: int = TTS_SAMPLE_RATE, num_channels: int = TTS_CHANNELS) -> AudioBuffer:
    """
    将16位小端有符号PCM字节解码为[-1, 1]范围的浮点音频缓冲
    末尾不完整的帧会被丢弃
    """
    if num_channels < 1:
        raise ValueError("声道数必须大于0")

    frame_size = 2 * num_channels
    frame_count = len(data) // frame_size
    samples = struct.unpack_from(f"<{frame_count * num_channels}h", data)

    channels = []
    for channel in range(num_channels):
        channels.append([s / 32768.0 for s in samples[channel::num_channels]])
    return AudioBuffer(sample_rate=sample_rate, channels=channels)


def decode_base64_pcm(encoded: str, sample_rate: int = TTS_SAMPLE_RATE, num_channels: int = TTS_CHANNELS) -> AudioBuffer:
    return decode_pcm(base64.b64decode(encoded), sample_rate, num_channels)


def parse_wav(data: bytes) -> AudioBuffer:
    """
    解析16位PCM WAV字节流，返回浮点音频缓冲
    只支持 encode_wav 生成的标准44字节文件头
    """
    if len(data) < WAV_HEADER_SIZE or data[0:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise ValueError("不是有效的WAV文件")

    audio_format, num_channels, sample_rate = struct.unpack_from("<HHI", data, 20)
    bits_per_sample = struct.unpack_from("<H", data, 34)[0]
    if audio_format != 1 or bits_per_sample != BITS_PER_SAMPLE:
        raise ValueError(f"不支持的WAV格式: format={audio_format}, bits={bits_per_sample}")

    data_length = struct.unpack_from("<I", data, 40)[0]
    return decode_pcm(data[WAV_HEADER_SIZE:WAV_HEADER_SIZE + data_length], sample_rate, num_channels)


def wav_duration(data: bytes) -> float:
    """
    根据WAV文件头计算时长（秒）
    """
    if len(data) < WAV_HEADER_SIZE or data[0:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise ValueError("不是有效的WAV文件")
    byte_rate = struct.unpack_from("<I", data, 28)[0]
    data_length = struct.unpack_from("<I", data, 40)[0]
    return data_length / byte_rate if byte_rate else 0.0
