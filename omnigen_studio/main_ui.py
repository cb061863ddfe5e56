"""
OmniGen Studio 主UI模块
整合文本、图像、视频、语音四种模式，提供统一的UI界面
"""

import threading
import traceback

import gradio as gr

from .api_handler import (
    JobCancelledError,
    JobFailedError,
    MissingCredentialError,
    ResourceFetchError,
    StudioError,
    handle_file_input,
)
from .image_gen import generate_image
from .key_gate import ConfigCredentialSelector
from .media_types import (
    IMAGE_ASPECT_RATIOS,
    VIDEO_ASPECT_RATIOS,
    VIDEO_RESOLUTIONS,
    VOICE_NAMES,
    ImageGenerationRequest,
    ReferenceImage,
    SpeechRequest,
    VideoGenerationRequest,
)
from .shared import StudioConfig, load_config
from .speech import generate_speech
from .text_chat import ChatSession
from .utils import open_output_dir
from .video_models import is_key_error, iter_video_generation


def format_error(error: Exception) -> str:
    """
    将异常转换为页面上显示的错误信息
    """
    if isinstance(error, MissingCredentialError):
        return f"⚠️ {error}"
    if isinstance(error, ResourceFetchError):
        return f"❌ 视频已生成，但下载失败: {error}"
    if isinstance(error, JobCancelledError):
        return f"⏹️ {error}"
    if isinstance(error, JobFailedError):
        return f"❌ {error}"
    if is_key_error(error):
        return "❌ API Key错误，请重新设置API Key后再试。"
    if isinstance(error, StudioError):
        return f"❌ {error}"
    return f"❌ 处理请求时出错: {error}"


def load_reference_image(file_path, flatten_alpha: bool = False):
    """
    读取上传的参考图像，返回 (ReferenceImage或None, 错误信息)
    """
    if not file_path:
        return None, ""
    image_result = handle_file_input(file_path, 'image', flatten_alpha=flatten_alpha)
    if not image_result["success"]:
        return None, f"❌ 图像文件处理失败: {image_result['error']}\n请检查图像文件是否存在。"
    return ReferenceImage(data=image_result["data"], mime_type=image_result["mime_type"]), ""


def create_text_tab(config: StudioConfig):
    with gr.Column():
        chatbot = gr.Chatbot(
            label="OmniGen",
            type="messages",
            height=520,
            value=ChatSession(config).to_chatbot()
        )
        with gr.Row():
            chat_input = gr.Textbox(
                label="消息",
                placeholder="输入消息，按回车发送...",
                lines=2,
                scale=5
            )
            send_btn = gr.Button("发送", variant="primary", scale=1)
        session_state = gr.State(None)

    def respond(message, session):
        if session is None:
            session = ChatSession(config)
        if not message or not message.strip():
            return "", session.to_chatbot(), session
        session.send(message)
        return "", session.to_chatbot(), session

    send_btn.click(
        fn=respond,
        inputs=[chat_input, session_state],
        outputs=[chat_input, chatbot, session_state]
    )
    chat_input.submit(
        fn=respond,
        inputs=[chat_input, session_state],
        outputs=[chat_input, chatbot, session_state]
    )


def create_image_tab(config: StudioConfig):
    with gr.Row():
        with gr.Column():
            image_prompt = gr.Textbox(
                label="提示词",
                placeholder="描述要生成的图像，或上传图像后描述要做的修改...",
                lines=4,
                max_lines=6
            )
            base_image = gr.Image(
                label="参考图像（可选，用于编辑）",
                type="filepath",
                interactive=True
            )
            aspect_ratio = gr.Dropdown(
                label="宽高比",
                choices=IMAGE_ASPECT_RATIOS,
                value="1:1",
                interactive=True
            )
            image_gen_btn = gr.Button("生成图像", variant="primary")

        with gr.Column():
            image_status = gr.Markdown()
            image_output = gr.Image(label="生成结果", type="filepath", interactive=False)

    def process_image_request(prompt, image_path, ratio):
        if not prompt or not prompt.strip():
            return "❌ 请输入提示词。", None

        reference, error = load_reference_image(image_path)
        if error:
            return error, None

        try:
            result = generate_image(config, ImageGenerationRequest(prompt, ratio, reference))
        except StudioError as e:
            return format_error(e), None
        except Exception as e:
            traceback.print_exc()
            return format_error(e), None
        return "✅ 图像生成完成！", result.path

    image_gen_btn.click(
        fn=process_image_request,
        inputs=[image_prompt, base_image, aspect_ratio],
        outputs=[image_status, image_output]
    )


def create_video_tab(config: StudioConfig):
    selector = ConfigCredentialSelector(config)

    with gr.Row():
        with gr.Column():
            video_prompt = gr.Textbox(
                label="提示词",
                placeholder="请输入视频描述...",
                lines=4,
                max_lines=6
            )
            start_image = gr.Image(
                label="起始帧图像（可选）",
                type="filepath",
                interactive=True
            )
            with gr.Row():
                resolution = gr.Dropdown(
                    label="分辨率",
                    choices=VIDEO_RESOLUTIONS,
                    value="720p",
                    interactive=True
                )
                aspect_ratio = gr.Dropdown(
                    label="宽高比",
                    choices=VIDEO_ASPECT_RATIOS,
                    value="16:9",
                    interactive=True
                )
            gr.Markdown("Veo 视频生成需要可计费的API Key。")
            with gr.Row():
                video_gen_btn = gr.Button("生成视频", variant="primary")
                stop_btn = gr.Button("停止", variant="secondary")

        with gr.Column():
            with gr.Group():
                gr.Markdown("#### 任务进度")
                progress_output = gr.Textbox(
                    label="进度信息",
                    lines=5,
                    interactive=False
                )
            with gr.Group():
                gr.Markdown("#### 生成结果")
                video_output = gr.Video(label="视频预览", interactive=False)
            cancel_state = gr.State(None)

    def process_video_request(prompt, image_path, res, ratio):
        cancel_event = threading.Event()
        if not (prompt and prompt.strip()) and not image_path:
            yield "❌ 请输入提示词或上传起始帧图像。", None, cancel_event
            return

        reference, error = load_reference_image(image_path, flatten_alpha=True)
        if error:
            yield error, None, cancel_event
            return

        yield "⏳ 正在初始化 Veo 模型...", None, cancel_event
        try:
            request = VideoGenerationRequest(prompt or "", res, ratio, reference)
            for progress, result in iter_video_generation(config, request, selector, cancel_event):
                yield progress, result.path if result else None, cancel_event
        except StudioError as e:
            yield format_error(e), None, cancel_event
        except Exception as e:
            traceback.print_exc()
            yield format_error(e), None, cancel_event

    def stop_video_request(cancel_event):
        if cancel_event is not None:
            cancel_event.set()
        return "⏹️ 视频生成已取消"

    gen_event = video_gen_btn.click(
        fn=process_video_request,
        inputs=[video_prompt, start_image, resolution, aspect_ratio],
        outputs=[progress_output, video_output, cancel_state]
    )
    stop_btn.click(
        fn=stop_video_request,
        inputs=cancel_state,
        outputs=progress_output,
        cancels=[gen_event]
    )


def create_audio_tab(config: StudioConfig):
    with gr.Row():
        with gr.Column():
            speech_text = gr.Textbox(
                label="文本",
                placeholder="请输入要朗读的文本...",
                lines=8
            )
            voice = gr.Radio(
                label="音色",
                choices=VOICE_NAMES,
                value="Kore"
            )
            speech_gen_btn = gr.Button("生成语音", variant="primary")

        with gr.Column():
            speech_status = gr.Markdown()
            audio_output = gr.Audio(label="生成结果", type="filepath", interactive=False)

    def process_speech_request(text, voice_name):
        if not text or not text.strip():
            return "❌ 请输入文本。", None
        try:
            result = generate_speech(config, SpeechRequest(text, voice_name))
        except StudioError as e:
            return format_error(e), None
        except Exception as e:
            traceback.print_exc()
            return format_error(e), None
        return "✅ 语音生成完成！", result.path

    speech_gen_btn.click(
        fn=process_speech_request,
        inputs=[speech_text, voice],
        outputs=[speech_status, audio_output]
    )


TABS = [
    ("1.文本对话", create_text_tab),
    ("2.图像生成/编辑", create_image_tab),
    ("3.视频生成 (Veo)", create_video_tab),
    ("4.语音合成", create_audio_tab),
]


def create_studio_ui(config: StudioConfig):
    """
    创建OmniGen Studio UI界面
    """
    with gr.Blocks(title="OmniGen Studio", analytics_enabled=False) as ui:
        gr.Markdown("# OmniGen Studio")
        gr.Markdown("基于 Gemini API 的文本、图像、视频、语音创作工具")

        with gr.Row():
            with gr.Column():
                api_key_input = gr.Textbox(
                    label="API Key",
                    type="password",
                    placeholder="请输入您的Gemini API Key",
                    info="输入API Key后点击下方按钮设置"
                )
                set_api_key_btn = gr.Button("设置API Key", variant="secondary")
                api_key_status = gr.Textbox(
                    label="状态",
                    value="已从环境变量读取API Key" if config.has_api_key else "未设置API Key",
                    interactive=False
                )

                set_api_key_btn.click(
                    fn=config.set_api_key,
                    inputs=api_key_input,
                    outputs=api_key_status
                )

        with gr.Tabs():
            for title, create_tab in TABS:
                with gr.TabItem(title):
                    try:
                        create_tab(config)
                    except Exception as e:
                        gr.Markdown(f"{title} 模块初始化错误: {e}")
                        traceback.print_exc()

        open_output_dir_btn = gr.Button("打开输出目录", variant="secondary")
        open_output_dir_btn.click(
            fn=lambda: open_output_dir(config),
            inputs=[],
            outputs=[]
        )

    return ui


def main():
    config = load_config()
    ui = create_studio_ui(config)
    ui.queue().launch()


if __name__ == "__main__":
    main()
