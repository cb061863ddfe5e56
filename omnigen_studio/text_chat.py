"""
文本对话模块
维护对话记录，并调用文本模型生成回复
"""

import traceback
from typing import Any, Dict, List

from .api_handler import TEXT_MODEL, StudioError, extract_text, model_url, post_json
from .media_types import ROLE_MODEL, ROLE_USER, ChatMessage
from .shared import StudioConfig


SYSTEM_INSTRUCTION = """
You are OmniGen, an advanced AI creative assistant.
Rules:
1. Use simple, clear language unless advanced terms are requested.
2. No harmful, illegal, or unsafe content.
3. Structure outputs logically (headings, bullet points).
4. For Video requests: Provide complete AI video prompts + scene breakdowns.
5. For Image requests: Provide detailed image prompts.
6. For Audio/Voice: Provide dialogue + tone + mood instructions.
"""

WELCOME_TEXT = (
    "Hello! I'm OmniGen. I can help you write scripts, code, stories, summaries, and more. "
    "How can I assist you today?"
)
EMPTY_RESPONSE_TEXT = "No response generated."
ERROR_TEXT = "I encountered an error processing your request. Please try again."


def build_chat_payload(prompt: str, history: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
        "contents": history + [{"role": ROLE_USER, "parts": [{"text": prompt}]}]
    }


def generate_text_response(config: StudioConfig, prompt: str, history: List[Dict[str, Any]]) -> str:
    """
    根据系统指令、历史对话和最新消息生成回复
    """
    url = model_url(TEXT_MODEL, "generateContent", config.base_url)
    result = post_json(url, build_chat_payload(prompt, history), config.api_key, timeout=config.request_timeout)
    return extract_text(result) or EMPTY_RESPONSE_TEXT


class ChatSession:
    """
    单个会话的对话记录，消息只追加不修改
    """

    def __init__(self, config: StudioConfig):
        self.config = config
        self.messages: List[ChatMessage] = [
            ChatMessage(role=ROLE_MODEL, text=WELCOME_TEXT, id="welcome")
        ]

    def history(self) -> List[Dict[str, Any]]:
        """
        欢迎语不发送给模型；出错的回复连同它对应的用户消息一起跳过，
        保证历史中用户与模型轮流出现
        """
        turns: List[ChatMessage] = []
        for m in self.messages:
            if m.id == "welcome":
                continue
            if m.is_error:
                if turns and turns[-1].role == ROLE_USER:
                    turns.pop()
                continue
            turns.append(m)
        return [m.to_content() for m in turns]

    def send(self, text: str) -> ChatMessage:
        """
        发送一条用户消息，返回追加的模型回复（出错时为带错误标记的消息）
        """
        history = self.history()
        self.messages.append(ChatMessage(role=ROLE_USER, text=text))

        try:
            reply = ChatMessage(role=ROLE_MODEL, text=generate_text_response(self.config, text, history))
        except StudioError as e:
            print(f"文本生成失败: {str(e)}")
            reply = ChatMessage(role=ROLE_MODEL, text=ERROR_TEXT, is_error=True)
        except Exception as e:
            print(f"文本生成出现未知错误: {str(e)}")
            traceback.print_exc()
            reply = ChatMessage(role=ROLE_MODEL, text=ERROR_TEXT, is_error=True)

        self.messages.append(reply)
        return reply

    def to_chatbot(self) -> List[Dict[str, str]]:
        """
        转换为 gr.Chatbot(type="messages") 的显示格式
        """
        rows = []
        for m in self.messages:
            role = "user" if m.role == ROLE_USER else "assistant"
            content = f"⚠️ {m.text}" if m.is_error else m.text
            rows.append({"role": role, "content": content})
        return rows
