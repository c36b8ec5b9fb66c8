"""
模型提供者基类定义模块。

本模块定义了与生成式模型交互的抽象接口：
- LLMResponse          : 统一的调用结果（成功时是文本，失败时 finish_reason="error"）
- ChatSession          : 一段多轮对话，只支持"发送消息、取得回复"
- ConversationProvider : 创建新的 ChatSession
- ImageDescriber       : 把图片二进制内容转为文字描述

架构角色：
  Dispatcher → SessionStore → ChatSession.send() → 模型 API → LLMResponse → Dispatcher

所有调用都不抛出异常：外部服务的失败以 LLMResponse(finish_reason="error") 返回，
由 Dispatcher 决定如何告知用户。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class LLMResponse:
    """
    模型调用的统一结果。

    属性：
        content: 模型返回的文本（出错时为错误描述）
        finish_reason: 结束原因（"stop"=正常结束, "length"=达到长度上限, "error"=出错）
        usage: token 用量统计（prompt_tokens, completion_tokens, total_tokens）
    """
    content: str | None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        """调用是否失败。"""
        return self.finish_reason == "error"

    @property
    def text(self) -> str:
        """content 的非 None 形式。"""
        return self.content or ""


class ChatSession(ABC):
    """
    多轮对话会话（不透明句柄）。

    会话内部自行维护上下文，调用方只能发送消息并取得回复。
    同一会话的并发 send 由调用方负责串行化。
    """

    @abstractmethod
    async def send(self, text: str) -> LLMResponse:
        """
        发送一条用户消息并取得模型回复。

        参数：
            text: 用户消息（可能已附加引导语）

        返回：
            LLMResponse；失败时 finish_reason="error"
        """
        pass


class ConversationProvider(ABC):
    """对话服务：负责创建新的 ChatSession。"""

    @abstractmethod
    def start_session(self) -> ChatSession:
        """创建一段全新的对话（不涉及网络调用，可以在锁内安全执行）。"""
        pass


class ImageDescriber(ABC):
    """图片描述服务。"""

    @abstractmethod
    async def describe(self, data: bytes) -> LLMResponse:
        """
        生成图片的文字描述。

        参数：
            data: 图片二进制内容

        返回：
            LLMResponse；失败时 finish_reason="error"
        """
        pass
