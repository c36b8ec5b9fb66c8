"""
生成式模型提供者模块（providers 包）。

本模块是 linegem 与生成式模型服务之间的桥梁层，核心设计思想：
通过 LiteLLM 库实现"一套接口，多家模型"的统一调用，默认对接 Google Gemini。

模块组成：
- base.py             : LLMResponse 数据结构，以及 ChatSession / ConversationProvider / ImageDescriber 抽象接口
- litellm_provider.py : 基于 LiteLLM 的唯一实现（多轮对话会话 + 图片描述）
- registry.py         : 服务商注册表（模型前缀、API Key 环境变量名、网关检测）
"""

from linegem.providers.base import ChatSession, ConversationProvider, ImageDescriber, LLMResponse
from linegem.providers.litellm_provider import LiteLLMChatSession, LiteLLMProvider

__all__ = [
    "ChatSession",
    "ConversationProvider",
    "ImageDescriber",
    "LLMResponse",
    "LiteLLMChatSession",
    "LiteLLMProvider",
]
