"""
LiteLLM 提供者实现模块 - 多轮对话与图片描述的统一调用层。

LiteLLM 将 100+ 家模型服务商（Google Gemini、OpenAI、Anthropic 等）的 API
统一为 OpenAI 兼容格式。本模块在其之上提供：

  1. 模型名称解析：根据 registry.py 自动补全前缀（"gemini-1.5-flash" → "gemini/gemini-1.5-flash"）
  2. 环境变量配置：根据服务商自动设置 LiteLLM 所需的 API Key 环境变量
  3. 多轮对话：LiteLLMChatSession 在本地保存对话历史，每轮把完整历史发给模型
  4. 图片描述：把图片编码为 base64 data URL，与描述提示语一起发送
  5. 错误容错：调用失败时返回 finish_reason="error" 的 LLMResponse，而不是抛出异常

数据流：
  Dispatcher → LiteLLMChatSession.send() → LiteLLMProvider.complete() → acompletion() → 模型 API
"""

import base64
import os
from typing import Any

import litellm
from litellm import acompletion
from loguru import logger

from linegem.providers.base import ChatSession, ConversationProvider, ImageDescriber, LLMResponse
from linegem.providers.registry import find_by_model, find_gateway
from linegem.utils.helpers import detect_image_mime, preview


class LiteLLMProvider(ConversationProvider, ImageDescriber):
    """
    基于 LiteLLM 的模型提供者。

    构造参数：
        api_key: API 密钥
        api_base: 自定义 API 基础 URL（用于代理/网关）
        model: 对话模型名称
        vision_model: 图片描述模型名称，为空时使用 model
        chat_temperature: 对话温度
        image_temperature: 图片描述温度
        max_tokens: 单次回复的最大 token 数
        image_prompt: 图片描述的提示语
        extra_headers: 额外的 HTTP 请求头
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        model: str = "gemini/gemini-1.5-flash",
        vision_model: str | None = None,
        chat_temperature: float = 0.1,
        image_temperature: float = 0.8,
        max_tokens: int = 4096,
        image_prompt: str = "Describe this image with percise detail.",
        extra_headers: dict[str, str] | None = None,
    ):
        self.api_key = api_key
        self.api_base = api_base
        self.model = model
        self.vision_model = vision_model or model
        self.chat_temperature = chat_temperature
        self.image_temperature = image_temperature
        self.max_tokens = max_tokens
        self.image_prompt = image_prompt
        self.extra_headers = extra_headers or {}

        self._gateway = find_gateway(api_key, api_base)

        if api_key:
            self._setup_env(api_key, model)

        # 禁用 LiteLLM 的调试日志输出，并自动丢弃服务商不支持的参数
        litellm.suppress_debug_info = True
        litellm.drop_params = True

    def _setup_env(self, api_key: str, model: str) -> None:
        """
        根据检测到的服务商设置 LiteLLM 需要的 API Key 环境变量。

        网关强制覆盖（网关的 key 不同于原始服务商的 key），标准服务商使用 setdefault。
        """
        spec = self._gateway or find_by_model(model)
        if not spec:
            return
        if self._gateway:
            os.environ[spec.env_key] = api_key
        else:
            os.environ.setdefault(spec.env_key, api_key)

    def _resolve_model(self, model: str) -> str:
        """
        解析模型名称，添加 LiteLLM 所需的服务商前缀。

        参数：
            model: 原始模型名称（可能带或不带前缀）

        返回：
            处理后的模型名称
        """
        if self._gateway:
            prefix = self._gateway.litellm_prefix
            if prefix and not model.startswith(f"{prefix}/"):
                model = f"{prefix}/{model}"
            return model

        spec = find_by_model(model)
        if spec and spec.litellm_prefix:
            if not any(model.startswith(s) for s in spec.skip_prefixes):
                model = f"{spec.litellm_prefix}/{model}"
        return model

    async def complete(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """
        发送一次补全请求。

        参数：
            messages: OpenAI 格式的消息列表
            model: 模型名称，为空时使用对话模型
            temperature: 采样温度，为空时使用对话温度

        返回：
            LLMResponse；任何异常都转换为 finish_reason="error"
        """
        kwargs: dict[str, Any] = {
            "model": self._resolve_model(model or self.model),
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.chat_temperature if temperature is None else temperature,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.extra_headers:
            kwargs["extra_headers"] = self.extra_headers

        try:
            response = await acompletion(**kwargs)
            return self._parse_response(response)
        except Exception as e:
            logger.error(f"Error calling {kwargs['model']}: {e}")
            return LLMResponse(content=f"Error calling LLM: {str(e)}", finish_reason="error")

    def _parse_response(self, response: Any) -> LLMResponse:
        """将 LiteLLM 的原始响应解析为 LLMResponse。"""
        choice = response.choices[0]

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=choice.message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    def start_session(self) -> "LiteLLMChatSession":
        """创建一段新的多轮对话（只在本地建立空历史，不发起网络请求）。"""
        return LiteLLMChatSession(self)

    async def describe(self, data: bytes) -> LLMResponse:
        """
        生成图片的文字描述。

        参数：
            data: 图片二进制内容（PNG/JPEG/GIF/WebP）

        返回：
            LLMResponse
        """
        encoded = base64.b64encode(data).decode("ascii")
        messages = [{
            "role": "user",
            "content": [
                {"type": "image_url", "image_url": {"url": f"data:{detect_image_mime(data)};base64,{encoded}"}},
                {"type": "text", "text": self.image_prompt},
            ],
        }]
        logger.info(f"Begin processing image ({len(data)} bytes)...")
        response = await self.complete(messages, model=self.vision_model, temperature=self.image_temperature)
        logger.info(f"Finished processing image: {response.finish_reason}")
        return response


class LiteLLMChatSession(ChatSession):
    """
    基于 LiteLLM 的多轮对话会话。

    在本地维护 OpenAI 格式的对话历史。失败或回复为空的一轮会从历史中撤回，
    空回复（如安全过滤 finish_reason="content_filter"）按失败返回。
    """

    def __init__(self, provider: LiteLLMProvider):
        self._provider = provider
        self.history: list[dict[str, Any]] = []

    async def send(self, text: str) -> LLMResponse:
        self.history.append({"role": "user", "content": text})
        logger.debug(f"== Me: {preview(text)}")

        response = await self._provider.complete(list(self.history))
        if not response.is_error and not response.content:
            logger.warning(f"Empty reply from model (finish_reason={response.finish_reason})")
            response = LLMResponse(
                content=f"Empty reply from model (finish_reason={response.finish_reason})",
                finish_reason="error",
                usage=response.usage,
            )
        if response.is_error:
            self.history.pop()
            return response

        self.history.append({"role": "assistant", "content": response.text})
        logger.debug(f"== Model: {preview(response.text)}")
        return response
