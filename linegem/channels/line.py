"""
LINE 渠道实现 - 基于 LINE Messaging API 的回复、内容下载与签名校验。

接口：
- POST {api_base}/v2/bot/message/reply               发送回复（需要回复令牌）
- GET  {data_api_base}/v2/bot/message/{id}/content   下载图片/影片等内容

Webhook 签名校验：
    X-Line-Signature = base64(HMAC-SHA256(channel_secret, 原始请求体))

依赖：
- httpx：异步 HTTP 客户端
"""

import base64
import hashlib
import hmac

import httpx
from loguru import logger

from linegem.channels.base import BaseChannel
from linegem.config.schema import LineConfig
from linegem.utils.helpers import truncate_string

# LINE 单条文字消息的最大长度
MAX_TEXT_LENGTH = 5000


class LineAPIError(Exception):
    """LINE API 返回非 2xx 状态码。"""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"LINE API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class LineChannel(BaseChannel):
    """
    LINE 渠道。

    属性:
        config: LineConfig
        _client: httpx.AsyncClient，start() 时创建；未启动时每次请求临时创建
    """

    name = "line"

    def __init__(self, config: LineConfig, client: httpx.AsyncClient | None = None):
        super().__init__(config)
        self.config: LineConfig = config
        self._client = client

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        self._running = True
        logger.info("LINE channel started")

    async def stop(self) -> None:
        self._running = False
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.channel_access_token}"}

    def verify_signature(self, body: bytes, signature: str | None) -> bool:
        """
        校验 Webhook 请求的 X-Line-Signature。

        参数:
            body: 原始请求体
            signature: 请求头中的签名（缺失时校验失败）

        返回:
            签名是否有效
        """
        if not signature or not self.config.channel_secret:
            return False
        digest = hmac.new(self.config.channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
        expected = base64.b64encode(digest).decode("ascii")
        return hmac.compare_digest(expected, signature)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            response = await self._client.request(method, url, headers=self._headers, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                response = await client.request(method, url, headers=self._headers, **kwargs)
        if response.status_code >= 300:
            raise LineAPIError(response.status_code, response.text)
        return response

    async def reply(self, reply_token: str, text: str) -> None:
        """
        用回复令牌发送一条文字消息（超长时截断到 LINE 的上限）。

        异常:
            LineAPIError: LINE 返回非 2xx
            httpx.HTTPError: 网络错误
        """
        payload = {
            "replyToken": reply_token,
            "messages": [{"type": "text", "text": truncate_string(text, MAX_TEXT_LENGTH)}],
        }
        await self._request("POST", f"{self.config.api_base}/v2/bot/message/reply", json=payload)

    async def fetch_content(self, message_id: str) -> bytes:
        """
        下载消息内容（图片、影片等）。

        异常:
            LineAPIError: LINE 返回非 2xx
            httpx.HTTPError: 网络错误
        """
        response = await self._request(
            "GET", f"{self.config.data_api_base}/v2/bot/message/{message_id}/content"
        )
        return response.content
