"""
渠道基类模块 - 定义 Dispatcher 依赖的两个窄接口，以及渠道生命周期基类。

- ReplySink.reply(reply_token, text)：每个回复令牌只能调用一次
- BlobFetcher.fetch_content(message_id)：下载媒体内容

两者失败时都抛出异常，由 Dispatcher 捕获并决定如何降级。
"""

from abc import ABC, abstractmethod
from typing import Any


class ContentUnavailableError(Exception):
    """渠道无法提供消息的媒体内容。"""


class ReplySink(ABC):
    """回复出口。"""

    @abstractmethod
    async def reply(self, reply_token: str, text: str) -> None:
        """
        用回复令牌发送一条文字回复。

        参数:
            reply_token: 事件携带的一次性回复令牌
            text: 回复内容
        """
        pass


class BlobFetcher(ABC):
    """媒体内容下载。"""

    @abstractmethod
    async def fetch_content(self, message_id: str) -> bytes:
        """
        下载消息的二进制内容。

        参数:
            message_id: 消息 ID

        返回:
            二进制内容
        """
        pass


class BaseChannel(ReplySink, BlobFetcher):
    """
    消息渠道抽象基类。

    属性:
        name: 渠道标识名
        config: 渠道特定的配置对象
        _running: 渠道运行状态标志
    """

    name: str = "base"

    def __init__(self, config: Any):
        self.config = config
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """建立与平台通信所需的资源（如 HTTP 连接池）。"""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """释放资源。"""
        pass

    @property
    def is_running(self) -> bool:
        """渠道是否已启动。"""
        return self._running
