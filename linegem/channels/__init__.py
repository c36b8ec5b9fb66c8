"""
消息渠道模块 - LINE Messaging API 的接入。

【架构定位】
渠道层负责与 LINE 平台通信：
- ReplySink：用回复令牌发送文字回复
- BlobFetcher：按消息 ID 下载图片等媒体内容
- LineChannel：以上两者基于 httpx 的实现，另负责 Webhook 签名校验
- server.py：FastAPI Webhook 服务，把事件批次交给 Dispatcher

消息流向：
  LINE → POST /callback → Dispatcher → LineChannel.reply() → LINE
"""

from linegem.channels.base import BaseChannel, BlobFetcher, ContentUnavailableError, ReplySink
from linegem.channels.line import LineAPIError, LineChannel

__all__ = ["BaseChannel", "BlobFetcher", "ContentUnavailableError", "ReplySink", "LineAPIError", "LineChannel"]
