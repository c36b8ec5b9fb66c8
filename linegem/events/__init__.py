"""
入站事件模块 - 把 LINE Webhook 的原始事件归类为封闭的事件类型集合。

消息流向：
  LINE Webhook JSON → classify() → InboundEvent（TextEvent / ImageEvent / ...）→ Dispatcher

事件类型是一个封闭的联合类型（EVENT_TYPES），新增事件种类时需要同时：
1. 在 types.py 中新增 dataclass 并加入 EVENT_TYPES
2. 在 classifier.py 中补充识别规则
3. 在 agent/dispatcher.py 的处理表中注册处理函数（测试会检查处理表是否完整）
"""

from linegem.events.types import (
    EVENT_TYPES,
    BeaconEvent,
    EventSource,
    FollowEvent,
    ImageEvent,
    InboundEvent,
    OtherEvent,
    PostbackEvent,
    StickerEvent,
    TextEvent,
    VideoEvent,
)
from linegem.events.classifier import classify, extract_source

__all__ = [
    "EVENT_TYPES",
    "BeaconEvent",
    "EventSource",
    "FollowEvent",
    "ImageEvent",
    "InboundEvent",
    "OtherEvent",
    "PostbackEvent",
    "StickerEvent",
    "TextEvent",
    "VideoEvent",
    "classify",
    "extract_source",
]
