"""
入站事件类型定义。

所有事件都是不可变的 dataclass，共同携带：
- reply_token: LINE 的回复令牌，每个事件只能使用一次
- source: 事件来源（用户 / 群组 / 聊天室）

EventSource.identity_key 决定了会话归属：同一来源的事件总是得到同一个键。
"""

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class EventSource:
    """
    事件来源。

    属性:
        kind: 来源类型（"user"、"group"、"room"，未知时为原始值或空串）
        user_id: 用户 ID（群组/聊天室中也可能带有发言者的 user_id）
        group_id: 群组 ID
        room_id: 聊天室 ID
    """

    kind: str = ""
    user_id: str = ""
    group_id: str = ""
    room_id: str = ""

    @property
    def identity_key(self) -> str:
        """
        会话身份键，优先级：user_id > group_id > room_id。

        三者皆空时返回空串，调用方必须把空串视为"没有会话身份"。
        """
        return self.user_id or self.group_id or self.room_id

    @property
    def identity_kind(self) -> str:
        """identity_key 实际取自哪个字段："user"、"group"、"room" 或空串。"""
        if self.user_id:
            return "user"
        if self.group_id:
            return "group"
        if self.room_id:
            return "room"
        return ""


@dataclass(frozen=True)
class TextEvent:
    """文字消息。"""
    reply_token: str
    source: EventSource
    message_id: str
    text: str


@dataclass(frozen=True)
class ImageEvent:
    """图片消息，内容需要通过 message_id 从 LINE 的内容接口下载。"""
    reply_token: str
    source: EventSource
    message_id: str


@dataclass(frozen=True)
class StickerEvent:
    """贴图消息。"""
    reply_token: str
    source: EventSource
    message_id: str
    package_id: str
    sticker_id: str
    keywords: tuple[str, ...] = ()
    text: str = ""


@dataclass(frozen=True)
class VideoEvent:
    """影片消息（只记录日志）。"""
    reply_token: str
    source: EventSource
    message_id: str


@dataclass(frozen=True)
class FollowEvent:
    """用户加好友（或解除封锁）。"""
    reply_token: str
    source: EventSource


@dataclass(frozen=True)
class PostbackEvent:
    """Postback 动作。"""
    reply_token: str
    source: EventSource
    data: str


@dataclass(frozen=True)
class BeaconEvent:
    """LINE Beacon 事件。"""
    reply_token: str
    source: EventSource
    hwid: str
    beacon_type: str = ""


@dataclass(frozen=True)
class OtherEvent:
    """
    无法识别或暂不支持的事件（包括音频、文件、位置等消息类型）。

    属性:
        event_type: 原始事件的 type 字段
        message_type: 原始消息的 type 字段（非消息事件为空串）
        raw: 原始事件内容，仅用于日志
    """
    reply_token: str
    source: EventSource
    event_type: str = ""
    message_type: str = ""
    raw: Any = field(default=None, compare=False, repr=False)


InboundEvent = Union[
    TextEvent,
    ImageEvent,
    StickerEvent,
    VideoEvent,
    FollowEvent,
    PostbackEvent,
    BeaconEvent,
    OtherEvent,
]

# 封闭的事件类型集合，Dispatcher 的处理表必须覆盖其中每一项
EVENT_TYPES: tuple[type, ...] = (
    TextEvent,
    ImageEvent,
    StickerEvent,
    VideoEvent,
    FollowEvent,
    PostbackEvent,
    BeaconEvent,
    OtherEvent,
)
