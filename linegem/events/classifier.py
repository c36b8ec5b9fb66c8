"""
事件分类器 - 把 LINE Webhook 的原始事件 dict 转换为 InboundEvent。

classify() 是纯函数：没有副作用，也没有失败路径。
任何格式异常、字段缺失或不支持的事件都会被归为 OtherEvent，而不是抛出异常。

LINE Webhook 事件示例：
    {
        "type": "message",
        "replyToken": "nHuyWiB7yP5Zw52FIkcQobQuGDXCTA",
        "source": {"type": "user", "userId": "U4af4980629..."},
        "message": {"type": "text", "id": "325708", "text": "@#hello"}
    }
"""

from typing import Any

from linegem.events.types import (
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


def _str(value: Any) -> str:
    """把可能缺失或非字符串的字段统一转为字符串（None → 空串）。"""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def extract_source(raw_source: Any) -> EventSource:
    """
    从原始 source 字段提取事件来源。

    只要某个 ID 字段有值就会被保留，身份键的优先级由 EventSource.identity_key 决定。
    """
    source = _dict(raw_source)
    return EventSource(
        kind=_str(source.get("type")),
        user_id=_str(source.get("userId")),
        group_id=_str(source.get("groupId")),
        room_id=_str(source.get("roomId")),
    )


def _classify_message(reply_token: str, source: EventSource, raw: dict[str, Any]) -> InboundEvent:
    message = _dict(raw.get("message"))
    message_type = _str(message.get("type"))
    message_id = _str(message.get("id"))

    if message_type == "text":
        return TextEvent(reply_token, source, message_id, _str(message.get("text")))
    if message_type == "image":
        return ImageEvent(reply_token, source, message_id)
    if message_type == "sticker":
        keywords = message.get("keywords")
        if not isinstance(keywords, list):
            keywords = []
        return StickerEvent(
            reply_token,
            source,
            message_id,
            package_id=_str(message.get("packageId")),
            sticker_id=_str(message.get("stickerId")),
            keywords=tuple(_str(k) for k in keywords),
            text=_str(message.get("text")),
        )
    if message_type == "video":
        return VideoEvent(reply_token, source, message_id)

    return OtherEvent(reply_token, source, event_type="message", message_type=message_type, raw=raw)


def classify(raw: Any) -> InboundEvent:
    """
    把一条原始 Webhook 事件归类为 InboundEvent。

    参数:
        raw: JSON 解码后的单个事件（通常是 dict，但任何值都可以安全传入）

    返回:
        对应的事件对象；无法识别时返回 OtherEvent
    """
    if not isinstance(raw, dict):
        return OtherEvent("", EventSource(), raw=raw)

    event_type = _str(raw.get("type"))
    reply_token = _str(raw.get("replyToken"))
    source = extract_source(raw.get("source"))

    if event_type == "message":
        return _classify_message(reply_token, source, raw)
    if event_type == "follow":
        return FollowEvent(reply_token, source)
    if event_type == "postback":
        return PostbackEvent(reply_token, source, _str(_dict(raw.get("postback")).get("data")))
    if event_type == "beacon":
        beacon = _dict(raw.get("beacon"))
        return BeaconEvent(reply_token, source, _str(beacon.get("hwid")), _str(beacon.get("type")))

    return OtherEvent(reply_token, source, event_type=event_type, raw=raw)
