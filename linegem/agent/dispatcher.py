"""
调度器模块 - linegem 的核心处理引擎。

Dispatcher 接收一批 Webhook 事件，逐条完成：
  分类 → 命令解释 → 会话查找/创建/重置 → 调用模型 → 组装回复 → 发送回复

状态转移表：
  TextEvent    + Ignored         → 无动作、无回复
  TextEvent    + Command(RESET)  → SessionStore.reset()，回复问候语（之前无会话时带引导语）
  TextEvent    + Content(msg)    → SessionStore.get_or_create()，转发给模型（新会话在第一轮成功之前都带引导语），回复模型输出
  StickerEvent                   → 回复贴图摘要（不触碰会话）
  ImageEvent                     → 下载图片 → 图片描述 → 回复描述或失败提示
  VideoEvent / FollowEvent / PostbackEvent / BeaconEvent / OtherEvent → 只记录日志

错误处理：
  单个事件中的任何失败都不会中断同一批次的后续事件，也不会影响其他身份的会话。
  模型与图片服务的失败会以提示文字告知用户。
"""

import asyncio
import weakref
from typing import Any, Awaitable, Callable

from loguru import logger

from linegem.agent.commands import Command, CommandInterpreter, CommandName, Content, Ignored
from linegem.agent.composer import ReplyComposer
from linegem.channels.base import BlobFetcher, ReplySink
from linegem.events.classifier import classify
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
from linegem.providers.base import ChatSession, ImageDescriber
from linegem.session.recorder import MessageRecorder
from linegem.session.store import SessionStore
from linegem.utils.helpers import preview


class Dispatcher:
    """
    事件调度器。

    核心属性：
    - store: 会话存储（唯一跨请求共享的可变状态）
    - replies: 回复出口
    - blobs: 媒体内容下载
    - describer: 图片描述服务
    - interpreter: 命令解释器
    - composer: 回复组装器
    - recorder: 可选的本地消息记录器
    """

    def __init__(
        self,
        store: SessionStore,
        replies: ReplySink,
        blobs: BlobFetcher,
        describer: ImageDescriber,
        interpreter: CommandInterpreter | None = None,
        composer: ReplyComposer | None = None,
        recorder: MessageRecorder | None = None,
    ):
        self.store = store
        self.replies = replies
        self.blobs = blobs
        self.describer = describer
        self.interpreter = interpreter or CommandInterpreter()
        self.composer = composer or ReplyComposer()
        self.recorder = recorder

        # 每个身份一把锁，串行化对同一会话的并发发送；与会话映射一样不会过期
        self._send_locks: dict[str, asyncio.Lock] = {}
        # 新建后尚未成功完成一轮对话的会话，下一次发送仍需带引导语
        self._unprimed: "weakref.WeakSet[ChatSession]" = weakref.WeakSet()

        self.handlers: dict[type, Callable[[Any], Awaitable[None]]] = {
            TextEvent: self._on_text,
            ImageEvent: self._on_image,
            StickerEvent: self._on_sticker,
            VideoEvent: self._on_video,
            FollowEvent: self._on_follow,
            PostbackEvent: self._on_postback,
            BeaconEvent: self._on_beacon,
            OtherEvent: self._on_other,
        }

    async def dispatch(self, raw_events: list[Any]) -> None:
        """
        处理一批原始 Webhook 事件（按顺序逐条处理，全部完成后返回）。

        参数:
            raw_events: JSON 解码后的事件列表（即 Webhook 请求体中的 "events"）
        """
        for raw in raw_events:
            await self.handle(classify(raw))

    async def handle(self, event: InboundEvent) -> None:
        """处理单个已分类事件；异常只记录日志，不向外传播。"""
        logger.info(f"Got event {type(event).__name__} from {event.source.identity_key or '<unknown>'}")
        handler = self.handlers[type(event)]
        try:
            await handler(event)
        except Exception:
            logger.exception(f"Error handling {type(event).__name__}")

    # ------------------------------------------------------------------
    # 文字消息
    # ------------------------------------------------------------------

    async def _on_text(self, event: TextEvent) -> None:
        result = self.interpreter.interpret(event.text)
        if isinstance(result, Ignored):
            logger.debug(f"Ignoring text without command prefix: {preview(event.text)}")
            return

        key = event.source.identity_key
        if not key:
            logger.warning("Text event without user, group or room id; skipping session interaction")
            return

        if isinstance(result, Command):
            await self._on_command(event, result)
        elif isinstance(result, Content):
            await self._on_content(event, result.text)

    async def _on_command(self, event: TextEvent, command: Command) -> None:
        if command.name is CommandName.RESET:
            _, had_prior = self.store.reset(event.source.identity_key)
            await self._reply(event.reply_token, self.composer.reset_greeting(had_prior))

    async def _on_content(self, event: TextEvent, message: str) -> None:
        key = event.source.identity_key
        session, was_created = self.store.get_or_create(key)
        if was_created:
            self._unprimed.add(session)
        self._record(event.source, message)

        async with self._lock_for(key):
            primed = session in self._unprimed
            response = await session.send(self.composer.conversation_input(message, primed))
            if primed and not response.is_error and response.text:
                self._unprimed.discard(session)

        if response.is_error:
            text = self.composer.conversation_failure(response.content)
        elif not response.text:
            logger.warning(f"Model returned an empty reply for {key} ({response.finish_reason})")
            text = self.composer.conversation_failure(f"empty reply ({response.finish_reason})")
        else:
            text = response.text
            self._record(event.source, text)
        await self._reply(event.reply_token, text)

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._send_locks.get(key)
        if lock is None:
            lock = self._send_locks.setdefault(key, asyncio.Lock())
        return lock

    # ------------------------------------------------------------------
    # 媒体与其他事件
    # ------------------------------------------------------------------

    async def _on_sticker(self, event: StickerEvent) -> None:
        await self._reply(event.reply_token, self.composer.sticker_summary(event))

    async def _on_image(self, event: ImageEvent) -> None:
        logger.info(f"Received image message {event.message_id}")
        try:
            data = await self.blobs.fetch_content(event.message_id)
        except Exception as e:
            logger.error(f"Failed to fetch image {event.message_id}: {e}")
            await self._reply(event.reply_token, self.composer.image_failure(e))
            return

        response = await self.describer.describe(data)
        if response.is_error:
            text = self.composer.image_failure(response.content)
        elif not response.text:
            text = self.composer.image_failure(f"empty reply ({response.finish_reason})")
        else:
            text = response.text
        await self._reply(event.reply_token, text)

    async def _on_video(self, event: VideoEvent) -> None:
        logger.info(f"Received video message {event.message_id}")

    async def _on_follow(self, event: FollowEvent) -> None:
        logger.info(f"Got followed event from {event.source.identity_key}")

    async def _on_postback(self, event: PostbackEvent) -> None:
        logger.info(f"Got postback: {event.data}")

    async def _on_beacon(self, event: BeaconEvent) -> None:
        logger.info(f"Got beacon: {event.hwid} ({event.beacon_type})")

    async def _on_other(self, event: OtherEvent) -> None:
        kind = f"{event.event_type}/{event.message_type}" if event.message_type else event.event_type
        logger.info(f"Unsupported event: {kind or '<unknown>'}")

    # ------------------------------------------------------------------
    # 出口
    # ------------------------------------------------------------------

    async def _reply(self, reply_token: str, text: str) -> None:
        """发送回复；回复失败只记录日志。"""
        if not reply_token:
            logger.warning("Event has no reply token; dropping reply")
            return
        if not text:
            logger.warning("Empty reply text; nothing sent")
            return
        try:
            await self.replies.reply(reply_token, text)
        except Exception as e:
            logger.error(f"Failed to send reply: {e}")

    def _record(self, source: EventSource, message: str) -> None:
        if self.recorder:
            self.recorder.record(source.identity_key, message, source.identity_kind)
