"""
回复组装器 - 决定每类事件最终发送的文本。

首轮引导规则（priming）：
- 普通内容：会话刚被创建（was_created）时，转发给模型的文本前加上引导语
- 重置命令：之前没有会话（not had_prior_session）时，问候语前加上引导语；
  之前已有会话时直接发送问候语，不再重复引导

引导与否由调用方根据 SessionStore 返回的标志显式传入，组装器本身不保存状态。
"""

from linegem.events.types import StickerEvent


class ReplyComposer:
    """
    回复组装器。

    属性:
        preamble: 引导语
        greeting: 重置后的问候语
        image_failure_text: 图片处理失败时的提示前缀
        conversation_failure_text: 对话失败时的提示前缀
    """

    def __init__(
        self,
        preamble: str = "You are a helpful assistant with precise and logical thinking. ",
        greeting: str = "很高興初次見到你，我是Gemini，請問有什麼想了解的嗎？",
        image_failure_text: str = "無法辨識圖片內容，請重新輸入:",
        conversation_failure_text: str = "抱歉，目前無法取得回覆，請稍後再試:",
    ):
        self.preamble = preamble
        self.greeting = greeting
        self.image_failure_text = image_failure_text
        self.conversation_failure_text = conversation_failure_text

    def prime(self, text: str, primed: bool) -> str:
        """primed 为 True 时在 text 前加上引导语。"""
        return self.preamble + text if primed else text

    def conversation_input(self, message: str, was_created: bool) -> str:
        """转发给对话模型的文本：新会话的第一条消息带引导语。"""
        return self.prime(message, was_created)

    def reset_greeting(self, had_prior_session: bool) -> str:
        """重置命令的问候语：之前没有会话时带引导语。"""
        return self.prime(self.greeting, not had_prior_session)

    def sticker_summary(self, event: StickerEvent) -> str:
        """贴图摘要：贴图 ID、包 ID、关键词和附带文字。"""
        keywords = "".join(f",{k}" for k in event.keywords)
        return (
            f"收到貼圖訊息: {event.sticker_id}, pkg: {event.package_id} "
            f"kw: {keywords}  text: {event.text}"
        )

    def image_failure(self, error: object) -> str:
        """图片处理失败的提示，附带底层错误。"""
        return f"{self.image_failure_text}{error}"

    def conversation_failure(self, error: object) -> str:
        """对话失败的提示，附带底层错误。"""
        return f"{self.conversation_failure_text}{error}"
