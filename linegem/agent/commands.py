"""
命令解释器 - 判断一条文字消息是控制命令、普通内容，还是应被忽略。

规则：
- 不以前缀（默认 "@#"）开头 → Ignored：不回复、不创建会话
- 去掉前缀后忽略大小写等于 "reset" → Command(RESET)
- 其余 → Content(去掉前缀后的文本)

interpret() 只接受原始文本：已经去掉前缀的文本（如 "reset"）会被视为 Ignored，
防止同一条消息被重复处理。
"""

from dataclasses import dataclass
from enum import Enum


class CommandName(str, Enum):
    """支持的控制命令。"""
    RESET = "reset"


@dataclass(frozen=True)
class Ignored:
    """消息不以前缀开头，应被忽略。"""


@dataclass(frozen=True)
class Command:
    """控制命令。"""
    name: CommandName


@dataclass(frozen=True)
class Content:
    """要转发给对话模型的普通内容。"""
    text: str


Interpretation = Ignored | Command | Content


class CommandInterpreter:
    """
    命令解释器。

    属性:
        prefix: 前缀（sentinel），只有以它开头的消息才会被处理
        reset_command: 重置命令字面量（忽略大小写比较）
    """

    def __init__(self, prefix: str = "@#", reset_command: str = "reset"):
        self.prefix = prefix
        self.reset_command = reset_command

    def interpret(self, text: str) -> Interpretation:
        """
        解释一条原始文字消息。

        参数:
            text: 用户发送的原始文本

        返回:
            Ignored、Command 或 Content 之一
        """
        if not text.startswith(self.prefix):
            return Ignored()

        payload = text[len(self.prefix):]
        if payload.casefold() == self.reset_command.casefold():
            return Command(CommandName.RESET)
        return Content(payload)
