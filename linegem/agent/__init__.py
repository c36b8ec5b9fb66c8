"""
对话调度模块 - linegem 的核心状态机。

模块组成：
- commands.py   : CommandInterpreter，识别 "@#" 前缀、重置命令与普通内容
- composer.py   : ReplyComposer，首轮引导语、问候语、贴图摘要和失败提示
- dispatcher.py : Dispatcher，逐条处理一批 Webhook 事件并发送回复
"""

from linegem.agent.commands import Command, CommandInterpreter, CommandName, Content, Ignored
from linegem.agent.composer import ReplyComposer
from linegem.agent.dispatcher import Dispatcher

__all__ = [
    "Command",
    "CommandInterpreter",
    "CommandName",
    "Content",
    "Ignored",
    "ReplyComposer",
    "Dispatcher",
]
