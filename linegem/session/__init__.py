"""
会话模块 - 管理每个身份的对话会话，以及可选的本地消息记录。

【架构定位】
- SessionStore：进程内的 身份键 → ChatSession 映射，所有读-改-写操作都是原子的
- MessageRecorder：把消息追加写入本地文件（尽力而为，失败不影响主流程）

会话只存在于内存中，进程重启后全部丢失。
"""

from linegem.session.recorder import MessageRecorder
from linegem.session.store import SessionStore

__all__ = ["SessionStore", "MessageRecorder"]
