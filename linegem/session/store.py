"""
会话存储实现模块 - 身份键到对话会话的进程内映射。

并发模型：
- 所有对映射的读-改-写（get_or_create、reset）都在同一把 threading.Lock 内完成，
  同一身份的两条并发首条消息只会创建一个会话
- 锁内只做映射操作和 factory() 调用（factory 只在本地建立对象，不访问网络）
- 取出的会话句柄在锁外使用；同一会话的并发发送由 Dispatcher 串行化

条目不会被删除，只会在 reset 时被整体替换。
"""

import threading
from typing import Callable

from loguru import logger

from linegem.providers.base import ChatSession


class SessionStore:
    """
    会话存储。

    属性:
        _factory: 创建新会话的工厂函数（通常是 ConversationProvider.start_session）
        _sessions: 身份键 → 会话
        _lock: 保护 _sessions 的互斥锁
    """

    def __init__(self, factory: Callable[[], ChatSession]):
        """
        参数:
            factory: 无参工厂函数，每次调用返回一个全新的会话
        """
        self._factory = factory
        self._sessions: dict[str, ChatSession] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> tuple[ChatSession | None, bool]:
        """
        查找会话。

        返回:
            (会话, 是否存在)；不存在时会话为 None
        """
        with self._lock:
            session = self._sessions.get(key)
        return session, session is not None

    def get_or_create(self, key: str) -> tuple[ChatSession, bool]:
        """
        原子地获取已有会话或创建新会话。

        返回:
            (会话, 是否为本次新建)
        """
        with self._lock:
            session = self._sessions.get(key)
            if session is not None:
                return session, False
            session = self._factory()
            self._sessions[key] = session
        logger.info(f"Created conversation session for {key}")
        return session, True

    def reset(self, key: str) -> tuple[ChatSession, bool]:
        """
        原子地创建新会话并替换旧会话（旧句柄随即被丢弃）。

        返回:
            (新会话, 调用前是否已有会话)
        """
        with self._lock:
            had_prior = key in self._sessions
            session = self._factory()
            self._sessions[key] = session
        logger.info(f"Reset conversation session for {key} (had prior: {had_prior})")
        return session, had_prior

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._sessions
