"""
本地消息记录器 - 把每个身份收到/发出的消息追加写入纯文本文件。

存储布局（每行一条消息）：
    {directory}/UserID_{id}/messages.txt
    {directory}/GroupID_{id}/messages.txt
    {directory}/RoomID_{id}/messages.txt

记录是尽力而为的：任何 I/O 错误只记录警告日志，绝不影响对话主流程。
"""

import threading
from pathlib import Path

from loguru import logger

from linegem.utils.helpers import ensure_dir, safe_filename

# 身份类型 → 目录名前缀
_FOLDER_PREFIXES = {
    "user": "UserID_",
    "group": "GroupID_",
    "room": "RoomID_",
}


class MessageRecorder:
    """
    追加写入型消息记录器。

    属性:
        directory: 记录根目录
        _lock: 串行化文件写入，避免并发请求的行互相穿插
    """

    def __init__(self, directory: Path):
        self.directory = directory
        self._lock = threading.Lock()

    def _get_path(self, identity_key: str, kind: str) -> Path:
        """
        根据身份键和身份类型获取记录文件路径。

        参数:
            identity_key: 身份键（用户/群组/聊天室 ID）
            kind: 身份类型（"user"、"group"、"room"），未知类型不加前缀
        """
        folder = _FOLDER_PREFIXES.get(kind, "") + safe_filename(identity_key)
        return self.directory / folder / "messages.txt"

    def record(self, identity_key: str, message: str, kind: str = "user") -> None:
        """
        追加一条消息。

        参数:
            identity_key: 身份键；为空时不记录
            message: 消息文本（多行文本会被压成一行）
            kind: 身份类型
        """
        if not identity_key:
            return
        path = self._get_path(identity_key, kind)
        line = message.replace("\r", " ").replace("\n", " ")
        try:
            with self._lock:
                ensure_dir(path.parent)
                with open(path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
        except OSError as e:
            logger.warning(f"Failed to record message for {identity_key}: {e}")

    def read(self, identity_key: str, kind: str = "user") -> list[str]:
        """读取某个身份的全部记录（文件不存在时返回空列表）。"""
        path = self._get_path(identity_key, kind)
        if not path.exists():
            return []
        return path.read_text(encoding="utf-8").splitlines()
