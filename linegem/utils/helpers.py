"""
工具函数集合 - linegem 项目全局通用的辅助函数。

函数分类：
- 路径管理：ensure_dir, get_data_path
- 字符串工具：truncate_string, safe_filename, preview
- 二进制工具：detect_image_mime
"""

from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """递归创建目录（已存在时不做任何事），返回 path 本身。"""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """获取 linegem 数据目录（~/.linegem）。自动创建不存在的目录。"""
    return ensure_dir(Path.home() / ".linegem")


def truncate_string(s: str, max_len: int = 100, suffix: str = "...") -> str:
    """把 s 截到 max_len 个字符以内（含后缀），未超长时原样返回。"""
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix


def preview(s: str, max_len: int = 80) -> str:
    """日志预览用：截断并把换行替换为空格。"""
    return truncate_string(s.replace("\n", " "), max_len)


def safe_filename(name: str) -> str:
    """把文件系统不允许的字符替换为下划线，用作记录目录名。"""
    unsafe = '<>:"/\\|?*'
    for char in unsafe:
        name = name.replace(char, "_")
    return name.strip()


# 常见图片格式的文件头签名（magic number）
_IMAGE_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def detect_image_mime(data: bytes, default: str = "image/jpeg") -> str:
    """
    根据文件头识别图片的 MIME 类型。

    LINE 的图片内容接口通常返回 JPEG，但用户也可能发送 PNG/GIF/WebP，
    模型接口需要正确的 MIME 类型来解码 data URL。

    参数:
        data: 图片二进制内容
        default: 无法识别时使用的类型

    返回:
        MIME 类型字符串，如 "image/png"
    """
    for signature, mime in _IMAGE_SIGNATURES:
        if data.startswith(signature):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return default
