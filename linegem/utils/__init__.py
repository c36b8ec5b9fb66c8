"""
工具函数模块 - 提供 linegem 项目全局通用的辅助函数。
"""

from linegem.utils.helpers import ensure_dir, get_data_path, safe_filename, truncate_string

__all__ = ["ensure_dir", "get_data_path", "safe_filename", "truncate_string"]
