"""
配置加载与保存 (config/loader.py)
===============================
本模块负责 linegem 配置文件的加载、保存和格式转换：
- 配置文件默认路径: ~/.linegem/config.json
- 配置文件使用 camelCase（驼峰命名），Python 内部使用 snake_case（下划线命名）
- 加载时自动将 camelCase → snake_case，保存时自动将 snake_case → camelCase
- 兼容旧版部署（Cloud Run 等）直接使用的环境变量：
  GOOGLE_GEMINI_API_KEY、ChannelAccessToken、ChannelSecret、PORT
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from linegem.config.schema import Config

# 旧版环境变量 → 配置路径（section, field）
LEGACY_ENV_VARS: dict[str, tuple[str, str]] = {
    "GOOGLE_GEMINI_API_KEY": ("provider", "api_key"),
    "ChannelAccessToken": ("line", "channel_access_token"),
    "ChannelSecret": ("line", "channel_secret"),
    "PORT": ("gateway", "port"),
}


def get_config_path() -> Path:
    """获取默认配置文件路径: ~/.linegem/config.json"""
    return Path.home() / ".linegem" / "config.json"


def load_config(config_path: Path | None = None, environ: dict[str, str] | None = None) -> Config:
    """
    读取 config.json 并叠加旧版环境变量；文件不存在时得到默认配置。

    加载流程：
    1. 读取 JSON 文件内容并将 camelCase 键名转换为 snake_case
    2. 叠加旧版环境变量（仅填补文件中为空的字段）
    3. 使用 Pydantic 的 model_validate 进行类型验证和反序列化

    参数:
        config_path: 可选的配置文件路径。为 None 时使用默认路径。
        environ: 读取旧版环境变量的来源，默认 os.environ（测试时可注入）

    返回:
        Config 配置对象实例
    """
    path = config_path or get_config_path()
    data: dict[str, Any] = {}

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = convert_keys(json.load(f))
        except (json.JSONDecodeError, ValueError) as e:
            # 配置文件损坏时使用默认配置
            logger.warning(f"Failed to load config from {path}: {e}. Using default configuration.")
            data = {}

    data = _apply_legacy_env(data, os.environ if environ is None else environ)
    return Config.model_validate(data)


def _apply_legacy_env(data: dict[str, Any], environ: Any) -> dict[str, Any]:
    """
    用旧版环境变量补全配置。

    配置文件中已有非空值的字段不会被覆盖。

    参数:
        data: snake_case 键名的配置字典
        environ: 环境变量映射

    返回:
        补全后的配置字典
    """
    for env_name, (section, field) in LEGACY_ENV_VARS.items():
        value = environ.get(env_name)
        if not value:
            continue
        section_data = data.setdefault(section, {})
        if not section_data.get(field):
            section_data[field] = value
    return data


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    将配置对象保存为 JSON 文件（camelCase 键名，带缩进）。

    参数:
        config: 要保存的配置对象
        config_path: 可选的保存路径。为 None 时使用默认路径。
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def convert_keys(data: Any) -> Any:
    """camelCase → snake_case，只转换配置段名和字段名两层，extra_headers 等字典值原样保留。"""
    return _rename_keys(data, camel_to_snake)


def convert_to_camel(data: Any) -> Any:
    """snake_case → camelCase，规则同 convert_keys。"""
    return _rename_keys(data, snake_to_camel)


def _rename_keys(data: Any, rename: Callable[[str], str], depth: int = 2) -> Any:
    if depth == 0 or not isinstance(data, dict):
        return data
    return {rename(k): _rename_keys(v, rename, depth - 1) for k, v in data.items()}


def camel_to_snake(name: str) -> str:
    """例: "channelAccessToken" → "channel_access_token" """
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def snake_to_camel(name: str) -> str:
    """例: "image_failure_text" → "imageFailureText" """
    first, *rest = name.split("_")
    return first + "".join(part.capitalize() for part in rest)
